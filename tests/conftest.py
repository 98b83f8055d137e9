"""Fixtures for serving chart repositories from a local HTTP server."""

from collections.abc import AsyncGenerator, Callable
import io
import tarfile
from typing import Any

import pytest
import yaml
from aiohttp import web
from aiohttp.test_utils import TestServer

from chart_loader.cache import InMemoryTemplateCache
from chart_loader.repo import HelmChartRepository


def make_archive(files: dict[str, str | bytes]) -> bytes:
    """Build a gzip compressed tar archive from a mapping of path to content."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, content in files.items():
            data = content.encode() if isinstance(content, str) else content
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


class FakeChartServer:
    """HTTP server publishing one or more chart repositories.

    Each repository lives below its own path prefix and has an index built
    from the charts added to it. Every request is recorded.
    """

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.requests: list[str] = []
        self.redirects: dict[str, str] = {}
        self._entries: dict[str, dict[str, list[dict[str, Any]]]] = {}
        app = web.Application()
        app.router.add_route("*", "/{path:.*}", self._handle)
        self._server = TestServer(app)

    async def _handle(self, request: web.Request) -> web.Response:
        self.requests.append(f"{request.method} {request.path}")
        if (location := self.redirects.get(request.path)) is not None:
            raise web.HTTPFound(location)
        if (body := self.files.get(request.path)) is None:
            raise web.HTTPNotFound()
        return web.Response(body=body)

    async def start(self) -> None:
        await self._server.start_server()

    async def close(self) -> None:
        await self._server.close()

    def url(self, prefix: str) -> str:
        """Return the URL of the repository below the prefix."""
        return str(self._server.make_url(f"/{prefix}"))

    def add_chart(
        self,
        prefix: str,
        name: str,
        version: str,
        files: dict[str, str | bytes],
        **entry: Any,
    ) -> str:
        """Publish a chart version, returning the path of its archive.

        Files are named relative to the chart root. The index entry links the
        archive with a relative URL unless `urls` is passed.
        """
        path = f"/{prefix}/{name}-{version}.tgz"
        self.files[path] = make_archive(
            {f"{name}/{file_name}": content for file_name, content in files.items()}
        )
        index_entry = {
            "name": name,
            "version": version,
            "urls": [f"{name}-{version}.tgz"],
            **entry,
        }
        self._entries.setdefault(prefix, {}).setdefault(name, []).append(index_entry)
        self.files[f"/{prefix}/index.yaml"] = yaml.dump(
            {"apiVersion": "v1", "entries": self._entries[prefix]}
        ).encode()
        return path

    def count(self, request: str) -> int:
        """Return the number of times a request like `GET /path` was made."""
        return self.requests.count(request)


@pytest.fixture(name="archive_builder")
def archive_builder_fixture() -> Callable[[dict[str, str | bytes]], bytes]:
    """Fixture returning a function that builds chart archives."""
    return make_archive


@pytest.fixture(name="chart_server")
async def chart_server_fixture() -> AsyncGenerator[FakeChartServer, None]:
    """Fixture for a running chart repository server."""
    server = FakeChartServer()
    await server.start()
    yield server
    await server.close()


@pytest.fixture(name="cache")
def cache_fixture() -> InMemoryTemplateCache:
    """Fixture for an empty template cache."""
    return InMemoryTemplateCache()


@pytest.fixture(name="repository")
async def repository_fixture(
    cache: InMemoryTemplateCache,
) -> AsyncGenerator[HelmChartRepository, None]:
    """Fixture for the HelmChartRepository under test."""
    async with HelmChartRepository(cache=cache) as repository:
        yield repository
