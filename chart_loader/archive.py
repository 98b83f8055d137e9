"""Library for fetching chart repository content over HTTP.

A chart repository is a plain HTTP server publishing an `index.yaml` and a
gzip compressed tar archive per chart version. The archive is unpacked in
memory into a mapping of archive path to file content, e.g.
`mychart/templates/deployment.yaml`.
"""

from dataclasses import dataclass
import io
import logging
import tarfile
from typing import Any
from urllib.parse import urljoin
import zlib

import aiohttp
import yaml
from mashumaro.exceptions import MissingField, InvalidFieldValue

from .exceptions import (
    ArchiveCorruptError,
    DownloadFailedError,
    IndexDecodeError,
    NetworkError,
)
from .manifest import Index

__all__ = [
    "ArchivePath",
    "join_url",
    "fetch_index",
    "download",
    "is_helm_repo",
    "unpack_tgz",
]

_LOGGER = logging.getLogger(__name__)

INDEX_FILE = "index.yaml"


@dataclass(frozen=True)
class ArchivePath:
    """A forward slash delimited path of a chart archive entry."""

    parts: tuple[str, ...]

    @classmethod
    def parse(cls, name: str) -> "ArchivePath":
        """Split an archive entry name into its components."""
        return cls(tuple(name.split("/")))

    @property
    def depth(self) -> int:
        """Number of path components."""
        return len(self.parts)

    @property
    def chart_root(self) -> str:
        """The top level directory, named after the chart."""
        return self.parts[0]

    @property
    def first_segment(self) -> str | None:
        """The first component below the chart root."""
        return self.parts[1] if self.depth > 1 else None

    @property
    def second_segment(self) -> str | None:
        """The second component below the chart root."""
        return self.parts[2] if self.depth > 2 else None

    @property
    def remainder(self) -> "ArchivePath":
        """The path with the chart root removed."""
        return ArchivePath(self.parts[1:])

    @property
    def relative(self) -> str:
        """The path below the chart root as a string."""
        return "/".join(self.parts[1:])

    def is_root_file(self, name: str) -> bool:
        """Return True if this is the named file directly under the chart root."""
        return self.depth == 2 and self.parts[1] == name

    def __str__(self) -> str:
        return "/".join(self.parts)


def join_url(base: str, path: str) -> str:
    """Join a repository URL and a path relative to it."""
    return urljoin(base.rstrip("/") + "/", path)


async def _get(session: aiohttp.ClientSession, url: str) -> bytes:
    """Return the body of a GET request, failing on any non-200 status."""
    try:
        async with session.get(url) as response:
            if response.status != 200:
                raise DownloadFailedError(url, response.status, response.reason)
            return await response.read()
    except aiohttp.ClientError as err:
        raise NetworkError(f"Failed to fetch {url}: {err}") from err


async def fetch_index(
    session: aiohttp.ClientSession, repo: str, index_file: str = INDEX_FILE
) -> Index:
    """Fetch and decode the index of a chart repository."""
    url = join_url(repo, index_file)
    _LOGGER.info("Fetching repository index %s", url)
    body = await _get(session, url)
    try:
        doc: Any = yaml.safe_load(body)
    except yaml.YAMLError as err:
        raise IndexDecodeError(repo, str(err)) from err
    if doc is None:
        doc = {}
    if not isinstance(doc, dict):
        raise IndexDecodeError(repo, f"expected a mapping but was {type(doc)}")
    try:
        return Index.from_dict(doc)
    except (MissingField, InvalidFieldValue, ValueError, TypeError) as err:
        raise IndexDecodeError(repo, str(err)) from err


async def download(session: aiohttp.ClientSession, url: str) -> bytes:
    """Download a chart archive."""
    _LOGGER.info("Downloading chart %s", url)
    data = await _get(session, url)
    _LOGGER.debug("Downloaded %d bytes from %s", len(data), url)
    return data


async def is_helm_repo(
    session: aiohttp.ClientSession, repo: str, index_file: str = INDEX_FILE
) -> bool:
    """Return True if the URL serves a chart repository index."""
    url = join_url(repo, index_file)
    try:
        async with session.head(url, allow_redirects=True) as response:
            _LOGGER.debug("HEAD %s returned %s", url, response.status)
            return response.status == 200
    except aiohttp.ClientError as err:
        raise NetworkError(f"Failed to probe {url}: {err}") from err


def unpack_tgz(data: bytes) -> dict[str, bytes]:
    """Unpack a gzip compressed tar archive into a mapping of path to content.

    Entries are read sequentially in archive order. Only regular files are
    kept, directories and links carry no chart content.
    """
    files: dict[str, bytes] = {}
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
            for member in tar:
                if not member.isfile():
                    continue
                if (reader := tar.extractfile(member)) is None:
                    continue
                with reader:
                    files[member.name] = reader.read()
    except (tarfile.TarError, zlib.error, EOFError, OSError) as err:
        raise ArchiveCorruptError(f"Unable to read chart archive: {err}") from err
    _LOGGER.debug("Unpacked %d files from chart archive", len(files))
    return files
