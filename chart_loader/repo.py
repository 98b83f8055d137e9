"""Library for loading charts from Helm chart repositories.

A chart is loaded by resolving the requested version against the repository
index, downloading and unpacking the chart archive and decomposing it into a
`Template`. Dependencies declared in Chart.yaml are loaded the same way from
their own repositories.

```python
from chart_loader.cache import InMemoryTemplateCache
from chart_loader.repo import HelmChartRepository

async with HelmChartRepository(cache=InMemoryTemplateCache()) as repo:
    template = await repo.load_helm_chart(
        "https://charts.example.com", "podinfo", "^6.0.0"
    )
    values = await repo.load_helm_chart_initial_values(
        "https://charts.example.com", "podinfo", "^6.0.0"
    )
```

The requested version is resolved before the cache is consulted, so the index
is fetched on every call for anything other than an exact version while the
chart itself is only downloaded once per resolved version.
"""

import logging
from types import TracebackType
from typing import Any

import aiohttp

from . import archive
from .cache import InMemoryTemplateCache, TemplateCache
from .chart import map_helm_chart
from .config import RepositoryConfig
from .fields import FieldMapper, schema_to_fields
from .manifest import ChartDependency, ChartMetadata, Index, Template
from .values import map_helm_chart_initial_values
from .versions import is_valid_version, resolve_index_version, tarball_url

__all__ = [
    "HelmChartRepository",
]

_LOGGER = logging.getLogger(__name__)

_REMOTE_SCHEMES = ("http://", "https://")


def _is_remote(dependency: ChartDependency) -> bool:
    """Return True if the dependency is published in an HTTP chart repository."""
    return dependency.repository.startswith(_REMOTE_SCHEMES)


class HelmChartRepository:
    """Loads and caches charts from Helm chart repositories."""

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        cache: TemplateCache | None = None,
        config: RepositoryConfig | None = None,
        field_mapper: FieldMapper = schema_to_fields,
    ) -> None:
        """Initialize HelmChartRepository.

        A session is created on first use when none is supplied and is closed
        by `close()`. A supplied session is left for the caller to close.
        """
        self._session = session
        self._owns_session = session is None
        self._cache = cache if cache is not None else InMemoryTemplateCache()
        self._config = config or RepositoryConfig()
        self._field_mapper = field_mapper

    async def __aenter__(self) -> "HelmChartRepository":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session if it was created by this object."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        """Return the HTTP session used for all requests."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=None)
            )
        return self._session

    async def is_helm_repo(self, repo: str) -> bool:
        """Return True if the URL is a Helm chart repository."""
        return await archive.is_helm_repo(self.session, repo, self._config.index_file)

    async def fetch_index(self, repo: str) -> Index:
        """Fetch the current index of a repository."""
        return await archive.fetch_index(self.session, repo, self._config.index_file)

    async def resolve_version(self, repo: str, chart: str, version: str) -> str:
        """Resolve a requested version to a concrete published version."""
        if is_valid_version(version):
            return version
        index = await self.fetch_index(repo)
        return resolve_index_version(index, repo, chart, version)

    async def load_helm_chart(
        self, repo: str, chart: str, version: str, resolved_version: str = ""
    ) -> Template:
        """Load a chart and its dependencies.

        A `resolved_version` known to the caller skips version resolution.
        """
        index: Index | None = None
        strict_version = resolved_version or version
        if not resolved_version and not is_valid_version(version):
            index = await self.fetch_index(repo)
            strict_version = resolve_index_version(index, repo, chart, version)

        source_type = self._config.source_type
        if (
            cached := self._cache.get_template(repo, chart, strict_version, source_type)
        ) is not None:
            return cached

        files = await self._fetch_chart(repo, chart, strict_version, index)
        template = await map_helm_chart(
            chart, files, self._load_dependencies, self._field_mapper
        )
        template.version = version
        template.resolved_version = strict_version

        self._cache.set_template(repo, chart, strict_version, source_type, template)
        return template

    async def load_helm_chart_initial_values(
        self, repo: str, chart: str, version: str
    ) -> dict[str, Any]:
        """Load the merged default values of a chart and its dependencies."""
        index: Index | None = None
        strict_version = version
        if not is_valid_version(version):
            index = await self.fetch_index(repo)
            strict_version = resolve_index_version(index, repo, chart, version)

        source_type = self._config.source_type
        if (
            cached := self._cache.get_template_initial_values(
                repo, chart, strict_version, source_type
            )
        ) is not None:
            return cached

        files = await self._fetch_chart(repo, chart, strict_version, index)
        values = await map_helm_chart_initial_values(
            chart, files, self._load_dependency_values
        )

        self._cache.set_template_initial_values(
            repo, chart, strict_version, source_type, values
        )
        return values

    async def _fetch_chart(
        self, repo: str, chart: str, version: str, index: Index | None
    ) -> dict[str, bytes]:
        """Download and unpack the archive of a chart version."""
        if index is None:
            index = await self.fetch_index(repo)
        url = tarball_url(index, repo, chart, version)
        data = await archive.download(self.session, url)
        return archive.unpack_tgz(data)

    def _declared_dependencies(
        self, metadata: ChartMetadata, by_values_key: bool = False
    ) -> list[ChartDependency]:
        """Return the declared dependencies that can be loaded from a repository.

        Repeated dependencies are dropped, compared by name or by values key.
        """
        if not self._config.load_declared_dependencies:
            return []
        dependencies = []
        names: set[str] = set()
        for dependency in metadata.dependencies:
            if not _is_remote(dependency):
                _LOGGER.debug(
                    "Skipping dependency %s of %s from repository %r",
                    dependency.name,
                    metadata.name,
                    dependency.repository,
                )
                continue
            name = dependency.values_key if by_values_key else dependency.name
            if name in names:
                continue
            names.add(name)
            dependencies.append(dependency)
        return dependencies

    async def _load_dependencies(self, metadata: ChartMetadata) -> list[Template]:
        """Load the dependencies declared in Chart.yaml, in declaration order."""
        templates = []
        for dependency in self._declared_dependencies(metadata):
            templates.append(
                await self.load_helm_chart(
                    dependency.repository, dependency.name, dependency.version
                )
            )
        return templates

    async def _load_dependency_values(self, metadata: ChartMetadata) -> dict[str, Any]:
        """Load the default values of the dependencies declared in Chart.yaml."""
        values: dict[str, Any] = {}
        for dependency in self._declared_dependencies(metadata, by_values_key=True):
            values[dependency.values_key] = await self.load_helm_chart_initial_values(
                dependency.repository, dependency.name, dependency.version
            )
        return values
