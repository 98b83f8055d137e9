"""Configuration objects for chart-loader."""

from dataclasses import dataclass


SOURCE_TYPE_HELM = "helm"


@dataclass
class RepositoryConfig:
    """Configuration for the HelmChartRepository."""

    index_file: str = "index.yaml"
    """Name of the repository index relative to the repository URL."""

    source_type: str = SOURCE_TYPE_HELM
    """Source type recorded in cache keys."""

    load_declared_dependencies: bool = True
    """Resolve dependencies declared in Chart.yaml from their repositories."""


@dataclass
class CacheConfig:
    """Configuration for the InMemoryTemplateCache."""

    max_entries: int | None = None
    """Evict the least recently used entries beyond this size, unbounded if None."""
