"""Cache of resolved templates and initial values.

Entries are keyed by the concrete resolved version so that requests for a
constraint and for the version it resolves to share a cache slot.
"""

from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
import logging
from typing import Any, Generic, TypeVar

from .config import CacheConfig
from .manifest import Template

__all__ = [
    "TemplateKey",
    "TemplateCache",
    "InMemoryTemplateCache",
]

_LOGGER = logging.getLogger(__name__)

_V = TypeVar("_V")


@dataclass(frozen=True, order=True)
class TemplateKey:
    """Identifier of a resolved chart version."""

    repo: str
    chart: str
    version: str
    source_type: str

    def __str__(self) -> str:
        return f"{self.source_type}:{self.repo}/{self.chart}@{self.version}"


class TemplateCache(ABC):
    """Abstract base class for template caches.

    Implementations must be safe to use from concurrent resolution calls.
    """

    @abstractmethod
    def get_template(
        self, repo: str, chart: str, version: str, source_type: str
    ) -> Template | None:
        """Return a cached template, or None on a miss."""

    @abstractmethod
    def set_template(
        self, repo: str, chart: str, version: str, source_type: str, template: Template
    ) -> None:
        """Store a resolved template."""

    @abstractmethod
    def get_template_initial_values(
        self, repo: str, chart: str, version: str, source_type: str
    ) -> dict[str, Any] | None:
        """Return cached initial values, or None on a miss."""

    @abstractmethod
    def set_template_initial_values(
        self,
        repo: str,
        chart: str,
        version: str,
        source_type: str,
        values: dict[str, Any],
    ) -> None:
        """Store the merged initial values of a chart."""


class _LRU(Generic[_V]):
    """Mapping that drops the least recently used keys beyond a size limit."""

    def __init__(self, max_entries: int | None) -> None:
        self._entries: OrderedDict[TemplateKey, _V] = OrderedDict()
        self._max_entries = max_entries

    def lookup(self, key: TemplateKey) -> _V | None:
        if (value := self._entries.get(key)) is not None:
            self._entries.move_to_end(key)
        return value

    def store(self, key: TemplateKey, value: _V) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        while self._max_entries is not None and len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            _LOGGER.debug("Evicted %s from cache", evicted)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class InMemoryTemplateCache(TemplateCache):
    """In-memory implementation of the TemplateCache interface."""

    def __init__(self, config: CacheConfig | None = None) -> None:
        """Initialize the InMemoryTemplateCache."""
        max_entries = (config or CacheConfig()).max_entries
        self._templates: _LRU[Template] = _LRU(max_entries)
        self._initial_values: _LRU[dict[str, Any]] = _LRU(max_entries)

    def get_template(
        self, repo: str, chart: str, version: str, source_type: str
    ) -> Template | None:
        """Return a cached template, or None on a miss."""
        key = TemplateKey(repo, chart, version, source_type)
        if (template := self._templates.lookup(key)) is not None:
            _LOGGER.debug("Cache hit for template %s", key)
        return template

    def set_template(
        self, repo: str, chart: str, version: str, source_type: str, template: Template
    ) -> None:
        """Store a resolved template."""
        self._templates.store(TemplateKey(repo, chart, version, source_type), template)

    def get_template_initial_values(
        self, repo: str, chart: str, version: str, source_type: str
    ) -> dict[str, Any] | None:
        """Return cached initial values, or None on a miss."""
        key = TemplateKey(repo, chart, version, source_type)
        if (values := self._initial_values.lookup(key)) is not None:
            _LOGGER.debug("Cache hit for initial values %s", key)
        return values

    def set_template_initial_values(
        self,
        repo: str,
        chart: str,
        version: str,
        source_type: str,
        values: dict[str, Any],
    ) -> None:
        """Store the merged initial values of a chart."""
        self._initial_values.store(
            TemplateKey(repo, chart, version, source_type), values
        )

    def clear(self) -> None:
        """Remove all cached entries."""
        self._templates.clear()
        self._initial_values.clear()

    def __len__(self) -> int:
        return len(self._templates) + len(self._initial_values)
