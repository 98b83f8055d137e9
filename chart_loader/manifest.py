"""Representation of charts, repository indexes and resolved templates.

These objects are built from the documents inside a chart repository: the
repository `index.yaml`, a chart's `Chart.yaml` and `values.schema.json`. A
`Template` is the resolved result of loading a chart and all of its
dependencies and is what callers receive from the loader.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig

__all__ = [
    "ChartFile",
    "ChartDependency",
    "ChartMetadata",
    "IndexEntry",
    "Index",
    "Property",
    "SchemaField",
    "Template",
]


OBJECT_TYPE = "object"


def _version_str(value: Any) -> str:
    """YAML may decode unquoted versions like `1.0` as numbers."""
    return str(value)


@dataclass
class BaseManifest(DataClassDictMixin):
    """Base class for all manifest objects."""

    class Config(BaseConfig):
        omit_none = True


@dataclass
class ChartFile(BaseManifest):
    """A single file from a chart archive."""

    name: str
    """Path of the file, relative to the chart root for templates and CRDs."""

    data: bytes = b""
    """Raw file content."""


@dataclass
class ChartDependency(BaseManifest):
    """A dependency declared in the `dependencies` list of Chart.yaml."""

    name: str
    """Name of the dependency chart."""

    version: str = field(metadata=field_options(deserialize=_version_str), default="")
    """Exact version or version constraint of the dependency."""

    repository: str = ""
    """URL of the repository the dependency is published in."""

    alias: Optional[str] = None
    """Alternative name used as the values key of the dependency."""

    condition: Optional[str] = None
    """Values path that enables or disables the dependency."""

    @property
    def values_key(self) -> str:
        """Key holding this dependency's values in the parent values."""
        return self.alias or self.name


@dataclass
class ChartMetadata(BaseManifest):
    """The contents of a chart's Chart.yaml."""

    name: str
    """Name of the chart."""

    version: str = field(metadata=field_options(deserialize=_version_str), default="")
    """Version of the chart."""

    api_version: Optional[str] = field(
        metadata=field_options(alias="apiVersion"), default=None
    )
    """Chart API version, v1 or v2."""

    app_version: Optional[str] = field(
        metadata=field_options(alias="appVersion", deserialize=_version_str),
        default=None,
    )
    """Version of the application packaged by the chart."""

    description: Optional[str] = None
    """Single sentence description of the chart."""

    icon: Optional[str] = None
    """URL of an icon for the chart."""

    type: Optional[str] = None
    """Chart type, application or library."""

    dependencies: list[ChartDependency] = field(default_factory=list)
    """Dependencies declared by the chart."""

    class Config(BaseManifest.Config):
        serialize_by_alias = True


@dataclass
class IndexEntry(BaseManifest):
    """A published version of a chart in a repository index."""

    version: str = field(metadata=field_options(deserialize=_version_str))
    """Version of the chart."""

    urls: list[str] = field(default_factory=list)
    """Download URLs of the chart archive, absolute or relative to the repo."""

    name: Optional[str] = None
    """Name of the chart."""

    app_version: Optional[str] = field(
        metadata=field_options(alias="appVersion", deserialize=_version_str),
        default=None,
    )
    """Version of the application packaged by the chart."""

    digest: Optional[str] = None
    """SHA256 digest of the chart archive."""

    class Config(BaseManifest.Config):
        serialize_by_alias = True


@dataclass
class Index(BaseManifest):
    """A chart repository index.yaml."""

    entries: dict[str, list[IndexEntry]] = field(default_factory=dict)
    """Published versions of each chart, by chart name."""

    api_version: Optional[str] = field(
        metadata=field_options(alias="apiVersion"), default=None
    )
    """Version of the index format."""

    class Config(BaseManifest.Config):
        serialize_by_alias = True


@dataclass
class Property(BaseManifest):
    """A node of a chart values schema.

    The `properties` mapping comes from structured decoding. The declaration
    order of its keys is recorded separately in `order` by the schema scanner.
    """

    type: str | list[str] | None = None
    """JSON schema type of the node."""

    title: Optional[str] = None
    description: Optional[str] = None
    default: Any = None
    enum: Optional[list[Any]] = None
    format: Optional[str] = None
    pattern: Optional[str] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    required: list[str] | bool | None = None
    """Required property names, or a draft 3 style boolean."""

    items: Optional["Property"] = None
    """Schema of array items."""

    properties: dict[str, "Property"] = field(default_factory=dict)
    """Nested properties of an object node."""

    order: list[str] = field(default_factory=list)
    """Declaration order of the keys of `properties`."""

    definitions: dict[str, "Property"] = field(default_factory=dict)
    """Named reusable subschemas."""

    ref: Optional[str] = field(metadata=field_options(alias="$ref"), default=None)
    """Reference to a named subschema, e.g. `#/definitions/name`."""

    class Config(BaseManifest.Config):
        serialize_by_alias = True

    @property
    def is_object(self) -> bool:
        """Return True if the node describes an object."""
        if isinstance(self.type, list):
            return OBJECT_TYPE in self.type
        return self.type == OBJECT_TYPE

    @property
    def ordered_names(self) -> list[str]:
        """Property names in declaration order.

        Names the scanner did not find are appended in decode order.
        """
        names = [name for name in self.order if name in self.properties]
        names.extend(name for name in self.properties if name not in names)
        return names


@dataclass
class SchemaField(BaseManifest):
    """A node of the field tree rendered by user interfaces."""

    name: str
    """Name of the value this field configures."""

    type: str
    """One of string, number, boolean, map, array."""

    display_name: str = ""
    """Human readable label."""

    description: str = ""

    manifest_key: str = ""
    """Dotted path of the value from the values root."""

    initial_value: Any = None
    """Default value declared by the schema."""

    enum: Optional[list[Any]] = None

    required: list[str] = field(default_factory=list)
    """Names of required child fields."""

    minimum: Optional[float] = None
    maximum: Optional[float] = None

    items: Optional["SchemaField"] = None
    """Field describing array items."""

    properties: list["SchemaField"] = field(default_factory=list)
    """Child fields in declaration order."""


@dataclass
class Template(BaseManifest):
    """A chart resolved together with all of its dependencies."""

    name: str
    """Name of the chart."""

    version: str = ""
    """Version as requested by the caller, possibly a constraint."""

    resolved_version: str = ""
    """Concrete version the request resolved to."""

    root_field: Optional[SchemaField] = None
    """Field tree built from the values schema and dependencies."""

    files: list[ChartFile] = field(default_factory=list)
    """Opaque chart files keyed by full archive path."""

    templates: list[ChartFile] = field(default_factory=list)
    """Render templates, named `templates/...`."""

    crds: list[ChartFile] = field(default_factory=list)
    """Custom resource definitions, named `crds/...`."""

    dependencies: list["Template"] = field(default_factory=list)
    """One resolved Template per distinct dependency name."""

    helm_chart_metadata: Optional[ChartMetadata] = None
    """Parsed Chart.yaml."""

    raw_schema: bytes = b""
    """Raw values.schema.json content."""

    icon_url: Optional[str] = None
    """Icon URL from Chart.yaml."""

    def dependency(self, name: str) -> Optional["Template"]:
        """Return the resolved dependency with the specified name."""
        for dep in self.dependencies:
            if dep.name == name:
                return dep
        return None
