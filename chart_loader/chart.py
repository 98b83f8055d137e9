"""Decomposition of an unpacked chart archive into a resolved Template.

Every archive entry is rooted at the chart directory, e.g. `mychart/...`. The
entries below it are classified as:

- `Chart.yaml`, `values.schema.json` and `values.yaml` at the chart root
- render templates under `templates/` and CRDs under `crds/`, except notes and
  chart tests
- embedded subcharts under `charts/<name>/`, decomposed recursively
- any other file, kept as an opaque chart file

Dependencies declared in Chart.yaml are resolved first by the caller supplied
loader. Embedded subcharts are only added for names not already resolved that
way.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
import logging
from typing import Any

from mashumaro.exceptions import MissingField, InvalidFieldValue
import yaml

from .archive import ArchivePath
from .context import chart_context, current_chart_path
from .exceptions import MetadataDecodeError
from .fields import FieldMapper, schema_to_fields
from .manifest import ChartFile, ChartMetadata, Template
from .schema import decode_schema

__all__ = [
    "ChartContents",
    "classify_chart_files",
    "decode_metadata",
    "map_helm_chart",
]

_LOGGER = logging.getLogger(__name__)

CHART_FILE = "Chart.yaml"
SCHEMA_FILE = "values.schema.json"
VALUES_FILE = "values.yaml"
TEMPLATES_DIR = "templates"
CRDS_DIR = "crds"
CHARTS_DIR = "charts"

# Immediate children of templates/ and crds/ that are never rendered
EXCLUDED_NAMES = frozenset({"Notes.txt", "NOTES.txt", "tests"})

DependencyLoader = Callable[[ChartMetadata], Awaitable[list[Template]]]


@dataclass
class ChartContents:
    """Archive entries of a single chart grouped by their role."""

    metadata: bytes | None = None
    """Content of Chart.yaml."""

    schema: bytes = b""
    """Content of values.schema.json, empty when the chart has none."""

    values: bytes | None = None
    """Content of values.yaml."""

    files: list[ChartFile] = field(default_factory=list)
    """Opaque files named by full archive path."""

    templates: list[ChartFile] = field(default_factory=list)
    """Render templates named relative to the chart root."""

    crds: list[ChartFile] = field(default_factory=list)
    """CRDs named relative to the chart root."""

    subcharts: dict[str, dict[str, bytes]] = field(default_factory=dict)
    """Entries of each embedded subchart, rooted at the subchart name."""


def _is_renderable(path: ArchivePath, directory: str) -> bool:
    return (
        path.depth > 2
        and path.first_segment == directory
        and path.second_segment not in EXCLUDED_NAMES
    )


def classify_chart_files(files: dict[str, bytes]) -> ChartContents:
    """Group the unpacked entries of a chart archive by their role."""
    contents = ChartContents()
    for name, content in files.items():
        path = ArchivePath.parse(name)
        if path.is_root_file(CHART_FILE):
            contents.metadata = content
            continue
        if path.is_root_file(SCHEMA_FILE):
            contents.schema = content
            continue
        if path.is_root_file(VALUES_FILE):
            contents.values = content
            # Renderers need the defaults alongside the templates
            contents.files.append(ChartFile(name=name, data=content))
            continue
        if _is_renderable(path, TEMPLATES_DIR):
            contents.templates.append(ChartFile(name=path.relative, data=content))
            continue
        if _is_renderable(path, CRDS_DIR):
            contents.crds.append(ChartFile(name=path.relative, data=content))
            continue
        if path.depth > 3 and path.first_segment == CHARTS_DIR:
            dep_name = path.parts[2]
            # Re-root at the subchart directory: charts/sub/x -> sub/x
            contents.subcharts.setdefault(dep_name, {})[
                path.remainder.relative
            ] = content
            continue
        contents.files.append(ChartFile(name=name, data=content))
    return contents


def decode_metadata(raw: bytes | None, chart_name: str) -> ChartMetadata:
    """Decode the Chart.yaml of a chart."""
    if raw is None:
        raise MetadataDecodeError(
            chart_name, f"chart has no {CHART_FILE}", current_chart_path()
        )
    try:
        doc: Any = yaml.safe_load(raw)
    except yaml.YAMLError as err:
        raise MetadataDecodeError(chart_name, str(err), current_chart_path()) from err
    if not isinstance(doc, dict):
        raise MetadataDecodeError(
            chart_name,
            f"expected a mapping but was {type(doc).__name__}",
            current_chart_path(),
        )
    if doc.get("dependencies") is None:
        doc.pop("dependencies", None)
    try:
        return ChartMetadata.from_dict(doc)
    except (MissingField, InvalidFieldValue, ValueError, TypeError) as err:
        raise MetadataDecodeError(chart_name, str(err), current_chart_path()) from err


async def map_helm_chart(
    chart_name: str,
    files: dict[str, bytes],
    load_dependencies: DependencyLoader,
    field_mapper: FieldMapper = schema_to_fields,
) -> Template:
    """Decompose an unpacked chart and its subcharts into a Template."""
    with chart_context(chart_name):
        contents = classify_chart_files(files)
        schema = decode_schema(contents.schema, chart_name)
        metadata = decode_metadata(contents.metadata, chart_name)

        dependencies = await load_dependencies(metadata)
        for dep_name, dep_files in contents.subcharts.items():
            if any(dep.name == dep_name for dep in dependencies):
                _LOGGER.debug(
                    "Subchart %s of %s already resolved from Chart.yaml",
                    dep_name,
                    chart_name,
                )
                continue
            dependencies.append(
                await map_helm_chart(
                    dep_name, dep_files, load_dependencies, field_mapper
                )
            )

        _LOGGER.debug(
            "Chart %s has %d templates, %d crds, %d dependencies",
            chart_name,
            len(contents.templates),
            len(contents.crds),
            len(dependencies),
        )
        return Template(
            name=chart_name,
            root_field=field_mapper("", schema, schema.definitions, dependencies),
            files=contents.files,
            templates=contents.templates,
            crds=contents.crds,
            dependencies=dependencies,
            helm_chart_metadata=metadata,
            raw_schema=contents.schema,
            icon_url=metadata.icon,
        )
