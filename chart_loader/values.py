"""Module for computing the default values of a chart and its dependencies.

The values.yaml of a chart is the base. The defaults of every embedded subchart
are overlaid under the subchart name, then the defaults of every dependency
declared in Chart.yaml are overlaid under the dependency's values key.

Overlaying only fills gaps: a value already present in the base is kept even
when the overlay has a different value for the same key.
"""

from collections.abc import Awaitable, Callable
import copy
import logging
from typing import Any

import yaml

from .chart import classify_chart_files, decode_metadata
from .context import chart_context, current_chart_path
from .exceptions import ValuesDecodeError
from .manifest import ChartMetadata

__all__ = [
    "overlay_values",
    "decode_values",
    "map_helm_chart_initial_values",
]

_LOGGER = logging.getLogger(__name__)

DependencyValuesLoader = Callable[[ChartMetadata], Awaitable[dict[str, Any]]]


def overlay_values(existing: Any, overlay: Any) -> Any:
    """Merge overlay into existing, in place, without replacing existing values.

    Keys missing from existing are copied from overlay. Keys holding a mapping
    on both sides are merged recursively. Any other key keeps the existing
    value. When either argument is not a mapping, existing is returned as is.
    """
    if not isinstance(existing, dict) or not isinstance(overlay, dict):
        return existing

    for key, overlay_value in overlay.items():
        if key not in existing:
            existing[key] = copy.deepcopy(overlay_value)
            continue
        match existing[key], overlay_value:
            case dict() as base, dict() as layer:
                existing[key] = overlay_values(base, layer)
            case _:
                _LOGGER.debug("Keeping existing value for key %s", key)
    return existing


def decode_values(raw: bytes | None, chart_name: str) -> dict[str, Any]:
    """Decode the values.yaml of a chart, empty when the chart has none."""
    if not raw:
        return {}
    try:
        doc = yaml.safe_load(raw)
    except yaml.YAMLError as err:
        raise ValuesDecodeError(chart_name, str(err), current_chart_path()) from err
    if doc is None:
        return {}
    if not isinstance(doc, dict):
        raise ValuesDecodeError(
            chart_name,
            f"expected a mapping but was {type(doc).__name__}",
            current_chart_path(),
        )
    return doc


def _overlay_dependency(values: dict[str, Any], key: str, dep_values: Any) -> None:
    if values.get(key) is None:
        values[key] = {}
    values[key] = overlay_values(values[key], dep_values)


async def map_helm_chart_initial_values(
    chart_name: str,
    files: dict[str, bytes],
    load_dependency_values: DependencyValuesLoader,
) -> dict[str, Any]:
    """Compute the merged default values of an unpacked chart."""
    with chart_context(chart_name):
        contents = classify_chart_files(files)
        values = decode_values(contents.values, chart_name)
        metadata = decode_metadata(contents.metadata, chart_name)

        for dep_name, dep_files in contents.subcharts.items():
            dep_values = await map_helm_chart_initial_values(
                dep_name, dep_files, load_dependency_values
            )
            _overlay_dependency(values, dep_name, dep_values)

        for key, dep_values in (await load_dependency_values(metadata)).items():
            _overlay_dependency(values, key, dep_values)

        return values
