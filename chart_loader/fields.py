"""Mapping of a values schema into the field tree used to render forms."""

from collections.abc import Callable
import dataclasses
import logging

from .manifest import Property, SchemaField, Template

__all__ = [
    "FieldMapper",
    "schema_to_fields",
]

_LOGGER = logging.getLogger(__name__)

FieldMapper = Callable[
    [str, Property, dict[str, Property], list[Template]], SchemaField
]

MAP_FIELD = "map"
ARRAY_FIELD = "array"
STRING_FIELD = "string"

_FIELD_TYPES = {
    "string": STRING_FIELD,
    "integer": "number",
    "number": "number",
    "boolean": "boolean",
    "array": ARRAY_FIELD,
    "object": MAP_FIELD,
}
_DEFINITIONS_PREFIX = "#/definitions/"


def _schema_type(schema: Property) -> str | None:
    """Return the first non-null JSON schema type of the node."""
    if isinstance(schema.type, list):
        return next((t for t in schema.type if t != "null"), None)
    return schema.type


def _field_type(schema: Property) -> str:
    if (schema_type := _schema_type(schema)) is None and schema.properties:
        return MAP_FIELD
    return _FIELD_TYPES.get(schema_type or "", STRING_FIELD)


def _display_name(name: str) -> str:
    if not name:
        return ""
    return name[0].upper() + name[1:]


def _resolve_ref(schema: Property, definitions: dict[str, Property]) -> Property:
    """Follow a `#/definitions/...` reference, keeping unresolvable nodes as is."""
    seen: set[str] = set()
    while schema.ref and schema.ref not in seen:
        seen.add(schema.ref)
        if not schema.ref.startswith(_DEFINITIONS_PREFIX):
            _LOGGER.debug("Unsupported schema reference %s", schema.ref)
            break
        if (target := definitions.get(schema.ref[len(_DEFINITIONS_PREFIX) :])) is None:
            _LOGGER.debug("Unknown schema reference %s", schema.ref)
            break
        schema = target
    return schema


def _child_key(parent: str, name: str) -> str:
    return f"{parent}.{name}" if parent else name


def _to_field(
    name: str, manifest_key: str, schema: Property, definitions: dict[str, Property]
) -> SchemaField:
    schema = _resolve_ref(schema, definitions)
    field_type = _field_type(schema)
    required = schema.required if isinstance(schema.required, list) else []
    result = SchemaField(
        name=name,
        type=field_type,
        display_name=schema.title or _display_name(name),
        description=schema.description or "",
        manifest_key=manifest_key,
        initial_value=schema.default,
        enum=schema.enum,
        required=list(required),
        minimum=schema.minimum,
        maximum=schema.maximum,
    )
    if field_type == ARRAY_FIELD and schema.items is not None:
        result.items = _to_field("", "", schema.items, definitions)
    if field_type == MAP_FIELD:
        result.properties = [
            _to_field(
                prop_name,
                _child_key(manifest_key, prop_name),
                schema.properties[prop_name],
                definitions,
            )
            for prop_name in schema.ordered_names
        ]
    return result


def _rekey(field: SchemaField, prefix: str) -> SchemaField:
    """Return a copy of the field tree with manifest keys moved below prefix."""
    return dataclasses.replace(
        field,
        manifest_key=_child_key(prefix, field.manifest_key),
        properties=[_rekey(child, prefix) for child in field.properties],
    )


def schema_to_fields(
    name: str,
    schema: Property,
    definitions: dict[str, Property],
    dependencies: list[Template],
) -> SchemaField:
    """Build the root field of a chart from its schema and dependencies.

    Each dependency contributes a map field, named after it, holding copies
    of the fields of the dependency's own root field with their manifest keys
    moved below the dependency name.
    """
    root = _to_field(name, name, schema, definitions)
    root.type = MAP_FIELD
    for dependency in dependencies:
        dep_root = dependency.root_field
        dep_key = _child_key(name, dependency.name)
        root.properties.append(
            SchemaField(
                name=dependency.name,
                type=MAP_FIELD,
                display_name=dependency.name,
                description=(
                    dependency.helm_chart_metadata.description or ""
                    if dependency.helm_chart_metadata
                    else ""
                ),
                manifest_key=dep_key,
                properties=(
                    [_rekey(field, dep_key) for field in dep_root.properties]
                    if dep_root
                    else []
                ),
                required=list(dep_root.required) if dep_root else [],
            )
        )
    return root
