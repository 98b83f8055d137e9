"""Extraction of property declaration order from a chart values schema.

Forms generated from a values schema list fields in the order the chart author
declared them. The decoded `Property` tree does not carry that order, so it is
recovered by scanning the raw JSON text for the keys of each `properties`
object and recorded in `Property.order`.

Nested objects are located by a plain text search for their quoted name. A
property name that appears at more than one nesting level may therefore pick
up the order of whichever definition occurs first in the text.
"""

from collections.abc import Iterator
import json
import logging
from typing import Any

from mashumaro.exceptions import MissingField, InvalidFieldValue

from .context import current_chart_path
from .exceptions import SchemaDecodeError
from .manifest import Property

__all__ = [
    "scan_property_keys",
    "extract_property_order",
    "find_nested_property_order",
    "inject_property_order",
    "decode_schema",
]

_LOGGER = logging.getLogger(__name__)

PROPERTIES_KEY = '"properties"'
_WHITESPACE = " \t\r\n"


def _unescape(token: str) -> str:
    """Decode JSON escapes in a key token so it matches the decoded key."""
    if "\\" not in token:
        return token
    try:
        return str(json.loads(f'"{token}"'))
    except json.JSONDecodeError:
        return token


def scan_property_keys(text: str) -> Iterator[str]:
    """Yield the keys of the first `properties` object in declaration order.

    Scanning starts at the first `{` following the first `"properties"` token.
    Only quoted tokens directly inside that object and followed by a colon are
    keys. Scanning ends when the object closes.
    """
    if (start := text.find(PROPERTIES_KEY)) == -1:
        return
    if (brace := text.find("{", start)) == -1:
        return

    size = len(text)
    depth = 0
    in_string = False
    escaped = False
    i = brace + 1
    while i < size:
        char = text[i]
        if escaped:
            escaped = False
            i += 1
            continue
        if char == "\\":
            escaped = True
            i += 1
            continue
        if char == '"':
            in_string = not in_string
            if in_string and depth == 0:
                end = i + 1
                while end < size and text[end] != '"':
                    if text[end] == "\\":
                        end += 1
                    end += 1
                if end < size:
                    colon = end + 1
                    while colon < size and text[colon] in _WHITESPACE:
                        colon += 1
                    if colon < size and text[colon] == ":":
                        yield _unescape(text[i + 1 : end])
            i += 1
            continue
        if not in_string:
            if char in "{[":
                depth += 1
            elif char in "}]":
                depth -= 1
                if depth < 0:
                    return
        i += 1


def extract_property_order(text: str) -> list[str]:
    """Return the keys of the first `properties` object in declaration order."""
    return list(scan_property_keys(text))


def find_nested_property_order(text: str, name: str) -> list[str]:
    """Return the declaration order of the properties of a named object."""
    if (start := text.find(f'"{name}"')) == -1:
        return []
    if (brace := text.find("{", start)) == -1:
        return []
    section = text[brace:]
    if (properties := section.find(PROPERTIES_KEY)) == -1:
        return []
    return extract_property_order(section[properties:])


def inject_property_order(schema: Property, text: str) -> None:
    """Record declaration order on the schema and its nested objects.

    An order already present in the schema is never replaced.
    """
    if not schema.order:
        if order := extract_property_order(text):
            schema.order = order

    for name, prop in schema.properties.items():
        if not prop.is_object or not prop.properties or prop.order:
            continue
        if nested := find_nested_property_order(text, name):
            prop.order = nested
            inject_property_order(prop, text)


def decode_schema(raw: bytes, chart_name: str) -> Property:
    """Decode a values.schema.json and record its property order.

    A chart without a schema gets an empty one.
    """
    if not raw:
        return Property()
    try:
        text = raw.decode("utf-8")
        doc: Any = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as err:
        raise SchemaDecodeError(chart_name, str(err), current_chart_path()) from err
    if not isinstance(doc, dict):
        raise SchemaDecodeError(
            chart_name,
            f"expected an object but was {type(doc).__name__}",
            current_chart_path(),
        )
    try:
        schema = Property.from_dict(doc)
    except (MissingField, InvalidFieldValue, ValueError, TypeError) as err:
        raise SchemaDecodeError(chart_name, str(err), current_chart_path()) from err
    inject_property_order(schema, text)
    _LOGGER.debug("Decoded schema of %s with order %s", chart_name, schema.order)
    return schema
