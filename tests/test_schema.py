"""Tests for the values schema decoder."""

import json

import pytest

from chart_loader.context import chart_context
from chart_loader.exceptions import SchemaDecodeError
from chart_loader.manifest import Property
from chart_loader.schema import (
    decode_schema,
    extract_property_order,
    find_nested_property_order,
    scan_property_keys,
)

SCHEMA = b"""{
  "$schema": "http://json-schema.org/draft-07/schema#",
  "type": "object",
  "properties": {
    "replicaCount": {"type": "integer", "default": 1},
    "image": {
      "type": "object",
      "properties": {
        "tag": {"type": "string"},
        "repository": {"type": "string"},
        "pullPolicy": {"type": "string", "enum": ["Always", "IfNotPresent"]}
      }
    },
    "annotations": {"type": "object"},
    "enabled": {"type": "boolean"}
  }
}
"""


def test_extract_property_order() -> None:
    """Test that top level property keys are returned in declaration order."""
    assert extract_property_order(SCHEMA.decode()) == [
        "replicaCount",
        "image",
        "annotations",
        "enabled",
    ]


def test_extract_property_order_no_properties() -> None:
    """Test a document without a properties object."""
    assert extract_property_order('{"type": "string"}') == []
    assert extract_property_order("") == []


def test_scan_ignores_string_content() -> None:
    """Test that quotes, colons and braces inside string values are skipped."""
    text = r"""{"properties": {
        "zeta": {"description": "has \"quoted\": {text} and [brackets"},
        "alpha" : {"enum": ["x", "y:"]},
        "mid": {}
    }}"""
    assert list(scan_property_keys(text)) == ["zeta", "alpha", "mid"]


def test_scan_stops_at_end_of_properties() -> None:
    """Test that keys after the properties object are not returned."""
    text = '{"properties": {"b": {}, "a": {}}, "required": ["a"], "c": {}}'
    assert extract_property_order(text) == ["b", "a"]


def test_scan_unescapes_keys() -> None:
    """Test that escaped keys match their decoded names."""
    text = r'{"properties": {"caf\u00e9": {}, "plain": {}}}'
    assert extract_property_order(text) == ["café", "plain"]


def test_find_nested_property_order() -> None:
    """Test locating the properties of a nested object by name."""
    text = SCHEMA.decode()
    assert find_nested_property_order(text, "image") == [
        "tag",
        "repository",
        "pullPolicy",
    ]
    assert find_nested_property_order(text, "missing") == []


def test_decode_schema() -> None:
    """Test decoding a schema with nested declaration order."""
    schema = decode_schema(SCHEMA, "app")
    assert schema.is_object
    assert schema.order == ["replicaCount", "image", "annotations", "enabled"]
    assert schema.ordered_names == schema.order
    image = schema.properties["image"]
    assert image.order == ["tag", "repository", "pullPolicy"]
    assert image.properties["pullPolicy"].enum == ["Always", "IfNotPresent"]
    assert schema.properties["replicaCount"].default == 1
    assert schema.properties["annotations"].order == []


def test_decode_schema_empty() -> None:
    """Test that a chart without a schema gets an empty one."""
    assert decode_schema(b"", "app") == Property()


def test_decode_schema_definitions_and_refs() -> None:
    """Test decoding references to named definitions."""
    raw = json.dumps(
        {
            "type": "object",
            "definitions": {"port": {"type": "integer", "minimum": 1}},
            "properties": {"port": {"$ref": "#/definitions/port"}},
        }
    ).encode()
    schema = decode_schema(raw, "app")
    assert schema.properties["port"].ref == "#/definitions/port"
    assert schema.definitions["port"].minimum == 1


def test_decode_schema_nullable_type() -> None:
    """Test a node that accepts several types."""
    schema = decode_schema(
        b'{"type": ["object", "null"], "properties": {"a": {"type": "string"}}}',
        "app",
    )
    assert schema.is_object
    assert schema.order == ["a"]


@pytest.mark.parametrize(
    "raw",
    [
        b"{not json",
        b"[1, 2]",
        b"\xff\xfe",
    ],
)
def test_decode_schema_invalid(raw: bytes) -> None:
    """Test that malformed schemas raise a decode error."""
    with pytest.raises(SchemaDecodeError, match="Invalid values.schema.json") as exc:
        decode_schema(raw, "app")
    assert exc.value.chart_name == "app"


def test_decode_schema_error_reports_chart_chain() -> None:
    """Test that a decode error names the chain of charts being resolved."""
    with chart_context("parent"), chart_context("child"):
        with pytest.raises(SchemaDecodeError) as exc:
            decode_schema(b"{", "child")
    assert exc.value.chart_path == ["parent", "child"]
    assert "parent > child" in str(exc.value)


def test_property_name_at_several_levels() -> None:
    """Test the order of a property name used at more than one nesting level.

    Nested objects are located by the first occurrence of their name in the
    document, so the top level `spec` picks up the order of `meta.spec`. Names
    missing from that order fall back to decode order.
    """
    raw = json.dumps(
        {
            "type": "object",
            "properties": {
                "meta": {
                    "type": "object",
                    "properties": {
                        "spec": {
                            "type": "object",
                            "properties": {"x": {"type": "string"}},
                        }
                    },
                },
                "spec": {
                    "type": "object",
                    "properties": {
                        "b": {"type": "string"},
                        "a": {"type": "string"},
                    },
                },
            },
        }
    ).encode()
    schema = decode_schema(raw, "app")
    assert schema.order == ["meta", "spec"]
    assert schema.properties["meta"].properties["spec"].order == ["x"]
    spec = schema.properties["spec"]
    assert spec.order == ["x"]
    assert spec.ordered_names == ["b", "a"]


def test_order_independent_of_decode_order() -> None:
    """Test that order comes from the document text."""
    raw = b'{"properties":{"b":{"type":"string"},"a":{"type":"number"}}}'
    assert extract_property_order(raw.decode()) == ["b", "a"]
    assert decode_schema(raw, "app").ordered_names == ["b", "a"]


def test_nested_order() -> None:
    """Test order injection into a nested object."""
    raw = (
        b'{"properties":{"cfg":{"type":"object",'
        b'"properties":{"z":{"type":"string"},"y":{"type":"string"}}}}}'
    )
    assert decode_schema(raw, "app").properties["cfg"].order == ["z", "y"]
