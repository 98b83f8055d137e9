"""Tests for mapping a values schema to form fields."""

import json

from chart_loader.fields import schema_to_fields
from chart_loader.manifest import ChartMetadata, SchemaField, Template
from chart_loader.schema import decode_schema


SCHEMA = json.dumps(
    {
        "type": "object",
        "required": ["service"],
        "definitions": {
            "port": {"type": "integer", "minimum": 1, "maximum": 65535},
        },
        "properties": {
            "service": {
                "type": "object",
                "properties": {
                    "type": {"type": "string", "enum": ["ClusterIP", "NodePort"]},
                    "port": {"$ref": "#/definitions/port", "title": "ignored"},
                },
            },
            "replicas": {"type": "integer", "default": 2, "title": "Replica count"},
            "tags": {"type": "array", "items": {"type": "string"}},
            "debug": {"type": ["boolean", "null"], "description": "Verbose logs"},
            "extra": {"$ref": "#/definitions/unknown"},
        },
    }
).encode()


def test_schema_to_fields() -> None:
    """Test the field tree built from a schema."""
    schema = decode_schema(SCHEMA, "app")
    root = schema_to_fields("", schema, schema.definitions, [])
    assert root.type == "map"
    assert root.required == ["service"]
    assert [field.name for field in root.properties] == [
        "service",
        "replicas",
        "tags",
        "debug",
        "extra",
    ]

    service, replicas, tags, debug, extra = root.properties
    assert service.type == "map"
    assert service.manifest_key == "service"
    assert [field.manifest_key for field in service.properties] == [
        "service.type",
        "service.port",
    ]
    service_type, port = service.properties
    assert service_type.enum == ["ClusterIP", "NodePort"]
    assert port.type == "number"
    assert port.minimum == 1
    assert port.maximum == 65535

    assert replicas.type == "number"
    assert replicas.display_name == "Replica count"
    assert replicas.initial_value == 2

    assert tags.type == "array"
    assert tags.items is not None
    assert tags.items.type == "string"

    assert debug.type == "boolean"
    assert debug.display_name == "Debug"
    assert debug.description == "Verbose logs"

    assert extra.type == "string"


def test_schema_to_fields_empty_schema() -> None:
    """Test the root field of a chart without a schema."""
    schema = decode_schema(b"", "app")
    root = schema_to_fields("", schema, schema.definitions, [])
    assert root == SchemaField(name="", type="map")


def test_schema_to_fields_dependencies() -> None:
    """Test that each dependency contributes a map field."""
    dep_schema = decode_schema(
        b'{"type": "object", "required": ["port"], '
        b'"properties": {"port": {"type": "integer"}}}',
        "redis",
    )
    dependency = Template(
        name="redis",
        root_field=schema_to_fields("", dep_schema, {}, []),
        helm_chart_metadata=ChartMetadata(name="redis", description="Cache"),
    )
    schema = decode_schema(SCHEMA, "app")
    root = schema_to_fields("", schema, schema.definitions, [dependency])

    redis = root.properties[-1]
    assert redis.name == "redis"
    assert redis.type == "map"
    assert redis.description == "Cache"
    assert redis.manifest_key == "redis"
    assert redis.required == ["port"]
    assert [field.name for field in redis.properties] == ["port"]


def test_dependency_fields_keyed_below_dependency() -> None:
    """Test that dependency fields address values below the dependency name."""
    common_schema = decode_schema(
        b'{"properties": {"labels": {"type": "object"}}}', "common"
    )
    common = Template(
        name="common", root_field=schema_to_fields("", common_schema, {}, [])
    )
    redis_schema = decode_schema(
        b'{"properties": {"port": {"type": "integer"}, "auth": {"type": "object",'
        b' "properties": {"enabled": {"type": "boolean"}}}}}',
        "redis",
    )
    redis_root = schema_to_fields("", redis_schema, {}, [common])
    redis = Template(name="redis", root_field=redis_root)

    root = schema_to_fields("", decode_schema(b"", "app"), {}, [redis])
    (redis_field,) = root.properties
    port, auth, common_field = redis_field.properties
    assert port.manifest_key == "redis.port"
    assert auth.manifest_key == "redis.auth"
    assert [f.manifest_key for f in auth.properties] == ["redis.auth.enabled"]
    assert common_field.manifest_key == "redis.common"
    assert [f.manifest_key for f in common_field.properties] == [
        "redis.common.labels"
    ]

    # The dependency's own field tree is left untouched
    assert [f.manifest_key for f in redis_root.properties] == [
        "port",
        "auth",
        "common",
    ]
    assert redis_root.properties[1].properties[0].manifest_key == "auth.enabled"
