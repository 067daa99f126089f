from __future__ import annotations

from typing import Any

import jsonschema

SCENARIO_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["name", "agents"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "description": {"type": "string"},
        "agents": {
            "type": "array",
            "items": {"type": "string", "minLength": 1},
            "minItems": 1,
        },
        "setup": {
            "type": "object",
            "properties": {
                "manifests": {"type": "array", "items": {"type": "string", "minLength": 1}},
            },
            "additionalProperties": False,
        },
        "trigger": {
            "type": "object",
            "minProperties": 1,
            "maxProperties": 1,
            "properties": {
                "patch": {
                    "type": "object",
                    "required": ["apiVersion", "kind", "name"],
                    "properties": {
                        "apiVersion": {"type": "string", "minLength": 1},
                        "kind": {"type": "string", "minLength": 1},
                        "name": {"type": "string", "minLength": 1},
                        "namespace": {"type": "string"},
                        "metadata": {"type": "object"},
                        "spec": {"type": "object"},
                    },
                    "additionalProperties": False,
                },
                "create": {
                    "type": "object",
                    "required": ["apiVersion", "kind", "metadata"],
                    "properties": {
                        "metadata": {
                            "type": "object",
                            "required": ["name"],
                        },
                    },
                },
                "kill_agent": {"type": "string", "minLength": 1},
            },
            "additionalProperties": False,
        },
        "expect": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["resource", "conditions"],
                "properties": {
                    "resource": {"$ref": "#/definitions/resource"},
                    "conditions": {
                        "type": "array",
                        "minItems": 1,
                        "items": {"$ref": "#/definitions/condition"},
                    },
                },
                "additionalProperties": False,
            },
        },
        "timeout": {
            "oneOf": [
                {"type": "number", "minimum": 0},
                {"type": "string", "minLength": 1},
            ]
        },
    },
    "additionalProperties": False,
    "definitions": {
        "resource": {
            "type": "object",
            "required": ["apiVersion", "kind", "name"],
            "properties": {
                "apiVersion": {"type": "string", "minLength": 1},
                "kind": {"type": "string", "minLength": 1},
                "name": {"type": "string", "minLength": 1},
                "namespace": {"type": "string"},
            },
            "additionalProperties": False,
        },
        "condition": {
            "type": "object",
            "required": ["path", "value"],
            "properties": {
                "path": {"type": "string", "minLength": 1},
                "value": {"type": ["string", "number", "boolean"]},
            },
            "additionalProperties": False,
        },
    },
}


def validate_scenario(payload: dict[str, Any]) -> None:
    jsonschema.validate(instance=payload, schema=SCENARIO_SCHEMA)
