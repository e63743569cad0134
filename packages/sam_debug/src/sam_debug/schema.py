from __future__ import annotations

from typing import Any

from jsonschema import Draft202012Validator

DEBUG_CONFIGURATION_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["type", "name", "request", "invokeTarget"],
    "properties": {
        "type": {"const": "aws-sam"},
        "name": {"type": "string", "minLength": 1},
        "request": {"enum": ["direct-invoke"]},
        "invokeTarget": {
            "oneOf": [
                {
                    "type": "object",
                    "required": ["target", "templatePath", "logicalId"],
                    "properties": {
                        "target": {"const": "template"},
                        "templatePath": {"type": "string", "minLength": 1},
                        "logicalId": {"type": "string", "minLength": 1},
                    },
                },
                {
                    "type": "object",
                    "required": ["target", "projectRoot", "lambdaHandler"],
                    "properties": {
                        "target": {"const": "code"},
                        "projectRoot": {"type": "string", "minLength": 1},
                        "lambdaHandler": {"type": "string", "minLength": 1},
                    },
                },
            ]
        },
        "lambda": {
            "type": "object",
            "properties": {
                "runtime": {"type": "string", "minLength": 1},
                "payload": {"type": "object"},
                "environmentVariables": {
                    "type": "object",
                    "additionalProperties": {"type": "string"},
                },
            },
        },
    },
}

_VALIDATOR = Draft202012Validator(DEBUG_CONFIGURATION_SCHEMA)


def validate_debug_configuration(config: Any) -> list[str]:
    errors = sorted(_VALIDATOR.iter_errors(config), key=lambda e: str(e.path))
    formatted: list[str] = []
    for error in errors:
        path = "$"
        for part in error.path:
            path += f"[{part!r}]" if isinstance(part, int) else f".{part}"
        formatted.append(f"{path}: {error.message}")
    return formatted
