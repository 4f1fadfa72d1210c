"""
JSON Schema for manifest documents.

Rendered manifests are validated with the Draft 2020-12 validator before
they are returned or written, so a malformed document is never emitted.
"""

from typing import Any

import jsonschema

from ..errors import ManifestValidationError

_ENV_SCHEMA = {
    "type": "object",
    "additionalProperties": {"type": "string"},
}

_BINDINGS_SCHEMA = {
    "type": "object",
    "additionalProperties": {
        "type": "object",
        "properties": {
            "scheme": {"type": "string"},
            "protocol": {"enum": ["tcp", "udp"]},
            "transport": {"type": "string"},
            "targetPort": {"type": "integer", "minimum": 1, "maximum": 65535},
            "external": {"type": "boolean"},
        },
        "required": ["scheme", "protocol", "transport"],
        "additionalProperties": False,
    },
}

RESOURCE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["type"],
    "properties": {
        "type": {"enum": ["container.v0", "project.v0", "executable.v0", "parameter.v0"]},
        "connectionString": {"type": "string"},
        "env": _ENV_SCHEMA,
        "bindings": _BINDINGS_SCHEMA,
    },
    "allOf": [
        {
            "if": {"properties": {"type": {"const": "container.v0"}}},
            "then": {
                "required": ["image"],
                "properties": {
                    "image": {"type": "string", "minLength": 1},
                    "entrypoint": {"type": "string"},
                    "args": {"type": "array", "items": {"type": "string"}},
                    "volumes": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["name", "target", "readOnly"],
                            "properties": {
                                "name": {"type": "string"},
                                "target": {"type": "string"},
                                "readOnly": {"type": "boolean"},
                            },
                        },
                    },
                    "bindMounts": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["source", "target", "readOnly"],
                            "properties": {
                                "source": {"type": "string"},
                                "target": {"type": "string"},
                                "readOnly": {"type": "boolean"},
                            },
                        },
                    },
                },
            },
        },
        {
            "if": {"properties": {"type": {"const": "project.v0"}}},
            "then": {"required": ["path"], "properties": {"path": {"type": "string"}}},
        },
        {
            "if": {"properties": {"type": {"const": "executable.v0"}}},
            "then": {
                "required": ["command", "workingDirectory"],
                "properties": {
                    "command": {"type": "string"},
                    "workingDirectory": {"type": "string"},
                    "args": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
        {
            "if": {"properties": {"type": {"const": "parameter.v0"}}},
            "then": {
                "required": ["value", "inputs"],
                "properties": {
                    "value": {"type": "string"},
                    "inputs": {"type": "object"},
                },
            },
        },
    ],
}

MANIFEST_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["resources"],
    "properties": {
        "resources": {
            "type": "object",
            "additionalProperties": RESOURCE_SCHEMA,
        }
    },
    "additionalProperties": False,
}


class ManifestSchemaValidator:
    """Validates manifest documents against :data:`MANIFEST_SCHEMA`."""

    def __init__(self) -> None:
        self._validator_class = jsonschema.Draft202012Validator
        self._validator_class.check_schema(MANIFEST_SCHEMA)
        self._resource_validator = self._validator_class(RESOURCE_SCHEMA)
        self._manifest_validator = self._validator_class(MANIFEST_SCHEMA)

    def validate_resource(self, name: str, document: dict[str, Any]) -> None:
        """
        Raises:
            ManifestValidationError: If the document does not match the resource schema
        """
        self._raise_for_errors(self._resource_validator, document, f"Resource '{name}'")

    def validate_manifest(self, document: dict[str, Any]) -> None:
        """
        Raises:
            ManifestValidationError: If the document does not match the manifest schema
        """
        self._raise_for_errors(self._manifest_validator, document, "Manifest")

    def get_schema_errors(self, document: dict[str, Any]) -> list[str]:
        """List of validation errors for a whole manifest, empty when valid."""
        return [self._format_error(e) for e in self._manifest_validator.iter_errors(document)]

    def _raise_for_errors(self, validator, document: dict[str, Any], label: str) -> None:
        errors = sorted(validator.iter_errors(document), key=lambda e: [str(p) for p in e.absolute_path])
        if errors:
            combined = "; ".join(self._format_error(e) for e in errors)
            raise ManifestValidationError(f"{label} failed manifest validation: {combined}")

    @staticmethod
    def _format_error(error: jsonschema.ValidationError) -> str:
        field_path = (
            ".".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
        )
        return f"{field_path}: {error.message}"
