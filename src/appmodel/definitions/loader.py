"""
AppHost definition files.

Declares an application model from YAML instead of code. A definition has a
``parameters`` section and a ``resources`` section; a base file is merged
with the ``*.yaml`` files of an override directory, then every entry is
validated against a JSON Schema before anything is added to a builder.
"""

import logging
from typing import Any

import jsonschema

from ..builder import DistributedApplicationBuilder, ResourceBuilder
from ..config import Config
from ..errors import DefinitionLoadError, DefinitionValidationError
from ..expressions import PARAMETER_FIELD, ReferenceExpression
from ..integrations.qdrant import add_qdrant, with_data_bind_mount, with_data_volume
from ..model.resources import ParameterResource
from ..parameters import GenerateParameterDefault
from .dir_loader import load_definitions_from_sources

logger = logging.getLogger(__name__)

RESOURCE_TYPES = ("qdrant", "container", "project", "executable")

_PORT = {"type": "integer", "minimum": 1, "maximum": 65535}
_STRING_LIST = {"type": "array", "items": {"type": "string"}}

PARAMETER_DEFINITION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "secret": {"type": "boolean"},
        "generate": {
            "type": "object",
            "properties": {
                "min_length": {"type": "integer", "minimum": 1},
                "lower": {"type": "boolean"},
                "upper": {"type": "boolean"},
                "numeric": {"type": "boolean"},
                "special": {"type": "boolean"},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}

RESOURCE_DEFINITION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["type"],
    "properties": {
        "type": {"enum": list(RESOURCE_TYPES)},
        "endpoints": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name"],
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "target_port": _PORT,
                    "port": _PORT,
                    "scheme": {"type": "string"},
                    "transport": {"type": "string"},
                    "protocol": {"enum": ["tcp", "udp"]},
                    "external": {"type": "boolean"},
                },
                "additionalProperties": False,
            },
        },
        "env": {
            "type": "object",
            "additionalProperties": {
                "oneOf": [
                    {"type": ["string", "integer", "boolean"]},
                    {
                        "type": "object",
                        "required": ["parameter"],
                        "properties": {"parameter": {"type": "string"}},
                        "additionalProperties": False,
                    },
                    {
                        "type": "object",
                        "required": ["endpoint"],
                        "properties": {
                            "resource": {"type": "string"},
                            "endpoint": {"type": "string"},
                            "property": {"enum": ["scheme", "host", "port", "url", "targetPort"]},
                        },
                        "additionalProperties": False,
                    },
                ]
            },
        },
        "references": {
            "type": "array",
            "items": {
                "oneOf": [
                    {"type": "string", "minLength": 1},
                    {
                        "type": "object",
                        "required": ["resource"],
                        "properties": {
                            "resource": {"type": "string"},
                            "endpoint": {"type": "string"},
                        },
                        "additionalProperties": False,
                    },
                ]
            },
        },
        "connection_string": {"type": "string"},
        "connection_strings": {
            "type": "object",
            "additionalProperties": {"type": "string"},
        },
        "args": _STRING_LIST,
    },
    "allOf": [
        {
            "if": {"properties": {"type": {"const": "qdrant"}}},
            "then": {
                "properties": {
                    "api_key": {"type": "string"},
                    "http_port": _PORT,
                    "grpc_port": _PORT,
                    "data_volume": {"type": ["string", "boolean"]},
                    "data_bind_mount": {"type": "string"},
                }
            },
        },
        {
            "if": {"properties": {"type": {"const": "container"}}},
            "then": {
                "required": ["image"],
                "properties": {
                    "image": {"type": "string", "minLength": 1},
                    "tag": {"type": ["string", "number"]},
                    "registry": {"type": "string"},
                    "entrypoint": {"type": "string"},
                    "volumes": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["target"],
                            "properties": {
                                "name": {"type": "string"},
                                "target": {"type": "string"},
                                "read_only": {"type": "boolean"},
                            },
                        },
                    },
                    "bind_mounts": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["source", "target"],
                            "properties": {
                                "source": {"type": "string"},
                                "target": {"type": "string"},
                                "read_only": {"type": "boolean"},
                            },
                        },
                    },
                },
            },
        },
        {
            "if": {"properties": {"type": {"const": "project"}}},
            "then": {"required": ["path"], "properties": {"path": {"type": "string"}}},
        },
        {
            "if": {"properties": {"type": {"const": "executable"}}},
            "then": {
                "required": ["command"],
                "properties": {
                    "command": {"type": "string"},
                    "working_directory": {"type": "string"},
                },
            },
        },
    ],
}


class DefinitionLoader:
    """
    Loads AppHost definitions and applies them to a builder.

    Args:
        apphost_file: Base definition file; ``config.apphost_file`` when omitted
        apphost_dir: Override directory; ``config.apphost_dir`` when omitted
        config: Configuration providing the default locations
    """

    def __init__(
        self,
        apphost_file: str | None = None,
        apphost_dir: str | None = None,
        config: Config | None = None,
    ):
        if apphost_file is None or apphost_dir is None:
            config = config or Config.load_runtime_config()
            apphost_file = apphost_file or config.apphost_file
            apphost_dir = apphost_dir or config.apphost_dir
        self.apphost_file = apphost_file
        self.apphost_dir = apphost_dir
        self._parameters: dict[str, dict[str, Any]] = {}
        self._resources: dict[str, dict[str, Any]] = {}
        self._loaded = False
        self._loader_stats: dict[str, Any] | None = None
        self._validator_class = jsonschema.Draft202012Validator

    def load(self) -> "DefinitionLoader":
        """
        Read, merge and validate the definitions.

        Raises:
            DefinitionLoadError: If no source exists or a file cannot be read or parsed
            DefinitionValidationError: If the content is invalid
        """
        merged, stats = load_definitions_from_sources(
            logger=logger,
            apphost_file=self.apphost_file,
            apphost_dir=self.apphost_dir,
        )

        for name, definition in merged["parameters"].items():
            self._validate(PARAMETER_DEFINITION_SCHEMA, definition, f"Parameter '{name}'")
        for name, definition in merged["resources"].items():
            self._validate(RESOURCE_DEFINITION_SCHEMA, definition, f"Resource '{name}'")

        self._parameters = merged["parameters"]
        self._resources = merged["resources"]
        self._loader_stats = dict(stats)
        self._loaded = True
        return self

    def _validate(self, schema: dict[str, Any], definition: dict[str, Any], label: str) -> None:
        validator = self._validator_class(schema)
        errors = sorted(validator.iter_errors(definition), key=lambda e: [str(p) for p in e.absolute_path])
        if errors:
            details = []
            for error in errors:
                field_path = ".".join(str(p) for p in error.absolute_path) or "root"
                details.append(f"{field_path}: {error.message}")
            raise DefinitionValidationError(f"{label} is invalid: {'; '.join(details)}")

    def is_loaded(self) -> bool:
        return self._loaded

    def get_loader_stats(self) -> dict[str, Any] | None:
        """Return the most recent loader statistics snapshot."""
        return dict(self._loader_stats) if self._loader_stats is not None else None

    @property
    def parameters(self) -> dict[str, dict[str, Any]]:
        return dict(self._parameters)

    @property
    def resources(self) -> dict[str, dict[str, Any]]:
        return dict(self._resources)

    def apply(self, builder: DistributedApplicationBuilder) -> dict[str, ResourceBuilder]:
        """
        Declare the loaded definitions on ``builder``.

        Parameters are added first, then resources in definition order, then
        environment variables and references, so resources may refer to ones
        defined later in the file.

        Returns:
            Resource builders keyed by resource name

        Raises:
            DefinitionValidationError: If an entry refers to an unknown parameter or resource
        """
        if not self._loaded:
            raise DefinitionLoadError("Definitions must be loaded before they are applied")

        builders: dict[str, ResourceBuilder] = {}
        for name, definition in self._parameters.items():
            builders[name] = self._apply_parameter(builder, name, definition)

        for name, definition in self._resources.items():
            builders[name] = self._create_resource(builder, name, definition)

        for name, definition in self._resources.items():
            resource_builder = builders[name]
            for key, value in (definition.get("env") or {}).items():
                resource_builder.with_environment(key, self._env_value(builders, name, value))
            for reference in definition.get("references") or []:
                if isinstance(reference, str):
                    reference = {"resource": reference}
                target = self._lookup(builders, reference["resource"], f"Resource '{name}'")
                resource_builder.with_reference(target, reference.get("endpoint"))

        logger.info(
            "Applied %d parameters and %d resources from AppHost definitions",
            len(self._parameters),
            len(self._resources),
        )
        return builders

    @staticmethod
    def _apply_parameter(
        builder: DistributedApplicationBuilder, name: str, definition: dict[str, Any]
    ) -> ResourceBuilder:
        generate = definition.get("generate")
        default = GenerateParameterDefault(**generate) if generate is not None else None
        return builder.add_parameter(name, secret=definition.get("secret", False), default=default)

    def _create_resource(
        self, builder: DistributedApplicationBuilder, name: str, definition: dict[str, Any]
    ) -> ResourceBuilder:
        resource_type = definition["type"]

        if resource_type == "qdrant":
            api_key = None
            if definition.get("api_key"):
                api_key = self._parameter(builder, definition["api_key"], name)
            resource_builder = add_qdrant(
                builder,
                name,
                api_key=api_key,
                http_port=definition.get("http_port"),
                grpc_port=definition.get("grpc_port"),
            )
            data_volume = definition.get("data_volume")
            if data_volume:
                with_data_volume(resource_builder, data_volume if isinstance(data_volume, str) else None)
            if definition.get("data_bind_mount"):
                with_data_bind_mount(resource_builder, definition["data_bind_mount"])
        elif resource_type == "container":
            resource_builder = builder.add_container(
                name, definition["image"], str(definition.get("tag", "latest"))
            )
            if definition.get("registry"):
                resource_builder.with_image_registry(definition["registry"])
            if definition.get("entrypoint"):
                resource_builder.with_entrypoint(definition["entrypoint"])
            if definition.get("args"):
                resource_builder.with_args(*definition["args"])
            for volume in definition.get("volumes") or []:
                resource_builder.with_volume(
                    volume.get("name"), volume["target"], volume.get("read_only", False)
                )
            for mount in definition.get("bind_mounts") or []:
                resource_builder.with_bind_mount(
                    mount["source"], mount["target"], mount.get("read_only", False)
                )
        elif resource_type == "project":
            resource_builder = builder.add_project(name, definition["path"])
        else:
            resource_builder = builder.add_executable(
                name,
                definition["command"],
                working_directory=definition.get("working_directory", "."),
                args=definition.get("args") or (),
            )

        for endpoint in definition.get("endpoints") or []:
            scheme = endpoint.get("scheme", "http")
            resource_builder.declare_endpoint(
                endpoint["name"],
                target_port=endpoint.get("target_port"),
                port=endpoint.get("port"),
                scheme=scheme,
                transport=endpoint.get("transport", scheme),
                protocol=endpoint.get("protocol", "tcp"),
                is_external=endpoint.get("external", False),
            )

        if definition.get("connection_string"):
            template = definition["connection_string"]
            resource_builder.with_connection_string(
                template, self._template_parameters(builder, template, resource_builder, name)
            )
        for endpoint_name, template in (definition.get("connection_strings") or {}).items():
            resource_builder.with_connection_string(
                template,
                self._template_parameters(builder, template, resource_builder, name),
                endpoint_name=endpoint_name,
            )

        return resource_builder

    def _template_parameters(
        self,
        builder: DistributedApplicationBuilder,
        template: str,
        resource_builder: ResourceBuilder,
        name: str,
    ) -> list[ParameterResource]:
        parameters = []
        for placeholder in ReferenceExpression(template, resource_builder.resource).placeholders():
            parameter_name, _, field_name = placeholder.rpartition(".")
            if field_name == PARAMETER_FIELD:
                parameter = self._parameter(builder, parameter_name, name)
                if parameter not in parameters:
                    parameters.append(parameter)
        return parameters

    def _env_value(self, builders: dict[str, ResourceBuilder], name: str, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        label = f"Resource '{name}'"
        if "parameter" in value:
            parameter = self._lookup(builders, value["parameter"], label).resource
            if not isinstance(parameter, ParameterResource):
                raise DefinitionValidationError(f"{label}: '{value['parameter']}' is not a parameter")
            return parameter
        target = self._lookup(builders, value.get("resource", name), label)
        endpoint = target.get_endpoint(value["endpoint"])
        if not endpoint.exists:
            raise DefinitionValidationError(
                f"{label}: resource '{target.name}' has no endpoint '{value['endpoint']}'"
            )
        return endpoint.get_property(value.get("property", "url"))

    @staticmethod
    def _parameter(
        builder: DistributedApplicationBuilder, parameter_name: str, owner: str
    ) -> ParameterResource:
        parameter = builder.parameters.get(parameter_name)
        if parameter is None:
            raise DefinitionValidationError(
                f"Resource '{owner}' refers to unknown parameter '{parameter_name}'"
            )
        return parameter

    @staticmethod
    def _lookup(builders: dict[str, ResourceBuilder], target: str, label: str) -> ResourceBuilder:
        if target not in builders:
            raise DefinitionValidationError(f"{label} refers to unknown resource '{target}'")
        return builders[target]


def load_application(
    builder: DistributedApplicationBuilder,
    apphost_file: str | None = None,
    apphost_dir: str | None = None,
) -> dict[str, ResourceBuilder]:
    """Load definitions using the builder's configuration and apply them."""
    loader = DefinitionLoader(apphost_file, apphost_dir, config=builder.config)
    return loader.load().apply(builder)
