"""
Manifest publishing.

Renders resources into the deployment manifest consumed by external
deployment tooling. Every value is evaluated in publish mode, so anything
only known at deploy time appears as a ``{identifier.path}`` placeholder.

Field order is fixed. Containers render ``type, connectionString, image,
entrypoint, args, volumes, bindMounts, env, bindings``; optional fields are
omitted when empty. Text output is byte-stable for a given graph.
"""

import json
import logging
from pathlib import Path
from typing import Any

from ..environment import EnvironmentVariableEvaluator
from ..execution import ExecutionContext
from ..model.annotations import (
    CommandLineArgsAnnotation,
    ContainerMountAnnotation,
    ContainerMountType,
    EndpointAnnotation,
)
from ..model.graph import DistributedApplicationModel
from ..model.resources import (
    ContainerResource,
    ExecutableResource,
    ParameterResource,
    ProjectResource,
    Resource,
)
from .schema import ManifestSchemaValidator

logger = logging.getLogger(__name__)


class ManifestPublisher:
    """
    Renders resources and whole models into manifest documents.

    Args:
        execution_context: Publish-mode context to hand to environment
            callbacks; a default publish context is used when omitted or when
            a run-mode context is given
        validate: Validate rendered documents against the manifest schema
    """

    def __init__(self, execution_context: ExecutionContext | None = None, validate: bool = True):
        if execution_context is None or not execution_context.is_publish_mode:
            execution_context = ExecutionContext.publish()
        self.execution_context = execution_context
        self._evaluator = EnvironmentVariableEvaluator(execution_context)
        self._resolver = self._evaluator.resolver
        self._validator = ManifestSchemaValidator() if validate else None

    async def get_resource_manifest(self, resource: Resource) -> dict[str, Any]:
        """
        Render one resource.

        Raises:
            ManifestValidationError: If the rendered document is invalid
            UnresolvedPlaceholderError: If a template cannot be resolved
            MissingConnectionStringCapabilityError: If a reference target has no connection string
        """
        if isinstance(resource, ParameterResource):
            document = self._render_parameter(resource)
        else:
            document = {"type": resource.manifest_type}
            if resource.has_connection_string():
                document["connectionString"] = self._resolver.expand(
                    resource.get_connection_string_expression()
                )

            if isinstance(resource, ContainerResource):
                self._render_container(resource, document)
            elif isinstance(resource, ProjectResource):
                document["path"] = resource.path
            elif isinstance(resource, ExecutableResource):
                document["workingDirectory"] = resource.working_directory
                document["command"] = resource.command
                if resource.args:
                    document["args"] = resource.args
            else:
                raise TypeError(f"Cannot publish resource type {type(resource).__name__}")

            environment = await self._evaluator.evaluate(resource)
            if environment:
                document["env"] = environment

            bindings = self._render_bindings(resource.endpoints)
            if bindings:
                document["bindings"] = bindings

        if self._validator is not None:
            self._validator.validate_resource(resource.name, document)
        return document

    async def get_manifest(self, model: DistributedApplicationModel) -> dict[str, Any]:
        """Render every resource of the model, in model order."""
        resources = {}
        for resource in model:
            resources[resource.name] = await self.get_resource_manifest(resource)

        document = {"resources": resources}
        if self._validator is not None:
            self._validator.validate_manifest(document)
        return document

    async def write_manifest(self, model: DistributedApplicationModel, path: str | Path) -> Path:
        """
        Render the model and write it to ``path``.

        The document is fully rendered before the file is opened, so a failure
        never leaves a partial manifest behind.
        """
        text = self.dumps(await self.get_manifest(model))
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.write("\n")
        logger.info("Published manifest with %d resources to %s", len(model), output_path)
        return output_path

    @staticmethod
    def dumps(document: dict[str, Any]) -> str:
        """Serialize a document with two-space indentation and key order preserved."""
        return json.dumps(document, indent=2, ensure_ascii=False)

    def _render_container(self, resource: ContainerResource, document: dict[str, Any]) -> None:
        image = resource.image
        if image is not None:
            document["image"] = image.reference()
        if resource.entrypoint:
            document["entrypoint"] = resource.entrypoint

        args: list[str] = []
        for annotation in resource.annotations_of_type(CommandLineArgsAnnotation):
            args.extend(annotation.args)
        if args:
            document["args"] = args

        mounts = resource.annotations_of_type(ContainerMountAnnotation)
        volumes = [
            {"name": m.source or "", "target": m.target, "readOnly": m.read_only}
            for m in mounts
            if m.type is ContainerMountType.VOLUME
        ]
        bind_mounts = [
            {"source": m.source or "", "target": m.target, "readOnly": m.read_only}
            for m in mounts
            if m.type is ContainerMountType.BIND
        ]
        if volumes:
            document["volumes"] = volumes
        if bind_mounts:
            document["bindMounts"] = bind_mounts

    @staticmethod
    def _render_bindings(endpoints: list[EndpointAnnotation]) -> dict[str, Any]:
        bindings: dict[str, Any] = {}
        for endpoint in endpoints:
            binding: dict[str, Any] = {
                "scheme": endpoint.uri_scheme,
                "protocol": endpoint.protocol.value,
                "transport": endpoint.transport,
            }
            if endpoint.target_port is not None:
                binding["targetPort"] = endpoint.target_port
            if endpoint.is_external:
                binding["external"] = True
            bindings[endpoint.name] = binding
        return bindings

    @staticmethod
    def _render_parameter(resource: ParameterResource) -> dict[str, Any]:
        value_input: dict[str, Any] = {"type": "string"}
        if resource.secret:
            value_input["secret"] = True
        if resource.default is not None:
            value_input["default"] = resource.default.to_manifest()
        return {
            "type": resource.manifest_type,
            "value": f"{{{resource.name}.inputs.value}}",
            "inputs": {"value": value_input},
        }


async def get_manifest(resource: Resource, validate: bool = True) -> dict[str, Any]:
    """Render a single resource in publish mode."""
    return await ManifestPublisher(validate=validate).get_resource_manifest(resource)


async def get_manifest_text(resource: Resource, validate: bool = True) -> str:
    """Render a single resource to its manifest text."""
    return ManifestPublisher.dumps(await get_manifest(resource, validate=validate))
