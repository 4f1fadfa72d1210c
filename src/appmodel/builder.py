"""
Builder API for application models.

``DistributedApplicationBuilder`` declares resources and returns resource
builders whose ``with_*`` methods append annotations. ``build()`` freezes
the graph and returns a :class:`DistributedApplication`, which either
publishes the manifest or evaluates run-mode environments.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Generic, Sequence, TypeVar

from .config import PARAMETERS_CONFIG_PREFIX, Config
from .connection_strings import with_connection_string
from .endpoints import declare_endpoint
from .environment import EnvironmentVariableEvaluator
from .execution import ExecutionContext
from .logging_setup import setup_logging
from .model.annotations import (
    CommandLineArgsAnnotation,
    ContainerImageAnnotation,
    ContainerMountAnnotation,
    ContainerMountType,
    EndpointAnnotation,
    EnvironmentCallbackAnnotation,
    ProtocolType,
    ReferenceAnnotation,
)
from .model.graph import DistributedApplicationModel
from .model.resources import (
    ContainerResource,
    ExecutableResource,
    ParameterResource,
    ProjectResource,
    Resource,
)
from .parameters import GenerateParameterDefault, ParameterStore
from .publishing.manifest import ManifestPublisher

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Resource)


class ResourceBuilder(Generic[R]):
    """Fluent wrapper that attaches annotations to one resource."""

    def __init__(self, application_builder: "DistributedApplicationBuilder", resource: R):
        self.application_builder = application_builder
        self.resource = resource

    @property
    def name(self) -> str:
        return self.resource.name

    def with_annotation(self, annotation: object) -> "ResourceBuilder[R]":
        self.resource.add_annotation(annotation)
        return self

    def with_endpoint(
        self,
        name: str,
        configure: Callable[[EndpointAnnotation], Any] | None = None,
        create_if_not_exists: bool = True,
    ) -> "ResourceBuilder[R]":
        """
        Configure a named endpoint, declaring it first when missing.

        Example::

            qdrant.with_endpoint("http", lambda e: e.allocate("localhost", 6334))
        """
        endpoint = self.resource.try_get_endpoint(name)
        if endpoint is None:
            if not create_if_not_exists:
                raise KeyError(f"Resource '{self.name}' has no endpoint named '{name}'")
            endpoint = declare_endpoint(self.resource, name)
        if configure is not None:
            configure(endpoint)
        return self

    def declare_endpoint(
        self,
        name: str,
        target_port: int | None = None,
        port: int | None = None,
        scheme: str = "http",
        transport: str | None = None,
        protocol: ProtocolType | str = ProtocolType.TCP,
        is_external: bool = False,
    ) -> "ResourceBuilder[R]":
        """Declare a new endpoint; fails when the name is taken."""
        declare_endpoint(
            self.resource,
            name,
            target_port=target_port,
            protocol=protocol,
            transport=transport or scheme,
            scheme=scheme,
            is_external=is_external,
            port=port,
        )
        return self

    def with_http_endpoint(
        self,
        port: int | None = None,
        target_port: int | None = None,
        name: str = "http",
        is_external: bool = False,
    ) -> "ResourceBuilder[R]":
        return self.declare_endpoint(
            name, target_port=target_port, port=port, scheme="http", is_external=is_external
        )

    def with_https_endpoint(
        self,
        port: int | None = None,
        target_port: int | None = None,
        name: str = "https",
        is_external: bool = False,
    ) -> "ResourceBuilder[R]":
        return self.declare_endpoint(
            name,
            target_port=target_port,
            port=port,
            scheme="https",
            transport="http",
            is_external=is_external,
        )

    def with_external_http_endpoints(self) -> "ResourceBuilder[R]":
        for endpoint in self.resource.endpoints:
            if endpoint.uri_scheme in ("http", "https"):
                endpoint.is_external = True
        return self

    def with_environment(self, name_or_callback, value: Any = None) -> "ResourceBuilder[R]":
        """
        Add an environment variable or an environment callback.

        ``value`` may be a string, an int, a parameter, an endpoint reference,
        a reference expression or a resource builder (for its parameter).
        """
        if callable(name_or_callback):
            return self.with_annotation(EnvironmentCallbackAnnotation(name_or_callback))
        if isinstance(value, ResourceBuilder):
            value = value.resource
        return self.with_annotation(EnvironmentCallbackAnnotation.from_value(name_or_callback, value))

    def with_reference(self, target, endpoint_name: str | None = None) -> "ResourceBuilder[R]":
        """
        Inject ``target``'s connection string(s) into this resource's environment.

        Without ``endpoint_name`` the primary connection string is injected as
        ``ConnectionStrings__<target>`` together with any endpoint-specific
        connection strings; with it, only ``ConnectionStrings__<target>_<endpoint>``.
        """
        target_resource = target.resource if isinstance(target, ResourceBuilder) else target
        if not isinstance(target_resource, Resource):
            raise TypeError(f"Cannot reference {type(target).__name__}")
        return self.with_annotation(ReferenceAnnotation(target_resource, endpoint_name))

    def with_connection_string(
        self,
        template: str,
        parameters: Sequence[ParameterResource] = (),
        endpoint_name: str | None = None,
    ) -> "ResourceBuilder[R]":
        with_connection_string(self.resource, template, parameters, endpoint_name)
        return self

    def get_endpoint(self, name: str):
        return self.resource.get_endpoint(name)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.resource!r})"


class ContainerResourceBuilder(ResourceBuilder[ContainerResource]):
    """Resource builder with container-specific annotations."""

    def with_image(self, image: str, tag: str | None = None) -> "ContainerResourceBuilder":
        current = self.resource.image
        if current is None:
            self.resource.add_annotation(ContainerImageAnnotation(image, tag or "latest"))
        else:
            current.image = image
            if tag is not None:
                current.tag = tag
        return self

    def with_image_tag(self, tag: str) -> "ContainerResourceBuilder":
        self._require_image().tag = tag
        return self

    def with_image_registry(self, registry: str | None) -> "ContainerResourceBuilder":
        self._require_image().registry = registry
        return self

    def with_entrypoint(self, entrypoint: str) -> "ContainerResourceBuilder":
        self.resource.entrypoint = entrypoint
        return self

    def with_args(self, *args: str) -> "ContainerResourceBuilder":
        self.resource.add_annotation(CommandLineArgsAnnotation([str(a) for a in args]))
        return self

    def with_volume(
        self, name: str | None, target: str, read_only: bool = False
    ) -> "ContainerResourceBuilder":
        self.resource.add_annotation(
            ContainerMountAnnotation(name, target, ContainerMountType.VOLUME, read_only)
        )
        return self

    def with_bind_mount(
        self, source: str, target: str, read_only: bool = False
    ) -> "ContainerResourceBuilder":
        self.resource.add_annotation(
            ContainerMountAnnotation(source, target, ContainerMountType.BIND, read_only)
        )
        return self

    def _require_image(self) -> ContainerImageAnnotation:
        image = self.resource.image
        if image is None:
            raise ValueError(f"Container '{self.name}' has no image")
        return image


class ExecutableResourceBuilder(ResourceBuilder[ExecutableResource]):
    """Resource builder with executable-specific annotations."""

    def with_args(self, *args: str) -> "ExecutableResourceBuilder":
        self.resource.add_annotation(CommandLineArgsAnnotation([str(a) for a in args]))
        return self


class DistributedApplicationBuilder:
    """
    Declares the resources of a distributed application.

    Args:
        args: Startup arguments; ``--publisher manifest`` selects publish mode
            and ``--output-path`` sets where the manifest is written
        config: Configuration; loaded from the environment when omitted
    """

    def __init__(self, args: Sequence[str] | None = None, config: Config | None = None):
        self.config = config or Config.load_runtime_config()
        self.args = list(args or [])
        self.execution_context = ExecutionContext.from_args(
            self.args, default_publisher=self.config.publisher or None
        )
        # Parameters:<name> keys; mutable until values are resolved
        self.configuration: dict[str, Any] = dict(self.config.parameters)
        self.parameters = ParameterStore(self.configuration)
        self.model = DistributedApplicationModel(self.execution_context)
        self._built = False

    def add_resource(self, resource: R) -> ResourceBuilder[R]:
        """
        Add a resource and return a builder for it.

        Raises:
            DuplicateResourceNameError: If the name is already used
        """
        if self._built:
            raise RuntimeError("Cannot add resources after the application has been built")
        self.model.add(resource)
        if isinstance(resource, ParameterResource):
            self.parameters.register(resource)
        return self.create_resource_builder(resource)

    def create_resource_builder(self, resource: R) -> ResourceBuilder[R]:
        if isinstance(resource, ContainerResource):
            return ContainerResourceBuilder(self, resource)
        if isinstance(resource, ExecutableResource):
            return ExecutableResourceBuilder(self, resource)
        return ResourceBuilder(self, resource)

    def add_container(self, name: str, image: str, tag: str = "latest") -> ContainerResourceBuilder:
        builder = self.add_resource(ContainerResource(name))
        builder.with_image(image, tag)
        return builder

    def add_project(self, name: str, path: str) -> ResourceBuilder[ProjectResource]:
        return self.add_resource(ProjectResource(name, path))

    def add_executable(
        self,
        name: str,
        command: str,
        working_directory: str = ".",
        args: Sequence[str] = (),
    ) -> ExecutableResourceBuilder:
        builder = self.add_resource(ExecutableResource(name, command, working_directory))
        if args:
            builder.with_args(*args)
        return builder

    def add_parameter(
        self,
        name: str,
        secret: bool = False,
        default: GenerateParameterDefault | None = None,
    ) -> ResourceBuilder[ParameterResource]:
        return self.add_resource(ParameterResource(name, secret=secret, default=default))

    def add_generated_parameter(
        self, name: str, secret: bool = True, special: bool = True, min_length: int = 22
    ) -> ResourceBuilder[ParameterResource]:
        """Add a parameter whose value is generated when not configured."""
        default = GenerateParameterDefault(min_length=min_length, special=special)
        return self.add_parameter(name, secret=secret, default=default)

    def set_parameter_value(self, name: str, value: str) -> None:
        self.configuration[f"{PARAMETERS_CONFIG_PREFIX}{name}"] = value

    def build(self) -> "DistributedApplication":
        """Freeze the resource graph and return the application."""
        self.model.finalize()
        self._built = True
        logger.info(
            "Built application model with %d resources (%s mode)",
            len(self.model),
            self.execution_context.operation.value,
        )
        return DistributedApplication(self)


class DistributedApplication:
    """A built application model ready to be published or evaluated."""

    def __init__(self, builder: DistributedApplicationBuilder):
        self.config = builder.config
        self.execution_context = builder.execution_context
        self.model = builder.model
        self.parameters = builder.parameters

    async def publish(self, output_path: str | Path | None = None) -> Path:
        """Write the manifest of the whole model."""
        path = (
            output_path
            or self.execution_context.output_path
            or self.config.manifest_output_path
        )
        publisher = ManifestPublisher(
            self.execution_context, validate=self.config.validate_manifest
        )
        return await publisher.write_manifest(self.model, path)

    async def evaluate_environments(self) -> dict[str, dict[str, str]]:
        """
        Evaluate every non-parameter resource's environment for run mode.

        Resources are evaluated one after another in model order. No process
        or container is started.
        """
        evaluator = EnvironmentVariableEvaluator(self.execution_context)
        environments = {}
        for resource in self.model:
            if isinstance(resource, ParameterResource):
                continue
            environments[resource.name] = await evaluator.evaluate(resource)
        return environments

    def run(self):
        """
        Run the application host.

        Publish mode writes the manifest and returns its path; run mode
        returns the evaluated environment of every resource.
        """
        logger = setup_logging(self.config)
        logger.info("Application host configuration: %s", self.config.get_startup_summary())

        if self.execution_context.is_publish_mode:
            return asyncio.run(self.publish())
        return asyncio.run(self.evaluate_environments())
