"""
Qdrant vector database as a container resource.

``add_qdrant`` declares the container with two endpoints: ``http`` (the gRPC
API on 6334) and ``rest`` (the REST API and dashboard on 6333). The API key is
a parameter, generated when none is given. Clients receive a primary
connection string for ``http`` and an endpoint-specific one for ``rest``.
"""

import logging

from ..builder import ContainerResourceBuilder, DistributedApplicationBuilder, ResourceBuilder
from ..model.annotations import EnvironmentCallbackContext
from ..model.resources import ContainerResource, ParameterResource
from ..parameters import GenerateParameterDefault

logger = logging.getLogger(__name__)

QDRANT_PORT_GRPC = 6334
QDRANT_PORT_HTTP = 6333

API_KEY_ENV_NAME = "QDRANT__SERVICE__API_KEY"
ENABLE_STATIC_CONTENT_ENV_NAME = "QDRANT__SERVICE__ENABLE_STATIC_CONTENT"
DATA_TARGET_PATH = "/qdrant/storage"


class QdrantContainerImageTags:
    Registry = None
    Image = "qdrant/qdrant"
    Tag = "v1.8.3"


class QdrantServerResource(ContainerResource):
    """Qdrant server container; exposes ``http`` and ``rest`` endpoints."""

    PRIMARY_ENDPOINT_NAME = "http"
    REST_ENDPOINT_NAME = "rest"

    def __init__(self, name: str, api_key_parameter: ParameterResource):
        super().__init__(name)
        self.api_key_parameter = api_key_parameter

    @property
    def primary_endpoint(self):
        return self.get_endpoint(self.PRIMARY_ENDPOINT_NAME)

    @property
    def rest_endpoint(self):
        return self.get_endpoint(self.REST_ENDPOINT_NAME)

    def connection_string_template(self, endpoint_name: str) -> str:
        return (
            f"Endpoint={{{endpoint_name}.scheme}}://{{{endpoint_name}.host}}:{{{endpoint_name}.port}};"
            f"Key={{{self.api_key_parameter.name}.value}}"
        )


def _api_key_parameter(
    builder: DistributedApplicationBuilder, name: str, api_key
) -> ParameterResource:
    if isinstance(api_key, ResourceBuilder):
        api_key = api_key.resource
    if api_key is not None:
        if not isinstance(api_key, ParameterResource):
            raise TypeError("api_key must be a parameter resource")
        return api_key

    parameter_name = f"{name}-Key"
    generated = builder.add_parameter(
        parameter_name,
        secret=True,
        default=GenerateParameterDefault(min_length=22, special=False),
    )
    logger.debug("Qdrant '%s' uses generated API key parameter '%s'", name, parameter_name)
    return generated.resource


def add_qdrant(
    builder: DistributedApplicationBuilder,
    name: str,
    api_key=None,
    http_port: int | None = None,
    grpc_port: int | None = None,
) -> ContainerResourceBuilder:
    """
    Add a Qdrant container to the application.

    Args:
        builder: Application builder
        name: Resource name
        api_key: Parameter (or parameter builder) holding the API key; a secret
            ``<name>-Key`` parameter with a generated value is added when omitted
        http_port: Host port of the ``rest`` endpoint in run mode
        grpc_port: Host port of the ``http`` (gRPC) endpoint in run mode

    Returns:
        Builder for the new QdrantServerResource
    """
    api_key_parameter = _api_key_parameter(builder, name, api_key)
    resource = QdrantServerResource(name, api_key_parameter)

    qdrant = builder.add_resource(resource)
    qdrant.with_image(QdrantContainerImageTags.Image, QdrantContainerImageTags.Tag)
    qdrant.with_image_registry(QdrantContainerImageTags.Registry)
    qdrant.with_http_endpoint(
        port=grpc_port, target_port=QDRANT_PORT_GRPC, name=QdrantServerResource.PRIMARY_ENDPOINT_NAME
    )
    qdrant.with_http_endpoint(
        port=http_port, target_port=QDRANT_PORT_HTTP, name=QdrantServerResource.REST_ENDPOINT_NAME
    )

    def _configure_environment(context: EnvironmentCallbackContext) -> None:
        context.environment_variables[API_KEY_ENV_NAME] = resource.api_key_parameter
        # The web UI is only useful during local runs
        if context.execution_context.is_publish_mode:
            context.environment_variables[ENABLE_STATIC_CONTENT_ENV_NAME] = "0"

    qdrant.with_environment(_configure_environment)

    qdrant.with_connection_string(
        resource.connection_string_template(QdrantServerResource.PRIMARY_ENDPOINT_NAME),
        parameters=(api_key_parameter,),
    )
    qdrant.with_connection_string(
        resource.connection_string_template(QdrantServerResource.REST_ENDPOINT_NAME),
        parameters=(api_key_parameter,),
        endpoint_name=QdrantServerResource.REST_ENDPOINT_NAME,
    )
    return qdrant


def with_data_volume(
    qdrant: ContainerResourceBuilder, name: str | None = None, read_only: bool = False
) -> ContainerResourceBuilder:
    """Persist Qdrant storage in a named volume (``<resource>-data`` by default)."""
    return qdrant.with_volume(name or f"{qdrant.name}-data", DATA_TARGET_PATH, read_only)


def with_data_bind_mount(
    qdrant: ContainerResourceBuilder, source: str, read_only: bool = False
) -> ContainerResourceBuilder:
    """Persist Qdrant storage in a host directory."""
    return qdrant.with_bind_mount(source, DATA_TARGET_PATH, read_only)
