"""
Endpoint declaration and allocation.

Endpoints are declared on a resource with static metadata (target port,
protocol, transport, scheme). Run mode later binds a concrete address to
each endpoint; publish mode never does.
"""

import logging

from .errors import DuplicateEndpointNameError
from .model.annotations import AllocatedEndpoint, EndpointAnnotation, ProtocolType
from .model.resources import Resource

logger = logging.getLogger(__name__)


def declare_endpoint(
    resource: Resource,
    name: str,
    target_port: int | None = None,
    protocol: ProtocolType | str = ProtocolType.TCP,
    transport: str = "http",
    scheme: str = "http",
    is_external: bool = False,
    port: int | None = None,
) -> EndpointAnnotation:
    """
    Declare a named endpoint on a resource.

    Args:
        resource: Resource that owns the endpoint
        name: Endpoint name, unique within the resource
        target_port: Port the resource listens on
        protocol: Network protocol
        transport: Transport used by the endpoint ("http", "http2", "tcp", ...)
        scheme: URI scheme clients use to reach the endpoint
        is_external: Whether the endpoint is reachable from outside the deployment
        port: Optional host port requested for run mode

    Returns:
        The new EndpointAnnotation, already attached to the resource

    Raises:
        DuplicateEndpointNameError: If the resource already has an endpoint named ``name``
    """
    if not name:
        raise ValueError("Endpoint name must be a non-empty string")
    if resource.try_get_endpoint(name) is not None:
        raise DuplicateEndpointNameError(resource.name, name)

    for value, label in ((target_port, "target_port"), (port, "port")):
        if value is not None and (not isinstance(value, int) or not 0 < value < 65536):
            raise ValueError(f"Endpoint '{name}' {label} must be between 1 and 65535")

    endpoint = EndpointAnnotation(
        resource=resource,
        name=name,
        target_port=target_port,
        port=port,
        protocol=ProtocolType(protocol),
        transport=transport,
        uri_scheme=scheme,
        is_external=is_external,
    )
    resource.add_annotation(endpoint)
    return endpoint


def allocate(endpoint: EndpointAnnotation, host: str, port: int) -> AllocatedEndpoint:
    """
    Bind a concrete host and port to an endpoint.

    Re-allocation overwrites the previous address and is logged as a warning.

    Returns:
        The AllocatedEndpoint now attached to ``endpoint``
    """
    previous = endpoint.allocated_endpoint
    allocated = AllocatedEndpoint(endpoint, host, port)
    if previous is not None:
        logger.warning(
            "Endpoint '%s' on resource '%s' re-allocated from %s:%s to %s:%s",
            endpoint.name,
            endpoint.resource.name,
            previous.address,
            previous.port,
            host,
            port,
        )
    endpoint.allocated_endpoint = allocated
    return allocated
