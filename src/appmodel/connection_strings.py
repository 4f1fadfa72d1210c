"""Connection string resolution."""

import asyncio
import logging

from .execution import ExecutionContext
from .expressions import ReferenceExpression, create_value_resolver
from .model.annotations import ConnectionStringExpressionAnnotation
from .model.resources import Resource

logger = logging.getLogger(__name__)


def with_connection_string(
    resource: Resource,
    template: str,
    parameters=(),
    endpoint_name: str | None = None,
) -> ConnectionStringExpressionAnnotation:
    """
    Declare a connection string template on a resource.

    Args:
        resource: Resource that owns the template and its endpoints
        template: Template with ``{endpoint.field}`` and ``{parameter.value}`` placeholders
        parameters: Parameters the template may refer to
        endpoint_name: ``None`` for the primary connection string, otherwise the
            endpoint the connection string is specific to

    Raises:
        ValueError: If a connection string is already declared for ``endpoint_name``
    """
    if resource.has_connection_string(endpoint_name):
        target = "primary" if endpoint_name is None else f"endpoint '{endpoint_name}'"
        raise ValueError(
            f"Resource '{resource.name}' already declares a {target} connection string"
        )
    annotation = ConnectionStringExpressionAnnotation(
        ReferenceExpression(template, resource, tuple(parameters)),
        endpoint_name=endpoint_name,
    )
    resource.add_annotation(annotation)
    logger.debug(
        "Declared connection string on '%s' (endpoint=%s)", resource.name, endpoint_name
    )
    return annotation


async def get_connection_string(
    resource: Resource,
    execution_context: ExecutionContext | None = None,
    endpoint_name: str | None = None,
) -> str:
    """
    Resolve a resource's connection string.

    Run mode substitutes allocated hosts, ports and parameter values; publish
    mode substitutes ``{resource.bindings.endpoint.field}`` and
    ``{parameter.value}`` placeholders. Unlike environment injection, the
    primary connection string is always expanded here.

    Raises:
        MissingConnectionStringCapabilityError: If no matching template is declared
        MissingAllocationError: Run mode only, if a referenced endpoint is not allocated
        UnresolvedPlaceholderError: If a placeholder cannot be resolved
    """
    resolver = create_value_resolver(execution_context or ExecutionContext.run())
    expression = resource.get_connection_string_expression(endpoint_name)
    return resolver.expand(expression)


def resolve_connection_string(
    resource: Resource,
    execution_context: ExecutionContext | None = None,
    endpoint_name: str | None = None,
) -> str:
    """Synchronous wrapper around :func:`get_connection_string`."""
    return asyncio.run(get_connection_string(resource, execution_context, endpoint_name))
