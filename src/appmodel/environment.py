"""
Environment variable evaluation.

A resource's environment is built in two ordered phases:

1. every :class:`EnvironmentCallbackAnnotation`, in declaration order; async
   callbacks are awaited to completion before the next one runs;
2. every :class:`ReferenceAnnotation`, in declaration order, appending
   ``ConnectionStrings__<name>`` (and ``ConnectionStrings__<name>_<endpoint>``)
   entries after the resource's own variables.

Values are resolved through the value resolver of the execution mode, so one
evaluation never mixes concrete and symbolic values.
"""

import asyncio
import inspect
import logging
from typing import Any

from .errors import MissingConnectionStringCapabilityError
from .execution import ExecutionContext
from .expressions import ValueResolver, create_value_resolver
from .model.annotations import (
    EnvironmentCallbackAnnotation,
    EnvironmentCallbackContext,
    ReferenceAnnotation,
)
from .model.resources import Resource

logger = logging.getLogger(__name__)

CONNECTION_STRINGS_PREFIX = "ConnectionStrings__"


def connection_string_key(resource_name: str, endpoint_name: str | None = None) -> str:
    """Environment variable name under which a connection string is injected."""
    if endpoint_name is None:
        return f"{CONNECTION_STRINGS_PREFIX}{resource_name}"
    return f"{CONNECTION_STRINGS_PREFIX}{resource_name}_{endpoint_name}"


class EnvironmentVariableEvaluator:
    """Evaluates the environment variables of resources for one execution mode."""

    def __init__(self, execution_context: ExecutionContext | None = None):
        self.execution_context = execution_context or ExecutionContext.run()
        self.resolver: ValueResolver = create_value_resolver(self.execution_context)

    async def evaluate(self, resource: Resource) -> dict[str, str]:
        """
        Evaluate a resource's environment.

        Args:
            resource: Resource to evaluate

        Returns:
            Ordered mapping of variable name to resolved value

        Raises:
            MissingConnectionStringCapabilityError: If a referenced resource has no
                matching connection string
            MissingAllocationError: Run mode only, if an endpoint is not allocated
            UnresolvedPlaceholderError: If a template cannot be fully resolved
        """
        raw = await self._run_callbacks(resource)
        environment: dict[str, str] = {}
        for key, value in raw.items():
            environment[key] = self.resolver.resolve(value)

        for annotation in resource.annotations_of_type(ReferenceAnnotation):
            for key, value in self._reference_entries(annotation):
                self._set(resource, environment, key, value)

        return environment

    async def _run_callbacks(self, resource: Resource) -> dict[str, Any]:
        context = EnvironmentCallbackContext(
            execution_context=self.execution_context,
            resource=resource,
        )
        for annotation in resource.annotations_of_type(EnvironmentCallbackAnnotation):
            before = dict(context.environment_variables)
            result = annotation.callback(context)
            if inspect.isawaitable(result):
                await result
            for key, value in context.environment_variables.items():
                if key in before and before[key] is not value:
                    logger.debug(
                        "Environment variable '%s' on resource '%s' overwritten",
                        key,
                        resource.name,
                    )
        return context.environment_variables

    def _reference_entries(self, annotation: ReferenceAnnotation) -> list[tuple[str, str]]:
        target = annotation.target

        if annotation.endpoint_name is not None:
            if not target.has_connection_string(annotation.endpoint_name):
                raise MissingConnectionStringCapabilityError(target.name, annotation.endpoint_name)
            return [
                (
                    connection_string_key(target.name, annotation.endpoint_name),
                    self.resolver.connection_string(target, annotation.endpoint_name),
                )
            ]

        if not target.has_connection_string():
            raise MissingConnectionStringCapabilityError(target.name)

        entries = [(connection_string_key(target.name), self.resolver.connection_string(target))]
        for endpoint_name in target.endpoint_connection_string_names():
            entries.append(
                (
                    connection_string_key(target.name, endpoint_name),
                    self.resolver.connection_string(target, endpoint_name),
                )
            )
        return entries

    @staticmethod
    def _set(resource: Resource, environment: dict[str, str], key: str, value: str) -> None:
        if key in environment:
            logger.debug(
                "Environment variable '%s' on resource '%s' overwritten by reference",
                key,
                resource.name,
            )
        environment[key] = value


async def get_environment_variables(
    resource: Resource, execution_context: ExecutionContext | None = None
) -> dict[str, str]:
    """Evaluate a resource's environment (run mode unless told otherwise)."""
    return await EnvironmentVariableEvaluator(execution_context).evaluate(resource)


def evaluate_environment(
    resource: Resource, execution_context: ExecutionContext | None = None
) -> dict[str, str]:
    """Synchronous wrapper around :func:`get_environment_variables`."""
    return asyncio.run(get_environment_variables(resource, execution_context))
