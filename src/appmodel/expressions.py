"""
Deferred values and their resolution.

Templates use ``{name.field}`` placeholders. ``{parameter.value}`` refers to
a parameter bound to the expression; any other field refers to an endpoint
of the owning resource (``scheme``, ``host``, ``port``, ``url`` or
``targetPort``). ``{{`` and ``}}`` are literal braces.

Two resolvers implement the same interface: :class:`RunValueResolver`
produces concrete values from allocated endpoints and parameter values,
:class:`PublishValueResolver` produces manifest placeholders. The resolver is
picked once from the :class:`~appmodel.execution.ExecutionContext`.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from .errors import MissingAllocationError, UnresolvedPlaceholderError
from .execution import ExecutionContext
from .model.annotations import EndpointAnnotation
from .model.resources import ParameterResource, Resource

logger = logging.getLogger(__name__)

ENDPOINT_FIELDS = ("scheme", "host", "port", "url", "targetPort")
PARAMETER_FIELD = "value"

_TOKEN_RE = re.compile(r"\{\{|\}\}|\{([^{}]*)\}|[{}]")


@dataclass(frozen=True)
class EndpointReferenceExpression:
    """One field of an endpoint, resolved lazily."""

    endpoint: EndpointReference
    field: str

    def __post_init__(self) -> None:
        if self.field not in ENDPOINT_FIELDS:
            raise ValueError(
                f"Unknown endpoint property '{self.field}'. Valid properties: {list(ENDPOINT_FIELDS)}"
            )


@dataclass(frozen=True)
class EndpointReference:
    """Deferred reference to a named endpoint of a resource."""

    resource: Resource
    endpoint_name: str

    @property
    def annotation(self) -> EndpointAnnotation | None:
        return self.resource.try_get_endpoint(self.endpoint_name)

    @property
    def exists(self) -> bool:
        return self.annotation is not None

    @property
    def is_allocated(self) -> bool:
        annotation = self.annotation
        return annotation is not None and annotation.allocated_endpoint is not None

    def get_property(self, name: str) -> EndpointReferenceExpression:
        return EndpointReferenceExpression(self, name)

    @property
    def scheme(self) -> EndpointReferenceExpression:
        return self.get_property("scheme")

    @property
    def host(self) -> EndpointReferenceExpression:
        return self.get_property("host")

    @property
    def port(self) -> EndpointReferenceExpression:
        return self.get_property("port")

    @property
    def url(self) -> EndpointReferenceExpression:
        return self.get_property("url")

    @property
    def target_port(self) -> EndpointReferenceExpression:
        return self.get_property("targetPort")


@dataclass(frozen=True)
class ConnectionStringReference:
    """Deferred connection string of a resource, or of one of its endpoints."""

    resource: Resource
    endpoint_name: str | None = None


@dataclass
class ReferenceExpression:
    """
    A template owned by a resource, with the parameters it may refer to.

    Example::

        ReferenceExpression(
            "Endpoint={http.scheme}://{http.host}:{http.port};Key={api-key.value}",
            owner=qdrant,
            parameters=(api_key,),
        )
    """

    template: str
    owner: Resource
    parameters: tuple[ParameterResource, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        self.parameters = tuple(self.parameters)

    def find_parameter(self, name: str) -> ParameterResource | None:
        for parameter in self.parameters:
            if parameter.name == name:
                return parameter
        return None

    def placeholders(self) -> list[str]:
        """Placeholders in template order, without braces."""
        return [m.group(1) for m in _TOKEN_RE.finditer(self.template) if m.group(1) is not None]


class ValueResolver(ABC):
    """Resolves deferred values to strings for one execution mode."""

    def __init__(self, execution_context: ExecutionContext):
        self.execution_context = execution_context

    def resolve(self, value: Any) -> str:
        """
        Resolve any supported value to a string.

        Raises:
            TypeError: If the value type is not supported
        """
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, int):
            return str(value)
        if isinstance(value, ParameterResource):
            return self.parameter_value(value)
        if isinstance(value, EndpointReferenceExpression):
            return self.endpoint_property(
                self._require_endpoint(value.endpoint, f"{value.endpoint.endpoint_name}.{value.field}"),
                value.field,
            )
        if isinstance(value, EndpointReference):
            return self.endpoint_property(
                self._require_endpoint(value, f"{value.endpoint_name}.url"), "url"
            )
        if isinstance(value, ReferenceExpression):
            return self.expand(value)
        if isinstance(value, ConnectionStringReference):
            return self.connection_string(value.resource, value.endpoint_name)
        raise TypeError(f"Unsupported value type: {type(value).__name__}")

    def expand(self, expression: ReferenceExpression) -> str:
        """
        Substitute every placeholder of a template in a single pass.

        Raises:
            UnresolvedPlaceholderError: If a placeholder names no endpoint or
                parameter, uses an unknown field, or a brace is unbalanced
        """
        owner = expression.owner

        def _substitute(match: re.Match) -> str:
            token = match.group(0)
            if token == "{{":
                return "{"
            if token == "}}":
                return "}"
            placeholder = match.group(1)
            if placeholder is None:
                raise UnresolvedPlaceholderError(owner.name, token, "unbalanced brace")

            name, sep, field_name = placeholder.rpartition(".")
            if not sep or not name:
                raise UnresolvedPlaceholderError(
                    owner.name, placeholder, "expected '<name>.<field>'"
                )

            if field_name == PARAMETER_FIELD:
                parameter = expression.find_parameter(name)
                if parameter is None:
                    raise UnresolvedPlaceholderError(
                        owner.name, placeholder, f"no parameter named '{name}'"
                    )
                return self.parameter_value(parameter)

            if field_name not in ENDPOINT_FIELDS:
                raise UnresolvedPlaceholderError(
                    owner.name, placeholder, f"unknown field '{field_name}'"
                )
            endpoint = owner.try_get_endpoint(name)
            if endpoint is None:
                raise UnresolvedPlaceholderError(
                    owner.name, placeholder, f"no endpoint named '{name}'"
                )
            return self.endpoint_property(endpoint, field_name)

        return _TOKEN_RE.sub(_substitute, expression.template)

    @staticmethod
    def _require_endpoint(reference: EndpointReference, placeholder: str) -> EndpointAnnotation:
        annotation = reference.annotation
        if annotation is None:
            raise UnresolvedPlaceholderError(
                reference.resource.name,
                placeholder,
                f"no endpoint named '{reference.endpoint_name}'",
            )
        return annotation

    @abstractmethod
    def parameter_value(self, parameter: ParameterResource) -> str:
        """Resolve a parameter."""

    @abstractmethod
    def endpoint_property(self, endpoint: EndpointAnnotation, field_name: str) -> str:
        """Resolve one field of an endpoint."""

    @abstractmethod
    def connection_string(self, resource: Resource, endpoint_name: str | None = None) -> str:
        """Resolve the connection string of a resource or one of its endpoints."""


class RunValueResolver(ValueResolver):
    """Concrete values from allocated endpoints and parameter values."""

    def parameter_value(self, parameter: ParameterResource) -> str:
        return parameter.get_value()

    def endpoint_property(self, endpoint: EndpointAnnotation, field_name: str) -> str:
        if field_name == "targetPort":
            return "" if endpoint.target_port is None else str(endpoint.target_port)

        allocated = endpoint.allocated_endpoint
        if allocated is None:
            raise MissingAllocationError(endpoint.resource.name, endpoint.name)

        if field_name == "scheme":
            return allocated.uri_scheme
        if field_name == "host":
            return allocated.address
        if field_name == "port":
            return str(allocated.port)
        return allocated.url

    def connection_string(self, resource: Resource, endpoint_name: str | None = None) -> str:
        return self.expand(resource.get_connection_string_expression(endpoint_name))


class PublishValueResolver(ValueResolver):
    """Manifest placeholders; nothing is allocated or read from configuration."""

    def parameter_value(self, parameter: ParameterResource) -> str:
        return parameter.value_expression

    def endpoint_property(self, endpoint: EndpointAnnotation, field_name: str) -> str:
        return f"{{{endpoint.resource.name}.bindings.{endpoint.name}.{field_name}}}"

    def connection_string(self, resource: Resource, endpoint_name: str | None = None) -> str:
        expression = resource.get_connection_string_expression(endpoint_name)
        if endpoint_name is None:
            # The manifest carries the primary connection string as a resource field.
            return f"{{{resource.name}.connectionString}}"
        return self.expand(expression)


def create_value_resolver(execution_context: ExecutionContext) -> ValueResolver:
    """Pick the resolver for an execution mode."""
    if execution_context.is_publish_mode:
        return PublishValueResolver(execution_context)
    return RunValueResolver(execution_context)
