"""
Annotations attached to application model resources.

Annotations form a closed set of typed facts. A resource keeps them in
declaration order, and name-keyed lookups (such as finding an endpoint by
name) return the first match.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from ..execution import ExecutionContext

if TYPE_CHECKING:
    from ..expressions import ReferenceExpression
    from .resources import Resource


class ProtocolType(str, Enum):
    """Network protocol of an endpoint."""

    TCP = "tcp"
    UDP = "udp"


class ContainerMountType(str, Enum):
    """Kind of container mount."""

    VOLUME = "volume"
    BIND = "bind"


@dataclass
class ContainerImageAnnotation:
    """Container image reference: ``[registry/]image[:tag]``."""

    image: str
    tag: str | None = None
    registry: str | None = None

    def reference(self) -> str:
        image = f"{self.registry}/{self.image}" if self.registry else self.image
        return f"{image}:{self.tag}" if self.tag else image


@dataclass(eq=False)
class AllocatedEndpoint:
    """Concrete address of an endpoint once the host has placed its resource."""

    endpoint: EndpointAnnotation = field(repr=False)
    address: str
    port: int

    @property
    def uri_scheme(self) -> str:
        return self.endpoint.uri_scheme

    @property
    def url(self) -> str:
        return f"{self.uri_scheme}://{self.address}:{self.port}"

    def __str__(self) -> str:
        return self.url


@dataclass(eq=False)
class EndpointAnnotation:
    """
    A named network binding declared on a resource.

    ``allocated_endpoint`` stays ``None`` until run-mode allocation; publish
    mode never allocates and renders symbolic placeholders instead.
    """

    resource: Resource = field(repr=False)
    name: str
    target_port: int | None = None
    port: int | None = None
    protocol: ProtocolType = ProtocolType.TCP
    transport: str = "http"
    uri_scheme: str = "http"
    is_external: bool = False
    allocated_endpoint: AllocatedEndpoint | None = None

    def allocate(self, address: str, port: int) -> AllocatedEndpoint:
        """Bind a concrete address to this endpoint."""
        from ..endpoints import allocate

        return allocate(self, address, port)


@dataclass
class EnvironmentCallbackContext:
    """
    Context passed to environment callbacks.

    Callbacks write into ``environment_variables``. Values may be plain
    strings or deferred values (parameters, endpoint references, reference
    expressions) that are resolved for the current execution mode.
    """

    execution_context: ExecutionContext
    resource: Resource
    environment_variables: dict[str, Any] = field(default_factory=dict)


EnvironmentCallback = Callable[[EnvironmentCallbackContext], "Awaitable[None] | None"]


@dataclass(eq=False)
class EnvironmentCallbackAnnotation:
    """Sync or async callback contributing environment variables."""

    callback: EnvironmentCallback

    @classmethod
    def from_value(cls, name: str, value: Any) -> EnvironmentCallbackAnnotation:
        def _set(context: EnvironmentCallbackContext) -> None:
            context.environment_variables[name] = value

        return cls(_set)


@dataclass
class ConnectionStringExpressionAnnotation:
    """
    Connection string template of a resource.

    ``endpoint_name`` is ``None`` for the primary connection string and names
    the endpoint for an endpoint-specific connection string.
    """

    expression: ReferenceExpression
    endpoint_name: str | None = None


@dataclass(eq=False)
class ReferenceAnnotation:
    """Declares that the owning resource consumes ``target``'s connection string."""

    target: Resource
    endpoint_name: str | None = None


@dataclass
class ContainerMountAnnotation:
    """Named volume or bind mount of a container."""

    source: str | None
    target: str
    type: ContainerMountType = ContainerMountType.VOLUME
    read_only: bool = False


@dataclass
class CommandLineArgsAnnotation:
    """Arguments passed to a container or executable."""

    args: list[str] = field(default_factory=list)
