"""
Resource types of the application model.

A resource is identified by its name and owns an ordered list of
annotations. Annotations may be appended until the owning model is built.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

from ..errors import GraphFinalizedError, MissingConnectionStringCapabilityError
from .annotations import (
    CommandLineArgsAnnotation,
    ConnectionStringExpressionAnnotation,
    ContainerImageAnnotation,
    EndpointAnnotation,
)

if TYPE_CHECKING:
    from ..expressions import EndpointReference, ReferenceExpression
    from ..parameters import GenerateParameterDefault, ParameterStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Resource:
    """Base class for every resource in the model."""

    manifest_type: str = ""

    def __init__(self, name: str):
        if not name or not isinstance(name, str):
            raise ValueError("Resource name must be a non-empty string")
        self._name = name
        self._annotations: list[object] = []
        self._finalized = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def annotations(self) -> tuple[object, ...]:
        return tuple(self._annotations)

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def add_annotation(self, annotation: object) -> None:
        """
        Append an annotation.

        Raises:
            GraphFinalizedError: If the owning model has already been built
        """
        if self._finalized:
            raise GraphFinalizedError(
                f"Cannot annotate resource '{self.name}': the application model has been built"
            )
        self._annotations.append(annotation)

    def finalize(self) -> None:
        self._finalized = True

    def annotations_of_type(self, annotation_type: type[T]) -> list[T]:
        return [a for a in self._annotations if isinstance(a, annotation_type)]

    @property
    def endpoints(self) -> list[EndpointAnnotation]:
        return self.annotations_of_type(EndpointAnnotation)

    def try_get_endpoint(self, endpoint_name: str) -> EndpointAnnotation | None:
        for endpoint in self.endpoints:
            if endpoint.name == endpoint_name:
                return endpoint
        return None

    def get_endpoint(self, endpoint_name: str) -> EndpointReference:
        """Return a deferred reference to one of this resource's endpoints."""
        from ..expressions import EndpointReference

        return EndpointReference(self, endpoint_name)

    # Connection string capability

    def try_get_connection_string_annotation(
        self, endpoint_name: str | None = None
    ) -> ConnectionStringExpressionAnnotation | None:
        for annotation in self.annotations_of_type(ConnectionStringExpressionAnnotation):
            if annotation.endpoint_name == endpoint_name:
                return annotation
        return None

    def has_connection_string(self, endpoint_name: str | None = None) -> bool:
        return self.try_get_connection_string_annotation(endpoint_name) is not None

    def get_connection_string_expression(
        self, endpoint_name: str | None = None
    ) -> ReferenceExpression:
        """
        Return the connection string template for the resource or one endpoint.

        Raises:
            MissingConnectionStringCapabilityError: If no matching template is declared
        """
        annotation = self.try_get_connection_string_annotation(endpoint_name)
        if annotation is None:
            raise MissingConnectionStringCapabilityError(self.name, endpoint_name)
        return annotation.expression

    def endpoint_connection_string_names(self) -> list[str]:
        """Endpoint names with an endpoint-specific connection string, in declaration order."""
        return [
            a.endpoint_name
            for a in self.annotations_of_type(ConnectionStringExpressionAnnotation)
            if a.endpoint_name is not None
        ]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class ContainerResource(Resource):
    """A resource backed by a container image."""

    manifest_type = "container.v0"

    def __init__(self, name: str, entrypoint: str | None = None):
        super().__init__(name)
        self.entrypoint = entrypoint

    @property
    def image(self) -> ContainerImageAnnotation | None:
        images = self.annotations_of_type(ContainerImageAnnotation)
        return images[-1] if images else None


class ProjectResource(Resource):
    """A resource backed by a source project built and run by the host."""

    manifest_type = "project.v0"

    def __init__(self, name: str, path: str):
        super().__init__(name)
        self.path = path


class ExecutableResource(Resource):
    """A resource backed by a local executable."""

    manifest_type = "executable.v0"

    def __init__(self, name: str, command: str, working_directory: str = "."):
        super().__init__(name)
        self.command = command
        self.working_directory = working_directory

    @property
    def args(self) -> list[str]:
        args: list[str] = []
        for annotation in self.annotations_of_type(CommandLineArgsAnnotation):
            args.extend(annotation.args)
        return args


class ParameterResource(Resource):
    """
    A named configuration value, optionally secret.

    The value comes from the ``Parameters:<name>`` configuration key or, when
    absent, from the generated default. Values are resolved by the
    :class:`~appmodel.parameters.ParameterStore` the parameter is bound to.
    """

    manifest_type = "parameter.v0"

    def __init__(
        self,
        name: str,
        secret: bool = False,
        default: GenerateParameterDefault | None = None,
    ):
        super().__init__(name)
        self.secret = secret
        self.default = default
        self._store: ParameterStore | None = None

    def bind(self, store: ParameterStore) -> None:
        self._store = store

    @property
    def value_expression(self) -> str:
        return f"{{{self.name}.value}}"

    def get_value(self) -> str:
        """
        Return the concrete value of the parameter.

        Raises:
            MissingParameterValueError: If nothing is configured and no default exists
        """
        if self._store is None:
            from ..parameters import ParameterStore

            self._store = ParameterStore()
        return self._store.resolve(self)
