"""The resource graph of a distributed application."""

import logging
from typing import Iterator

from ..errors import DuplicateResourceNameError
from ..execution import ExecutionContext
from .resources import (
    ContainerResource,
    ExecutableResource,
    ParameterResource,
    ProjectResource,
    Resource,
)

logger = logging.getLogger(__name__)


class DistributedApplicationModel:
    """
    Ordered collection of uniquely named resources.

    Names are compared case-insensitively. Iteration follows insertion
    order, which is the order resources appear in a published manifest.
    """

    def __init__(self, execution_context: ExecutionContext | None = None):
        self.execution_context = execution_context or ExecutionContext.run()
        self._resources: dict[str, Resource] = {}
        self._finalized = False

    def add(self, resource: Resource) -> Resource:
        """
        Add a resource to the model.

        Raises:
            DuplicateResourceNameError: If a resource with the same name exists
        """
        key = resource.name.casefold()
        if key in self._resources:
            raise DuplicateResourceNameError(resource.name)
        self._resources[key] = resource
        logger.debug("Added %s '%s'", resource.__class__.__name__, resource.name)
        return resource

    def get(self, name: str) -> Resource | None:
        return self._resources.get(name.casefold())

    def __getitem__(self, name: str) -> Resource:
        resource = self.get(name)
        if resource is None:
            raise KeyError(name)
        return resource

    def __contains__(self, name: str) -> bool:
        return name.casefold() in self._resources

    def __iter__(self) -> Iterator[Resource]:
        return iter(list(self._resources.values()))

    def __len__(self) -> int:
        return len(self._resources)

    @property
    def resources(self) -> list[Resource]:
        return list(self._resources.values())

    def get_container_resources(self) -> list[ContainerResource]:
        return [r for r in self if isinstance(r, ContainerResource)]

    def get_project_resources(self) -> list[ProjectResource]:
        return [r for r in self if isinstance(r, ProjectResource)]

    def get_executable_resources(self) -> list[ExecutableResource]:
        return [r for r in self if isinstance(r, ExecutableResource)]

    def get_parameter_resources(self) -> list[ParameterResource]:
        return [r for r in self if isinstance(r, ParameterResource)]

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def finalize(self) -> None:
        """Freeze the graph: no resource accepts new annotations afterwards."""
        for resource in self:
            resource.finalize()
        self._finalized = True
        logger.debug("Application model finalized with %d resources", len(self))
