"""
Application model: resources, their annotations and the resource graph.
"""

from .annotations import (
    AllocatedEndpoint,
    CommandLineArgsAnnotation,
    ConnectionStringExpressionAnnotation,
    ContainerImageAnnotation,
    ContainerMountAnnotation,
    ContainerMountType,
    EndpointAnnotation,
    EnvironmentCallbackAnnotation,
    EnvironmentCallbackContext,
    ProtocolType,
    ReferenceAnnotation,
)
from .graph import DistributedApplicationModel
from .resources import (
    ContainerResource,
    ExecutableResource,
    ParameterResource,
    ProjectResource,
    Resource,
)

__all__ = [
    "AllocatedEndpoint",
    "CommandLineArgsAnnotation",
    "ConnectionStringExpressionAnnotation",
    "ContainerImageAnnotation",
    "ContainerMountAnnotation",
    "ContainerMountType",
    "ContainerResource",
    "DistributedApplicationModel",
    "EndpointAnnotation",
    "EnvironmentCallbackAnnotation",
    "EnvironmentCallbackContext",
    "ExecutableResource",
    "ParameterResource",
    "ProjectResource",
    "ProtocolType",
    "ReferenceAnnotation",
    "Resource",
]
