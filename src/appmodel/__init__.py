"""
appmodel - Application model and manifest publisher for distributed applications

This package declares the resources of a distributed application (containers,
projects, executables and parameters), wires them together with endpoints,
environment variables and connection strings, and either evaluates their
environment for a local run or publishes a deployment manifest.
"""

__version__ = "0.1.0"
__author__ = "appmodel Team"
__description__ = "Application model and manifest publisher for distributed applications"

# Import main components for public API
from .builder import (
    ContainerResourceBuilder,
    DistributedApplication,
    DistributedApplicationBuilder,
    ResourceBuilder,
)
from .config import Config
from .connection_strings import get_connection_string, with_connection_string
from .environment import get_environment_variables
from .errors import AppModelError
from .execution import DistributedApplicationOperation, ExecutionContext
from .expressions import ReferenceExpression
from .parameters import GenerateParameterDefault, ParameterStore
from .publishing import ManifestPublisher, get_manifest, get_manifest_text

# Define public API exports
__all__ = [
    "AppModelError",
    "Config",
    "ContainerResourceBuilder",
    "DistributedApplication",
    "DistributedApplicationBuilder",
    "DistributedApplicationOperation",
    "ExecutionContext",
    "GenerateParameterDefault",
    "ManifestPublisher",
    "ParameterStore",
    "ReferenceExpression",
    "ResourceBuilder",
    "get_connection_string",
    "get_environment_variables",
    "get_manifest",
    "get_manifest_text",
    "with_connection_string",
    "__version__",
    "__author__",
    "__description__",
]
