"""
Exceptions raised while building, resolving and publishing an application model.

Every error here is a configuration or programming error: they are raised at
the point of evaluation or serialization and are never retried.
"""


class AppModelError(Exception):
    """Base class for all application model errors."""

    pass


class DuplicateResourceNameError(AppModelError):
    """Raised when a resource name is already present in the model."""

    def __init__(self, name: str):
        self.resource_name = name
        super().__init__(f"Cannot add resource '{name}': a resource with this name already exists")


class DuplicateEndpointNameError(AppModelError):
    """Raised when an endpoint name is declared twice on the same resource."""

    def __init__(self, resource_name: str, endpoint_name: str):
        self.resource_name = resource_name
        self.endpoint_name = endpoint_name
        super().__init__(
            f"Endpoint '{endpoint_name}' already exists on resource '{resource_name}'"
        )


class UnresolvedPlaceholderError(AppModelError):
    """Raised when a template placeholder does not match an endpoint or parameter."""

    def __init__(self, resource_name: str, placeholder: str, reason: str):
        self.resource_name = resource_name
        self.placeholder = placeholder
        super().__init__(
            f"Resource '{resource_name}': cannot resolve placeholder '{placeholder}': {reason}"
        )


class MissingAllocationError(AppModelError):
    """Raised when a run-mode value needs an endpoint that has not been allocated."""

    def __init__(self, resource_name: str, endpoint_name: str):
        self.resource_name = resource_name
        self.endpoint_name = endpoint_name
        super().__init__(
            f"The endpoint '{endpoint_name}' for resource '{resource_name}' "
            "has not been allocated"
        )


class MissingConnectionStringCapabilityError(AppModelError):
    """Raised when a referenced resource cannot produce the requested connection string."""

    def __init__(self, resource_name: str, endpoint_name: str | None = None):
        self.resource_name = resource_name
        self.endpoint_name = endpoint_name
        if endpoint_name is None:
            message = f"Resource '{resource_name}' does not expose a connection string"
        else:
            message = (
                f"Resource '{resource_name}' does not expose a connection string "
                f"for endpoint '{endpoint_name}'"
            )
        super().__init__(message)


class MissingParameterValueError(AppModelError):
    """Raised when a parameter has no configured value and no generated default."""

    def __init__(self, parameter_name: str):
        self.parameter_name = parameter_name
        super().__init__(
            f"Parameter resource could not be used because configuration key "
            f"'Parameters:{parameter_name}' is missing and the parameter has no default value"
        )


class GraphFinalizedError(AppModelError):
    """Raised when a resource is mutated after the model has been built."""

    pass


class ManifestValidationError(AppModelError):
    """Raised when a rendered manifest document fails schema validation."""

    pass


class DefinitionLoadError(AppModelError):
    """Raised when an AppHost definition file cannot be loaded."""

    pass


class DefinitionValidationError(AppModelError):
    """Raised when AppHost definition content fails validation."""

    pass
