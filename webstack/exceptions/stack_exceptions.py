class StackConfigurationError(Exception):
    """Base class for errors detected while generating the template."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidReplicaRangeError(StackConfigurationError):
    """Raised when a service's replica bounds are below the floor or inverted."""


class InvalidHealthCheckError(StackConfigurationError):
    """Raised when a health check does not fit the load balancer in front of it."""


class MissingBackendAddressError(StackConfigurationError):
    """Raised when the edge service is built without a resolved backend address."""


class ReservedEnvironmentVariableError(StackConfigurationError):
    """Raised when a service spec sets a variable the stack injects itself."""


class UnknownEnvironmentError(StackConfigurationError):
    """Raised when no stack configuration exists for the requested environment."""


class TemplateValidationError(StackConfigurationError):
    """Raised when CloudFormation rejects the synthesized template."""
