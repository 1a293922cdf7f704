"""Exception taxonomy for rig.

Read paths swallow and log provider failures, write paths raise them. Every
error a command handler can surface derives from RigError, which carries the
process exit code used by the CLI.
"""


class RigError(Exception):
    """Base exception for rig errors."""

    exit_code = 1


class AuthenticationError(RigError):
    """Raised when no valid credentials or CLI session are available."""

    pass


class UnknownProviderError(RigError):
    """Raised when a provider name is outside the supported set."""

    exit_code = 2

    def __init__(self, name: str, supported: tuple[str, ...] = ()):
        self.name = name
        self.supported = supported
        message = f"Unsupported cloud provider: {name}"
        if supported:
            message += f" (supported: {', '.join(supported)})"
        super().__init__(message)


class UnsupportedResourceType(RigError):
    """Raised when an operation/resource type combination is not implemented."""

    def __init__(self, resource_type: str, operation: str = "operation", provider: str = ""):
        self.resource_type = resource_type
        self.operation = operation
        self.provider = provider
        prefix = f"{provider}: " if provider else ""
        super().__init__(f"{prefix}Unsupported resource type for {operation}: {resource_type}")


class ProviderError(RigError):
    """Raised when a provider write operation fails in the backend.

    Attributes:
        provider: Provider name (aws, gcp, azure)
        details: Underlying backend message (stderr, SDK error text)
    """

    def __init__(self, message: str, provider: str = "", details: str = ""):
        self.provider = provider
        self.details = details
        super().__init__(message)


class ValidationError(RigError):
    """Configuration failed required-field checks.

    Validation itself reports problems through ValidationResult.errors; this
    exception is raised only by callers that decide to refuse an invalid
    configuration.
    """

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Invalid configuration: " + "; ".join(self.errors))


class ReadOnlyModeError(RigError):
    """Raised when a mutating operation is attempted without management mode."""

    pass


class OperationCancelledError(RigError):
    """Raised when an operation observes a cancelled CancellationToken."""

    exit_code = 130


class ConfigError(RigError):
    """Raised when configuration operations fail."""

    pass


__all__ = [
    "AuthenticationError",
    "ConfigError",
    "OperationCancelledError",
    "ProviderError",
    "ReadOnlyModeError",
    "RigError",
    "UnknownProviderError",
    "UnsupportedResourceType",
    "ValidationError",
]
