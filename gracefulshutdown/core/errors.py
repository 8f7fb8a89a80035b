"""
GRACEFULSHUTDOWN - Custom Exception Classes

Defines the exception hierarchy for the library.
All custom exceptions inherit from GracefulShutdownError.
"""


class GracefulShutdownError(Exception):
    """Base exception for all gracefulshutdown errors."""

    pass


class ConfigurationError(GracefulShutdownError):
    """Raised when there are configuration issues."""

    pass


class MetadataError(GracefulShutdownError):
    """Raised when instance metadata cannot be retrieved."""

    pass


class HostLookupError(GracefulShutdownError):
    """Raised when an instance id cannot be resolved to a network address."""

    pass


class ForwardError(GracefulShutdownError):
    """Raised when a lifecycle message could not be forwarded to its instance."""

    def __init__(self, instance_id: str, url: str, attempts: int):
        self.instance_id = instance_id
        self.url = url
        self.attempts = attempts
        super().__init__(
            f"Failed to forward lifecycle message for {instance_id} to {url} "
            f"after {attempts} attempt(s)"
        )


class LifecycleStateError(GracefulShutdownError):
    """Raised when a lifecycle action is requested before a notice was accepted."""

    pass
