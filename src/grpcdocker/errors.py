"""Domain errors for grpc-docker-tools."""

from typing import Optional


class GrpcDockerError(RuntimeError):
    """Raised when an entry point cannot continue."""

    exit_code = 1

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ArgumentError(GrpcDockerError):
    """A required argument is missing or holds an unsupported value."""


class ConfigurationError(GrpcDockerError):
    """A generator or argument resolver is not registered."""

    exit_code = 2


class InstanceNotFoundError(GrpcDockerError):
    """The named GCE instance is not part of the project."""


class RemoteCommandError(GrpcDockerError):
    """A remote command failed; exit_code holds its status unmodified."""
