"""
grpc-docker-tools - maintain gRPC interop docker images and run interop tests on GCE
"""

__version__ = "0.1.0"

from .core import GrpcDocker
from .errors import GrpcDockerError

__all__ = ["GrpcDocker", "GrpcDockerError"]
