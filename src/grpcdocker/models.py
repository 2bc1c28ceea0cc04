"""Shared domain models for grpc-docker-tools."""

import shlex
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Tuple

from .constants import (
    DEFAULT_BUILDER_HOST,
    DEFAULT_DOCKERFILE_ROOT,
    DEFAULT_GCE_SCRIPT_ROOT,
    DEFAULT_GS_ROOT,
    DEFAULT_SSH_KEY_FILE,
)

ROLE_CLIENT = "client"
ROLE_SERVER = "server"


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, built once from the config file and CLI."""

    project: Optional[str] = None
    zone: Optional[str] = None
    gs_root: str = DEFAULT_GS_ROOT
    dockerfile_root: str = DEFAULT_DOCKERFILE_ROOT
    gce_script_root: str = DEFAULT_GCE_SCRIPT_ROOT
    builder_host: str = DEFAULT_BUILDER_HOST
    ssh_key_file: str = DEFAULT_SSH_KEY_FILE


@dataclass(frozen=True)
class InvocationContext:
    project: str
    zone: str
    dry_run: bool = False


@dataclass(frozen=True)
class TargetDescriptor:
    """A language image in the client or server role."""

    language: str
    role: str
    image: str
    port: Optional[int] = None

    @property
    def container_name(self) -> str:
        return f"grpc_interop_{self.language}"


@dataclass(frozen=True)
class CommandSpec:
    """An argument vector, rendered to shell text only when it is sent."""

    argv: Tuple[str, ...]
    discard_output: bool = False

    def render(self) -> str:
        text = shlex.join(self.argv)
        if self.discard_output:
            text = f"{text} > /dev/null 2>&1"
        return text


def render_chain(specs: Iterable[CommandSpec], separator: str = " && ") -> str:
    return separator.join(spec.render() for spec in specs)


@dataclass(frozen=True)
class GeneratorKey:
    mode: str
    language: str
    test_case: Optional[str] = None

    def __str__(self) -> str:
        parts = [self.mode]
        if self.test_case:
            parts.append(self.test_case)
        parts.append(self.language)
        return "/".join(parts)


@dataclass(frozen=True)
class GeneratorBinding:
    key: GeneratorKey
    func: Callable[[Tuple[str, ...]], CommandSpec] = field(compare=False, repr=False)

    def build(self, flags: Iterable[str]) -> CommandSpec:
        return self.func(tuple(flags))

    def __str__(self) -> str:
        return str(self.key)


@dataclass(frozen=True)
class PushDockerfilesArgs:
    docker_dir: str
    gs_root_uri: str


@dataclass(frozen=True)
class AddDockerUserArgs:
    host: str


@dataclass(frozen=True)
class UpdateImageArgs:
    label_suffix: str
    host: str
    dockerfile_root: str
    gce_script_root: str

    @property
    def image_label(self) -> str:
        return f"grpc/{self.label_suffix}"

    @property
    def docker_dir_basename(self) -> str:
        return f"grpc_{self.label_suffix}"


@dataclass(frozen=True)
class SyncScriptsArgs:
    hosts: Tuple[str, ...]
    gce_script_root: str


@dataclass(frozen=True)
class SyncImagesArgs:
    hosts: Tuple[str, ...]


@dataclass(frozen=True)
class LaunchServerArgs:
    host: str
    server: TargetDescriptor


@dataclass(frozen=True)
class InteropTestArgs:
    test_case: str
    host: str
    client: TargetDescriptor
    generator: GeneratorBinding
    grpc_server: str
    server: TargetDescriptor


@dataclass(frozen=True)
class CloudProdTestArgs:
    test_case: str
    host: str
    client: TargetDescriptor
    generator: GeneratorBinding


@dataclass(frozen=True)
class InstanceQueryArgs:
    project: str
    instance: str
