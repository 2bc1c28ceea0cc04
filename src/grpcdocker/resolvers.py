"""Positional argument resolvers, one per entry point.

A resolver consumes the arguments left after the leading flags and returns an
explicit record. Required values must be non-empty; the error names the
missing argument.
"""

import os
from typing import Dict, List, Mapping, Sequence, Tuple

from .errors import ArgumentError, GrpcDockerError
from .errors_catalog import actionable_error
from .generators import (
    MODE_CLOUD_PROD,
    MODE_CLOUD_PROD_AUTH,
    MODE_INTEROP,
    CommandGeneratorRegistry,
    client_target,
    registry,
    server_target,
)
from .models import (
    AddDockerUserArgs,
    CloudProdTestArgs,
    InstanceQueryArgs,
    InteropTestArgs,
    LaunchServerArgs,
    PushDockerfilesArgs,
    Settings,
    SyncImagesArgs,
    SyncScriptsArgs,
    UpdateImageArgs,
)

# -d dockerfile root, -r storage root, -s gce script root, -h host
RESOLVER_FLAGS = "d:r:s:h:"


class PositionalResolver:
    name = ""
    options: Tuple[str, ...] = ()
    record_type: type = object

    def resolve(self, args: Sequence[str], options: Mapping[str, str], settings: Settings):
        raise NotImplementedError

    def _take(self, args: List[str], arg_name: str) -> str:
        if not args or not args[0]:
            raise ArgumentError(actionable_error("missing_arg", func=self.name, name=arg_name))
        return args.pop(0)

    def _take_hosts(self, args: List[str]) -> Tuple[str, ...]:
        hosts = tuple(arg for arg in args if arg)
        if not hosts:
            raise ArgumentError(
                actionable_error("missing_arg", func=self.name, name="host1 [host2 ... hostN]")
            )
        return hosts

    def _require_dir(self, path: str, label: str):
        if not os.path.isdir(path):
            raise GrpcDockerError(actionable_error("dir_not_found", label=label, path=path))


class PushDockerfilesResolver(PositionalResolver):
    name = "push_dockerfiles_args"
    options = ("r",)
    record_type = PushDockerfilesArgs

    def resolve(self, args, options, settings):
        args = list(args)
        docker_dir = self._take(args, "docker_dir")
        gs_root_uri = args[0] if args and args[0] else options.get("r") or settings.gs_root
        return PushDockerfilesArgs(docker_dir=docker_dir, gs_root_uri=gs_root_uri)


class AddDockerUserResolver(PositionalResolver):
    name = "add_docker_user_args"
    record_type = AddDockerUserArgs

    def resolve(self, args, options, settings):
        return AddDockerUserArgs(host=self._take(list(args), "host"))


class UpdateImageResolver(PositionalResolver):
    name = "update_image_args"
    options = ("d", "s", "h")
    record_type = UpdateImageArgs

    def resolve(self, args, options, settings):
        dockerfile_root = options.get("d") or settings.dockerfile_root
        gce_script_root = options.get("s") or settings.gce_script_root
        host = options.get("h") or settings.builder_host

        # images are labelled grpc/<label_suffix>, built from <dockerfile_root>/grpc_<label_suffix>
        label_suffix = self._take(list(args), "label_suffix (e.g cxx,base,ruby,java_base)")
        self._require_dir(dockerfile_root, "dockerfile root")
        self._require_dir(gce_script_root, "gce script")
        return UpdateImageArgs(
            label_suffix=label_suffix,
            host=host,
            dockerfile_root=dockerfile_root,
            gce_script_root=gce_script_root,
        )


class SyncScriptsResolver(PositionalResolver):
    name = "sync_scripts_args"
    options = ("s",)
    record_type = SyncScriptsArgs

    def resolve(self, args, options, settings):
        gce_script_root = options.get("s") or settings.gce_script_root
        hosts = self._take_hosts(list(args))
        self._require_dir(gce_script_root, "gce script")
        return SyncScriptsArgs(hosts=hosts, gce_script_root=gce_script_root)


class SyncImagesResolver(PositionalResolver):
    name = "sync_images_args"
    record_type = SyncImagesArgs

    def resolve(self, args, options, settings):
        return SyncImagesArgs(hosts=self._take_hosts(list(args)))


class LaunchServerResolver(PositionalResolver):
    name = "launch_server_args"
    record_type = LaunchServerArgs

    def resolve(self, args, options, settings):
        args = list(args)
        host = self._take(args, "host")
        server = server_target(self._take(args, "server_type"))
        return LaunchServerArgs(host=host, server=server)


class InteropTestResolver(PositionalResolver):
    """test_case, client host, client_type, server host, server_type."""

    name = "interop_test_args"
    record_type = InteropTestArgs

    def __init__(self, generators: CommandGeneratorRegistry = registry):
        self.generators = generators

    def resolve(self, args, options, settings):
        args = list(args)
        test_case = self._take(args, "test_case")
        host = self._take(args, "host")
        client_type = self._take(args, "client_type")
        generator = self.generators.lookup(MODE_INTEROP, client_type)
        grpc_server = self._take(args, "grpc_server")
        server = server_target(self._take(args, "server_type"))
        return InteropTestArgs(
            test_case=test_case,
            host=host,
            client=client_target(client_type),
            generator=generator,
            grpc_server=grpc_server,
            server=server,
        )


class CloudProdTestResolver(PositionalResolver):
    """test_case, client host, client_type.

    In cloud_prod_auth mode the test case also picks the credential strategy.
    """

    record_type = CloudProdTestArgs

    def __init__(self, name: str, mode: str, generators: CommandGeneratorRegistry = registry):
        self.name = name
        self.mode = mode
        self.generators = generators

    def resolve(self, args, options, settings):
        args = list(args)
        test_case = self._take(args, "test_case")
        host = self._take(args, "host")
        client_type = self._take(args, "client_type")
        generator = self.generators.lookup(self.mode, client_type, test_case=test_case)
        return CloudProdTestArgs(
            test_case=test_case,
            host=host,
            client=client_target(client_type),
            generator=generator,
        )


class InstanceQueryResolver(PositionalResolver):
    name = "instance_query_args"
    record_type = InstanceQueryArgs

    def resolve(self, args, options, settings):
        args = list(args)
        project = self._take(args, "project")
        instance = self._take(args, "checked_instance")
        return InstanceQueryArgs(project=project, instance=instance)


def default_resolvers(generators: CommandGeneratorRegistry = registry) -> Dict[str, PositionalResolver]:
    resolvers: List[PositionalResolver] = [
        PushDockerfilesResolver(),
        AddDockerUserResolver(),
        UpdateImageResolver(),
        SyncScriptsResolver(),
        SyncImagesResolver(),
        LaunchServerResolver(),
        InteropTestResolver(generators),
        CloudProdTestResolver("cloud_prod_test_args", MODE_CLOUD_PROD, generators),
        CloudProdTestResolver("cloud_prod_auth_test_args", MODE_CLOUD_PROD_AUTH, generators),
        InstanceQueryResolver(),
    ]
    return {resolver.name: resolver for resolver in resolvers}
