import logging
import os
from typing import Callable, List, Optional, Sequence, Tuple, cast

from rich.console import Console
from rich.markup import escape

from .constants import (
    DEFAULT_PROJECT,
    DEFAULT_ZONE,
    FUNC_LIB_NAME,
    REMOTE_DOCKERFILE_ROOT,
    REMOTE_FUNC_LIB,
)
from .errors import ArgumentError, GrpcDockerError, InstanceNotFoundError, RemoteCommandError
from .errors_catalog import actionable_error
from .generators import CommandGeneratorRegistry, docker_run, interop_test_flags, registry
from .models import (
    AddDockerUserArgs,
    CloudProdTestArgs,
    CommandSpec,
    InstanceQueryArgs,
    InteropTestArgs,
    InvocationContext,
    LaunchServerArgs,
    PushDockerfilesArgs,
    Settings,
    SyncImagesArgs,
    SyncScriptsArgs,
    TargetDescriptor,
    UpdateImageArgs,
    render_chain,
)
from .options import OptionResolver
from .resolvers import default_resolvers
from .services.command_runner import CommandRunner
from .services.filesystem import FileSystemService
from .services.gcloud import GcloudService
from .services.ssh_keys import SshKeyService

console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger("grpcdocker")


class GrpcDocker:
    """Entry points for maintaining the gRPC docker fleet on GCE.

    Every public operation takes the raw argument list (flags first, then
    positionals) and returns an exit status: 0 on success, 1 for bad input or
    a missing instance, 2 for configuration errors, and the remote status
    when a remote command fails.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        command_runner: Optional[CommandRunner] = None,
        generators: CommandGeneratorRegistry = registry,
    ):
        self.settings = settings or Settings()
        self.generators = generators
        self.command_runner = command_runner or CommandRunner(logger=logger)
        self.gcloud = GcloudService(logger=logger, run_cmd=self.command_runner.run)
        self.ssh_keys = SshKeyService(
            logger=logger,
            run_cmd=self.command_runner.run,
            key_file=self.settings.ssh_key_file,
        )
        self.filesystem_service = FileSystemService(logger=logger, console=console)
        self.option_resolver = OptionResolver(logger=logger, resolvers=default_resolvers(generators))
        self._base_context: Optional[InvocationContext] = None

    def base_context(self) -> InvocationContext:
        """Settings first, then gcloud's active config, then fixed fallbacks."""
        if self._base_context is None:
            project = (
                self.settings.project
                or self.gcloud.get_config_value("project")
                or DEFAULT_PROJECT
            )
            zone = (
                self.settings.zone
                or self.gcloud.get_config_value("compute/zone")
                or DEFAULT_ZONE
            )
            self._base_context = InvocationContext(project=project, zone=zone)
        return self._base_context

    def _resolve(
        self,
        argv: Sequence[str],
        arg_func: Optional[str],
        entry_point: str,
    ) -> Tuple[InvocationContext, object]:
        return self.option_resolver.resolve(
            argv,
            base=self.base_context(),
            settings=self.settings,
            arg_func=arg_func,
            entry_point=entry_point,
        )

    def _execute(self, name: str, callback: Callable, argv: Sequence[str]) -> int:
        try:
            return callback(list(argv))
        except KeyboardInterrupt:
            err_console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return 1
        except GrpcDockerError as exc:
            err_console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}", soft_wrap=True)
            logger.debug("%s failed with exit code %s", name, exc.exit_code)
            return exc.exit_code
        except Exception as exc:
            err_console.print(
                f"[bold red]Unexpected error:[/bold red] {escape(str(exc))}",
                soft_wrap=True,
            )
            logger.exception("Unexpected error in %s", name)
            return 1

    def _show_plan(self, command: str, host: str):
        console.print("will run:")
        console.print(f"  {command}", markup=False, highlight=False, soft_wrap=True)
        console.print(f"on {host}", markup=False, highlight=False)

    def _ssh(self, name: str, context: InvocationContext, host: str, command: str):
        result = self.gcloud.ssh(context, host, command)
        if result.returncode != 0:
            raise RemoteCommandError(
                actionable_error(
                    "remote_command_failed",
                    func=name,
                    status=str(result.returncode),
                    host=host,
                ),
                exit_code=result.returncode,
            )

    def _run_remote(self, name: str, context: InvocationContext, host: str, command: str) -> int:
        self._show_plan(command, host)
        if context.dry_run:
            return 0
        self._ssh(name, context, host, command)
        return 0

    def _copy_to_host(
        self,
        name: str,
        context: InvocationContext,
        source: str,
        destination: str,
        recurse: bool = False,
    ):
        result = self.gcloud.scp(context, source, destination, recurse=recurse)
        if result.returncode != 0:
            raise RemoteCommandError(
                actionable_error("copy_failed", func=name, src=source, dest=destination),
                exit_code=result.returncode,
            )

    def _func_lib_command(self, *command: str) -> str:
        return render_chain(
            [
                CommandSpec(argv=("source", REMOTE_FUNC_LIB)),
                CommandSpec(argv=tuple(command)),
            ]
        )

    # Image maintenance

    def push_dockerfiles(self, argv: Sequence[str]) -> int:
        """Pushes a dockerfile tree (one sub dir per image) to cloud storage."""
        return self._execute("push_dockerfiles", self._push_dockerfiles, argv)

    def _push_dockerfiles(self, argv: List[str]) -> int:
        context, args = self._resolve(argv, "push_dockerfiles_args", "push_dockerfiles")
        args = cast(PushDockerfilesArgs, args)

        if not os.path.isdir(args.docker_dir):
            raise GrpcDockerError(
                actionable_error("dir_not_found", label="dockerfile", path=args.docker_dir)
            )

        console.print(f"will copy {args.docker_dir} -> {args.gs_root_uri}", markup=False, soft_wrap=True)
        if context.dry_run:
            return 0

        self.filesystem_service.remove_editor_backups(args.docker_dir)
        result = self.gcloud.storage_copy(args.docker_dir, args.gs_root_uri)
        if result.returncode != 0:
            raise RemoteCommandError(
                actionable_error(
                    "copy_failed",
                    func="push_dockerfiles",
                    src=args.docker_dir,
                    dest=args.gs_root_uri,
                ),
                exit_code=result.returncode,
            )
        return 0

    def add_docker_user(self, argv: Sequence[str]) -> int:
        """Adds the ssh user to the docker group on a host and restarts docker."""
        return self._execute("add_docker_user", self._add_docker_user, argv)

    def _add_docker_user(self, argv: List[str]) -> int:
        self.ssh_keys.ensure_key()
        context, args = self._resolve(argv, "add_docker_user_args", "add_docker_user")
        args = cast(AddDockerUserArgs, args)
        self.gcloud.ensure_instance(context.project, args.host)

        command = self._func_lib_command("grpc_docker_add_docker_group")
        return self._run_remote("add_docker_user", context, args.host, command)

    def update_image(self, argv: Sequence[str]) -> int:
        """Rebuilds grpc/<label_suffix> on the builder host.

        The local func library and dockerfile dir are copied to the host
        before the rebuild runs there.
        """
        return self._execute("update_image", self._update_image, argv)

    def _update_image(self, argv: List[str]) -> int:
        self.ssh_keys.ensure_key()
        context, args = self._resolve(argv, "update_image_args", "update_image")
        args = cast(UpdateImageArgs, args)

        src_docker_dir = os.path.join(args.dockerfile_root, args.docker_dir_basename)
        if not os.path.isdir(src_docker_dir):
            raise GrpcDockerError(
                actionable_error("dir_not_found", label="dockerfile", path=src_docker_dir)
            )
        self.gcloud.ensure_instance(context.project, args.host)

        gce_docker_dir = f"{REMOTE_DOCKERFILE_ROOT}/{args.docker_dir_basename}"
        command = self._func_lib_command("grpc_dockerfile_refresh", args.image_label, gce_docker_dir)
        self._show_plan(command, args.host)
        if context.dry_run:
            return 0

        self._copy_to_host(
            "update_image",
            context,
            os.path.join(args.gce_script_root, FUNC_LIB_NAME),
            f"{args.host}:{REMOTE_FUNC_LIB}",
        )
        self._copy_to_host(
            "update_image",
            context,
            src_docker_dir,
            f"{args.host}:{REMOTE_DOCKERFILE_ROOT}",
            recurse=True,
        )
        self._ssh("update_image", context, args.host, command)
        return 0

    def sync_scripts(self, argv: Sequence[str]) -> int:
        """Copies the latest func library to each host, in order."""
        return self._execute("sync_scripts", self._sync_scripts, argv)

    def _sync_scripts(self, argv: List[str]) -> int:
        self.ssh_keys.ensure_key()
        context, args = self._resolve(argv, "sync_scripts_args", "sync_scripts")
        args = cast(SyncScriptsArgs, args)

        src_func_lib = os.path.join(args.gce_script_root, FUNC_LIB_NAME)
        for host in args.hosts:
            self.gcloud.ensure_instance(context.project, host)
            destination = f"{host}:{REMOTE_FUNC_LIB}"
            console.print(f"will copy {src_func_lib} -> {destination}", markup=False, soft_wrap=True)
            if context.dry_run:
                continue
            self._copy_to_host("sync_scripts", context, src_func_lib, destination)
        return 0

    def sync_images(self, argv: Sequence[str]) -> int:
        """Pulls every known grpc image on each host, in order."""
        return self._execute("sync_images", self._sync_images, argv)

    def _sync_images(self, argv: List[str]) -> int:
        self.ssh_keys.ensure_key()
        context, args = self._resolve(argv, "sync_images_args", "sync_images")
        args = cast(SyncImagesArgs, args)

        command = self._func_lib_command("grpc_docker_pull_known")
        for host in args.hosts:
            self.gcloud.ensure_instance(context.project, host)
            self._run_remote("sync_images", context, host, command)
        return 0

    # Interop servers and clients

    def launch_server(self, argv: Sequence[str]) -> int:
        """Replaces the grpc_interop_<server_type> container on a host."""
        return self._execute("launch_server", self._launch_server, argv)

    def _launch_server(self, argv: List[str]) -> int:
        self.ssh_keys.ensure_key()
        context, args = self._resolve(argv, "launch_server_args", "launch_server")
        args = cast(LaunchServerArgs, args)
        self.gcloud.ensure_instance(context.project, args.host)

        server = args.server
        name = server.container_name
        command = render_chain(
            [
                CommandSpec(argv=("sudo", "docker", "kill", name), discard_output=True),
                CommandSpec(argv=("sudo", "docker", "rm", name), discard_output=True),
                self._server_run_spec(server),
            ],
            separator="; ",
        )
        return self._run_remote("launch_server", context, args.host, command)

    def _server_run_spec(self, server: TargetDescriptor) -> CommandSpec:
        return docker_run(
            server.image,
            name=server.container_name,
            ports=(server.port,),
            detach=True,
        )

    def interop_test(self, argv: Sequence[str]) -> int:
        """Runs <client_type>'s interop client on a host against a launched server.

        Positionals: test_case host client_type server_host server_type. The
        client talks to the server host's internal ip on the server_type port.
        """
        return self._execute("interop_test", self._interop_test, argv)

    def _interop_test(self, argv: List[str]) -> int:
        self.ssh_keys.ensure_key()
        context, args = self._resolve(argv, "interop_test_args", "interop_test")
        args = cast(InteropTestArgs, args)
        self.gcloud.ensure_instance(context.project, args.host)

        address = self.gcloud.find_internal_ip(context.project, args.grpc_server)
        flags = interop_test_flags(address, str(args.server.port), args.test_case)
        command = args.generator.build(flags).render()
        return self._run_remote("interop_test", context, args.host, command)

    def cloud_prod_test(self, argv: Sequence[str]) -> int:
        """Runs <client_type>'s client on a host against the production sandbox."""
        return self._execute("cloud_prod_test", self._cloud_prod_test, argv)

    def _cloud_prod_test(self, argv: List[str]) -> int:
        return self._run_cloud_prod("cloud_prod_test", "cloud_prod_test_args", argv)

    def cloud_prod_auth_test(self, argv: Sequence[str]) -> int:
        """Like cloud_prod_test; the test case also selects the credentials used."""
        return self._execute("cloud_prod_auth_test", self._cloud_prod_auth_test, argv)

    def _cloud_prod_auth_test(self, argv: List[str]) -> int:
        return self._run_cloud_prod("cloud_prod_auth_test", "cloud_prod_auth_test_args", argv)

    def _run_cloud_prod(self, name: str, arg_func: str, argv: List[str]) -> int:
        self.ssh_keys.ensure_key()
        context, args = self._resolve(argv, arg_func, name)
        args = cast(CloudProdTestArgs, args)
        self.gcloud.ensure_instance(context.project, args.host)

        command = args.generator.build([f"--test_case={args.test_case}"]).render()
        return self._run_remote(name, context, args.host, command)

    # Lookups and command previews

    def has_instance(self, argv: Sequence[str]) -> int:
        return self._execute("has_instance", self._has_instance, argv)

    def _has_instance(self, argv: List[str]) -> int:
        _, args = self._resolve(argv, "instance_query_args", "has_instance")
        args = cast(InstanceQueryArgs, args)
        if not self.gcloud.has_instance(args.project, args.instance):
            raise InstanceNotFoundError(
                actionable_error("instance_not_found", instance=args.instance, project=args.project)
            )
        console.print(f"{args.instance} found in {args.project}", markup=False, highlight=False)
        return 0

    def find_internal_ip(self, argv: Sequence[str]) -> int:
        return self._execute("find_internal_ip", self._find_internal_ip, argv)

    def _find_internal_ip(self, argv: List[str]) -> int:
        _, args = self._resolve(argv, "instance_query_args", "find_internal_ip")
        args = cast(InstanceQueryArgs, args)
        console.print(self.gcloud.find_internal_ip(args.project, args.instance), markup=False)
        return 0

    def interop_test_flags(self, argv: Sequence[str]) -> int:
        return self._execute("interop_test_flags", self._interop_test_flags, argv)

    def _interop_test_flags(self, argv: List[str]) -> int:
        server_ip, port, test_case = (list(argv) + ["", "", ""])[:3]
        flags = interop_test_flags(server_ip, port, test_case)
        console.print(" ".join(flags), markup=False, highlight=False, soft_wrap=True)
        return 0

    def gen_cmd(
        self,
        mode: str,
        language: str,
        flags: Sequence[str],
        test_case: Optional[str] = None,
    ) -> int:
        """Prints the client command a generator builds for the given flags."""

        def _generate(flag_list: List[str]) -> int:
            command = self.generators.generate(mode, language, flag_list, test_case=test_case)
            console.print(command.render(), markup=False, highlight=False, soft_wrap=True)
            return 0

        return self._execute("gen_cmd", _generate, flags)

    def resolve_args(self, argv: Sequence[str]) -> int:
        """Runs only the option resolver (select one with -f) and prints the result."""
        return self._execute("resolve_args", self._resolve_args, argv)

    def _resolve_args(self, argv: List[str]) -> int:
        context, record = self._resolve(argv, None, "resolve_args")
        console.print(f"project={context.project}", markup=False)
        console.print(f"zone={context.zone}", markup=False)
        console.print(f"dry_run={int(context.dry_run)}", markup=False)
        if isinstance(record, tuple):
            if record:
                raise ArgumentError(f"resolve_args: unexpected args {' '.join(record)}; select a resolver with -f")
            return 0
        for field_name, value in vars(record).items():
            console.print(f"{field_name}={value}", markup=False, highlight=False, soft_wrap=True)
        return 0
