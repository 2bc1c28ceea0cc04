import logging
import os

import click
from rich.console import Console
from rich.logging import RichHandler

from .core import GrpcDocker
from .errors import GrpcDockerError
from .generators import MODES
from .models import Settings
from .services.config_loader import ConfigLoader

PASSTHROUGH = {"ignore_unknown_options": True, "allow_extra_args": True}

SETTINGS_KEYS = (
    "project",
    "zone",
    "gs_root",
    "dockerfile_root",
    "gce_script_root",
    "builder_host",
    "ssh_key_file",
)


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_level=False,
            show_path=False,
        )
    ],
)


@click.group()
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help="Path to a YAML configuration file. Defaults to .grpcdocker.yml if present.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.pass_context
def main(ctx, config, verbose, log_file):
    """Maintain gRPC interop docker images and run interop tests on GCE.

    Subcommands take the same leading flags: -p <project>, -z <zone>, -n
    (dry run) and -f <resolver>, followed by their positional arguments.
    """
    logger = logging.getLogger("grpcdocker")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), ".grpcdocker.yml")
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except GrpcDockerError as exc:
        raise click.ClickException(str(exc)) from exc

    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    ctx.obj = Settings(
        **{key: str(config_values[key]) for key in SETTINGS_KEYS if config_values.get(key)}
    )


def _passthrough_command(name: str, method_name: str, help_text: str):
    @main.command(name, context_settings=PASSTHROUGH, help=help_text)
    @click.argument("args", nargs=-1, type=click.UNPROCESSED)
    @click.pass_obj
    def command(settings, args):
        tool = GrpcDocker(settings=settings)
        raise SystemExit(getattr(tool, method_name)(list(args)))

    return command


_passthrough_command(
    "push-dockerfiles",
    "push_dockerfiles",
    "Push a dockerfile tree to cloud storage: [-r GS_ROOT] DOCKER_DIR [GS_ROOT_URI]",
)
_passthrough_command(
    "add-docker-user",
    "add_docker_user",
    "Add the ssh user to the docker group on HOST: [-p P] [-z Z] [-n] HOST",
)
_passthrough_command(
    "update-image",
    "update_image",
    "Rebuild grpc/LABEL on the builder: [-d DOCKERFILE_ROOT] [-s SCRIPT_ROOT] [-h HOST] LABEL",
)
_passthrough_command(
    "sync-scripts",
    "sync_scripts",
    "Copy the shared func library to hosts: [-s SCRIPT_ROOT] HOST [HOST ...]",
)
_passthrough_command(
    "sync-images",
    "sync_images",
    "Pull all known grpc images on hosts: HOST [HOST ...]",
)
_passthrough_command(
    "launch-server",
    "launch_server",
    "Launch an interop server container: HOST SERVER_TYPE",
)
_passthrough_command(
    "interop-test",
    "interop_test",
    "Run an interop client: TEST_CASE HOST CLIENT_TYPE SERVER_HOST SERVER_TYPE",
)
_passthrough_command(
    "cloud-prod-test",
    "cloud_prod_test",
    "Run a client against the production sandbox: TEST_CASE HOST CLIENT_TYPE",
)
_passthrough_command(
    "cloud-prod-auth-test",
    "cloud_prod_auth_test",
    "Run an authenticated client against the production sandbox: TEST_CASE HOST CLIENT_TYPE",
)
_passthrough_command(
    "has-instance",
    "has_instance",
    "Check that PROJECT contains INSTANCE: PROJECT INSTANCE",
)
_passthrough_command(
    "find-internal-ip",
    "find_internal_ip",
    "Print the internal ip of INSTANCE: PROJECT INSTANCE",
)
_passthrough_command(
    "interop-test-flags",
    "interop_test_flags",
    "Print the interop client flags: SERVER_IP PORT TEST_CASE",
)
_passthrough_command(
    "resolve-args",
    "resolve_args",
    "Resolve arguments with the resolver selected by -f and print the result.",
)


@main.command("gen-cmd", context_settings=PASSTHROUGH)
@click.option(
    "--auth-test-case",
    required=False,
    help="Credential test case for cloud_prod_auth (service_account_creds, compute_engine_creds).",
)
@click.argument("mode", type=click.Choice(MODES))
@click.argument("language")
@click.argument("flags", nargs=-1, type=click.UNPROCESSED)
@click.pass_obj
def gen_cmd(settings, auth_test_case, mode, language, flags):
    """Print the dockerized client command MODE/LANGUAGE builds for FLAGS."""
    tool = GrpcDocker(settings=settings)
    raise SystemExit(tool.gen_cmd(mode, language, list(flags), test_case=auth_test_case))


if __name__ == "__main__":
    main()
