import pytest

from grpcdocker.errors import ArgumentError, ConfigurationError
from grpcdocker.models import InvocationContext, LaunchServerArgs, PushDockerfilesArgs, Settings
from grpcdocker.options import CONTEXT_FLAGS, OptionResolver, parse_flags
from grpcdocker.resolvers import RESOLVER_FLAGS


class DummyLogger:
    def __init__(self):
        self.warnings = []

    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, message, *args):
        self.warnings.append(message % args)


BASE = InvocationContext(project="base-project", zone="base-zone")


def test_parse_flags_stops_at_first_positional():
    parsed = parse_flags(["-n", "-p", "proj", "host", "-z", "zone"], "np:z:")

    assert parsed.switches == {"n"}
    assert parsed.values == {"p": "proj"}
    assert parsed.remaining == ["host", "-z", "zone"]


def test_parse_flags_handles_clusters_and_attached_values():
    parsed = parse_flags(["-np", "proj", "-zasia-east1-b", "--", "-host"], "np:z:")

    assert parsed.switches == {"n"}
    assert parsed.values == {"p": "proj", "z": "asia-east1-b"}
    assert parsed.remaining == ["-host"]


def test_parse_flags_records_unknown_and_missing_values():
    parsed = parse_flags(["-x", "-p"], "np:z:")

    assert parsed.unknown == ["x"]
    assert parsed.missing == ["p"]
    assert parsed.remaining == []


def test_parse_flags_treats_lone_dash_as_positional():
    assert parse_flags(["-", "-n"], "n").remaining == ["-", "-n"]


def test_resolve_applies_overrides_and_dry_run():
    resolver = OptionResolver(logger=DummyLogger())

    context, record = resolver.resolve(
        ["-n", "-p", "other", "-z", "us-east1-c", "myhost", "java"],
        BASE,
        Settings(),
        arg_func="launch_server_args",
        entry_point="launch_server",
    )

    assert context == InvocationContext(project="other", zone="us-east1-c", dry_run=True)
    assert isinstance(record, LaunchServerArgs)
    assert record.host == "myhost"
    assert record.server.port == 8030


def test_resolve_keeps_base_when_flags_are_empty():
    resolver = OptionResolver(logger=DummyLogger())

    context, record = resolver.resolve(["-p", "", "-z", ""], BASE, Settings())

    assert context == BASE
    assert record == ()


def test_resolve_without_resolver_returns_remaining_args():
    resolver = OptionResolver(logger=DummyLogger())

    context, record = resolver.resolve(["-n", "a", "b"], BASE, Settings())

    assert context.dry_run is True
    assert record == ("a", "b")


def test_resolve_forwards_declared_resolver_flags_only():
    logger = DummyLogger()
    resolver = OptionResolver(logger=logger)

    _, record = resolver.resolve(
        ["-r", "gs://other/", "-s", "scripts", "dockerfiles"],
        BASE,
        Settings(),
        arg_func="push_dockerfiles_args",
        entry_point="push_dockerfiles",
    )

    assert record == PushDockerfilesArgs(docker_dir="dockerfiles", gs_root_uri="gs://other/")
    assert "-s: unknown flag; it's ignored" in logger.warnings


def test_resolve_logs_unknown_flags():
    logger = DummyLogger()
    resolver = OptionResolver(logger=logger)

    resolver.resolve(["-q", "myhost", "cxx"], BASE, Settings(), arg_func="launch_server_args")

    assert logger.warnings == ["-q: unknown flag; it's ignored"]


def test_resolve_f_selects_a_compatible_resolver():
    resolver = OptionResolver(logger=DummyLogger())

    _, record = resolver.resolve(
        ["-f", "launch_server_args", "myhost", "ruby"],
        BASE,
        Settings(),
        arg_func="launch_server_args",
        entry_point="launch_server",
    )

    assert record.server.port == 8060


@pytest.mark.parametrize(
    "argv, message",
    [
        (["-f"], "arg_func not provided"),
        (["-f", "", "myhost", "cxx"], "arg_func not provided"),
        (["-nf", "", "myhost", "cxx"], "arg_func not provided"),
        (["-f", "nope_args", "x"], "nope_args is not defined"),
        (["-f", "instance_query_args", "p", "i"], "cannot be used by launch_server"),
    ],
)
def test_resolve_f_errors_are_configuration_errors(argv, message):
    resolver = OptionResolver(logger=DummyLogger())

    with pytest.raises(ConfigurationError, match=message):
        resolver.resolve(
            argv,
            BASE,
            Settings(),
            arg_func="launch_server_args",
            entry_point="launch_server",
        )


def test_update_image_resolver_uses_settings_defaults(tmp_path):
    dockerfile_root = tmp_path / "dockerfile"
    dockerfile_root.mkdir()
    script_root = tmp_path / "gce_setup"
    script_root.mkdir()
    settings = Settings(
        dockerfile_root=str(dockerfile_root),
        gce_script_root=str(script_root),
        builder_host="builder-1",
    )
    resolver = OptionResolver(logger=DummyLogger())

    _, record = resolver.resolve(["java_base"], BASE, settings, arg_func="update_image_args")

    assert record.host == "builder-1"
    assert record.image_label == "grpc/java_base"
    assert record.docker_dir_basename == "grpc_java_base"


def test_update_image_resolver_checks_label_before_dirs(tmp_path):
    settings = Settings(dockerfile_root=str(tmp_path / "missing"))
    resolver = OptionResolver(logger=DummyLogger())

    with pytest.raises(ArgumentError, match="missing arg: label_suffix"):
        resolver.resolve([], BASE, settings, arg_func="update_image_args")


def test_sync_scripts_resolver_skips_empty_hosts(tmp_path):
    resolver = OptionResolver(logger=DummyLogger())

    _, record = resolver.resolve(
        ["-s", str(tmp_path), "h1", "", "h2"],
        BASE,
        Settings(),
        arg_func="sync_scripts_args",
    )

    assert record.hosts == ("h1", "h2")
    assert record.gce_script_root == str(tmp_path)


def test_flag_specs_do_not_overlap():
    context_letters = {char for char in CONTEXT_FLAGS if char != ":"}
    resolver_letters = {char for char in RESOLVER_FLAGS if char != ":"}

    assert context_letters.isdisjoint(resolver_letters)
