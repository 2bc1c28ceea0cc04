"""Per-language command generators for interop clients and servers.

Every generator is registered explicitly under a ``GeneratorKey`` and turns a
tuple of test flags into a ``CommandSpec`` running the client in its
``grpc/<language>`` image. Three modes exist:

* ``interop``: talk to an operator-launched server given by the flags.
* ``cloud_prod``: talk to the production sandbox endpoint over TLS.
* ``cloud_prod_auth``: ``cloud_prod`` plus a credential strategy chosen by the
  test case name.

Coverage is partial; asking for a missing binding raises ConfigurationError.
"""

import shlex
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .constants import (
    CLIENT_LANGUAGES,
    DEFAULT_SERVICE_ACCOUNT,
    IMAGE_PREFIX,
    LANGUAGE_ALIASES,
    OAUTH_SCOPE,
    PROD_HOST,
    PROD_PORT,
    SERVER_PORTS,
    SERVICE_ACCOUNT_KEY_FILE,
)
from .errors import ArgumentError, ConfigurationError
from .errors_catalog import actionable_error
from .models import (
    ROLE_CLIENT,
    ROLE_SERVER,
    CommandSpec,
    GeneratorBinding,
    GeneratorKey,
    TargetDescriptor,
)

MODE_INTEROP = "interop"
MODE_CLOUD_PROD = "cloud_prod"
MODE_CLOUD_PROD_AUTH = "cloud_prod_auth"
MODES = (MODE_INTEROP, MODE_CLOUD_PROD, MODE_CLOUD_PROD_AUTH)

AUTH_SERVICE_ACCOUNT_CREDS = "service_account_creds"
AUTH_COMPUTE_ENGINE_CREDS = "compute_engine_creds"

Generator = Callable[[Tuple[str, ...]], CommandSpec]

PROD_FLAGS = (
    f"--server_port={PROD_PORT}",
    f"--server_host={PROD_HOST}",
    f"--server_host_override={PROD_HOST}",
)

CXX_CLIENT = "/var/local/git/grpc/bins/opt/interop_client"
GO_CLIENT_DIR = "/go/src/github.com/google/grpc-go/rpc/interop/client"
JAVA_CLIENT = "/var/local/git/grpc-java/run-test-client.sh"
NODE_CLIENT = "/var/local/git/grpc/src/node/interop/interop_client.js"
PHP_CLIENT_DIR = "/var/local/git/grpc/src/php/tests/interop"
RUBY_CLIENT = "/var/local/git/grpc/src/ruby/bin/interop/interop_client.rb"


def normalize_language(language: str) -> str:
    return LANGUAGE_ALIASES.get(language, language)


def image_for(language: str) -> str:
    return f"{IMAGE_PREFIX}/{language}"


def server_target(language: str) -> TargetDescriptor:
    """Returns the server descriptor; the port is shared with client flags."""
    language = normalize_language(language)
    if language not in SERVER_PORTS:
        raise ArgumentError(
            actionable_error(
                "bad_server_type",
                value=language,
                choices=", ".join(sorted(SERVER_PORTS)),
            )
        )
    return TargetDescriptor(
        language=language,
        role=ROLE_SERVER,
        image=image_for(language),
        port=SERVER_PORTS[language],
    )


def client_target(language: str) -> TargetDescriptor:
    language = normalize_language(language)
    return TargetDescriptor(language=language, role=ROLE_CLIENT, image=image_for(language))


def docker_run(
    image: str,
    argv: Sequence[str] = (),
    name: Optional[str] = None,
    ports: Iterable[int] = (),
    detach: bool = False,
) -> CommandSpec:
    cmd = ["sudo", "docker", "run"]
    if detach:
        cmd.append("-d")
    if name:
        cmd.extend(["--name", name])
    for port in ports:
        cmd.extend(["-p", f"{port}:{port}"])
    cmd.append(image)
    cmd.extend(argv)
    return CommandSpec(argv=tuple(cmd))


def shell_script(
    *commands: Sequence[str],
    env: Optional[str] = None,
    suffix: Optional[str] = None,
) -> str:
    """Joins argv lists into one `&&` chained script for `bash -c`."""
    script = " && ".join(shlex.join(command) for command in commands)
    if env:
        script = f"{env} {script}"
    if suffix:
        script = f"{script} {suffix}"
    return script


def interop_test_flags(server_ip: str, port: str, test_case: str) -> List[str]:
    """Builds the flags shared by every interop client."""
    for name, value in (("server_ip", server_ip), ("port", port), ("test_case", test_case)):
        if not value:
            raise ArgumentError(actionable_error("missing_arg", func="interop_test_flags", name=name))
    return [
        f"--server_host={server_ip}",
        f"--server_port={port}",
        f"--test_case={test_case}",
    ]


class CommandGeneratorRegistry:
    """Explicit (mode, language[, test case]) -> generator table."""

    def __init__(self):
        self._bindings: Dict[GeneratorKey, GeneratorBinding] = {}

    def register(self, mode: str, language: str, test_case: Optional[str] = None):
        key = GeneratorKey(mode=mode, language=language, test_case=test_case)

        def decorator(func: Generator) -> Generator:
            if key in self._bindings:
                raise ConfigurationError(f"Generator already registered: {key}")
            self._bindings[key] = GeneratorBinding(key=key, func=func)
            return func

        return decorator

    def keys(self) -> List[GeneratorKey]:
        return sorted(self._bindings, key=str)

    def validate(self):
        for key in self._bindings:
            if key.mode not in MODES:
                raise ConfigurationError(f"Generator {key} uses an unknown mode.")
            if key.language not in CLIENT_LANGUAGES:
                raise ConfigurationError(f"Generator {key} uses an unknown client language.")
            needs_test_case = key.mode == MODE_CLOUD_PROD_AUTH
            if needs_test_case != bool(key.test_case):
                raise ConfigurationError(
                    f"Generator {key} must {'' if needs_test_case else 'not '}name a test case."
                )

    def lookup(self, mode: str, language: str, test_case: Optional[str] = None) -> GeneratorBinding:
        if mode not in MODES:
            raise ConfigurationError(f"Unknown generator mode: {mode}. Use one of: {', '.join(MODES)}.")

        language = normalize_language(language)
        if language not in CLIENT_LANGUAGES:
            raise ConfigurationError(
                actionable_error(
                    "bad_client_type",
                    value=language,
                    choices=", ".join(CLIENT_LANGUAGES),
                )
            )

        key = GeneratorKey(
            mode=mode,
            language=language,
            test_case=test_case if mode == MODE_CLOUD_PROD_AUTH else None,
        )
        binding = self._bindings.get(key)
        if binding is None:
            raise ConfigurationError(
                actionable_error("generator_not_defined", language=language, generator=str(key))
            )
        return binding

    def generate(
        self,
        mode: str,
        language: str,
        flags: Iterable[str],
        test_case: Optional[str] = None,
    ) -> CommandSpec:
        return self.lookup(mode, language, test_case=test_case).build(flags)


registry = CommandGeneratorRegistry()


@registry.register(MODE_INTEROP, "ruby")
def interop_ruby(flags: Tuple[str, ...]) -> CommandSpec:
    script = shell_script(["ruby", RUBY_CLIENT, "--use_test_ca", "--use_tls", *flags])
    return docker_run(image_for("ruby"), ["/bin/bash", "-l", "-c", script])


@registry.register(MODE_CLOUD_PROD, "ruby")
def cloud_prod_ruby(flags: Tuple[str, ...]) -> CommandSpec:
    script = shell_script(
        ["ruby", RUBY_CLIENT, "--use_tls", *PROD_FLAGS, *flags],
        env="SSL_CERT_FILE=/cacerts/roots.pem",
    )
    return docker_run(image_for("ruby"), ["/bin/bash", "-l", "-c", script])


@registry.register(MODE_INTEROP, "go")
def interop_go(flags: Tuple[str, ...]) -> CommandSpec:
    script = shell_script(
        ["cd", GO_CLIENT_DIR],
        ["go", "run", "client.go", "--use_tls=true", *flags],
    )
    return docker_run(image_for("go"), ["/bin/bash", "-c", script])


@registry.register(MODE_CLOUD_PROD, "go")
def cloud_prod_go(flags: Tuple[str, ...]) -> CommandSpec:
    script = shell_script(
        ["cd", GO_CLIENT_DIR],
        [
            "go",
            "run",
            "client.go",
            "--use_tls=true",
            "--tls_ca_file=",
            "--tls_server_name=",
            f"--server_port={PROD_PORT}",
            f"--server_host={PROD_HOST}",
            *flags,
        ],
    )
    return docker_run(image_for("go"), ["/bin/bash", "-c", script])


@registry.register(MODE_INTEROP, "java")
def interop_java(flags: Tuple[str, ...]) -> CommandSpec:
    return docker_run(
        image_for("java"),
        [
            JAVA_CLIENT,
            "--server_host_override=foo.test.google.fr",
            "--use_test_ca=true",
            "--use_tls=true",
            *flags,
        ],
    )


@registry.register(MODE_CLOUD_PROD, "java")
def cloud_prod_java(flags: Tuple[str, ...]) -> CommandSpec:
    return docker_run(image_for("java"), [JAVA_CLIENT, "--use_tls=true", *PROD_FLAGS, *flags])


@registry.register(MODE_INTEROP, "php")
def interop_php(flags: Tuple[str, ...]) -> CommandSpec:
    script = shell_script(
        ["cd", PHP_CLIENT_DIR],
        [
            "php",
            "-d",
            "extension_dir=../../ext/grpc/modules/",
            "-d",
            "extension=grpc.so",
            "interop_client.php",
            *flags,
        ],
        suffix="1>&2",
    )
    return docker_run(image_for("php"), ["/bin/bash", "-l", "-c", script])


@registry.register(MODE_INTEROP, "cxx")
def interop_cxx(flags: Tuple[str, ...]) -> CommandSpec:
    return docker_run(image_for("cxx"), [CXX_CLIENT, "--enable_ssl", *flags])


@registry.register(MODE_CLOUD_PROD, "cxx")
def cloud_prod_cxx(flags: Tuple[str, ...]) -> CommandSpec:
    return docker_run(
        image_for("cxx"),
        [CXX_CLIENT, "--enable_ssl", "--use_prod_roots", *PROD_FLAGS, *flags],
    )


@registry.register(MODE_CLOUD_PROD_AUTH, "cxx", AUTH_SERVICE_ACCOUNT_CREDS)
def cloud_prod_auth_service_account_cxx(flags: Tuple[str, ...]) -> CommandSpec:
    return docker_run(
        image_for("cxx"),
        [
            CXX_CLIENT,
            "--enable_ssl",
            "--use_prod_roots",
            *PROD_FLAGS,
            f"--service_account_key_file={SERVICE_ACCOUNT_KEY_FILE}",
            f"--oauth_scope={OAUTH_SCOPE}",
            *flags,
        ],
    )


@registry.register(MODE_CLOUD_PROD_AUTH, "cxx", AUTH_COMPUTE_ENGINE_CREDS)
def cloud_prod_auth_compute_engine_cxx(flags: Tuple[str, ...]) -> CommandSpec:
    return docker_run(
        image_for("cxx"),
        [
            CXX_CLIENT,
            "--enable_ssl",
            "--use_prod_roots",
            *PROD_FLAGS,
            f"--default_service_account={DEFAULT_SERVICE_ACCOUNT}",
            f"--oauth_scope={OAUTH_SCOPE}",
            *flags,
        ],
    )


@registry.register(MODE_INTEROP, "node")
def interop_node(flags: Tuple[str, ...]) -> CommandSpec:
    return docker_run(image_for("node"), ["/usr/bin/nodejs", NODE_CLIENT, "--use_tls=true", *flags])


# TODO: register MODE_INTEROP python once the grpc/python image ships an interop client.

registry.validate()
