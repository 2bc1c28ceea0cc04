"""Actionable error catalog for grpc-docker-tools."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "missing_arg": {
        "what": "{func}: missing arg: {name}",
    },
    "bad_client_type": {
        "what": "bad client_type: {value}",
        "next": "Use one of: {choices}.",
    },
    "bad_server_type": {
        "what": "bad server_type: {value}",
        "next": "Use one of: {choices}.",
    },
    "generator_not_defined": {
        "what": "test_func for {language} => {generator} is not defined",
        "next": "Pick a client with a registered command generator.",
    },
    "arg_func_missing": {
        "what": "-f: arg_func not provided",
    },
    "arg_func_not_defined": {
        "what": "-f: arg_func value: {name} is not defined",
    },
    "arg_func_mismatch": {
        "what": "-f: arg_func {name} cannot be used by {entry_point}",
    },
    "instance_not_found": {
        "what": "instance '{instance}' not found in compute project {project}",
        "next": "Check the instance name or pass the right project with -p.",
    },
    "internal_ip_missing": {
        "what": "instance '{instance}' has no internal ip in compute project {project}",
    },
    "dir_not_found": {
        "what": "Could not locate {label} dir: {path}",
    },
    "ssh_key_failed": {
        "what": "could not precreate {path}",
        "next": "Check that ssh-keygen is installed and the directory is writable.",
    },
    "copy_failed": {
        "what": "{func}: failed: cp {src} -> {dest}",
    },
    "remote_command_failed": {
        "what": "{func}: remote command failed ({status}) on {host}",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    if "next" not in template:
        return what
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
