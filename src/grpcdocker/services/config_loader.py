"""YAML settings for grpc-docker-tools.

Keys mirror ``Settings`` plus the logging options. Path-like values have
``~`` expanded so the same file works for every operator.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from grpcdocker.errors import GrpcDockerError


class ConfigLoader:
    """Loads and checks the optional ``.grpcdocker.yml`` file."""

    STRING_KEYS = {
        "project",
        "zone",
        "gs_root",
        "dockerfile_root",
        "gce_script_root",
        "builder_host",
        "ssh_key_file",
        "log_file",
    }
    BOOL_KEYS = {"verbose"}
    PATH_KEYS = {"dockerfile_root", "gce_script_root", "ssh_key_file", "log_file"}

    @property
    def supported_keys(self):
        return self.STRING_KEYS | self.BOOL_KEYS

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.is_file():
            raise GrpcDockerError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise GrpcDockerError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise GrpcDockerError(f"Config file {config_path} must hold a YAML mapping.")

        unknown = sorted(str(key) for key in set(parsed) - self.supported_keys)
        if unknown:
            raise GrpcDockerError(f"Unknown configuration keys: {', '.join(unknown)}")

        return {key: self._check_value(key, value) for key, value in parsed.items()}

    def _check_value(self, key: str, value: Any) -> Any:
        if value is None:
            return None
        if key in self.BOOL_KEYS:
            if not isinstance(value, bool):
                raise GrpcDockerError(f"Config key '{key}' must be true or false, got {value!r}")
            return value

        # project ids and zones such as 1234 or 2015 parse as ints
        if isinstance(value, (dict, list)):
            raise GrpcDockerError(f"Config key '{key}' must be a string, got {value!r}")
        value = str(value)
        if key in self.PATH_KEYS:
            value = os.path.expanduser(value)
        return value
