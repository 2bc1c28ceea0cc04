"""Local ssh key helpers for grpc-docker-tools."""

import logging
import os
import sys
from typing import Callable

from grpcdocker.constants import DIR_MODE
from grpcdocker.errors import GrpcDockerError
from grpcdocker.errors_catalog import actionable_error


class SshKeyService:
    """Creates the key pair `gcloud compute ssh` expects, if it is missing."""

    def __init__(self, logger: logging.Logger, run_cmd: Callable, key_file: str):
        self.logger = logger
        self.run_cmd = run_cmd
        self.key_file = os.path.expanduser(key_file)

    def ensure_key(self) -> bool:
        if os.path.isfile(self.key_file):
            return False

        key_dir = os.path.dirname(self.key_file)
        try:
            if key_dir and not os.path.isdir(key_dir):
                os.makedirs(key_dir, exist_ok=True)
                if sys.platform != "win32":
                    os.chmod(key_dir, DIR_MODE)
            self.run_cmd(
                ["ssh-keygen", "-q", "-f", self.key_file, "-N", ""],
                capture_output=True,
            )
        except (GrpcDockerError, OSError) as exc:
            raise GrpcDockerError(actionable_error("ssh_key_failed", path=self.key_file)) from exc

        self.logger.info("Created ssh key %s", self.key_file)
        return True
