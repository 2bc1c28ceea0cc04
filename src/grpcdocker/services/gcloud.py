"""gcloud CLI access for grpc-docker-tools."""

import json
from typing import Any, Callable, Dict, List, Optional

from grpcdocker.constants import UNSET_CONFIG_VALUES
from grpcdocker.errors import GrpcDockerError, InstanceNotFoundError
from grpcdocker.errors_catalog import actionable_error
from grpcdocker.models import InvocationContext


class GcloudService:
    """Wraps the gcloud calls used against the docker fleet."""

    def __init__(self, logger, run_cmd: Callable):
        self.logger = logger
        self.run_cmd = run_cmd

    def get_config_value(self, key: str) -> Optional[str]:
        """Reads a gcloud property, returning None when it is not set."""
        result = self.run_cmd(
            ["gcloud", "config", "get-value", key],
            check=False,
            capture_output=True,
        )
        if result.returncode != 0:
            self.logger.debug("gcloud config get-value %s failed; treating it as unset.", key)
            return None

        value = (result.stdout or "").strip()
        if value in UNSET_CONFIG_VALUES:
            return None
        return value

    def list_instances(self, project: str) -> List[Dict[str, Any]]:
        result = self.run_cmd(
            ["gcloud", "compute", "instances", "list", "--project", project, "--format=json"],
            capture_output=True,
        )
        try:
            instances = json.loads(result.stdout or "[]")
        except ValueError as exc:
            raise GrpcDockerError(f"Could not parse instance listing for project {project}: {exc}") from exc

        if not isinstance(instances, list):
            raise GrpcDockerError(f"Unexpected instance listing for project {project}.")
        return instances

    def _find_instance(self, project: str, instance: str) -> Optional[Dict[str, Any]]:
        for entry in self.list_instances(project):
            if entry.get("name") == instance:
                return entry
        return None

    def has_instance(self, project: str, instance: str) -> bool:
        return self._find_instance(project, instance) is not None

    def ensure_instance(self, project: str, instance: str) -> Dict[str, Any]:
        entry = self._find_instance(project, instance)
        if entry is None:
            raise InstanceNotFoundError(
                actionable_error("instance_not_found", instance=instance, project=project)
            )
        return entry

    def find_internal_ip(self, project: str, instance: str) -> str:
        entry = self.ensure_instance(project, instance)
        for interface in entry.get("networkInterfaces") or []:
            address = interface.get("networkIP")
            if address:
                return address

        raise InstanceNotFoundError(
            actionable_error("internal_ip_missing", instance=instance, project=project)
        )

    def ssh(self, context: InvocationContext, host: str, command: str):
        return self.run_cmd(
            [
                "gcloud",
                "compute",
                "--project",
                context.project,
                "ssh",
                "--zone",
                context.zone,
                host,
                "--command",
                command,
            ],
            check=False,
        )

    def scp(self, context: InvocationContext, source: str, destination: str, recurse: bool = False):
        cmd = ["gcloud", "compute", "scp"]
        if recurse:
            cmd.append("--recurse")
        cmd.extend([source, destination, "--project", context.project, "--zone", context.zone])
        return self.run_cmd(cmd, check=False)

    def storage_copy(self, source: str, destination: str):
        return self.run_cmd(["gcloud", "storage", "cp", "-r", source, destination], check=False)
