import json
import subprocess

import pytest

from grpcdocker.errors import GrpcDockerError, InstanceNotFoundError
from grpcdocker.models import InvocationContext
from grpcdocker.services.gcloud import GcloudService


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None


class RecordingRunner:
    def __init__(self, stdout="", returncode=0):
        self.stdout = stdout
        self.returncode = returncode
        self.calls = []

    def __call__(self, cmd, check=True, capture_output=False, timeout=None):
        self.calls.append({"cmd": list(cmd), "check": check, "capture_output": capture_output})
        return subprocess.CompletedProcess(cmd, self.returncode, stdout=self.stdout, stderr="")


CONTEXT = InvocationContext(project="proj", zone="zone-b")


@pytest.mark.parametrize("stdout", ["", "(unset)\n", "None\n"])
def test_get_config_value_treats_placeholders_as_unset(stdout):
    service = GcloudService(logger=DummyLogger(), run_cmd=RecordingRunner(stdout=stdout))

    assert service.get_config_value("project") is None


def test_get_config_value_strips_output_and_ignores_failures():
    runner = RecordingRunner(stdout="my-project\n")
    service = GcloudService(logger=DummyLogger(), run_cmd=runner)

    assert service.get_config_value("project") == "my-project"
    assert runner.calls[0]["cmd"] == ["gcloud", "config", "get-value", "project"]
    assert runner.calls[0]["check"] is False

    failing = GcloudService(logger=DummyLogger(), run_cmd=RecordingRunner(stdout="x", returncode=1))
    assert failing.get_config_value("compute/zone") is None


def test_find_internal_ip_reads_first_network_interface():
    listing = json.dumps(
        [
            {"name": "a", "networkInterfaces": [{"networkIP": "10.0.0.1"}]},
            {"name": "b", "networkInterfaces": [{"networkIP": "10.0.0.2"}, {"networkIP": "10.9.9.9"}]},
        ]
    )
    runner = RecordingRunner(stdout=listing)
    service = GcloudService(logger=DummyLogger(), run_cmd=runner)

    assert service.find_internal_ip("proj", "b") == "10.0.0.2"
    assert runner.calls[0]["cmd"] == [
        "gcloud",
        "compute",
        "instances",
        "list",
        "--project",
        "proj",
        "--format=json",
    ]


def test_instance_lookup_matches_whole_names_only():
    listing = json.dumps([{"name": "grpc-docker-builder-2", "networkInterfaces": []}])
    service = GcloudService(logger=DummyLogger(), run_cmd=RecordingRunner(stdout=listing))

    assert service.has_instance("proj", "grpc-docker-builder-2") is True
    assert service.has_instance("proj", "grpc-docker-builder") is False
    with pytest.raises(InstanceNotFoundError, match="'grpc-docker-builder-2' has no internal ip"):
        service.find_internal_ip("proj", "grpc-docker-builder-2")


def test_list_instances_rejects_invalid_json():
    service = GcloudService(logger=DummyLogger(), run_cmd=RecordingRunner(stdout="not json"))

    with pytest.raises(GrpcDockerError, match="Could not parse instance listing"):
        service.list_instances("proj")


def test_ssh_scp_and_storage_commands():
    runner = RecordingRunner()
    service = GcloudService(logger=DummyLogger(), run_cmd=runner)

    service.ssh(CONTEXT, "host-1", "echo hi")
    service.scp(CONTEXT, "local/dir", "host-1:/var/local/dockerfile", recurse=True)
    service.storage_copy("local/dir", "gs://bucket/admin/")

    assert [call["cmd"] for call in runner.calls] == [
        ["gcloud", "compute", "--project", "proj", "ssh", "--zone", "zone-b", "host-1", "--command", "echo hi"],
        [
            "gcloud",
            "compute",
            "scp",
            "--recurse",
            "local/dir",
            "host-1:/var/local/dockerfile",
            "--project",
            "proj",
            "--zone",
            "zone-b",
        ],
        ["gcloud", "storage", "cp", "-r", "local/dir", "gs://bucket/admin/"],
    ]
    assert all(call["check"] is False for call in runner.calls)
