import sys

import pytest

from grpcdocker.errors import GrpcDockerError
from grpcdocker.services.command_runner import CommandRunner


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


def test_command_runner_raises_with_stderr_and_exit_code():
    runner = CommandRunner(logger=DummyLogger())

    with pytest.raises(GrpcDockerError, match="boom") as excinfo:
        runner.run(
            [sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"],
            check=True,
            capture_output=True,
        )

    assert excinfo.value.exit_code == 3


def test_command_runner_returns_when_check_disabled():
    runner = CommandRunner(logger=DummyLogger())

    result = runner.run(
        [sys.executable, "-c", "import sys; sys.exit(1)"],
        check=False,
        capture_output=True,
    )

    assert result.returncode == 1


def test_command_runner_runs_failing_commands_once(tmp_path, monkeypatch):
    runner = CommandRunner(logger=DummyLogger())
    monkeypatch.chdir(tmp_path)

    command = [
        sys.executable,
        "-c",
        (
            "from pathlib import Path;"
            "p=Path('run-counter.txt');"
            "n=int(p.read_text()) if p.exists() else 0;"
            "p.write_text(str(n+1));"
            "import sys; sys.exit(1)"
        ),
    ]

    result = runner.run(command, check=False, capture_output=True)

    assert result.returncode == 1
    assert (tmp_path / "run-counter.txt").read_text() == "1"


def test_command_runner_reports_missing_binary():
    runner = CommandRunner(logger=DummyLogger())

    with pytest.raises(GrpcDockerError, match="Required command not found"):
        runner.run(["grpc-docker-no-such-binary-xyz"])


def test_command_runner_timeout_raises_error():
    runner = CommandRunner(logger=DummyLogger(), default_timeout=0.1)

    with pytest.raises(GrpcDockerError, match="timed out"):
        runner.run(
            [sys.executable, "-c", "import time; time.sleep(2)"],
            check=True,
            capture_output=True,
        )
