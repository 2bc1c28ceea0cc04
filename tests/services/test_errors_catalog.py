import pytest

from grpcdocker.errors_catalog import actionable_error


def test_actionable_error_formats_message_with_suggested_action():
    message = actionable_error("instance_not_found", instance="myhost", project="proj")

    assert message.startswith("instance 'myhost' not found in compute project proj")
    assert "Suggested action:" in message


def test_actionable_error_without_next_step_is_plain():
    message = actionable_error("missing_arg", func="launch_server_args", name="host")

    assert message == "launch_server_args: missing arg: host"


def test_actionable_error_rejects_unknown_codes():
    with pytest.raises(KeyError):
        actionable_error("no_such_code")


def test_actionable_error_formats_remote_status():
    message = actionable_error("remote_command_failed", func="sync_images", status="4", host="h1")

    assert message == "sync_images: remote command failed (4) on h1"
