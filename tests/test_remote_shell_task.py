from __future__ import annotations

import allure
import pytest

from bluegreen.clients.ssh import ShellResult, SshTarget
from bluegreen.errors import ConfigurationError
from bluegreen.jobs.models import TaskStatus
from bluegreen.tasks.remote_shell import RemoteShellTask, ShellConfig
from fakes import FakeSshClient

pytestmark = [
    allure.epic("Cutover Tasks"),
    allure.feature("Remote Shell"),
]

TARGET = SshTarget(hostname="stage-vm.example.com", username="deploy", password="secret")


def _task(shell_config: ShellConfig, ssh_client: FakeSshClient) -> RemoteShellTask:
    return RemoteShellTask(
        3,
        "stage",
        shell_config=shell_config,
        ssh_target=TARGET,
        ssh_client=ssh_client,  # type: ignore[arg-type]
    )


def test_runs_command_and_succeeds_without_patterns() -> None:
    ssh_client = FakeSshClient(ShellResult(output="restarted\n", exit_value=0))

    status = _task(ShellConfig(command="sudo service app restart"), ssh_client).process(noop=False)

    assert status == TaskStatus.DONE
    assert ssh_client.targets == [TARGET]
    assert ssh_client.commands == ["sudo service app restart"]


def test_error_regexp_match_is_error() -> None:
    ssh_client = FakeSshClient(ShellResult(output="ok\nFATAL: disk full\n", exit_value=0))
    config = ShellConfig(command="deploy.sh", error_regexp=r"^FATAL")

    assert _task(config, ssh_client).process(noop=False) == TaskStatus.ERROR


def test_missing_success_match_is_error() -> None:
    ssh_client = FakeSshClient(ShellResult(output="still starting\n", exit_value=0))
    config = ShellConfig(command="deploy.sh", success_regexp=r"^Started$")

    assert _task(config, ssh_client).process(noop=False) == TaskStatus.ERROR


def test_success_match_is_done_regardless_of_exit_value() -> None:
    ssh_client = FakeSshClient(ShellResult(output="warming\nStarted\n", exit_value=1))
    config = ShellConfig(command="deploy.sh", success_regexp=r"^Started$", error_regexp="FATAL")

    assert _task(config, ssh_client).process(noop=False) == TaskStatus.DONE


def test_noop_validates_without_connecting() -> None:
    ssh_client = FakeSshClient(ShellResult(output="", exit_value=0))

    status = _task(ShellConfig(command="deploy.sh"), ssh_client).process(noop=True)

    assert status == TaskStatus.NOOP
    assert ssh_client.targets == []
    assert ssh_client.commands == []


@pytest.mark.parametrize(
    ("config", "message"),
    [
        (ShellConfig(command="deploy.sh", exitvalue_success=0), "exit value"),
        (ShellConfig(command="  "), "requires a command"),
        (ShellConfig(command="deploy.sh", success_regexp="("), "Invalid regexp"),
        (ShellConfig(command="deploy.sh", error_regexp="[a-"), "Invalid regexp"),
    ],
)
def test_invalid_config_is_rejected_before_connecting(config: ShellConfig, message: str) -> None:
    ssh_client = FakeSshClient(ShellResult(output="", exit_value=0))

    with pytest.raises(ConfigurationError, match=message):
        _task(config, ssh_client).process(noop=False)

    assert ssh_client.commands == []
