"""Runs a shell command on a remote host and judges its output."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import ClassVar

from bluegreen.clients.ssh import ShellResult, SshClient, SshTarget
from bluegreen.errors import ConfigurationError
from bluegreen.jobs.models import TaskStatus
from bluegreen.tasks.base import TaskBase, noop_remark

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ShellConfig:
    command: str
    success_regexp: str | None = None
    error_regexp: str | None = None
    exitvalue_success: int | None = None


class RemoteShellTask(TaskBase):
    task_name: ClassVar[str] = "remote-shell"

    def __init__(
        self,
        position: int,
        env_name: str,
        *,
        shell_config: ShellConfig,
        ssh_target: SshTarget,
        ssh_client: SshClient,
    ) -> None:
        super().__init__(position, env_name)
        self.shell_config = shell_config
        self.ssh_target = ssh_target
        self.ssh_client = ssh_client

    def process(self, noop: bool) -> TaskStatus:
        logger.info("Launching remote shell command%s", noop_remark(noop))
        self.forbid_checking_exit_value()
        self.check_config()
        if noop:
            return TaskStatus.NOOP
        self.ssh_client.init(self.ssh_target)
        logger.info(
            "Executing command '%s' on %s@%s",
            self.shell_config.command,
            self.ssh_target.username,
            self.ssh_target.hostname,
        )
        result = self.ssh_client.exec_command(self.shell_config.command)
        status = self.check_for_errors(result.output)
        self._log_results(result, status)
        return status

    def forbid_checking_exit_value(self) -> None:
        """Exit values are not reliably reported over ssh, so they cannot decide success."""

        if self.shell_config.exitvalue_success is not None:
            raise ConfigurationError(
                "Remote shell task does not support checking the exit value of the remote command",
            )

    def check_config(self) -> None:
        if not self.shell_config.command.strip():
            raise ConfigurationError("Remote shell task requires a command")
        for pattern in (self.shell_config.success_regexp, self.shell_config.error_regexp):
            if pattern is None:
                continue
            try:
                re.compile(pattern)
            except re.error as error:
                raise ConfigurationError(f"Invalid regexp {pattern!r}: {error}") from error

    def check_for_errors(self, output: str) -> TaskStatus:
        """ERROR if the error regexp matches, or the success regexp is set and does not."""

        if self.shell_config.error_regexp and re.search(
            self.shell_config.error_regexp,
            output,
            re.MULTILINE,
        ):
            return TaskStatus.ERROR
        if self.shell_config.success_regexp and not re.search(
            self.shell_config.success_regexp,
            output,
            re.MULTILINE,
        ):
            return TaskStatus.ERROR
        return TaskStatus.DONE

    def _log_results(self, result: ShellResult, status: TaskStatus) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("---------- OUTPUT BEGINS ----------")
            for line in result.output.splitlines():
                logger.debug(line)
            logger.debug("---------- OUTPUT ENDS ----------")
        # informational only
        logger.info("Exit value: %s", result.exit_value)
        if status == TaskStatus.ERROR:
            logger.debug("Output was deemed an error")
