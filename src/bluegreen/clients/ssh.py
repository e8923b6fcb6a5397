"""Runs commands on a remote host over ssh."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import paramiko

from bluegreen.config import SshSettings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SshTarget:
    hostname: str
    username: str
    password: str | None = None
    key_filename: str | None = None
    timeout_seconds: float = 60.0

    @classmethod
    def from_settings(cls, settings: SshSettings) -> SshTarget:
        return cls(
            hostname=settings.hostname,
            username=settings.username,
            password=settings.password,
            key_filename=settings.key_filename,
            timeout_seconds=settings.timeout_seconds,
        )


@dataclass(slots=True)
class ShellResult:
    """Combined output, available only once the command has finished."""

    output: str
    exit_value: int | None


class SshClient:
    """Opens one ssh connection per command."""

    def __init__(self) -> None:
        self._target: SshTarget | None = None

    def init(self, target: SshTarget) -> None:
        self._target = target

    def exec_command(self, command: str) -> ShellResult:
        if self._target is None:
            raise RuntimeError("SshClient.init must be called before exec_command")
        target = self._target
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                target.hostname,
                username=target.username,
                password=target.password,
                key_filename=target.key_filename,
                timeout=target.timeout_seconds,
            )
            _, stdout, stderr = client.exec_command(command, timeout=target.timeout_seconds)
            output = stdout.read().decode("utf-8", errors="replace")
            error_output = stderr.read().decode("utf-8", errors="replace")
            exit_value = stdout.channel.recv_exit_status()
        finally:
            client.close()
        if error_output:
            output = f"{output}{error_output}"
        logger.debug("Command on %s exited with %s", target.hostname, exit_value)
        return ShellResult(output=output, exit_value=exit_value)
