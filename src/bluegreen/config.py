"""Runtime configuration for cutover jobs and tasks."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(slots=True)
class WaiterSettings:
    """Polling bounds for one task kind."""

    poll_interval_seconds: float = 30.0
    max_num_waits: int = 60
    max_elapsed_seconds: float | None = None


@dataclass(slots=True)
class WaiterSettingsByTask:
    """One waiter configuration per task kind."""

    transition: WaiterSettings = field(
        default_factory=lambda: WaiterSettings(poll_interval_seconds=5.0, max_num_waits=120),
    )
    rds_instance_delete: WaiterSettings = field(
        default_factory=lambda: WaiterSettings(poll_interval_seconds=30.0, max_num_waits=120),
    )
    elb_instance_health: WaiterSettings = field(
        default_factory=lambda: WaiterSettings(poll_interval_seconds=10.0, max_num_waits=60),
    )


@dataclass(slots=True)
class JobSettings:
    """Job runner settings."""

    history_window_hours: int = 24


@dataclass(slots=True)
class AwsSettings:
    """AWS client settings."""

    region: str = "us-east-1"
    profile: str | None = None


@dataclass(slots=True)
class ApplicationSettings:
    """Settings for the application mode-transition REST API."""

    username: str = ""
    password: str = ""
    request_timeout_seconds: float = 30.0


@dataclass(slots=True)
class SshSettings:
    """Remote shell target."""

    hostname: str = ""
    username: str = ""
    password: str | None = None
    key_filename: str | None = None
    timeout_seconds: float = 60.0


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    db_path: Path = Path(".bluegreen.db")
    sqlite_busy_timeout_ms: int = 5000
    waiters: WaiterSettingsByTask = field(default_factory=WaiterSettingsByTask)
    jobs: JobSettings = field(default_factory=JobSettings)
    aws: AwsSettings = field(default_factory=AwsSettings)
    application: ApplicationSettings = field(default_factory=ApplicationSettings)
    ssh: SshSettings = field(default_factory=SshSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with defaults suited to local runs."""

        defaults = WaiterSettingsByTask()
        return cls(
            db_path=db_path or Path(os.getenv("BLUEGREEN_DB_PATH", ".bluegreen.db")),
            sqlite_busy_timeout_ms=int(os.getenv("BLUEGREEN_SQLITE_BUSY_TIMEOUT_MS", "5000")),
            waiters=WaiterSettingsByTask(
                transition=_waiter_from_env("TRANSITION", defaults.transition),
                rds_instance_delete=_waiter_from_env(
                    "RDS_INSTANCE_DELETE",
                    defaults.rds_instance_delete,
                ),
                elb_instance_health=_waiter_from_env(
                    "ELB_INSTANCE_HEALTH",
                    defaults.elb_instance_health,
                ),
            ),
            jobs=JobSettings(
                history_window_hours=int(os.getenv("BLUEGREEN_HISTORY_WINDOW_HOURS", "24")),
            ),
            aws=AwsSettings(
                region=os.getenv("BLUEGREEN_AWS_REGION", "us-east-1"),
                profile=os.getenv("BLUEGREEN_AWS_PROFILE") or None,
            ),
            application=ApplicationSettings(
                username=os.getenv("BLUEGREEN_APP_USERNAME", ""),
                password=os.getenv("BLUEGREEN_APP_PASSWORD", ""),
                request_timeout_seconds=float(
                    os.getenv("BLUEGREEN_APP_REQUEST_TIMEOUT_SECONDS", "30.0"),
                ),
            ),
            ssh=SshSettings(
                hostname=os.getenv("BLUEGREEN_SSH_HOSTNAME", ""),
                username=os.getenv("BLUEGREEN_SSH_USERNAME", ""),
                password=os.getenv("BLUEGREEN_SSH_PASSWORD") or None,
                key_filename=os.getenv("BLUEGREEN_SSH_KEY_FILENAME") or None,
                timeout_seconds=float(os.getenv("BLUEGREEN_SSH_TIMEOUT_SECONDS", "60.0")),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if settings are out of range."""

        for name in ("transition", "rds_instance_delete", "elb_instance_health"):
            waiter = getattr(self.waiters, name)
            if waiter.poll_interval_seconds < 0:
                raise ValueError(f"Waiter {name}: poll interval must be >= 0.")
            if waiter.max_num_waits <= 0:
                raise ValueError(f"Waiter {name}: max number of waits must be > 0.")
            if waiter.max_elapsed_seconds is not None and waiter.max_elapsed_seconds <= 0:
                raise ValueError(f"Waiter {name}: max elapsed seconds must be > 0 when set.")
        if self.jobs.history_window_hours <= 0:
            raise ValueError("BLUEGREEN_HISTORY_WINDOW_HOURS must be > 0.")

    def validate_for_ssh(self) -> None:
        """Raise configuration error if the remote shell target is incomplete."""

        if not self.ssh.hostname or not self.ssh.username:
            raise ValueError("BLUEGREEN_SSH_HOSTNAME and BLUEGREEN_SSH_USERNAME are required.")
        if self.ssh.password is None and self.ssh.key_filename is None:
            raise ValueError(
                "Set BLUEGREEN_SSH_PASSWORD or BLUEGREEN_SSH_KEY_FILENAME for the remote shell.",
            )


def _waiter_from_env(prefix: str, default: WaiterSettings) -> WaiterSettings:
    elapsed_raw = os.getenv(f"BLUEGREEN_WAITER_{prefix}_MAX_ELAPSED_SECONDS", "").strip()
    return WaiterSettings(
        poll_interval_seconds=float(
            os.getenv(
                f"BLUEGREEN_WAITER_{prefix}_POLL_INTERVAL_SECONDS",
                str(default.poll_interval_seconds),
            ),
        ),
        max_num_waits=int(
            os.getenv(f"BLUEGREEN_WAITER_{prefix}_MAX_NUM_WAITS", str(default.max_num_waits)),
        ),
        max_elapsed_seconds=float(elapsed_raw) if elapsed_raw else default.max_elapsed_seconds,
    )
