from __future__ import annotations

from pathlib import Path

import allure
import pytest

from bluegreen.config import (
    ApplicationSettings,
    JobSettings,
    Settings,
    SshSettings,
    WaiterSettings,
    WaiterSettingsByTask,
)

pytestmark = [
    allure.epic("Configuration"),
    allure.feature("Settings"),
]


def test_from_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BLUEGREEN_DB_PATH", raising=False)
    monkeypatch.delenv("BLUEGREEN_WAITER_TRANSITION_MAX_NUM_WAITS", raising=False)
    monkeypatch.delenv("BLUEGREEN_WAITER_TRANSITION_MAX_ELAPSED_SECONDS", raising=False)

    settings = Settings.from_env()

    assert settings.db_path == Path(".bluegreen.db")
    assert settings.waiters.transition.max_num_waits == 120
    assert settings.waiters.transition.max_elapsed_seconds is None
    assert settings.waiters.rds_instance_delete.poll_interval_seconds == 30.0
    settings.validate()


def test_from_env_reads_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("BLUEGREEN_DB_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("BLUEGREEN_WAITER_RDS_INSTANCE_DELETE_POLL_INTERVAL_SECONDS", "15")
    monkeypatch.setenv("BLUEGREEN_WAITER_RDS_INSTANCE_DELETE_MAX_NUM_WAITS", "8")
    monkeypatch.setenv("BLUEGREEN_WAITER_RDS_INSTANCE_DELETE_MAX_ELAPSED_SECONDS", "600")
    monkeypatch.setenv("BLUEGREEN_HISTORY_WINDOW_HOURS", "6")
    monkeypatch.setenv("BLUEGREEN_AWS_REGION", "eu-west-1")
    monkeypatch.setenv("BLUEGREEN_APP_USERNAME", "ops")
    monkeypatch.setenv("BLUEGREEN_APP_PASSWORD", "secret")
    monkeypatch.delenv("BLUEGREEN_APP_REQUEST_TIMEOUT_SECONDS", raising=False)

    settings = Settings.from_env()

    assert settings.db_path == tmp_path / "env.db"
    assert settings.waiters.rds_instance_delete == WaiterSettings(
        poll_interval_seconds=15.0,
        max_num_waits=8,
        max_elapsed_seconds=600.0,
    )
    assert settings.jobs.history_window_hours == 6
    assert settings.aws.region == "eu-west-1"
    assert settings.application == ApplicationSettings(username="ops", password="secret")


def test_from_env_explicit_db_path_wins(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("BLUEGREEN_DB_PATH", str(tmp_path / "env.db"))

    assert Settings.from_env(db_path=tmp_path / "cli.db").db_path == tmp_path / "cli.db"


@pytest.mark.parametrize(
    ("settings", "message"),
    [
        (
            Settings(waiters=WaiterSettingsByTask(transition=WaiterSettings(max_num_waits=0))),
            "max number of waits must be > 0",
        ),
        (
            Settings(
                waiters=WaiterSettingsByTask(
                    elb_instance_health=WaiterSettings(poll_interval_seconds=-1.0),
                ),
            ),
            "poll interval must be >= 0",
        ),
        (
            Settings(
                waiters=WaiterSettingsByTask(
                    rds_instance_delete=WaiterSettings(max_elapsed_seconds=0.0),
                ),
            ),
            "max elapsed seconds must be > 0",
        ),
        (Settings(jobs=JobSettings(history_window_hours=0)), "BLUEGREEN_HISTORY_WINDOW_HOURS"),
    ],
)
def test_validate_rejects_out_of_range_settings(settings: Settings, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        settings.validate()


def test_validate_for_ssh() -> None:
    with pytest.raises(ValueError, match="BLUEGREEN_SSH_HOSTNAME"):
        Settings().validate_for_ssh()
    with pytest.raises(ValueError, match="BLUEGREEN_SSH_PASSWORD or BLUEGREEN_SSH_KEY_FILENAME"):
        Settings(ssh=SshSettings(hostname="vm", username="deploy")).validate_for_ssh()

    settings = Settings(ssh=SshSettings(hostname="vm", username="deploy", key_filename="id_rsa"))
    settings.validate_for_ssh()
