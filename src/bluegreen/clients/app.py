"""REST client for the application's dbfreeze mode transitions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from bluegreen.config import ApplicationSettings
from bluegreen.model.models import Application

logger = logging.getLogger(__name__)

PROGRESS_PATH = "dbfreeze/progress"
LOGIN_PATH = "login"


class DbFreezeMode(str, Enum):
    """Steady and transitional modes an application reports."""

    NORMAL = "NORMAL"
    FLUSHING_CACHE = "FLUSHING_CACHE"
    ENTERING_FREEZE = "ENTERING_FREEZE"
    FREEZE = "FREEZE"
    EXITING_FREEZE = "EXITING_FREEZE"
    FLUSH_ERROR = "FLUSH_ERROR"
    FREEZE_ERROR = "FREEZE_ERROR"
    THAW_ERROR = "THAW_ERROR"

    @property
    def is_error(self) -> bool:
        return self in {
            DbFreezeMode.FLUSH_ERROR,
            DbFreezeMode.FREEZE_ERROR,
            DbFreezeMode.THAW_ERROR,
        }


@dataclass(slots=True)
class DbFreezeProgress:
    """Application's report of its current mode."""

    mode: DbFreezeMode | None
    username: str | None = None
    lock_error: bool = False
    transition_error: str | None = None
    start_time: str | None = None
    end_time: str | None = None

    def is_lock_error(self) -> bool:
        return self.lock_error


@dataclass(slots=True)
class ApplicationSession:
    """Authenticated cookies for one application."""

    application_base_url: str
    cookies: dict[str, str] = field(default_factory=dict)


class ApplicationClient:
    """Talks to the application's dbfreeze REST endpoints over httpx."""

    def __init__(
        self,
        settings: ApplicationSettings,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._client = httpx.Client(
            timeout=httpx.Timeout(settings.request_timeout_seconds, connect=10.0),
            transport=transport,
            follow_redirects=False,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ApplicationClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def authenticate(self, application: Application) -> ApplicationSession:
        """Logs in and keeps the session cookies.  Raises on failure."""

        base_url = application.base_url
        response = self._client.post(
            f"{base_url}/{LOGIN_PATH}",
            data={"username": self.settings.username, "password": self.settings.password},
        )
        if response.status_code >= 400:
            raise httpx.HTTPStatusError(
                f"Authentication with {base_url} failed: HTTP {response.status_code}",
                request=response.request,
                response=response,
            )
        return ApplicationSession(
            application_base_url=base_url,
            cookies={name: value for name, value in response.cookies.items()},
        )

    def get_db_freeze_progress(
        self,
        application: Application,
        session: ApplicationSession,
        wait_num: int | None = None,
    ) -> DbFreezeProgress | None:
        """Current progress, or None when the application cannot be reached."""

        return self._call("GET", application, session, PROGRESS_PATH, wait_num)

    def put_request_transition(
        self,
        application: Application,
        session: ApplicationSession,
        transition_method_path: str,
        wait_num: int,
    ) -> DbFreezeProgress | None:
        """Asks the application to start a transition; returns the initial progress."""

        return self._call(
            "PUT",
            application,
            session,
            f"dbfreeze/{transition_method_path.strip('/')}",
            wait_num,
        )

    def _call(
        self,
        method: str,
        application: Application,
        session: ApplicationSession,
        path: str,
        wait_num: int | None,
    ) -> DbFreezeProgress | None:
        url = f"{application.base_url}/{path}"
        try:
            response = self._client.request(method, url, headers=_cookie_header(session))
        except httpx.HTTPError as exc:
            logger.warning("HTTP error calling %s %s (wait#%s): %s", method, url, wait_num, exc)
            return None
        if response.status_code == httpx.codes.LOCKED:
            return DbFreezeProgress(mode=None, lock_error=True)
        if not response.is_success:
            logger.warning("HTTP %d from %s %s", response.status_code, method, url)
            return None
        try:
            payload = response.json()
        except ValueError:
            logger.warning("Non-JSON response from %s %s", method, url)
            return None
        if not isinstance(payload, dict):
            logger.warning("Unexpected response from %s %s: %r", method, url, payload)
            return None
        return parse_progress(payload)


def parse_progress(payload: dict[str, Any]) -> DbFreezeProgress:
    raw_mode = payload.get("mode")
    mode: DbFreezeMode | None = None
    if isinstance(raw_mode, str):
        try:
            mode = DbFreezeMode(raw_mode.upper())
        except ValueError:
            logger.warning("Unknown application mode: %r", raw_mode)
    return DbFreezeProgress(
        mode=mode,
        username=payload.get("username"),
        lock_error=bool(payload.get("lockError", False)),
        transition_error=payload.get("transitionError"),
        start_time=payload.get("startTime"),
        end_time=payload.get("endTime"),
    )


def _cookie_header(session: ApplicationSession) -> dict[str, str]:
    if not session.cookies:
        return {}
    return {"Cookie": "; ".join(f"{name}={value}" for name, value in session.cookies.items())}
