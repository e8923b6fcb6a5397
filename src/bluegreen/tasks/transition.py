"""Transitions the application in an environment to the next dbfreeze-related steady state."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import ClassVar

import httpx

from bluegreen.clients.app import (
    ApplicationClient,
    ApplicationSession,
    DbFreezeMode,
    DbFreezeProgress,
)
from bluegreen.jobs.models import TaskStatus
from bluegreen.model.env_loader import OneEnvLoader
from bluegreen.model.models import Application, Environment
from bluegreen.tasks.base import TaskBase, noop_remark
from bluegreen.utils.waiter import Waiter, WaiterParameters

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TransitionParameters:
    """Static description of one transition kind."""

    verb: str
    allowed_start_modes: frozenset[DbFreezeMode]
    destination_mode: DbFreezeMode
    transition_method_path: str


FREEZE_PARAMETERS = TransitionParameters(
    verb="freeze",
    allowed_start_modes=frozenset({DbFreezeMode.NORMAL, DbFreezeMode.FLUSH_ERROR}),
    destination_mode=DbFreezeMode.FREEZE,
    transition_method_path="enterFreeze",
)

THAW_PARAMETERS = TransitionParameters(
    verb="thaw",
    allowed_start_modes=frozenset({DbFreezeMode.FREEZE, DbFreezeMode.THAW_ERROR}),
    destination_mode=DbFreezeMode.NORMAL,
    transition_method_path="exitFreeze",
)


@dataclass(slots=True)
class TransitionContext:
    """Data model loaded at the start of one transition run."""

    environment: Environment
    application: Application
    session: ApplicationSession


class TransitionProgressChecker:
    """Done with True when the application reaches the destination mode.

    A null response, a lock error, or an error mode is done with False: the
    application is unreachable, busy, or failed, and polling longer will not help.
    """

    def __init__(
        self,
        parameters: TransitionParameters,
        log_context: str,
        initial_progress: DbFreezeProgress | None,
        application_client: ApplicationClient,
        session: ApplicationSession,
        application: Application,
    ) -> None:
        self.parameters = parameters
        self.log_context = log_context
        self.initial_progress = initial_progress
        self.application_client = application_client
        self.session = session
        self.application = application
        self._done = False
        self._result: bool | None = None

    @property
    def description(self) -> str:
        return (
            f"Application '{self.application.base_url}' transition to "
            f"{self.parameters.destination_mode.value}"
        )

    def initial_check(self) -> None:
        """Judges the response to the transition request itself."""

        self._check_progress(self.initial_progress, wait_num=0)

    def followup_check(self, wait_num: int) -> None:
        progress = self.application_client.get_db_freeze_progress(
            self.application,
            self.session,
            wait_num,
        )
        self._check_progress(progress, wait_num=wait_num)

    def _check_progress(self, progress: DbFreezeProgress | None, *, wait_num: int) -> None:
        if progress is None:
            logger.error("%sNull application response after wait#%d", self.log_context, wait_num)
            self._finish(False)
            return
        logger.debug(
            "%sApplication progress after wait#%d: %s",
            self.log_context,
            wait_num,
            progress,
        )
        if progress.is_lock_error():
            logger.error(
                "%sApplication responded with a lock error: %s",
                self.log_context,
                progress,
            )
            self._finish(False)
        elif progress.mode == self.parameters.destination_mode:
            logger.info(
                "%sApplication reached mode %s",
                self.log_context,
                self.parameters.destination_mode.value,
            )
            self._finish(True)
        elif progress.mode is not None and progress.mode.is_error:
            logger.error(
                "%sApplication failed to %s: %s",
                self.log_context,
                self.parameters.verb,
                progress,
            )
            self._finish(False)

    def _finish(self, result: bool) -> None:
        self._done = True
        self._result = result

    def is_done(self) -> bool:
        return self._done

    def get_result(self) -> bool | None:
        return self._result

    def timeout(self) -> bool | None:
        logger.error(
            "%sApplication failed to reach mode %s prior to timeout",
            self.log_context,
            self.parameters.destination_mode.value,
        )
        return False


class TransitionTask(TaskBase):
    """Asks the application to transition, then waits for it to get there."""

    task_name: ClassVar[str] = "transition"
    parameters: ClassVar[TransitionParameters]

    def __init__(
        self,
        position: int,
        env_name: str,
        *,
        env_loader: OneEnvLoader,
        application_client: ApplicationClient,
        waiter_parameters: WaiterParameters,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(position, env_name)
        self.env_loader = env_loader
        self.application_client = application_client
        self.waiter_parameters = waiter_parameters
        self._sleep = sleep

    def process(self, noop: bool) -> TaskStatus:
        context = self.load_data_model()
        if context is None or not self.app_is_ready_to_transition(context):
            return TaskStatus.ERROR
        if noop:
            logger.info(
                "%sRequesting a %s%s",
                self._log_context(context.application),
                self.parameters.verb,
                noop_remark(noop),
            )
            return TaskStatus.NOOP
        checker = self.request_transition(context)
        if self.wait_for_transition(checker):
            return TaskStatus.DONE
        return TaskStatus.ERROR

    def load_data_model(self) -> TransitionContext | None:
        """Read-only, so runs even if noop.

        None when the application cannot be reached or refuses the login.
        """

        loaded = self.env_loader.load_application()
        try:
            session = self.application_client.authenticate(loaded.application)
        except httpx.HTTPError as exc:
            logger.error(
                "%sCould not authenticate with application %s: %s",
                self._log_context(loaded.application),
                loaded.application.base_url,
                exc,
            )
            return None
        return TransitionContext(
            environment=loaded.environment,
            application=loaded.application,
            session=session,
        )

    def _log_context(self, application: Application) -> str:
        return f"[Environment '{self.env_name}', {application.hostname}]: "

    def app_is_ready_to_transition(self, context: TransitionContext) -> bool:
        """True if the application reports a mode the transition may start from.

        Read-only, so runs even if noop.
        """

        log_context = self._log_context(context.application)
        logger.info("%sChecking if application is ready to %s", log_context, self.parameters.verb)
        progress = self.application_client.get_db_freeze_progress(
            context.application,
            context.session,
            None,
        )
        logger.debug("%sApplication response: %s", log_context, progress)
        if progress is None:
            logger.error("%sNull application response", log_context)
            return False
        if progress.is_lock_error():
            logger.error("%sApplication responded with a lock error: %s", log_context, progress)
            return False
        if not self.is_allowed_start_mode(progress.mode):
            logger.error(
                "%sMode '%s' indicates application is not ready to %s.  Progress: %s",
                log_context,
                progress.mode.value if progress.mode is not None else None,
                self.parameters.verb,
                progress,
            )
            return False
        return True

    def is_allowed_start_mode(self, mode: DbFreezeMode | None) -> bool:
        return mode is not None and mode in self.parameters.allowed_start_modes

    def request_transition(self, context: TransitionContext) -> TransitionProgressChecker:
        """Requests the transition; returns its progress checker."""

        log_context = self._log_context(context.application)
        logger.info("%sRequesting a %s", log_context, self.parameters.verb)
        initial_progress = self.application_client.put_request_transition(
            context.application,
            context.session,
            self.parameters.transition_method_path,
            0,
        )
        return TransitionProgressChecker(
            self.parameters,
            log_context,
            initial_progress,
            self.application_client,
            context.session,
            context.application,
        )

    def wait_for_transition(self, checker: TransitionProgressChecker) -> bool:
        """True if the destination mode was reached prior to timeout."""

        logger.info("%sWaiting for %s to take effect", checker.log_context, self.parameters.verb)
        waiter: Waiter[bool] = Waiter(self.waiter_parameters, checker, sleep=self._sleep)
        return bool(waiter.wait_til_done())


class FreezeTask(TransitionTask):
    task_name: ClassVar[str] = "freeze"
    parameters: ClassVar[TransitionParameters] = FREEZE_PARAMETERS


class ThawTask(TransitionTask):
    task_name: ClassVar[str] = "thaw"
    parameters: ClassVar[TransitionParameters] = THAW_PARAMETERS
