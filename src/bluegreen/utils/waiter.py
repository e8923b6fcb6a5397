"""Bounded polling driver for progress checkers."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from bluegreen.config import WaiterSettings
from bluegreen.utils.progress import ProgressChecker

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class WaiterParameters:
    """How often and how long to poll.

    ``max_num_waits`` is always a hard bound.  When ``max_elapsed_seconds`` is also
    set, the wait ends at whichever bound is reached first.
    """

    poll_interval_seconds: float
    max_num_waits: int
    max_elapsed_seconds: float | None = None

    @classmethod
    def from_settings(cls, settings: WaiterSettings) -> WaiterParameters:
        return cls(
            poll_interval_seconds=settings.poll_interval_seconds,
            max_num_waits=settings.max_num_waits,
            max_elapsed_seconds=settings.max_elapsed_seconds,
        )


class Waiter(Generic[T]):
    """Repeatedly polls a progress checker until done or out of waits."""

    def __init__(
        self,
        parameters: WaiterParameters,
        checker: ProgressChecker[T],
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.parameters = parameters
        self.checker = checker
        self._sleep = sleep
        self._clock = clock

    def wait_til_done(self) -> T | None:
        """Returns the checker's result when done, or the checker's timeout value."""

        started = self._clock()
        self.checker.initial_check()
        if self.checker.is_done():
            return self.checker.get_result()

        for wait_num in range(1, self.parameters.max_num_waits + 1):
            if self._elapsed_exceeded(started):
                break
            logger.debug(
                "Wait #%d of %d: sleeping %.1fs for %s",
                wait_num,
                self.parameters.max_num_waits,
                self.parameters.poll_interval_seconds,
                self.checker.description,
            )
            self._sleep(self.parameters.poll_interval_seconds)
            self.checker.followup_check(wait_num)
            if self.checker.is_done():
                return self.checker.get_result()

        logger.warning("Gave up waiting for %s", self.checker.description)
        return self.checker.timeout()

    def _elapsed_exceeded(self, started: float) -> bool:
        limit = self.parameters.max_elapsed_seconds
        if limit is None:
            return False
        return self._clock() - started >= limit
