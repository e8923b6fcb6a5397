"""Progress checker protocol consumed by the Waiter."""

from __future__ import annotations

from typing import Protocol, TypeVar

T_co = TypeVar("T_co", covariant=True)


class ProgressChecker(Protocol[T_co]):
    """Knows how to poll one remote resource and judge when it is done.

    A checker is bound to one target resource and one polling session.  ``is_done()``
    only ever goes from false to true, and the result is set at the moment it does.
    """

    @property
    def description(self) -> str:
        """Human-readable identity of what is being polled."""
        raise NotImplementedError

    def initial_check(self) -> None:
        """Check state right after the action was requested; may set done/result."""
        raise NotImplementedError

    def followup_check(self, wait_num: int) -> None:
        """Check state after the given wait; may set done/result."""
        raise NotImplementedError

    def is_done(self) -> bool:
        raise NotImplementedError

    def get_result(self) -> T_co | None:
        """Meaningful only once done."""
        raise NotImplementedError

    def timeout(self) -> T_co | None:
        """Called once when the waiter gives up; logs and returns a failure value, never raises."""
        raise NotImplementedError
