"""Error taxonomy shared by tasks, checkers and the job runner."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class CutoverError(Exception):
    """Base error for cutover tasks."""

    message: str
    code: str = "cutover_error"

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class ConfigurationError(CutoverError):
    """Missing precondition or unsupported option combination; aborts before remote calls."""

    code: str = "configuration_error"


@dataclass(slots=True)
class SafetyViolation(CutoverError):
    """Attempt to mutate a resource that must never be touched, such as a live database."""

    code: str = "safety_violation"


@dataclass(slots=True)
class InvariantViolation(CutoverError):
    """Remote response identifies a different resource than the one requested."""

    code: str = "invariant_violation"


@dataclass(slots=True)
class IllegalTaskStateError(CutoverError):
    """Unreachable enum branch."""

    code: str = "illegal_task_state"


@dataclass(slots=True)
class DeletionNotConfirmedError(CutoverError):
    """Deletion was requested but could not be confirmed before timeout."""

    code: str = "deletion_not_confirmed"
