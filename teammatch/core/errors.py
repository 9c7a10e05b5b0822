# teammatch/core/errors.py
from __future__ import annotations

from typing import Optional


class EngineError(Exception):
    """Base class for failures surfaced by the matching engine."""

    code = "engine_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NoTeamError(EngineError):
    """A team-scoped swipe was attempted by someone who is not on a team."""

    code = "no_team"


class InvalidStateError(EngineError):
    """Match missing, or not in a state that allows the requested transition."""

    code = "invalid_state"


class NotAuthorizedError(EngineError):
    code = "not_authorized"


class TargetNotFoundError(EngineError):
    code = "target_not_found"


class PartialWriteError(EngineError):
    """
    The sequential create-match fallback failed after some rows were written.

    `step` names the write that failed; `cleaned_up` tells whether the rows
    written before it were removed again.
    """

    code = "partial_write"

    def __init__(self, message: str, *, step: str, cleaned_up: bool, match_id: Optional[str] = None):
        super().__init__(message)
        self.step = step
        self.cleaned_up = cleaned_up
        self.match_id = match_id


class CollaboratorUnavailableError(EngineError):
    code = "collaborator_unavailable"


class OperationTimeoutError(CollaboratorUnavailableError):
    """The caller stopped waiting. The write itself was not cancelled."""

    code = "timeout"


class DuplicateMembershipWarning(UserWarning):
    """Informational: the user was already a confirmed member of the team."""


class InvalidInputError(EngineError):
    """Payload failed validation (message length, unknown enum value, ...)."""

    code = "invalid_input"
