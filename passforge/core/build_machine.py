"""Deterministic build state machine.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- FAILED reachable from every non-terminal state
- No transition out of FINALIZED or FAILED
- Every transition recorded in the build's history
"""

from __future__ import annotations

import logging

from passforge.core.errors import PassBuildError
from passforge.models.build import VALID_TRANSITIONS, BuildState, BuildTransition

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class BuildMachine:
    """Tracks one build's state and its transition history.

    Parameters
    ----------
    build_id:
        Identifier recorded on every transition.
    """

    def __init__(self, build_id: str) -> None:
        self.build_id = build_id
        self._state = BuildState.INIT
        self._history: list[BuildTransition] = []

    @property
    def state(self) -> BuildState:
        return self._state

    @property
    def history(self) -> list[BuildTransition]:
        """A snapshot of all transitions so far."""
        return list(self._history)

    @property
    def is_terminal(self) -> bool:
        return not VALID_TRANSITIONS[self._state]

    def transition(
        self,
        target_state: BuildState,
        *,
        output_hash: str = "",
        error: BaseException | None = None,
    ) -> BuildTransition:
        """Move to *target_state*, recording the transition.

        Returns the recorded BuildTransition.
        """
        allowed = VALID_TRANSITIONS.get(self._state, set())
        if target_state not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition build {self.build_id} from {self._state.value} "
                f"to {target_state.value}. Allowed: {sorted(s.value for s in allowed)}"
            )

        error_stage = None
        if isinstance(error, PassBuildError):
            error_stage = error.stage.value
        record = BuildTransition(
            build_id=self.build_id,
            from_state=self._state,
            to_state=target_state,
            output_hash=output_hash,
            error_stage=error_stage,
            error_type=type(error).__name__ if error is not None else None,
        )
        self._history.append(record)
        self._state = target_state
        logger.info(
            "build %s: %s -> %s", self.build_id, record.from_state.value, target_state.value
        )
        return record

    def fail(self, error: BaseException) -> BuildTransition | None:
        """Move to FAILED unless the build already reached a terminal state."""
        if self.is_terminal:
            return None
        return self.transition(BuildState.FAILED, error=error)
