from __future__ import annotations

import logging
from typing import Optional

from ..core.enums import SaveState
from ..core.exceptions import CancellationNotAllowedError, SaveStateError

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[SaveState, frozenset[SaveState]] = {
    SaveState.IDLE: frozenset({SaveState.VALIDATING}),
    SaveState.VALIDATING: frozenset({SaveState.CHECKING_DUPLICATE, SaveState.PERSISTING, SaveState.IDLE}),
    SaveState.CHECKING_DUPLICATE: frozenset({SaveState.PERSISTING, SaveState.IDLE}),
    SaveState.PERSISTING: frozenset({SaveState.IDLE}),
}

# Storage has not been touched yet in these states.
_CANCELLABLE = frozenset({SaveState.IDLE, SaveState.VALIDATING})


class SaveStateMachine:
    """Progress of the save running for one grid session.

    IDLE -> VALIDATING -> CHECKING_DUPLICATE -> PERSISTING -> IDLE, with
    CHECKING_DUPLICATE skipped for forced saves and an early return to IDLE
    whenever a save stops before persisting.
    """

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id
        self._state = SaveState.IDLE
        self._cancel_requested = False

    @property
    def state(self) -> SaveState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state is not SaveState.IDLE

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    def advance(self, target: SaveState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise SaveStateError(f"Illegal save transition {self._state.value} -> {target.value}")
        logger.debug("Session %s: %s -> %s", self.session_id, self._state.value, target.value)
        self._state = target

    def request_cancel(self) -> bool:
        """Ask the running save to stop before it touches storage.

        Returns True when a save was in flight and will stop, False when
        nothing is running.
        """

        if self._state not in _CANCELLABLE:
            raise CancellationNotAllowedError(
                f"Cannot cancel a save in state {self._state.value}; storage may already be updated"
            )
        if self._state is SaveState.IDLE:
            return False
        self._cancel_requested = True
        return True

    def reset(self) -> None:
        self._state = SaveState.IDLE
        self._cancel_requested = False
