"""
Transaction State Machine

Tracks one submission attempt from New to a terminal state, validating
each transition and keeping a history.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional

from .errors import InvalidTransitionError
from .models import TransactionState


@dataclass(frozen=True)
class StateTransition:
    """A recorded state change."""
    from_state: TransactionState
    to_state: TransactionState
    reason: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class TransactionStateMachine:
    """
    Manages the state of a single submission attempt.

    Terminal states (Sent, Failed, Rejected) have no outgoing transitions,
    so a finished attempt can never regress. A new attempt needs a new
    machine.
    """

    TRANSITIONS: Dict[TransactionState, FrozenSet[TransactionState]] = {
        TransactionState.NEW: frozenset({
            TransactionState.SENDING,
            TransactionState.REJECTED,  # Operator declined before signing
        }),
        TransactionState.SENDING: frozenset({
            TransactionState.SENT,
            TransactionState.FAILED,
            TransactionState.REJECTED,
        }),
        TransactionState.SENT: frozenset(),
        TransactionState.FAILED: frozenset(),
        TransactionState.REJECTED: frozenset(),
    }

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._state = TransactionState.NEW
        self.history: List[StateTransition] = []

    @property
    def current_state(self) -> TransactionState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state.is_terminal

    @property
    def is_sending(self) -> bool:
        return self._state == TransactionState.SENDING

    def can_transition(self, to_state: TransactionState) -> bool:
        return to_state in self.TRANSITIONS[self._state]

    def transition(self, to_state: TransactionState, reason: Optional[str] = None) -> StateTransition:
        """Move to `to_state` or raise InvalidTransitionError."""
        if not self.can_transition(to_state):
            raise InvalidTransitionError(self._state, to_state)

        transition = StateTransition(from_state=self._state, to_state=to_state, reason=reason)
        self._state = to_state
        self.history.append(transition)

        self.logger.info(
            f"Transaction state {transition.from_state.value} -> {to_state.value}"
            + (f" ({reason})" if reason else "")
        )
        return transition
