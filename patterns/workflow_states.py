"""Row edit state machine.

Legal moves of an inventory row live in one table. Each move is recorded
with the price it carried.

    viewing -> editing -> saving    -> viewing
               editing -> cancelled -> viewing
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from core.errors import InvalidTransition


class RowEditState(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"
    SAVING = "saving"
    CANCELLED = "cancelled"


_NEXT_STATES: dict[RowEditState, frozenset[RowEditState]] = {
    RowEditState.VIEWING: frozenset({RowEditState.EDITING}),
    RowEditState.EDITING: frozenset({RowEditState.SAVING, RowEditState.CANCELLED}),
    RowEditState.SAVING: frozenset({RowEditState.VIEWING}),
    RowEditState.CANCELLED: frozenset({RowEditState.VIEWING}),
}


@dataclass(frozen=True)
class EditStep:
    """One recorded move of a row edit session."""

    source: RowEditState
    target: RowEditState
    at: datetime
    price: Optional[float] = None


@dataclass
class RowEditSession:
    """Edit lifecycle of one inventory row.

    Usage::

        session = RowEditSession(row_id=7)
        session.transition(RowEditState.EDITING, price=10.0)
        session.transition(RowEditState.SAVING, price=12.5)
        session.transition(RowEditState.VIEWING)
    """

    row_id: Any
    current_state: RowEditState = RowEditState.VIEWING
    steps: list[EditStep] = field(default_factory=list)

    def can_transition(self, target: RowEditState) -> bool:
        return target in _NEXT_STATES[self.current_state]

    def transition(self, target: RowEditState, price: Optional[float] = None) -> EditStep:
        """Move to ``target``. Raises InvalidTransition for a move outside the table."""
        if not self.can_transition(target):
            allowed = sorted(s.value for s in _NEXT_STATES[self.current_state])
            raise InvalidTransition(
                f"Cannot transition row {self.row_id} from {self.current_state.value} "
                f"to {target.value} (allowed: {', '.join(allowed)})"
            )
        step = EditStep(self.current_state, target, datetime.now(timezone.utc), price)
        self.steps.append(step)
        self.current_state = target
        return step

    @property
    def is_editing(self) -> bool:
        return self.current_state == RowEditState.EDITING

    @property
    def last_price(self) -> Optional[float]:
        """Most recent price carried by a step, if any."""
        return next((s.price for s in reversed(self.steps) if s.price is not None), None)
