"""Hold Lifecycle — state machine for reservations against an account.

Invariants:
    - PLACED is the sole initial state
    - SETTLED and CANCELLED are terminal and reachable only from PLACED
    - transition() is PURE: returns the new state, raises on invalid moves

Design Decisions:
    - Explicit transition table over ad-hoc checks: one place to read the machine
    - Holds are deleted once they leave PLACED, so a terminal hold can never be
      loaded again; the terminal state is carried by the returned Hold and logs
"""

from balance_service.core.domain_types import HoldState
from balance_service.core.errors import InvalidHoldTransitionError


ALLOWED_TRANSITIONS: dict[HoldState, frozenset[HoldState]] = {
    HoldState.PLACED: frozenset({HoldState.SETTLED, HoldState.CANCELLED}),
    HoldState.SETTLED: frozenset(),
    HoldState.CANCELLED: frozenset(),
}

INITIAL_STATE: HoldState = HoldState.PLACED


def transition(current: HoldState, target: HoldState) -> HoldState:
    """Move a hold from current to target or raise InvalidHoldTransitionError."""
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidHoldTransitionError(current.value, target.value)
    return target
