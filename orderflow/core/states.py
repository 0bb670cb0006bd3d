"""
Order lifecycle states, events and the transition table.

The table is the only place where transition legality is defined. It is a
plain mapping built at import time and checked once for coverage:
every non-terminal state must have an outgoing rule, terminal states must
have none, and every state must be reachable from INITIAL_STATE.
"""
from __future__ import annotations
from enum import Enum
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple


class OrderState(str, Enum):
    CREATED = "CREATED"
    PAID = "PAID"
    IN_PREPARATION = "IN_PREPARATION"
    READY_FOR_DELIVERY = "READY_FOR_DELIVERY"
    IN_DELIVERY = "IN_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class OrderEvent(str, Enum):
    PAY = "PAY"
    START_PREPARATION = "START_PREPARATION"
    READY_FOR_DELIVERY = "READY_FOR_DELIVERY"
    START_DELIVERY = "START_DELIVERY"
    DELIVER = "DELIVER"
    CANCEL = "CANCEL"


class TransitionTableError(Exception):
    """Raised when a transition table fails the startup coverage check."""


TransitionTable = Mapping[Tuple[OrderState, OrderEvent], OrderState]

INITIAL_STATE: OrderState = OrderState.CREATED

TERMINAL_STATES: FrozenSet[OrderState] = frozenset([
    OrderState.DELIVERED,
    OrderState.CANCELLED,
])

# (source, event) -> target, in enumeration order (BFS tie-breaks follow it)
TRANSITIONS: Dict[Tuple[OrderState, OrderEvent], OrderState] = {
    (OrderState.CREATED, OrderEvent.PAY): OrderState.PAID,
    (OrderState.PAID, OrderEvent.START_PREPARATION): OrderState.IN_PREPARATION,
    (OrderState.IN_PREPARATION, OrderEvent.READY_FOR_DELIVERY): OrderState.READY_FOR_DELIVERY,
    (OrderState.READY_FOR_DELIVERY, OrderEvent.START_DELIVERY): OrderState.IN_DELIVERY,
    (OrderState.IN_DELIVERY, OrderEvent.DELIVER): OrderState.DELIVERED,
    # cancellation is only possible before the order is ready for delivery
    (OrderState.CREATED, OrderEvent.CANCEL): OrderState.CANCELLED,
    (OrderState.PAID, OrderEvent.CANCEL): OrderState.CANCELLED,
    (OrderState.IN_PREPARATION, OrderEvent.CANCEL): OrderState.CANCELLED,
}


def next_state(source: OrderState, event: OrderEvent,
               table: TransitionTable = TRANSITIONS) -> Tuple[Optional[OrderState], bool]:
    """Return (target, True) if a rule exists for (source, event), else (None, False)."""
    if is_terminal(source):
        return None, False
    target = table.get((source, event))
    if target is None:
        return None, False
    return target, True


def allowed_events(state: OrderState, table: TransitionTable = TRANSITIONS) -> List[OrderEvent]:
    if state in TERMINAL_STATES:
        return []
    return [event for (source, event) in table if source == state]


def is_terminal(state: OrderState) -> bool:
    return state in TERMINAL_STATES


def check_coverage(table: TransitionTable,
                   initial: OrderState = INITIAL_STATE,
                   terminal: FrozenSet[OrderState] = TERMINAL_STATES) -> None:
    """
    Validate a transition table against the closed state set.
    Raises TransitionTableError describing the first problem found.
    """
    sources = {source for (source, _event) in table}
    for state in OrderState:
        if state in terminal and state in sources:
            raise TransitionTableError(f"Terminal state {state.value} has outgoing rules")
        if state not in terminal and state not in sources:
            raise TransitionTableError(f"Non-terminal state {state.value} has no outgoing rule")

    reachable = {initial}
    frontier = [initial]
    while frontier:
        current = frontier.pop()
        for (source, _event), target in table.items():
            if source == current and target not in reachable:
                reachable.add(target)
                frontier.append(target)
    missing = [s.value for s in OrderState if s not in reachable]
    if missing:
        raise TransitionTableError(f"States unreachable from {initial.value}: {', '.join(missing)}")


check_coverage(TRANSITIONS)
