from __future__ import annotations
from typing import Any, Dict, List, Optional
import logging

from orderflow.core.path_finder import PathFinder
from orderflow.core.states import (
    INITIAL_STATE,
    TRANSITIONS,
    OrderEvent,
    OrderState,
    TransitionTable,
    next_state,
)

logger = logging.getLogger(__name__)


class StateMachineError(Exception):
    pass


class InvalidTransition(StateMachineError, ValueError):
    def __init__(self, event: Any, state: Any):
        self.event = event
        self.state = state
        super().__init__(f"Event {_label(event)} was not accepted in state {_label(state)}")


class OrderNotFoundError(StateMachineError, LookupError):
    def __init__(self, order_id: Any):
        self.order_id = order_id
        super().__init__(f"Order with id {order_id} not found")


class SyncFailure(StateMachineError):
    pass


class PersistenceFailure(StateMachineError):
    pass


class VanishedDuringTransition(StateMachineError):
    def __init__(self, order_id: Any):
        self.order_id = order_id
        super().__init__(f"Order {order_id} disappeared during state transition")


class MachineStoppedError(StateMachineError, RuntimeError):
    pass


HistoryEntry = Dict[str, Any]


def _label(value: Any) -> str:
    return getattr(value, "value", str(value))


class OrderStateMachine:
    """
    Single-use machine holding the current state of one order during one operation.

    The machine knows nothing about storage. It starts in CREATED, may be
    brought to a persisted state with replay_to(), then receives the live
    event through apply(). Callers stop() it when the operation ends; a
    stopped machine refuses further work.

    Usage:
      sm = OrderStateMachine()
      if not sm.replay_to(OrderState.PAID, order_path_finder):
          ...  # table and path finder disagree
      accepted = sm.apply(OrderEvent.START_PREPARATION)
      sm.stop()
    """

    def __init__(self, table: TransitionTable = TRANSITIONS, initial: OrderState = INITIAL_STATE):
        self.table = table
        self.current_state: OrderState = initial
        self.history: List[HistoryEntry] = []
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def _ensure_running(self) -> None:
        if self._stopped:
            raise MachineStoppedError("State machine instance has been stopped")

    def apply(self, event: OrderEvent, replayed: bool = False) -> bool:
        """
        Apply `event` to the current state. Returns True and moves to the
        target state when a rule exists; otherwise returns False and leaves
        the state untouched.
        """
        self._ensure_running()
        target, ok = next_state(self.current_state, event, self.table)
        if not ok:
            return False
        self.history.append({
            "from": self.current_state,
            "event": event,
            "to": target,
            "replayed": replayed,
        })
        self.current_state = target
        return True

    def replay_to(self, target: OrderState, path_finder: PathFinder) -> bool:
        """
        Bring a fresh machine to `target` by re-applying the shortest event
        path from the initial state. Returns False if no path exists or a
        replayed event is rejected, both of which mean the table and the
        path finder have diverged.
        """
        self._ensure_running()
        events, found = path_finder.path_to(target)
        if not found:
            logger.error("No replay path to state %s", _label(target))
            return False
        for event in events:
            if not self.apply(event, replayed=True):
                logger.error(
                    "Replay event %s rejected in state %s while syncing to %s",
                    _label(event), _label(self.current_state), _label(target),
                )
                return False
        logger.debug("Synchronized state machine to %s via %s", _label(target), [_label(e) for e in events])
        return self.current_state == target

    def stop(self) -> None:
        self._stopped = True

    def last_transition(self) -> Optional[HistoryEntry]:
        return self.history[-1] if self.history else None
