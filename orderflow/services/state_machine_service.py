from __future__ import annotations
from typing import Any, Optional, Union
import asyncio
import logging

from orderflow.config import settings
from orderflow.core.locks import KeyedLock
from orderflow.core.path_finder import PathFinder, order_path_finder
from orderflow.core.result import Error, ErrorKind, Result, Success, error_kind_for
from orderflow.core.state_machine import (
    InvalidTransition,
    OrderNotFoundError,
    OrderStateMachine,
    StateMachineError,
    SyncFailure,
    VanishedDuringTransition,
)
from orderflow.core.states import INITIAL_STATE, TRANSITIONS, OrderEvent, TransitionTable
from orderflow.services.gateway import PersistenceGateway
from orderflow.services.notifier import ChangeNotifier, PersistingNotifier

logger = logging.getLogger(__name__)

# shared by every service instance in this process
_order_locks = KeyedLock()


def _coerce_event(event: Union[OrderEvent, str]) -> Optional[OrderEvent]:
    if isinstance(event, OrderEvent):
        return event
    try:
        return OrderEvent(str(event).strip().upper())
    except ValueError:
        return None


class OrderStateMachineService:
    """
    Applies one event to one stored order.

    Every call loads the stored state, builds a fresh machine, replays it to
    that state, applies the requested event and, if accepted, hands the new
    state to the change notifier for commit. The stored row is then read
    again and its state returned. The machine is stopped on every exit path.

    With serialize_per_order enabled (default from settings), calls for the
    same order id run one at a time within this process, across every
    service instance; calls for different ids never wait on each other.
    A custom table without a path finder gets a path finder built from it.

    Usage:
      service = OrderStateMachineService(FileBackedOrderGateway())
      result = service.trigger_event_with_result(OrderEvent.PAY, order_id)
      if result.is_success:
          print(result.value)          # OrderState.PAID
      else:
          print(result.kind, result.message)
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        notifier: Optional[ChangeNotifier] = None,
        path_finder: Optional[PathFinder] = None,
        table: Optional[TransitionTable] = None,
        serialize_per_order: Optional[bool] = None,
    ):
        self.gateway = gateway
        self.notifier = notifier if notifier is not None else PersistingNotifier(gateway)
        if path_finder is None:
            path_finder = order_path_finder if table is None else PathFinder(table, INITIAL_STATE)
        if table is None:
            table = TRANSITIONS
        self.table = table
        self.path_finder = path_finder
        if serialize_per_order is None:
            serialize_per_order = settings.SERIALIZE_PER_ORDER
        self._locks: Optional[KeyedLock] = _order_locks if serialize_per_order else None

    def trigger_event_with_result(self, event: Union[OrderEvent, str], order_id: Any) -> Result:
        logger.info("Triggering event: %s for order: %s", getattr(event, "value", event), order_id)
        if self._locks is None:
            return self._trigger(event, order_id)
        with self._locks.hold(str(order_id)):
            return self._trigger(event, order_id)

    def trigger_event(self, event: Union[OrderEvent, str], order_id: Any) -> bool:
        return self.trigger_event_with_result(event, order_id).is_success

    async def trigger_event_with_result_async(self, event: Union[OrderEvent, str], order_id: Any) -> Result:
        return await asyncio.to_thread(self.trigger_event_with_result, event, order_id)

    async def trigger_event_async(self, event: Union[OrderEvent, str], order_id: Any) -> bool:
        result = await self.trigger_event_with_result_async(event, order_id)
        return result.is_success

    def _trigger(self, event: Union[OrderEvent, str], order_id: Any) -> Result:
        machine: Optional[OrderStateMachine] = None
        try:
            original_state, found = self.gateway.load(order_id)
            if not found:
                raise OrderNotFoundError(order_id)
            logger.debug("Order %s current state: %s", order_id, original_state.value)

            live_event = _coerce_event(event)
            if live_event is None:
                raise InvalidTransition(event, original_state)

            machine = OrderStateMachine(self.table)
            if original_state != INITIAL_STATE and not machine.replay_to(original_state, self.path_finder):
                raise SyncFailure(
                    f"Failed to sync state machine for order {order_id} to state {original_state.value}"
                )

            if not machine.apply(live_event):
                raise InvalidTransition(live_event, original_state)

            self.notifier(order_id, machine.current_state)

            stored_state, found = self.gateway.load(order_id)
            if not found:
                raise VanishedDuringTransition(order_id)

            logger.info("Order %s transitioned from %s to %s", order_id, original_state.value, stored_state.value)
            return Success(stored_state)
        except StateMachineError as e:
            kind = error_kind_for(e) or ErrorKind.SYNC_FAILURE
            self._log_failure(kind, e, order_id)
            return Error.from_exception(kind, e)
        except Exception as e:
            logger.exception("Error triggering event %s for order %s", getattr(event, "value", event), order_id)
            return Error.from_exception(ErrorKind.PERSISTENCE_FAILURE, e)
        finally:
            if machine is not None:
                machine.stop()

    @staticmethod
    def _log_failure(kind: ErrorKind, exc: StateMachineError, order_id: Any) -> None:
        if kind in (ErrorKind.NOT_FOUND, ErrorKind.INVALID_TRANSITION):
            logger.warning("Order %s: %s", order_id, exc)
        elif kind == ErrorKind.SYNC_FAILURE:
            logger.error("Internal consistency fault for order %s: %s", order_id, exc)
        else:
            logger.error("Order %s: %s", order_id, exc, exc_info=exc)
