"""
Commit strategies invoked once per accepted live transition.

A notifier is any callable `(order_id, new_state) -> None`. The orchestrator
calls it after the machine accepts the live event and never during replay.
"""
from __future__ import annotations
from datetime import datetime
from typing import Any, Callable, Dict, List
import logging

from orderflow.core.states import OrderState
from orderflow.services.gateway import PersistenceGateway

logger = logging.getLogger(__name__)

ChangeNotifier = Callable[[Any, OrderState], None]


class PersistingNotifier:
    """Default commit: write the new state through the gateway."""

    def __init__(self, gateway: PersistenceGateway):
        self.gateway = gateway

    def on_transition(self, order_id: Any, new_state: OrderState) -> None:
        self.gateway.save(order_id, new_state)

    __call__ = on_transition


class AuditingNotifier:
    """
    Wraps another notifier and records every commit that went through.
    Failed commits are not recorded; the wrapped notifier's error propagates.
    """

    def __init__(self, inner: ChangeNotifier):
        self.inner = inner
        self.entries: List[Dict[str, Any]] = []

    def on_transition(self, order_id: Any, new_state: OrderState) -> None:
        self.inner(order_id, new_state)
        entry = {
            "order_id": order_id,
            "state": OrderState(new_state).value,
            "at": datetime.utcnow().isoformat(sep=" "),
        }
        self.entries.append(entry)
        logger.info("Audit: order %s committed state %s", order_id, entry["state"])

    __call__ = on_transition

    def entries_for(self, order_id: Any) -> List[Dict[str, Any]]:
        return [e for e in self.entries if str(e["order_id"]) == str(order_id)]
