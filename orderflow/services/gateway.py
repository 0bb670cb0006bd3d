"""
Persistence gateway: reads and writes the single `state` column of an order row.

The gateway is synchronous and keeps no cache; every call goes to the store.
"""
from __future__ import annotations
from datetime import datetime
from typing import Any, Optional, Protocol, Tuple
import logging

from orderflow.core.state_machine import PersistenceFailure
from orderflow.core.states import OrderState
from orderflow.database import FileBackedDB, db as file_db

logger = logging.getLogger(__name__)


class PersistenceGateway(Protocol):
    def load(self, order_id: Any) -> Tuple[Optional[OrderState], bool]:
        ...

    def save(self, order_id: Any, new_state: OrderState) -> None:
        ...


class FileBackedOrderGateway:
    """Gateway over the `orders` table of the file-backed store."""

    table = "orders"
    key = "id"

    def __init__(self, db: Optional[FileBackedDB] = None):
        self.db = db if db is not None else file_db

    def load(self, order_id: Any) -> Tuple[Optional[OrderState], bool]:
        try:
            row = self.db.get_record(self.table, self.key, order_id)
        except (OSError, ValueError) as e:
            raise PersistenceFailure(f"Failed to read state for order {order_id}: {e}") from e
        if not row:
            logger.debug("Order %s not found", order_id)
            return None, False

        raw = row.get("state")
        try:
            state = OrderState(raw)
        except ValueError as e:
            raise PersistenceFailure(f"Order {order_id} has unknown stored state {raw!r}") from e
        logger.debug("Reading state for order %s: %s", order_id, state.value)
        return state, True

    def save(self, order_id: Any, new_state: OrderState) -> None:
        updates = {
            "state": OrderState(new_state).value,
            "updated_at": datetime.utcnow().isoformat(sep=" "),
        }
        try:
            updated = self.db.update_record(self.table, self.key, order_id, updates)
        except (OSError, ValueError) as e:
            raise PersistenceFailure(f"Failed to persist state for order {order_id}: {e}") from e
        if updated is None:
            raise PersistenceFailure(f"Cannot persist state: order {order_id} not found")
        logger.debug("Persisted state %s for order %s", updates["state"], order_id)
