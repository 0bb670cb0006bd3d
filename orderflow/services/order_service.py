from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union
import logging

from orderflow.core.result import Result
from orderflow.core.state_machine import VanishedDuringTransition
from orderflow.core.states import INITIAL_STATE, OrderEvent, OrderState
from orderflow.database import FileBackedDB, db as file_db
from orderflow.models.order import ORDER_COLUMNS, Order, OrderItem
from orderflow.services.gateway import FileBackedOrderGateway
from orderflow.services.state_machine_service import OrderStateMachineService

logger = logging.getLogger(__name__)


class OrderService:
    """
    Order lookups and creation, plus one method per lifecycle event.

    The event methods return the refreshed Order and raise the engine's
    exception (InvalidTransition, OrderNotFoundError, ...) on failure; the
    *_with_result variants return the tagged Result instead.
    """

    table = "orders"

    def __init__(self, db: Optional[FileBackedDB] = None,
                 state_machine_service: Optional[OrderStateMachineService] = None):
        self.db = db if db is not None else file_db
        self.state_machine_service = state_machine_service or OrderStateMachineService(
            FileBackedOrderGateway(self.db)
        )

    # --- lookups ---

    def find_by_id(self, order_id: Any) -> Optional[Order]:
        row = self.db.get_record(self.table, "id", order_id)
        return Order.from_dict(row) if row else None

    def find_all(self) -> List[Order]:
        return [Order.from_dict(r) for r in self.db.list_records(self.table)]

    def find_by_state(self, state: Union[OrderState, str]) -> List[Order]:
        return [Order.from_dict(r) for r in self.db.find_records(self.table, "state", OrderState(state).value)]

    def find_by_customer_id(self, customer_id: Any) -> List[Order]:
        return [Order.from_dict(r) for r in self.db.find_records(self.table, "customer_id", customer_id)]

    def find_by_customer_id_and_state(self, customer_id: Any, state: Union[OrderState, str]) -> List[Order]:
        wanted = OrderState(state)
        return [o for o in self.find_by_customer_id(customer_id) if o.state == wanted]

    def find_by_date_range(self, start: datetime, end: datetime) -> List[Order]:
        """Orders whose created_at lies within [start, end], both ends inclusive."""
        return [o for o in self.find_all()
                if o.created_at is not None and start <= o.created_at <= end]

    # --- creation ---

    def create_order(self, customer_id: Any, items: Iterable[Union[OrderItem, Dict[str, Any]]],
                     notes: Optional[str] = None) -> Order:
        order_items = [it if isinstance(it, OrderItem) else OrderItem.from_dict(it) for it in items]
        if not order_items:
            raise ValueError("Order must have at least one item")
        for it in order_items:
            if int(it.quantity) <= 0:
                raise ValueError(f"Quantity for {it.product_name!r} must be positive, got {it.quantity}")

        order = Order(
            customer_id=str(customer_id),
            items=order_items,
            state=INITIAL_STATE,
            notes=notes,
            created_at=datetime.utcnow(),
        )
        order.calculate_total_amount()

        self.db.ensure_table(self.table, ORDER_COLUMNS)
        saved = self.db.create_record(self.table, order.to_dict(), id_field="id")
        logger.info("Created order %s for customer %s (total %.2f)", saved["id"], customer_id, order.total_amount)
        return Order.from_dict(saved)

    # --- lifecycle events ---

    def _trigger(self, event: OrderEvent, order_id: Any) -> Order:
        self.state_machine_service.trigger_event_with_result(event, order_id).unwrap()
        order = self.find_by_id(order_id)
        if order is None:
            raise VanishedDuringTransition(order_id)
        return order

    def process_payment(self, order_id: Any) -> Order:
        return self._trigger(OrderEvent.PAY, order_id)

    def start_preparation(self, order_id: Any) -> Order:
        return self._trigger(OrderEvent.START_PREPARATION, order_id)

    def mark_ready_for_delivery(self, order_id: Any) -> Order:
        return self._trigger(OrderEvent.READY_FOR_DELIVERY, order_id)

    def start_delivery(self, order_id: Any) -> Order:
        return self._trigger(OrderEvent.START_DELIVERY, order_id)

    def complete_delivery(self, order_id: Any) -> Order:
        return self._trigger(OrderEvent.DELIVER, order_id)

    def cancel_order(self, order_id: Any) -> Order:
        return self._trigger(OrderEvent.CANCEL, order_id)

    def process_payment_with_result(self, order_id: Any) -> Result:
        return self.state_machine_service.trigger_event_with_result(OrderEvent.PAY, order_id)

    def cancel_order_with_result(self, order_id: Any) -> Result:
        return self.state_machine_service.trigger_event_with_result(OrderEvent.CANCEL, order_id)
