# orderflow/models/order.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from datetime import datetime
import json

from orderflow.core.states import INITIAL_STATE, OrderState

ORDER_COLUMNS = [
    "id", "customer_id", "items", "total_amount", "state", "notes", "created_at", "updated_at",
]


def _parse_datetime(raw: Any) -> Optional[datetime]:
    if not raw:
        return None
    if isinstance(raw, datetime):
        return raw
    try:
        return datetime.fromisoformat(str(raw))
    except ValueError:
        return None


@dataclass
class OrderItem:
    product_name: str
    quantity: int = 1
    unit_price: float = 0.0

    @property
    def total_price(self) -> float:
        return float(self.unit_price) * int(self.quantity)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OrderItem":
        # default only when quantity is absent; an explicit 0 stays 0
        quantity = d.get("quantity")
        return cls(
            product_name=str(d.get("product_name") or d.get("title") or d.get("name") or ""),
            quantity=1 if quantity in (None, "") else int(float(quantity)),
            unit_price=float(d.get("unit_price") or d.get("price") or 0.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_name": self.product_name,
            "quantity": int(self.quantity),
            "unit_price": float(self.unit_price),
        }


@dataclass
class Order:
    """
    Order aggregate as stored in the `orders` table. The transition engine
    only reads and writes `state` (and stamps `updated_at`); everything else
    belongs to the order service.
    """
    id: Optional[str] = None
    customer_id: Optional[str] = None
    items: List[OrderItem] = field(default_factory=list)
    total_amount: float = 0.0
    state: OrderState = INITIAL_STATE
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def calculate_total_amount(self) -> float:
        self.total_amount = float(sum(it.total_price for it in self.items))
        return self.total_amount

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Order":
        if d is None:
            raise ValueError("Cannot construct Order from None")
        # items are stored as a serialized JSON string in the CSV cell
        raw_items = d.get("items") or []
        if isinstance(raw_items, str):
            try:
                raw_items = json.loads(raw_items)
            except json.JSONDecodeError:
                raw_items = []
        if not isinstance(raw_items, list):
            raw_items = []
        items = [it if isinstance(it, OrderItem) else OrderItem.from_dict(it)
                 for it in raw_items if isinstance(it, (OrderItem, dict))]

        try:
            total_amount = float(d.get("total_amount") or 0.0)
        except (TypeError, ValueError):
            total_amount = 0.0

        return cls(
            id=d.get("id") or None,
            customer_id=d.get("customer_id") or None,
            items=items,
            total_amount=total_amount,
            state=OrderState(d.get("state") or INITIAL_STATE.value),
            notes=d.get("notes") or None,
            created_at=_parse_datetime(d.get("created_at")),
            updated_at=_parse_datetime(d.get("updated_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the order into a dict suitable for CSV writing. `items` is serialized as a JSON string.
        """
        return {
            "id": self.id,
            "customer_id": self.customer_id or "",
            "items": json.dumps([it.to_dict() for it in self.items], ensure_ascii=False),
            "total_amount": float(self.total_amount),
            "state": OrderState(self.state).value,
            "notes": self.notes or "",
            "created_at": self.created_at.isoformat(sep=" ") if self.created_at else "",
            "updated_at": self.updated_at.isoformat(sep=" ") if self.updated_at else "",
        }
