# module catering.orders.models
"""Modèles de commande (en-tête + lignes) et statuts.
- status (exécution) et payment_status (paiement) sont deux axes indépendants.
- Les lignes sont immuables après création; la commande n'est jamais supprimée, seulement transitionnée.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

ORDERS_TABLE = "orders"
LINE_ITEMS_TABLE = "order_line_items"

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_PREPARING = "preparing"
STATUS_DELIVERED = "delivered"
STATUS_CANCELLED = "cancelled"
ORDER_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_PREPARING, STATUS_DELIVERED, STATUS_CANCELLED)

PAYMENT_PENDING = "pending"
PAYMENT_PAID = "paid"
PAYMENT_FAILED = "failed"
PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_PAID, PAYMENT_FAILED)
TERMINAL_PAYMENT_STATUSES = (PAYMENT_PAID, PAYMENT_FAILED)


class OrderLineItem(BaseModel):
    id: Optional[str] = None
    order_id: str
    child_id: str
    child_name: str = ""
    child_class: str = ""
    menu_item_id: str
    menu_item_name: str = ""
    quantity: int
    unit_price: int
    total_price: int
    delivery_date: str
    order_date: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "OrderLineItem":
        return cls(
            id=str(row.get("id")) if row.get("id") is not None else None,
            order_id=str(row.get("order_id") or ""),
            child_id=str(row.get("child_id") or ""),
            child_name=row.get("child_name") or "",
            child_class=row.get("child_class") or "",
            menu_item_id=str(row.get("menu_item_id") or ""),
            menu_item_name=row.get("menu_item_name") or "",
            quantity=int(row.get("quantity") or 0),
            unit_price=int(row.get("unit_price") or 0),
            total_price=int(row.get("total_price") or 0),
            delivery_date=str(row.get("delivery_date") or ""),
            order_date=str(row.get("order_date") or ""),
        )


class Order(BaseModel):
    id: str
    order_number: str
    gateway_order_id: str
    user_id: str
    total_amount: int
    status: str = STATUS_PENDING
    payment_status: str = PAYMENT_PENDING
    session_token: Optional[str] = None
    child_name: str = ""
    child_class: str = ""
    notes: str = ""
    created_at: Optional[str] = None
    line_items: List[OrderLineItem] = Field(default_factory=list)

    @classmethod
    def from_row(cls, row: Dict[str, Any], line_rows: Optional[List[Dict[str, Any]]] = None) -> "Order":
        return cls(
            id=str(row.get("id")),
            order_number=row.get("order_number") or "",
            gateway_order_id=row.get("gateway_order_id") or row.get("order_number") or "",
            user_id=str(row.get("user_id") or ""),
            total_amount=int(row.get("total_amount") or 0),
            status=row.get("status") or STATUS_PENDING,
            payment_status=row.get("payment_status") or PAYMENT_PENDING,
            session_token=row.get("session_token") or None,
            child_name=row.get("child_name") or "",
            child_class=row.get("child_class") or "",
            notes=row.get("notes") or "",
            created_at=str(row["created_at"]) if row.get("created_at") else None,
            line_items=[OrderLineItem.from_row(r) for r in (line_rows or [])],
        )

    @property
    def is_payable(self) -> bool:
        return self.payment_status == PAYMENT_PENDING and self.status != STATUS_CANCELLED

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()
