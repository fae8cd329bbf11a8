"""
Accès aux données 'orders' / 'order_line_items' via le contrat Store.
Les erreurs de stockage remontent typées (DuplicateKeyError, NotFoundError, PersistenceError):
le service décide de la récupération.
"""
from typing import Any, Dict, Iterable, List, Optional

from catering.infra import store
from .models import (
    LINE_ITEMS_TABLE,
    ORDERS_TABLE,
    PAYMENT_PENDING,
    STATUS_PENDING,
)

def insert_order(record: Dict[str, Any]) -> Dict[str, Any]:
    return store.get_store().insert(ORDERS_TABLE, record)

def insert_line_items(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Insertion groupée (atomique pour la table)."""
    return store.get_store().insert_many(LINE_ITEMS_TABLE, rows)

def update_order(order_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
    return store.get_store().update(ORDERS_TABLE, order_id, patch)

def get_order(order_id: str) -> Optional[Dict[str, Any]]:
    rows = store.get_store().query(ORDERS_TABLE, {"id": order_id}, limit=1)
    return rows[0] if rows else None

def get_order_by_number(order_number: str) -> Optional[Dict[str, Any]]:
    rows = store.get_store().query(ORDERS_TABLE, {"order_number": order_number}, limit=1)
    return rows[0] if rows else None

def fetch_line_items(order_id: str) -> List[Dict[str, Any]]:
    return store.get_store().query(LINE_ITEMS_TABLE, {"order_id": order_id}, order_by="delivery_date")

def fetch_line_items_for_orders(order_ids: Iterable[str]) -> List[Dict[str, Any]]:
    ids = [str(i) for i in order_ids]
    if not ids:
        return []
    return store.get_store().query(LINE_ITEMS_TABLE, {"order_id": ("in", ids)})

def list_user_orders(user_id: str, status: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
    """
    Commandes du tuteur, les plus récentes d'abord; filtre optionnel sur le statut d'exécution.
    """
    if not user_id:
        return []
    filters: Dict[str, Any] = {"user_id": user_id}
    if status:
        filters["status"] = status
    return store.get_store().query(ORDERS_TABLE, filters, order_by="created_at", desc=True, limit=limit)

def list_pending_orders_before(created_before: str, limit: int = 200) -> List[Dict[str, Any]]:
    """En-têtes pending/pending créés avant created_before (ISO 8601)."""
    filters = {
        "status": STATUS_PENDING,
        "payment_status": PAYMENT_PENDING,
        "created_at": ("lt", created_before),
    }
    return store.get_store().query(ORDERS_TABLE, filters, order_by="created_at", limit=limit)

def list_orders_without_session(user_id: str) -> List[Dict[str, Any]]:
    filters = {
        "user_id": user_id,
        "status": STATUS_PENDING,
        "payment_status": PAYMENT_PENDING,
        "session_token": ("is", "null"),
    }
    return store.get_store().query(ORDERS_TABLE, filters, order_by="created_at", desc=True)
