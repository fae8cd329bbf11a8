"""Couche service des commandes (hors construction).
Rôles:
- Historique du tuteur (filtre par statut d'exécution) et détail groupé par enfant.
- Sélection des commandes encore payables (payment_status=pending, non annulées).
- Nettoyage des commandes orphelines (en-tête sans lignes) et repérage des commandes sans session.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
import logging

from catering.config import ORPHAN_ORDER_GRACE_MINUTES
from catering.errors import NotFoundError, ValidationError
from . import repository
from .models import ORDER_STATUSES, Order, STATUS_CANCELLED

logger = logging.getLogger(__name__)

def load_order(order_id: str) -> Order:
    row = repository.get_order(order_id)
    if not row:
        raise NotFoundError("Commande introuvable")
    return Order.from_row(row, repository.fetch_line_items(str(row["id"])))

def load_order_by_number(order_number: str) -> Order:
    row = repository.get_order_by_number(order_number)
    if not row:
        raise NotFoundError("Commande introuvable")
    return Order.from_row(row, repository.fetch_line_items(str(row["id"])))

def get_owned_order(guardian_id: str, order_id: str) -> Order:
    """Commande du tuteur courant; NotFoundError si absente ou appartenant à un autre tuteur."""
    order = load_order(order_id)
    if order.user_id != str(guardian_id):
        raise NotFoundError("Commande introuvable")
    return order

def _attach_lines(rows: List[Dict[str, Any]]) -> List[Order]:
    by_order: Dict[str, List[Dict[str, Any]]] = {}
    for line in repository.fetch_line_items_for_orders(str(r["id"]) for r in rows):
        by_order.setdefault(str(line.get("order_id")), []).append(line)
    return [Order.from_row(r, by_order.get(str(r["id"]), [])) for r in rows]

def list_orders(guardian_id: str, status: Optional[str] = None) -> List[Order]:
    """
    Historique des commandes du tuteur, les plus récentes d'abord.
    - status: pending | confirmed | preparing | delivered | cancelled (None = tous)
    """
    if status and status not in ORDER_STATUSES:
        raise ValidationError(f"Statut inconnu: {status}")
    return _attach_lines(repository.list_user_orders(guardian_id, status=status))

def list_payable_orders(guardian_id: str) -> List[Order]:
    return [o for o in list_orders(guardian_id) if o.is_payable]

def group_lines_by_child(order: Order) -> List[Dict[str, Any]]:
    groups: Dict[str, Dict[str, Any]] = {}
    for line in order.line_items:
        key = f"{line.child_name}_{line.child_class}"
        group = groups.setdefault(key, {
            "child_id": line.child_id,
            "child_name": line.child_name,
            "child_class": line.child_class,
            "items": [],
            "subtotal": 0,
        })
        group["items"].append(line.model_dump())
        group["subtotal"] += line.total_price
    return list(groups.values())

def get_order_detail(guardian_id: str, order_id: str) -> Dict[str, Any]:
    order = get_owned_order(guardian_id, order_id)
    detail = order.to_dict()
    detail["children"] = group_lines_by_child(order)
    return detail

def find_orders_without_session(guardian_id: str) -> List[Order]:
    """Commandes créées dont la session de paiement n'a jamais été enregistrée."""
    return [Order.from_row(r) for r in repository.list_orders_without_session(guardian_id)]

def void_orphan_orders(older_than_minutes: int = ORPHAN_ORDER_GRACE_MINUTES) -> List[str]:
    """
    Annule les en-têtes pending/pending sans aucune ligne, plus anciens que le délai de grâce.
    Retourne les order_number annulés.
    """
    cutoff = (datetime.now(timezone.utc) - timedelta(minutes=older_than_minutes)).isoformat()
    candidates = repository.list_pending_orders_before(cutoff)
    if not candidates:
        return []
    with_lines = {str(line.get("order_id")) for line in repository.fetch_line_items_for_orders(str(r["id"]) for r in candidates)}
    voided: List[str] = []
    for row in candidates:
        if str(row["id"]) in with_lines:
            continue
        repository.update_order(str(row["id"]), {"status": STATUS_CANCELLED})
        voided.append(row.get("order_number") or str(row["id"]))
        logger.info("orders.void_orphan_orders voided order_number=%s", row.get("order_number"))
    return voided
