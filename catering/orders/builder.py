"""
Construction d'une commande persistée (en-tête + lignes) à partir d'un panier ou d'un lot aplati.
Étapes:
- Rejette un panier vide (EmptyCartError) et calcule total_amount = Σ(prix unitaire × quantité).
- Génère un order_number (préfixe + horodatage ms + suffixe aléatoire base36).
- Clé dupliquée à l'insertion: même tuteur => même checkout logique, on reprend la commande existante;
  sinon collision réelle => nouveau numéro (tentatives bornées).
- Insère l'en-tête puis les lignes (pas de transaction inter-tables): si les lignes échouent,
  l'en-tête est annulé (status=cancelled); à défaut il reste détectable par void_orphan_orders.
Aucun appel à la passerelle de paiement ici.
"""
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import logging
import secrets
import time

from catering.cart.store import CartLine
from catering.config import ORDER_NUMBER_ATTEMPTS, ORDER_NUMBER_PREFIX
from catering.errors import DuplicateKeyError, EmptyCartError, PersistenceError, ValidationError
from . import repository
from .models import Order, PAYMENT_PENDING, STATUS_CANCELLED, STATUS_PENDING

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

def generate_order_number(prefix: str = ORDER_NUMBER_PREFIX) -> str:
    """Unicité indicative seulement: les collisions sont détectées à l'insertion."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"

def compute_total(items: Iterable[CartLine]) -> int:
    return sum(line.unit_price * line.quantity for line in items)

def summarize_children(items: Sequence[CartLine]) -> Tuple[str, str]:
    """Libellés d'affichage de l'en-tête (aucune logique métier n'en dépend)."""
    child_ids = {line.child_id for line in items}
    if len(child_ids) == 1:
        first = items[0]
        return first.child_name, first.child_class
    return f"{len(child_ids)} enfants", "Plusieurs classes"

def _line_rows(order_id: str, items: Sequence[CartLine]) -> List[Dict[str, Any]]:
    today = date.today().isoformat()
    return [
        {
            "order_id": order_id,
            "child_id": line.child_id,
            "child_name": line.child_name,
            "child_class": line.child_class,
            "menu_item_id": line.menu_item_id,
            "menu_item_name": line.menu_item_name,
            "quantity": line.quantity,
            "unit_price": line.unit_price,
            "total_price": line.unit_price * line.quantity,
            "delivery_date": line.delivery_date,
            "order_date": today,
        }
        for line in items
    ]

def _persist_lines(order_row: Dict[str, Any], items: Sequence[CartLine]) -> List[Dict[str, Any]]:
    order_id = str(order_row["id"])
    try:
        return repository.insert_line_items(_line_rows(order_id, items))
    except PersistenceError:
        logger.exception("orders.builder line items failed order_number=%s, voiding header", order_row.get("order_number"))
        try:
            repository.update_order(order_id, {"status": STATUS_CANCELLED})
        except PersistenceError:
            logger.exception("orders.builder void failed order_id=%s, left for orphan cleanup", order_id)
        raise PersistenceError("Impossible d'enregistrer le détail de la commande")

def _resume_existing(existing: Dict[str, Any], items: Sequence[CartLine]) -> Order:
    """Même checkout rejoué: complète les lignes manquantes puis renvoie la commande existante."""
    line_rows = repository.fetch_line_items(str(existing["id"]))
    if not line_rows:
        line_rows = _persist_lines(existing, items)
    elif int(existing.get("total_amount") or 0) != compute_total(items):
        logger.warning(
            "orders.builder replayed order_number=%s with a different cart, keeping the stored one",
            existing.get("order_number"),
        )
    return Order.from_row(existing, line_rows)

def build_order(
    items: Iterable[CartLine],
    guardian_id: str,
    notes: str = "",
    order_number: Optional[str] = None,
    prefix: str = ORDER_NUMBER_PREFIX,
) -> Order:
    lines = list(items or [])
    if not lines:
        raise EmptyCartError()
    if not guardian_id:
        raise ValidationError("Veuillez vous connecter")

    total = compute_total(lines)
    child_name, child_class = summarize_children(lines)
    number = (order_number or "").strip() or generate_order_number(prefix)

    for attempt in range(1, max(ORDER_NUMBER_ATTEMPTS, 1) + 1):
        header = {
            "order_number": number,
            "gateway_order_id": number,
            "user_id": guardian_id,
            "total_amount": total,
            "status": STATUS_PENDING,
            "payment_status": PAYMENT_PENDING,
            "session_token": None,
            "child_name": child_name,
            "child_class": child_class,
            "notes": notes or "",
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            row = repository.insert_order(header)
        except DuplicateKeyError:
            existing = repository.get_order_by_number(number)
            if (
                existing
                and str(existing.get("user_id")) == str(guardian_id)
                and existing.get("status") != STATUS_CANCELLED
            ):
                logger.info("orders.builder duplicate order_number=%s resolved to existing order", number)
                return _resume_existing(existing, lines)
            logger.warning("orders.builder order_number collision %s (attempt %s)", number, attempt)
            number = generate_order_number(prefix)
            continue

        line_rows = _persist_lines(row, lines)
        logger.info("orders.builder created order_number=%s total=%s lines=%s", number, total, len(line_rows))
        return Order.from_row(row, line_rows)

    raise PersistenceError("Impossible de générer un numéro de commande unique")
