"""
Gestion des sessions de paiement d'une commande.
Règles:
- Une commande qui a déjà un session_token le réutilise: jamais de seconde session passerelle.
- La session Stripe est créée avec une clé d'idempotence dérivée de gateway_order_id.
- Le jeton est enregistré sur la commande AVANT d'être exposé au widget.
- Échec d'enregistrement après émission: TokenPersistError; le jeton est gardé en mémoire
  et la reprise réenregistre ce jeton sans rappeler la passerelle.
"""
from typing import Any, Dict, List, Optional
import logging

from catering.catalog import service as catalog
from catering.config import BASE_URL, CHECKOUT_CANCEL_PATH, CHECKOUT_SUCCESS_PATH, TOKEN_PERSIST_ATTEMPTS
from catering.errors import GatewayUnavailableError, PersistenceError, TokenPersistError, ValidationError
from catering.orders import repository as orders_repository
from catering.orders.models import Order
from . import stripe_client

logger = logging.getLogger(__name__)

# Jetons émis mais pas encore enregistrés {order_id: token}
_unpersisted_tokens: Dict[str, str] = {}
# URLs Checkout connues {token: url}
_checkout_urls: Dict[str, str] = {}

def build_item_details(order: Order) -> List[Dict[str, Any]]:
    """
    Détail des articles parallèle aux lignes de la commande (une entrée par ligne).
    Libellé: "<article> - <enfant>" pour les reçus de la passerelle.
    """
    missing = [line.menu_item_id for line in order.line_items if not line.menu_item_name]
    names = catalog.get_menu_items_map(missing) if missing else {}
    details = []
    for line in order.line_items:
        item_name = line.menu_item_name or catalog.menu_item_name(names, line.menu_item_id)
        child_name = line.child_name or catalog.PLACEHOLDER_CHILD_NAME
        details.append({
            "id": line.menu_item_id,
            "price": line.unit_price,
            "quantity": line.quantity,
            "name": f"{item_name} - {child_name}",
        })
    return details

def idempotency_key_for(order: Order) -> str:
    return f"checkout-{order.gateway_order_id}"

def persist_token(order: Order, token: str) -> str:
    """Enregistre le jeton sur la commande (tentatives bornées); rejouable sans nouvelle session."""
    last_error: Optional[Exception] = None
    for attempt in range(1, max(TOKEN_PERSIST_ATTEMPTS, 1) + 1):
        try:
            orders_repository.update_order(order.id, {"session_token": token})
            _unpersisted_tokens.pop(order.id, None)
            order.session_token = token
            return token
        except PersistenceError as e:
            last_error = e
            logger.warning("payments.session persist_token attempt=%s failed order=%s", attempt, order.order_number)
    _unpersisted_tokens[order.id] = token
    logger.error("payments.session token not persisted order=%s: %s", order.order_number, last_error)
    raise TokenPersistError(token)

def _stored_token(order: Order) -> Optional[str]:
    if order.session_token:
        return order.session_token
    row = orders_repository.get_order(order.id)
    return (row or {}).get("session_token") or None

def open_session(order: Order, customer: Dict[str, Any]) -> str:
    """
    Ouvre (ou reprend) la session de paiement d'une commande et retourne son jeton.
    - customer: {name, email, phone}
    - GatewayUnavailableError: passerelle en erreur / timeout (commande laissée sans jeton)
    - TokenPersistError: jeton émis mais non enregistré
    """
    if not order.is_payable:
        raise ValidationError("Cette commande n'est plus payable")

    existing = _stored_token(order)
    if existing:
        order.session_token = existing
        logger.info("payments.session reusing session order=%s", order.order_number)
        return existing

    pending_token = _unpersisted_tokens.get(order.id)
    if pending_token:
        return persist_token(order, pending_token)

    success_url = f"{BASE_URL}{CHECKOUT_SUCCESS_PATH}"
    sep = "&" if "?" in success_url else "?"
    session = stripe_client.create_session(
        gateway_order_id=order.gateway_order_id,
        amount=order.total_amount,
        customer=customer,
        items=build_item_details(order),
        success_url=f"{success_url}{sep}order={order.order_number}",
        cancel_url=f"{BASE_URL}{CHECKOUT_CANCEL_PATH}",
        idempotency_key=idempotency_key_for(order),
    )
    token = session.get("id")
    if not token:
        raise GatewayUnavailableError("Session de paiement invalide")
    if session.get("url"):
        _checkout_urls[token] = session["url"]
    logger.info("payments.session opened order=%s amount=%s", order.order_number, order.total_amount)
    return persist_token(order, token)

def resume_session(order: Order, customer: Dict[str, Any]) -> str:
    """Reprise après crash / échec: même règles qu'open_session (vérifie d'abord le jeton existant)."""
    return open_session(order, customer)

def checkout_url(token: str) -> Optional[str]:
    """URL Checkout du jeton (cache local, sinon relue auprès de la passerelle)."""
    if token in _checkout_urls:
        return _checkout_urls[token]
    url = stripe_client.get_session(token).get("url")
    if url:
        _checkout_urls[token] = url
    return url

def forget_checkout_url(token: str) -> None:
    _checkout_urls.pop(token, None)
