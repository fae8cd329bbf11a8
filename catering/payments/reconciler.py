"""
Réconciliation des issues de paiement (callbacks du widget et webhooks Stripe).

Table de transition (payment_status):
    pending + success -> paid     : vide le panier/lot du checkout, notifie
    pending + pending -> pending  : vide le panier/lot du checkout, notifie (information)
    pending + error   -> pending  : notifie, conserve panier/lot pour réessayer
    pending + closed  -> pending  : notifie, conserve, pas de relance automatique
    pending + failed  -> failed   : (hors bande, webhook) notifie, conserve
paid et failed sont terminaux: tout événement ultérieur est ignoré (journalisé).
Une commande sans session ouverte ne vide jamais le panier ni le lot.

Un 'success' venant du client est vérifié auprès de Stripe (payment_status == 'paid');
non confirmé, il est traité comme 'pending'. Un statut inconnu ne modifie rien.
"""
from typing import Any, Callable, Dict, NamedTuple, Optional, Tuple
import logging

from catering.cart import registry
from catering.errors import GatewayError, NotFoundError, ReconciliationAmbiguity
from catering.orders import repository as orders_repository
from catering.orders import service as orders_service
from catering.orders.models import (
    Order,
    PAYMENT_FAILED,
    PAYMENT_PAID,
    PAYMENT_PENDING,
    TERMINAL_PAYMENT_STATUSES,
)
from . import notifications
from . import session as payment_session
from . import stripe_client

logger = logging.getLogger(__name__)

EVENT_SUCCESS = "success"
EVENT_PENDING = "pending"
EVENT_ERROR = "error"
EVENT_CLOSED = "closed"
EVENT_FAILED = "failed"
CLIENT_EVENTS = (EVENT_SUCCESS, EVENT_PENDING, EVENT_ERROR, EVENT_CLOSED)

_ALIASES = {
    "success": EVENT_SUCCESS,
    "paid": EVENT_SUCCESS,
    "pending": EVENT_PENDING,
    "error": EVENT_ERROR,
    "close": EVENT_CLOSED,
    "closed": EVENT_CLOSED,
    "failed": EVENT_FAILED,
    "expired": EVENT_FAILED,
}


class Transition(NamedTuple):
    next_status: str
    clear: bool
    notify: Callable[[Order], Dict[str, Any]]


def _children_count(order: Order) -> int:
    return len({line.child_id for line in order.line_items}) or 1


TRANSITIONS: Dict[Tuple[str, str], Transition] = {
    (PAYMENT_PENDING, EVENT_SUCCESS): Transition(PAYMENT_PAID, True, lambda o: notifications.payment_success(_children_count(o))),
    (PAYMENT_PENDING, EVENT_PENDING): Transition(PAYMENT_PENDING, True, lambda o: notifications.payment_pending()),
    (PAYMENT_PENDING, EVENT_ERROR): Transition(PAYMENT_PENDING, False, lambda o: notifications.payment_error()),
    (PAYMENT_PENDING, EVENT_CLOSED): Transition(PAYMENT_PENDING, False, lambda o: notifications.payment_closed()),
    (PAYMENT_PENDING, EVENT_FAILED): Transition(PAYMENT_FAILED, False, lambda o: notifications.payment_failed()),
}


class ReconciliationResult:
    def __init__(
        self,
        order: Order,
        event: Optional[str],
        previous_status: str,
        cleared: bool,
        notification: Dict[str, Any],
        ambiguous: bool = False,
    ):
        self.order = order
        self.event = event
        self.previous_status = previous_status
        self.cleared = cleared
        self.notification = notification
        self.ambiguous = ambiguous

    @property
    def changed(self) -> bool:
        return self.previous_status != self.order.payment_status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_number": self.order.order_number,
            "event": self.event,
            "payment_status": self.order.payment_status,
            "previous_status": self.previous_status,
            "cleared": self.cleared,
            "ambiguous": self.ambiguous,
            "notification": self.notification,
        }


def parse_status(raw: Any) -> str:
    """Normalise un statut reçu; ReconciliationAmbiguity s'il n'est pas reconnu."""
    event = _ALIASES.get(str(raw or "").strip().lower())
    if event is None:
        raise ReconciliationAmbiguity(str(raw))
    return event


def _clear_checkout(order: Order) -> bool:
    """Vide la source (panier ou lot) du checkout qui a produit cette commande, si elle est connue."""
    if not order.session_token:
        logger.info("payments.reconciler no session for order=%s, nothing cleared", order.order_number)
        return False
    state = registry.find_state(order.user_id)
    if state is None:
        return False
    source = state.open_checkouts.pop(order.order_number, None)
    if source is None:
        return False
    state.clear_source(source)
    logger.info("payments.reconciler cleared %s for order=%s", source, order.order_number)
    return True


def _release_checkout(order: Order) -> None:
    """Commande réglée: plus rien à vider ni à relancer pour elle."""
    state = registry.find_state(order.user_id)
    if state is not None:
        state.forget(order.order_number)
    if order.session_token:
        payment_session.forget_checkout_url(order.session_token)


def apply_event(order: Order, event: str) -> ReconciliationResult:
    """Applique une fois la table de transition pour un événement déjà normalisé."""
    previous = order.payment_status
    if previous in TERMINAL_PAYMENT_STATUSES:
        logger.info("payments.reconciler ignored event=%s on settled order=%s (%s)", event, order.order_number, previous)
        return ReconciliationResult(order, event, previous, False, notifications.already_settled(previous))

    transition = TRANSITIONS.get((previous, event))
    if transition is None:
        logger.warning("payments.reconciler no transition for (%s, %s) order=%s", previous, event, order.order_number)
        return ReconciliationResult(order, event, previous, False, notifications.payment_unknown(), ambiguous=True)

    if transition.next_status != previous:
        orders_repository.update_order(order.id, {"payment_status": transition.next_status})
        order.payment_status = transition.next_status
        logger.info("payments.reconciler order=%s %s -> %s", order.order_number, previous, transition.next_status)

    cleared = _clear_checkout(order) if transition.clear else False
    if transition.next_status in TERMINAL_PAYMENT_STATUSES:
        _release_checkout(order)
    return ReconciliationResult(order, event, previous, cleared, transition.notify(order))


def _ambiguous(order: Order, raw: Any) -> ReconciliationResult:
    logger.warning("payments.reconciler unknown status %r for order=%s, left %s", raw, order.order_number, order.payment_status)
    return ReconciliationResult(order, None, order.payment_status, False, notifications.payment_unknown(), ambiguous=True)


def verify_success(order: Order) -> bool:
    """Confirme auprès de Stripe qu'une session est réellement payée."""
    if not order.session_token:
        return False
    try:
        session = stripe_client.get_session(order.session_token)
    except GatewayError:
        logger.warning("payments.reconciler could not verify success for order=%s", order.order_number)
        return False
    return (session or {}).get("payment_status") == "paid"


def handle_client_callback(order: Order, raw_status: Any) -> ReconciliationResult:
    """
    Callback du widget: success | pending | error | closed.
    - Statut inconnu (ou 'failed' côté client): commande inchangée, résultat marqué ambigu
    """
    try:
        event = parse_status(raw_status)
    except ReconciliationAmbiguity:
        return _ambiguous(order, raw_status)
    if event not in CLIENT_EVENTS:
        return _ambiguous(order, raw_status)
    if event == EVENT_SUCCESS and order.payment_status == PAYMENT_PENDING and not verify_success(order):
        logger.info("payments.reconciler unverified success downgraded to pending order=%s", order.order_number)
        event = EVENT_PENDING
    return apply_event(order, event)


def _event_from_stripe(event: Dict[str, Any]) -> Optional[Tuple[Dict[str, Any], str]]:
    event_type = (event or {}).get("type") or ""
    session = ((event or {}).get("data") or {}).get("object") or {}
    if event_type == "checkout.session.completed":
        return session, EVENT_SUCCESS if session.get("payment_status") == "paid" else EVENT_PENDING
    if event_type == "checkout.session.async_payment_succeeded":
        return session, EVENT_SUCCESS
    if event_type in ("checkout.session.async_payment_failed", "checkout.session.expired"):
        return session, EVENT_FAILED
    return None


def handle_gateway_event(event: Dict[str, Any]) -> Optional[ReconciliationResult]:
    """
    Webhook Stripe (signature déjà vérifiée): retrouve la commande via metadata.order_number
    ou client_reference_id et applique la table. None si l'événement ne concerne pas le paiement.
    """
    mapped = _event_from_stripe(event)
    if mapped is None:
        return None
    session, outcome = mapped
    order_number = (session.get("metadata") or {}).get("order_number") or session.get("client_reference_id")
    if not order_number:
        logger.warning("payments.reconciler webhook without order reference type=%s", event.get("type"))
        return None
    try:
        order = orders_service.load_order_by_number(order_number)
    except NotFoundError:
        logger.warning("payments.reconciler webhook for unknown order=%s", order_number)
        return None
    return apply_event(order, outcome)
