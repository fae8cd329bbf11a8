"""
Cas d'usage du checkout (orchestration panier/lot -> commande -> session -> widget).
Rôles:
- checkout_cart / checkout_batch: construit la commande puis ouvre la session de paiement.
- retry_payment: relance le paiement d'une commande encore payable (reprise de session).
- handle_callback / handle_gateway_event: délègue au réconciliateur.
Chaque cas d'usage retourne un CheckoutResult; une passerelle indisponible produit une
invite de relance, la commande reste en place et le panier n'est pas touché.
"""
from typing import Any, Dict, Optional
import logging

from catering.cart import registry
from catering.cart.registry import SOURCE_BATCH, SOURCE_CART, CheckoutState
from catering.config import BATCH_NUMBER_PREFIX, ORDER_NUMBER_PREFIX
from catering.errors import EmptyCartError, GatewayError, NotFoundError, TokenPersistError, ValidationError
from catering.orders import builder
from catering.orders import service as orders_service
from catering.orders.models import Order
from . import notifications
from . import reconciler
from . import session
from . import widget

logger = logging.getLogger(__name__)


class CheckoutResult:
    def __init__(
        self,
        order: Optional[Order],
        launch: Optional[Dict[str, Any]] = None,
        notification: Optional[Dict[str, Any]] = None,
        retry_allowed: bool = False,
        reconciliation: Optional[reconciler.ReconciliationResult] = None,
    ):
        self.order = order
        self.launch = launch
        self.notification = notification
        self.retry_allowed = retry_allowed
        self.reconciliation = reconciliation

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "order": self.order.to_dict() if self.order else None,
            "launch": self.launch,
            "notification": self.notification,
            "retry_allowed": self.retry_allowed,
        }
        if self.reconciliation is not None:
            data["reconciliation"] = self.reconciliation.to_dict()
        return data


def customer_from_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """Client passerelle {name, email, phone} à partir de l'utilisateur authentifié."""
    metadata = user.get("metadata") or user.get("user_metadata") or {}
    email = user.get("email") or ""
    name = metadata.get("full_name") or metadata.get("name") or (email.split("@")[0] if email else "")
    return {"name": name, "email": email, "phone": metadata.get("phone") or ""}


def _guardian_id(guardian: Dict[str, Any]) -> str:
    guardian_id = str(guardian.get("id") or "")
    if not guardian_id:
        raise ValidationError("Utilisateur non identifié")
    return guardian_id


def _await_session(state: Optional[CheckoutState], order: Order, source: Optional[str]) -> None:
    if state is not None and source:
        state.awaiting_session[order.order_number] = source


def _launch(state: Optional[CheckoutState], order: Order, customer: Dict[str, Any], source: Optional[str]) -> CheckoutResult:
    """
    Ouvre la session puis le widget.
    - La source (cart|batch) ne devient vidable qu'une fois la session ouverte et son jeton enregistré
    - Échec passerelle ou enregistrement du jeton: invite de relance, la source reste en attente de session
    - Widget indisponible: le jeton reste enregistré, la relance réutilise la même session
    """
    try:
        token = session.open_session(order, customer)
    except TokenPersistError as e:
        logger.error("payments.service token not persisted order=%s", order.order_number)
        _await_session(state, order, source)
        return CheckoutResult(order, None, notifications.retry_prompt(e.message), retry_allowed=True)
    except GatewayError as e:
        logger.warning("payments.service gateway unavailable order=%s: %s", order.order_number, e.message)
        _await_session(state, order, source)
        return CheckoutResult(order, None, notifications.retry_prompt(e.message), retry_allowed=True)
    if state is not None and source:
        state.session_opened(order.order_number, source)

    try:
        url = session.checkout_url(token)
    except GatewayError:
        url = None
    try:
        launch = widget.open_widget(token, url)
    except GatewayError as e:
        logger.warning("payments.service widget unavailable order=%s", order.order_number)
        return CheckoutResult(order, None, notifications.retry_prompt(e.message), retry_allowed=True)
    return CheckoutResult(order, launch)


def checkout_cart(
    guardian: Dict[str, Any],
    customer: Optional[Dict[str, Any]] = None,
    notes: str = "",
    order_number: Optional[str] = None,
) -> CheckoutResult:
    """Checkout immédiat du panier courant (une commande, préfixe ORDER)."""
    guardian_id = _guardian_id(guardian)
    state = registry.get_state(guardian_id)
    lines = state.cart.lines()
    if not lines:
        raise EmptyCartError()
    order = builder.build_order(lines, guardian_id, notes=notes, order_number=order_number, prefix=ORDER_NUMBER_PREFIX)
    logger.info("payments.service checkout_cart order=%s total=%s", order.order_number, order.total_amount)
    return _launch(state, order, customer or customer_from_user(guardian), SOURCE_CART)


def checkout_batch(
    guardian: Dict[str, Any],
    customer: Optional[Dict[str, Any]] = None,
    order_number: Optional[str] = None,
) -> CheckoutResult:
    """Checkout du lot: toutes les entrées aplaties en une seule commande (préfixe BATCH)."""
    guardian_id = _guardian_id(guardian)
    state = registry.get_state(guardian_id)
    if state.batch.is_empty():
        raise EmptyCartError("Le lot est vide")
    lines = state.batch.flatten()
    order = builder.build_order(
        lines,
        guardian_id,
        notes=state.batch.notes(),
        order_number=order_number,
        prefix=BATCH_NUMBER_PREFIX,
    )
    logger.info(
        "payments.service checkout_batch order=%s entries=%s total=%s",
        order.order_number, len(state.batch.entries()), order.total_amount,
    )
    return _launch(state, order, customer or customer_from_user(guardian), SOURCE_BATCH)


def retry_payment(guardian: Dict[str, Any], order_id: str, customer: Optional[Dict[str, Any]] = None) -> CheckoutResult:
    """Relance le paiement d'une commande pending/pending du tuteur (session existante réutilisée)."""
    guardian_id = _guardian_id(guardian)
    order = orders_service.get_owned_order(guardian_id, order_id)
    if not order.is_payable:
        return CheckoutResult(order, None, notifications.already_settled(order.payment_status))
    state = registry.find_state(guardian_id)
    source = state.source_for(order.order_number) if state else None
    return _launch(state, order, customer or customer_from_user(guardian), source)


def handle_callback(guardian: Dict[str, Any], order_number: str, status: Any) -> CheckoutResult:
    """Callback du widget (success|pending|error|closed) pour une commande du tuteur."""
    guardian_id = _guardian_id(guardian)
    order = orders_service.load_order_by_number(order_number)
    if order.user_id != guardian_id:
        raise NotFoundError("Commande introuvable")
    result = reconciler.handle_client_callback(order, status)
    retry_allowed = result.order.is_payable and result.event in (reconciler.EVENT_ERROR, reconciler.EVENT_CLOSED)
    return CheckoutResult(result.order, None, result.notification, retry_allowed, reconciliation=result)


def handle_gateway_event(event: Dict[str, Any]) -> Optional[CheckoutResult]:
    """Webhook Stripe vérifié; None si l'événement est ignoré."""
    result = reconciler.handle_gateway_event(event)
    if result is None:
        return None
    return CheckoutResult(result.order, None, result.notification, reconciliation=result)
