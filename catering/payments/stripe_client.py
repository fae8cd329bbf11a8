"""
Adaptateur Stripe: centralise les appels et la configuration Stripe (passerelle de paiement).
- create_session: ouvre une session Checkout pour une commande (clé d'idempotence fournie par l'appelant)
- get_session: relit une session pour vérifier payment_status
- parse_event: valide la signature d'un webhook
Toute erreur SDK (réseau, timeout, API) est traduite en GatewayUnavailableError.
"""
import logging
from typing import Any, Dict, List, Optional

import stripe
from fastapi import Request

from catering.config import (
    CURRENCY,
    GATEWAY_TIMEOUT_SECONDS,
    STRIPE_SECRET_KEY,
    STRIPE_WEBHOOK_SECRET,
)
from catering.errors import GatewayUnavailableError

logger = logging.getLogger(__name__)

# module catering.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY
    - Borne la durée des appels (GATEWAY_TIMEOUT_SECONDS), sans rejeu automatique
    """
    if not STRIPE_SECRET_KEY:
        raise GatewayUnavailableError("Paiement non configuré (STRIPE_SECRET_KEY manquant)")
    stripe.api_key = STRIPE_SECRET_KEY
    stripe.max_network_retries = 0
    if not isinstance(stripe.default_http_client, stripe.RequestsClient):
        stripe.default_http_client = stripe.RequestsClient(timeout=GATEWAY_TIMEOUT_SECONDS)
    return stripe

def to_line_items(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Construit les line_items Stripe à partir du détail des articles.
    - items: [{"id", "name", "price", "quantity"}], price en unité de la devise
    - unit_amount en centièmes (devise à deux décimales pour Stripe)
    """
    return [
        {
            "quantity": int(item["quantity"]),
            "price_data": {
                "currency": CURRENCY,
                "unit_amount": int(round(float(item["price"]) * 100)),
                "product_data": {"name": item.get("name") or "Article"},
            },
        }
        for item in items
    ]

def create_session(
    *,
    gateway_order_id: str,
    amount: int,
    customer: Dict[str, Any],
    items: List[Dict[str, Any]],
    success_url: str,
    cancel_url: str,
    idempotency_key: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout pour une commande.
    - gateway_order_id: référence commande (client_reference_id + metadata.order_number)
    - customer: {name, email, phone}
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    metadata = {
        "order_number": gateway_order_id,
        "amount": str(amount),
        "customer_name": str(customer.get("name") or ""),
        "customer_phone": str(customer.get("phone") or ""),
    }
    params: Dict[str, Any] = {
        "mode": "payment",
        "line_items": to_line_items(items),
        "client_reference_id": gateway_order_id,
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": metadata,
    }
    if customer.get("email"):
        params["customer_email"] = customer["email"]
    if idempotency_key:
        params["idempotency_key"] = idempotency_key
    try:
        session = stripe.checkout.Session.create(**params)
    except stripe.StripeError as e:
        logger.exception("payments.stripe_client.create_session failed order=%s", gateway_order_id)
        raise GatewayUnavailableError() from e
    return dict(session)

def get_session(session_id: str) -> Dict[str, Any]:
    """
    Récupère une session Stripe Checkout par son identifiant.
    Retour: dict session incluant "id", "payment_status", "status", "url", "metadata".
    """
    require_stripe()
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.StripeError as e:
        logger.exception("payments.stripe_client.get_session failed session_id=%s", session_id)
        raise GatewayUnavailableError() from e
    return dict(session)

async def parse_event(request: Request) -> Dict[str, Any]:
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête Stripe-Signature
    - Valide la signature via Webhook.construct_event (STRIPE_WEBHOOK_SECRET)
    Lève ValueError / stripe.SignatureVerificationError si invalide.
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature") or request.headers.get("Stripe-Signature")
    event = stripe.Webhook.construct_event(payload, sig_header, STRIPE_WEBHOOK_SECRET or "")
    return event
