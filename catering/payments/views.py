import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from catering.utils.rate_limit import optional_rate_limit
from catering.utils.security import require_user
from . import service as payments_service
from . import stripe_client

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["Payments API"])


class CheckoutRequest(BaseModel):
    notes: str = ""
    order_number: Optional[str] = None
    customer: Optional[Dict[str, Any]] = None


class BatchCheckoutRequest(BaseModel):
    order_number: Optional[str] = None
    customer: Optional[Dict[str, Any]] = None


class CallbackRequest(BaseModel):
    order_number: str = Field(min_length=1)
    status: str


# module catering.payments.views
@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def checkout(payload: Optional[CheckoutRequest] = None, user: Dict[str, Any] = Depends(require_user)):
    """
    Checkout immédiat du panier.
    - Entrée JSON (optionnelle): {notes, order_number, customer}
    - order_number: fourni par le client pour rendre la requête rejouable (même commande)
    - Retour: CheckoutResult {order, launch, notification, retry_allowed}
      launch=None et retry_allowed=True si la passerelle est indisponible (panier conservé)
    """
    payload = payload or CheckoutRequest()
    result = payments_service.checkout_cart(
        user, customer=payload.customer, notes=payload.notes, order_number=payload.order_number
    )
    return result.to_dict()

@router.post("/checkout/batch", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def checkout_batch(payload: Optional[BatchCheckoutRequest] = None, user: Dict[str, Any] = Depends(require_user)):
    """Checkout du lot: une seule commande pour toutes les entrées (plusieurs enfants)."""
    payload = payload or BatchCheckoutRequest()
    result = payments_service.checkout_batch(user, customer=payload.customer, order_number=payload.order_number)
    return result.to_dict()

@router.post("/payments/callback")
def payment_callback(payload: CallbackRequest, user: Dict[str, Any] = Depends(require_user)):
    """
    Résultat remonté par le widget: success | pending | error | closed.
    - success est vérifié auprès de Stripe avant de passer la commande à 'paid'
    - Statut inconnu: commande laissée 'pending', réponse marquée ambiguë
    """
    result = payments_service.handle_callback(user, payload.order_number, payload.status)
    return result.to_dict()

@router.post("/payments/webhook", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe (Checkout).
    - Signature: valide via stripe_client.parse_event (Stripe-Signature + STRIPE_WEBHOOK_SECRET)
    - Réponses: {"status": "ok", ...} ou {"status": "ignored"}
    - Erreurs: 400 si signature/payload invalide
    """
    try:
        event = await stripe_client.parse_event(request)
    except Exception:
        logger.exception("Erreur webhook_stripe")
        raise HTTPException(status_code=400, detail="Invalid Stripe webhook payload")
    result = payments_service.handle_gateway_event(event)
    if result is None:
        return JSONResponse({"status": "ignored"})
    logger.info(
        "payments.webhook type=%s order=%s payment_status=%s",
        (event or {}).get("type"), result.order.order_number, result.order.payment_status,
    )
    return JSONResponse({"status": "ok", "reconciliation": result.reconciliation.to_dict()})
