"""
Endpoints commandes du tuteur: historique, détail groupé par enfant, relance de paiement.
Sécurité: require_user; une commande d'un autre tuteur répond 404.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from catering.payments import service as payments_service
from catering.utils.rate_limit import optional_rate_limit
from catering.utils.security import require_user
from . import service as orders_service

router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])

@router.get("")
def list_orders(status: Optional[str] = None, payable: bool = False, user: Dict[str, Any] = Depends(require_user)):
    """
    Historique, plus récentes d'abord.
    - status: pending | confirmed | preparing | delivered | cancelled
    - payable=true: seulement les commandes encore payables
    """
    if payable:
        orders = orders_service.list_payable_orders(user["id"])
    else:
        orders = orders_service.list_orders(user["id"], status=status)
    return {"orders": [o.to_dict() for o in orders]}

@router.get("/{order_id}")
def get_order(order_id: str, user: Dict[str, Any] = Depends(require_user)):
    return orders_service.get_order_detail(user["id"], order_id)

@router.post("/{order_id}/retry-payment", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def retry_payment(order_id: str, user: Dict[str, Any] = Depends(require_user)):
    """Relance le paiement d'une commande pending/pending (session existante réutilisée si possible)."""
    return payments_service.retry_payment(user, order_id).to_dict()
