from typing import Any, Dict

from fastapi import APIRouter, Request

from catering.infra import store
from catering.payments import widget
from catering.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/api/v1/health", tags=["Health"])

@router.get("")
def health_root(request: Request) -> Dict[str, Any]:
    """État du stockage, du widget de paiement et du rate limiting."""
    try:
        store.get_store()
        store_ok = True
    except Exception:
        store_ok = False
    return {
        "ok": True,
        "store": store_ok,
        "payment_widget": widget.is_ready(),
        "rate_limit": rate_limit_health_info(request),
    }
