"""
Capacité 'widget de paiement' à l'échelle du processus.
Initialisée au démarrage (lifespan) avec la clé publique Stripe et l'URL du script client,
libérée à l'arrêt. open_widget() fournit au front de quoi lancer le paiement et refuse
(WidgetNotLoadedError) tant que la capacité n'est pas prête.
"""
from typing import Any, Dict, Optional
import logging

from catering.errors import WidgetNotLoadedError

logger = logging.getLogger(__name__)

PROVIDER = "stripe"

_widget: Optional[Dict[str, str]] = None

def init_widget(public_key: str, script_url: str) -> bool:
    """Enregistre la configuration client; retourne False (widget indisponible) sans clé publique."""
    global _widget
    if not public_key:
        logger.warning("payments.widget not initialised: STRIPE_PUBLIC_KEY manquant")
        _widget = None
        return False
    _widget = {"public_key": public_key, "script_url": script_url}
    logger.info("payments.widget initialised provider=%s", PROVIDER)
    return True

def teardown_widget() -> None:
    global _widget
    _widget = None

def is_ready() -> bool:
    return _widget is not None

def ensure_ready() -> Dict[str, str]:
    if _widget is None:
        raise WidgetNotLoadedError()
    return _widget

def open_widget(session_token: str, checkout_url: Optional[str] = None) -> Dict[str, Any]:
    """
    Descripteur de lancement côté client.
    Le front appelle ensuite, selon le résultat, /payments/callback avec success|pending|error|closed.
    """
    widget = ensure_ready()
    return {
        "provider": PROVIDER,
        "public_key": widget["public_key"],
        "script_url": widget["script_url"],
        "session_token": session_token,
        "checkout_url": checkout_url,
    }
