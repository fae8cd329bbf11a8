"""
État de checkout par tuteur (processus local, non persisté avant le checkout).
- cart / batch: panier courant et lot en cours
- open_checkouts: {order_number: "cart"|"batch"} pour les commandes dont la session est ouverte;
  le réconciliateur s'en sert pour savoir quoi vider sur succès / attente.
- awaiting_session: même forme, commandes construites dont la session n'a pas pu être ouverte;
  jamais vidées, promues dans open_checkouts quand la relance ouvre la session.
"""
from threading import Lock
from typing import Dict, Optional

from .batch import BatchAggregator
from .store import CartStore

SOURCE_CART = "cart"
SOURCE_BATCH = "batch"


class CheckoutState:
    def __init__(self):
        self.cart = CartStore()
        self.batch = BatchAggregator(self.cart)
        self.open_checkouts: Dict[str, str] = {}
        self.awaiting_session: Dict[str, str] = {}

    def clear_source(self, source: str) -> None:
        if source == SOURCE_BATCH:
            self.batch.clear()
        else:
            self.cart.clear()

    def source_for(self, order_number: str) -> Optional[str]:
        return self.open_checkouts.get(order_number) or self.awaiting_session.get(order_number)

    def session_opened(self, order_number: str, source: str) -> None:
        self.awaiting_session.pop(order_number, None)
        self.open_checkouts[order_number] = source

    def forget(self, order_number: str) -> None:
        self.open_checkouts.pop(order_number, None)
        self.awaiting_session.pop(order_number, None)


_states: Dict[str, CheckoutState] = {}
_lock = Lock()

def get_state(guardian_id: str) -> CheckoutState:
    with _lock:
        state = _states.get(guardian_id)
        if state is None:
            state = CheckoutState()
            _states[guardian_id] = state
        return state

def find_state(guardian_id: str) -> Optional[CheckoutState]:
    with _lock:
        return _states.get(guardian_id)

def reset() -> None:
    """Vide tous les états (arrêt de l'application, tests)."""
    with _lock:
        _states.clear()
