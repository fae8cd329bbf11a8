"""
Cas d'usage du panier et du lot pour le tuteur courant.
- Le prix et le libellé d'un article viennent toujours du catalogue, jamais du client.
- L'identité de l'enfant est résolue via le catalogue (nom générique si indisponible).
"""
from datetime import date
from typing import Any, Dict, Union
import logging

from catering.catalog import service as catalog
from catering.errors import NotFoundError, ValidationError
from . import registry

logger = logging.getLogger(__name__)

def get_cart(guardian_id: str) -> Dict[str, Any]:
    return registry.get_state(guardian_id).cart.to_dict()

def add_item(
    guardian_id: str,
    menu_item_id: str,
    child_id: str,
    delivery_date: Union[date, str],
    quantity: int = 1,
) -> Dict[str, Any]:
    """
    Ajoute un article au panier.
    - NotFoundError: article absent du catalogue (ou catalogue indisponible)
    - Même (article, date, enfant): quantité cumulée
    """
    items = catalog.get_menu_items_map([menu_item_id])
    menu_item = items.get(str(menu_item_id))
    if not menu_item:
        raise NotFoundError("Article introuvable")
    child = catalog.resolve_child(guardian_id, child_id)
    state = registry.get_state(guardian_id)
    line = state.cart.add(menu_item, child, delivery_date, quantity)
    logger.info("cart.add_item guardian=%s line=%s qty=%s", guardian_id, line.line_id, line.quantity)
    return state.cart.to_dict()

def update_quantity(guardian_id: str, line_id: str, quantity: int) -> Dict[str, Any]:
    state = registry.get_state(guardian_id)
    state.cart.set_quantity(line_id, quantity)
    return state.cart.to_dict()

def remove_item(guardian_id: str, line_id: str) -> Dict[str, Any]:
    state = registry.get_state(guardian_id)
    state.cart.remove(line_id)
    return state.cart.to_dict()

def clear_cart(guardian_id: str) -> Dict[str, Any]:
    state = registry.get_state(guardian_id)
    state.cart.clear()
    return state.cart.to_dict()

def get_batch(guardian_id: str) -> Dict[str, Any]:
    return registry.get_state(guardian_id).batch.to_dict()

def commit_child_cart(guardian_id: str, child_id: str, notes: str = "") -> Dict[str, Any]:
    """Fige le panier courant dans le lot pour un enfant puis vide le panier."""
    state = registry.get_state(guardian_id)
    if state.cart.is_empty():
        raise ValidationError("Le panier est vide")
    child = catalog.resolve_child(guardian_id, child_id)
    entry = state.batch.commit_child_cart(child_id, notes=notes, child=child)
    logger.info("cart.commit_child_cart guardian=%s child=%s total=%s", guardian_id, child_id, entry.computed_total)
    return state.batch.to_dict()

def remove_batch_entry(guardian_id: str, batch_entry_id: str) -> Dict[str, Any]:
    state = registry.get_state(guardian_id)
    if not state.batch.remove_entry(batch_entry_id):
        raise NotFoundError("Entrée du lot introuvable")
    return state.batch.to_dict()
