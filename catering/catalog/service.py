"""
Résolution enfant / article pour l'affichage des lignes de commande.
Utilisé uniquement pour enrichir les libellés: une panne du catalogue dégrade vers des
noms génériques ("Enfant", "Article") au lieu de bloquer le checkout. Aucune liste d'enfants
fictive n'est jamais renvoyée.
"""
from typing import Any, Dict, Iterable, List, Optional
import logging

from catering.errors import PersistenceError
from . import repository

logger = logging.getLogger(__name__)

PLACEHOLDER_CHILD_NAME = "Enfant"
PLACEHOLDER_ITEM_NAME = "Article"

def list_children_for_guardian(guardian_id: str) -> List[Dict[str, Any]]:
    try:
        return repository.fetch_children(guardian_id)
    except PersistenceError:
        logger.warning("catalog.list_children_for_guardian degraded guardian_id=%s", guardian_id)
        return []

def resolve_child(guardian_id: str, child_id: str, children: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    """
    Retourne {id, name, class_name} pour child_id.
    - children: liste déjà chargée (évite une requête par ligne)
    - Repli: nom générique si l'enfant est introuvable ou le catalogue indisponible
    """
    known = children if children is not None else list_children_for_guardian(guardian_id)
    for child in known:
        if str(child.get("id")) == str(child_id):
            return {
                "id": str(child_id),
                "name": child.get("name") or PLACEHOLDER_CHILD_NAME,
                "class_name": child.get("class_name") or "",
            }
    return {"id": str(child_id), "name": PLACEHOLDER_CHILD_NAME, "class_name": ""}

def get_menu_items(ids: Iterable[str]) -> List[Dict[str, Any]]:
    """Articles {id, name, price}; liste vide si le catalogue est indisponible."""
    id_list = list(ids)
    try:
        return repository.fetch_menu_items(id_list)
    except PersistenceError:
        logger.warning("catalog.get_menu_items degraded ids=%s", id_list)
        return []

def get_menu_items_map(ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    return {str(i.get("id")): i for i in get_menu_items(ids)}

def menu_item_name(items_map: Dict[str, Dict[str, Any]], menu_item_id: str) -> str:
    item = items_map.get(str(menu_item_id)) or {}
    return item.get("name") or PLACEHOLDER_ITEM_NAME
