"""
Accès aux données 'catalogue' (tables children et menu_items).
- Lecture seule; les erreurs de stockage remontent en PersistenceError (le service décide du repli).
"""
from typing import Any, Dict, Iterable, List

from catering.infra import store

def fetch_children(guardian_id: str) -> List[Dict[str, Any]]:
    """
    Enfants rattachés au tuteur (children.user_id), triés par nom.
    """
    if not guardian_id:
        return []
    return store.get_store().query("children", {"user_id": guardian_id}, order_by="name")

def fetch_menu_items(ids: Iterable[str]) -> List[Dict[str, Any]]:
    """
    Articles du menu par identifiants (menu_items.id in ids).
    """
    id_list = [str(i) for i in ids if i]
    if not id_list:
        return []
    return store.get_store().query("menu_items", {"id": ("in", id_list)})
