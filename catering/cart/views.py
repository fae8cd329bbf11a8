"""
Endpoints panier et lot du tuteur connecté.
- /api/v1/cart: consultation, ajout, quantité, suppression, vidage
- /api/v1/cart/batch: consultation, validation du panier pour un enfant, retrait d'une entrée
Sécurité: require_user sur toutes les routes.
"""
from datetime import date
from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from catering.utils.security import require_user
from . import service as cart_service

router = APIRouter(prefix="/api/v1/cart", tags=["Cart API"])


class AddItemRequest(BaseModel):
    menu_item_id: str = Field(min_length=1)
    child_id: str = Field(min_length=1)
    delivery_date: date
    quantity: int = Field(default=1, ge=1)


class QuantityRequest(BaseModel):
    quantity: int = Field(ge=0)


class CommitRequest(BaseModel):
    child_id: str = Field(min_length=1)
    notes: str = ""


@router.get("")
def get_cart(user: Dict[str, Any] = Depends(require_user)):
    return cart_service.get_cart(user["id"])

@router.post("/items", status_code=201)
def add_item(payload: AddItemRequest, user: Dict[str, Any] = Depends(require_user)):
    """
    Ajoute un article pour un enfant et une date de livraison.
    - Le même triplet (article, date, enfant) cumule la quantité
    - Erreurs: 404 article inconnu, 400 saisie invalide
    """
    return cart_service.add_item(
        user["id"], payload.menu_item_id, payload.child_id, payload.delivery_date, payload.quantity
    )

@router.patch("/items/{line_id}")
def update_item(line_id: str, payload: QuantityRequest, user: Dict[str, Any] = Depends(require_user)):
    return cart_service.update_quantity(user["id"], line_id, payload.quantity)

@router.delete("/items/{line_id}")
def remove_item(line_id: str, user: Dict[str, Any] = Depends(require_user)):
    return cart_service.remove_item(user["id"], line_id)

@router.delete("")
def clear_cart(user: Dict[str, Any] = Depends(require_user)):
    return cart_service.clear_cart(user["id"])

@router.get("/batch")
def get_batch(user: Dict[str, Any] = Depends(require_user)):
    return cart_service.get_batch(user["id"])

@router.post("/batch/commit", status_code=201)
def commit_to_batch(payload: CommitRequest, user: Dict[str, Any] = Depends(require_user)):
    """Fige le panier courant pour un enfant dans le lot (copie indépendante) puis vide le panier."""
    return cart_service.commit_child_cart(user["id"], payload.child_id, payload.notes)

@router.delete("/batch/{batch_entry_id}")
def remove_batch_entry(batch_entry_id: str, user: Dict[str, Any] = Depends(require_user)):
    return cart_service.remove_batch_entry(user["id"], batch_entry_id)
