"""
Panier en mémoire (aucun accès Stripe ni base).
- Une ligne est identifiée par (article, date de livraison, enfant): ré-ajouter le même triplet
  cumule la quantité au lieu de dupliquer la ligne.
- Les opérations sont locales et ne peuvent pas échouer hors validation d'entrée.
"""
from datetime import date
from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field

from catering.errors import ValidationError


def make_line_id(menu_item_id: str, delivery_date: str, child_id: str) -> str:
    return f"{menu_item_id}-{delivery_date}-{child_id}"


def _date_str(value: Union[date, str]) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return str(value or "").strip()


class CartLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    line_id: str
    menu_item_id: str
    menu_item_name: str = ""
    child_id: str
    child_name: str = ""
    child_class: str = ""
    unit_price: int = Field(ge=0)
    quantity: int = Field(ge=1)
    delivery_date: str

    @property
    def total_price(self) -> int:
        return self.unit_price * self.quantity


class CartStore:
    """Lignes sélectionnées par le tuteur mais pas encore commandées."""

    def __init__(self):
        self._lines: Dict[str, CartLine] = {}

    def add(self, menu_item: Dict[str, Any], child: Dict[str, Any], delivery_date: Union[date, str], quantity: int = 1) -> CartLine:
        """
        Ajoute un article pour un enfant et une date.
        - menu_item: {id, name, price}; child: {id, name?, class_name?}
        - Le même (article, date, enfant) incrémente la quantité existante
        """
        menu_item_id = str((menu_item or {}).get("id") or "").strip()
        child_id = str((child or {}).get("id") or "").strip()
        day = _date_str(delivery_date)
        if not menu_item_id or not child_id or not day:
            raise ValidationError("Choisissez un enfant, une date et un article")
        if int(quantity) < 1:
            raise ValidationError("La quantité doit être au moins 1")

        line_id = make_line_id(menu_item_id, day, child_id)
        existing = self._lines.get(line_id)
        if existing:
            line = existing.model_copy(update={"quantity": existing.quantity + int(quantity)})
        else:
            line = CartLine(
                line_id=line_id,
                menu_item_id=menu_item_id,
                menu_item_name=str(menu_item.get("name") or ""),
                child_id=child_id,
                child_name=str(child.get("name") or ""),
                child_class=str(child.get("class_name") or ""),
                unit_price=int(menu_item.get("price") or 0),
                quantity=int(quantity),
                delivery_date=day,
            )
        self._lines[line_id] = line
        return line

    def set_quantity(self, line_id: str, quantity: int) -> None:
        """Fixe la quantité d'une ligne; 0 la supprime."""
        if int(quantity) < 0:
            raise ValidationError("Quantité invalide")
        if line_id not in self._lines:
            raise ValidationError("Article absent du panier")
        if int(quantity) == 0:
            del self._lines[line_id]
            return
        self._lines[line_id] = self._lines[line_id].model_copy(update={"quantity": int(quantity)})

    def remove(self, line_id: str) -> None:
        self._lines.pop(line_id, None)

    def clear(self) -> None:
        self._lines.clear()

    def lines(self) -> List[CartLine]:
        return list(self._lines.values())

    def total(self) -> int:
        return sum(line.total_price for line in self._lines.values())

    def count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def is_empty(self) -> bool:
        return not self._lines

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [dict(line.model_dump(), total_price=line.total_price) for line in self.lines()],
            "total": self.total(),
            "count": self.count(),
        }
