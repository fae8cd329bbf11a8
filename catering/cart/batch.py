"""
Lot (batch) de paniers par enfant, réglés en une seule transaction.
Le panier est réutilisé d'un enfant à l'autre: chaque validation en prend une copie profonde,
de sorte qu'une modification ultérieure du panier ne change jamais une entrée déjà validée.
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, ConfigDict

from catering.errors import ValidationError
from .store import CartLine, CartStore


class BatchEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    batch_entry_id: str
    child_id: str
    child_name: str
    child_class: str
    lines: Tuple[CartLine, ...]
    notes: str = ""
    computed_total: int

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump()
        data["lines"] = [dict(line.model_dump(), total_price=line.total_price) for line in self.lines]
        return data


class BatchAggregator:
    def __init__(self, cart: CartStore):
        self._cart = cart
        self._entries: List[BatchEntry] = []

    def commit_child_cart(
        self,
        child_id: str,
        lines: Optional[Iterable[CartLine]] = None,
        notes: str = "",
        child: Optional[Dict[str, Any]] = None,
    ) -> BatchEntry:
        """
        Valide le panier courant pour un enfant et l'ajoute au lot.
        - lines: par défaut, les lignes du panier lié
        - child: {name, class_name} pour l'affichage (sinon repris des lignes)
        - Effet de bord: vide le panier lié
        """
        child_id = str(child_id or "").strip()
        if not child_id:
            raise ValidationError("Choisissez un enfant pour cette commande")
        source = list(self._cart.lines() if lines is None else lines)
        if not source:
            raise ValidationError("Le panier est vide")

        child = child or {}
        child_name = str(child.get("name") or source[0].child_name or "")
        child_class = str(child.get("class_name") or source[0].child_class or "")
        snapshot = tuple(
            line.model_copy(
                deep=True,
                update={"child_id": child_id, "child_name": child_name, "child_class": child_class},
            )
            for line in source
        )
        entry = BatchEntry(
            batch_entry_id=uuid4().hex,
            child_id=child_id,
            child_name=child_name,
            child_class=child_class,
            lines=snapshot,
            notes=notes or "",
            computed_total=sum(line.total_price for line in snapshot),
        )
        self._entries.append(entry)
        self._cart.clear()
        return entry

    def remove_entry(self, batch_entry_id: str) -> bool:
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.batch_entry_id != batch_entry_id]
        return len(self._entries) < before

    def total_amount(self) -> int:
        return sum(e.computed_total for e in self._entries)

    def entries(self) -> Tuple[BatchEntry, ...]:
        return tuple(self._entries)

    def flatten(self) -> List[CartLine]:
        """Concatène les lignes de toutes les entrées (chacune garde son enfant d'origine)."""
        return [line for entry in self._entries for line in entry.lines]

    def notes(self) -> str:
        parts = [f"{e.child_name}: {e.notes}" for e in self._entries if e.notes]
        return "\n".join(parts)

    def clear(self) -> None:
        self._entries = []

    def is_empty(self) -> bool:
        return not self._entries

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": [e.to_dict() for e in self._entries],
            "total": self.total_amount(),
        }
