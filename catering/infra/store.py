"""
Contrat du stockage persistant consommé par le checkout, et son adaptateur Supabase.
- insert est atomique par table; aucune transaction inter-tables n'est supposée.
- Les erreurs PostgREST sont traduites: code 23505 -> DuplicateKeyError, le reste -> PersistenceError.
- Filtres de query: {"col": valeur} (égalité) ou {"col": ("lt"|"gt"|"neq"|"in"|"is", valeur)}.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging

from postgrest.exceptions import APIError

from catering.errors import DuplicateKeyError, NotFoundError, PersistenceError

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"

Filters = Dict[str, Any]


class Store(ABC):
    @abstractmethod
    def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    def insert_many(self, table: str, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def update(self, table: str, record_id: str, patch: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    def query(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]: ...


def _translate(table: str, e: APIError) -> PersistenceError:
    code = str(getattr(e, "code", "") or "")
    if code == UNIQUE_VIOLATION:
        return DuplicateKeyError(f"Clé dupliquée dans '{table}'")
    return PersistenceError(f"Erreur Supabase sur '{table}': {getattr(e, 'message', e)}")


class SupabaseStore(Store):
    """Adaptateur PostgREST (supabase-py) du contrat Store."""

    def __init__(self, client):
        self._client = client

    def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        rows = self.insert_many(table, [record])
        if not rows:
            raise PersistenceError(f"Insertion sans retour dans '{table}'")
        return rows[0]

    def insert_many(self, table: str, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        try:
            res = self._client.table(table).insert(records).execute()
            return list(res.data or [])
        except APIError as e:
            err = _translate(table, e)
            if not isinstance(err, DuplicateKeyError):
                logger.exception("store.insert failed table=%s rows=%s", table, len(records))
            raise err from e
        except Exception as e:
            logger.exception("store.insert failed table=%s rows=%s", table, len(records))
            raise PersistenceError(f"Stockage injoignable ({table})") from e

    def update(self, table: str, record_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        try:
            res = self._client.table(table).update(patch).eq("id", record_id).execute()
        except APIError as e:
            logger.exception("store.update failed table=%s id=%s", table, record_id)
            raise _translate(table, e) from e
        except Exception as e:
            logger.exception("store.update failed table=%s id=%s", table, record_id)
            raise PersistenceError(f"Stockage injoignable ({table})") from e
        rows = res.data or []
        if not rows:
            raise NotFoundError(f"'{table}' id={record_id} introuvable")
        return rows[0]

    def query(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        try:
            q = self._client.table(table).select("*")
            for column, value in (filters or {}).items():
                if isinstance(value, tuple):
                    op, operand = value
                    if op == "in":
                        q = q.in_(column, list(operand))
                    elif op == "is":
                        q = q.is_(column, operand)
                    else:
                        q = getattr(q, op)(column, operand)
                else:
                    q = q.eq(column, value)
            if order_by:
                q = q.order(order_by, desc=desc)
            if limit:
                q = q.limit(limit)
            res = q.execute()
            return list(res.data or [])
        except APIError as e:
            logger.exception("store.query failed table=%s filters=%s", table, filters)
            raise _translate(table, e) from e
        except Exception as e:
            logger.exception("store.query failed table=%s filters=%s", table, filters)
            raise PersistenceError(f"Stockage injoignable ({table})") from e


_store: Optional[Store] = None

def get_store() -> Store:
    """Instance partagée, construite paresseusement sur le client service-role."""
    global _store
    if _store is None:
        from catering.infra.supabase_client import get_service_supabase
        _store = SupabaseStore(get_service_supabase())
    return _store
