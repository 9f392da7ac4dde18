# database/record_store.py
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError, ProgrammingError, OperationalError, StatementError

from services.errors import RecordStoreError, RelationMissingError

logger = logging.getLogger("Record-Store")

_MISSING_RELATION_MARKERS = ("does not exist", "no such table", "undefinedtable")


def _is_missing_relation(error: SQLAlchemyError) -> bool:
    if not isinstance(error, (ProgrammingError, OperationalError)):
        return False
    text = str(getattr(error, "orig", error)).lower()
    return any(marker in text for marker in _MISSING_RELATION_MARKERS)


class RecordStore:
    """
    Select/insert/update/delete-by-filter access to the relational store.

    Filters map column attribute names to a value:
      - a scalar means equality
      - a list/tuple/set means membership
      - None means IS NULL
    Every method opens its own short session; returned rows stay readable after it closes.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @contextmanager
    def _session(self):
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except (SQLAlchemyError, LookupError) as e:
            db.rollback()
            if isinstance(e, SQLAlchemyError) and _is_missing_relation(e):
                logger.warning(f"[Store] Relation missing: {getattr(e, 'orig', e)}")
                raise RelationMissingError() from e
            if isinstance(e, (StatementError, LookupError)) and "is not among the defined enum values" in str(e):
                logger.error(f"[Store] Rejected out-of-vocabulary value: {e}")
                raise RecordStoreError("Invalid status value") from e
            logger.error(f"[Store] Database error: {e}")
            raise RecordStoreError() from e
        finally:
            db.close()

    @staticmethod
    def _apply_filters(query, model, filters: Optional[Dict[str, Any]]):
        for name, value in (filters or {}).items():
            column = getattr(model, name)
            if value is None:
                query = query.filter(column.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                query = query.filter(column.in_(list(value)))
            else:
                query = query.filter(column == value)
        return query

    def select(self, model, filters: Dict[str, Any] = None, order_by: str = None,
               descending: bool = False, limit: int = None) -> List[Any]:
        with self._session() as db:
            query = self._apply_filters(db.query(model), model, filters)
            if order_by:
                column = getattr(model, order_by)
                query = query.order_by(column.desc() if descending else column.asc())
            if limit:
                query = query.limit(limit)
            return query.all()

    def first(self, model, filters: Dict[str, Any] = None, order_by: str = None, descending: bool = False):
        rows = self.select(model, filters, order_by=order_by, descending=descending, limit=1)
        return rows[0] if rows else None

    def insert(self, model, values: Dict[str, Any]):
        with self._session() as db:
            row = model(**values)
            db.add(row)
            db.flush()
            db.refresh(row)
            return row

    def update(self, model, filters: Dict[str, Any], patch: Dict[str, Any]) -> List[Any]:
        """Applies the patch to every matching row and returns the updated rows."""
        if not filters:
            raise RecordStoreError("Refusing to update without a filter")
        with self._session() as db:
            rows = self._apply_filters(db.query(model), model, filters).all()
            for row in rows:
                for name, value in patch.items():
                    setattr(row, name, value)
            db.flush()
            for row in rows:
                db.refresh(row)
            return rows

    def delete(self, model, filters: Dict[str, Any]) -> int:
        if not filters:
            raise RecordStoreError("Refusing to delete without a filter")
        with self._session() as db:
            rows = self._apply_filters(db.query(model), model, filters).all()
            for row in rows:
                db.delete(row)
            return len(rows)
