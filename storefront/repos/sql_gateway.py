# storefront/repos/sql_gateway.py
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

from sqlalchemy import Table, delete, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.database import Base
from storefront.data import models  # noqa: F401  registers tables
from storefront.repos.gateway import (
    DUPLICATE_KEY,
    UNDEFINED_COLUMN,
    UNDEFINED_TABLE,
    UNKNOWN_FUNCTION,
    DataGateway,
    Filters,
    GatewayResult,
    Ordering,
    first_row,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class _UnknownTable(Exception):
    pass


class SqlGateway(DataGateway):
    """DataGateway backed directly by the database through a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db
        self._procedures = {
            "generate_order_number": self._generate_order_number,
        }

    # helpers
    def _table(self, name: str) -> Table:
        table = Base.metadata.tables.get(name)
        if table is None:
            raise _UnknownTable(name)
        return table

    @staticmethod
    def _where(table: Table, stmt, filters: Filters | None):
        for column, value in (filters or {}).items():
            stmt = stmt.where(table.c[column] == value)
        return stmt

    @staticmethod
    def _check_columns(table: Table, names: Iterable[str]):
        for name in names:
            if name not in table.c:
                raise KeyError(name)

    def _dialect_insert(self, table: Table):
        dialect = self.db.get_bind().dialect.name
        return (pg_insert if dialect == "postgresql" else sqlite_insert)(table)

    @staticmethod
    def _rows(result) -> List[Dict[str, Any]]:
        return [dict(row._mapping) for row in result]

    def _run(self, op: str, table_name: str, fn) -> GatewayResult:
        try:
            result = fn()
            self.db.commit()
            return result
        except _UnknownTable:
            return GatewayResult.failure(UNDEFINED_TABLE, f'relation "{table_name}" does not exist')
        except KeyError as e:
            self.db.rollback()
            return GatewayResult.failure(UNDEFINED_COLUMN, f"column {e} of relation \"{table_name}\" does not exist")
        except IntegrityError as e:
            self.db.rollback()
            code = getattr(e.orig, "pgcode", None)
            if code is None:
                code = DUPLICATE_KEY if "unique" in str(e.orig).lower() else "23000"
            logger.warning(f"{op} on {table_name} violated a constraint: {e.orig}")
            return GatewayResult.failure(code, str(e.orig))
        except SQLAlchemyError as e:
            self.db.rollback()
            code = getattr(getattr(e, "orig", None), "pgcode", None) or "XX000"
            logger.error(f"{op} on {table_name} failed: {e}")
            return GatewayResult.failure(code, str(getattr(e, "orig", e)))

    # table operations
    def select(self, table, filters=None, order_by: Ordering | None = None, limit=None, single=False):
        def _select():
            t = self._table(table)
            stmt = self._where(t, select(t), filters)
            for column, descending in order_by or ():
                stmt = stmt.order_by(t.c[column].desc() if descending else t.c[column].asc())
            if limit is not None:
                stmt = stmt.limit(limit)
            return first_row(self._rows(self.db.execute(stmt)), single)

        return self._run("select", table, _select)

    def insert(self, table, rows, single=False):
        def _insert():
            t = self._table(table)
            batch = [rows] if isinstance(rows, dict) else list(rows)
            for row in batch:
                self._check_columns(t, row)
            created = [
                dict(self.db.execute(insert(t).values(**row).returning(*t.c)).one()._mapping)
                for row in batch
            ]
            return first_row(created, single)

        return self._run("insert", table, _insert)

    def update(self, table, values, filters, single=False):
        def _update():
            t = self._table(table)
            self._check_columns(t, values)
            stmt = self._where(t, update(t), filters).values(**values).returning(*t.c)
            return first_row(self._rows(self.db.execute(stmt)), single)

        return self._run("update", table, _update)

    def delete(self, table, filters):
        def _delete():
            t = self._table(table)
            result = self.db.execute(self._where(t, delete(t), filters))
            return GatewayResult(data={"deleted": result.rowcount})

        return self._run("delete", table, _delete)

    def upsert(self, table, row, on_conflict: Iterable[str], single=True):
        def _upsert():
            t = self._table(table)
            self._check_columns(t, row)
            keys = list(on_conflict)
            stmt = self._dialect_insert(t).values(**row)

            changes = {col: stmt.excluded[col] for col in row if col not in keys}
            if "updated_at" in t.c and "updated_at" not in row:
                changes["updated_at"] = datetime.now(timezone.utc)

            stmt = stmt.on_conflict_do_update(index_elements=keys, set_=changes).returning(*t.c)
            return first_row(self._rows(self.db.execute(stmt)), single)

        return self._run("upsert", table, _upsert)

    # remote procedures
    def rpc(self, fn, params=None):
        procedure = self._procedures.get(fn)
        if procedure is None:
            return GatewayResult.failure(UNKNOWN_FUNCTION, f"Could not find the function public.{fn}")
        return self._run("rpc", fn, lambda: GatewayResult(data=procedure(**(params or {}))))

    def _generate_order_number(self) -> str:
        # increment and read in one statement
        counters = self._table("order_number_counters")
        year = datetime.now(timezone.utc).year
        stmt = self._dialect_insert(counters).values(year=year, last_value=1).on_conflict_do_update(
            index_elements=["year"],
            set_={"last_value": counters.c.last_value + 1},
        ).returning(counters.c.last_value)
        issued = self.db.execute(stmt).scalar_one()
        return f"ORD-{year}-{issued:06d}"
