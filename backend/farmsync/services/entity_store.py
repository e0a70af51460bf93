# Overview: Store-access layer; the only code that issues SQL for synced entities.

"""
Entity store.

Wraps a SQLAlchemy session behind the handful of operations the sync core
needs. Services receive an EntityStore (defaulting to one bound to
db.session) instead of reaching for the session directly, so tests can run
against another session or a failing store.

INSERT ... ON CONFLICT is used natively on PostgreSQL and SQLite. Other
dialects get the emulated form: lock the row by natural key, merge with the
pure rule, then INSERT or UPDATE.
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql, sqlite

from ..extensions import db
from ..models import AppSettings, Loan, Product, Transaction
from .concurrency import lock_for_update
from .upsert_rules import ON_CONFLICT_IGNORE, UpsertRule, merge, update_values


class StoreError(Exception):
    """Base class for store-level failures surfaced to callers."""


class SyncFailure(StoreError):
    """A batch unit of work failed and was rolled back in full."""


class SyncTimeout(SyncFailure):
    """A batch exceeded its time budget and was rolled back in full."""


class ReadFailure(StoreError):
    """A snapshot or change-detection read failed; safe to retry."""


_NATIVE_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class EntityStore:
    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    @property
    def dialect_name(self) -> str:
        return self.session.get_bind().dialect.name

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def begin_unit(self, timeout_seconds: float | None = None) -> None:
        """Prepare a batch unit of work on the current session transaction."""
        if timeout_seconds and self.dialect_name == "postgresql":
            ms = max(1, int(timeout_seconds * 1000))
            self.session.execute(sa.text(f"SET LOCAL statement_timeout = {ms}"))

    def upsert(self, rule: UpsertRule, row: dict) -> None:
        insert = _NATIVE_INSERTS.get(self.dialect_name)
        if insert is None:
            self._emulated_upsert(rule, row)
            return

        stmt = insert(rule.model.__table__).values(**row)
        if rule.on_conflict == ON_CONFLICT_IGNORE:
            stmt = stmt.on_conflict_do_nothing()
        else:
            stmt = stmt.on_conflict_do_update(
                index_elements=list(rule.key),
                set_=update_values(rule, row),
            )
        self.session.execute(stmt)

    def _emulated_upsert(self, rule: UpsertRule, row: dict) -> None:
        table = rule.model.__table__
        if not rule.key:
            self.session.execute(sa.insert(table).values(**row))
            return

        match = sa.and_(*(table.c[k] == row[k] for k in rule.key))
        existing = self.session.execute(lock_for_update(sa.select(table).where(match))).mappings().first()
        if existing is None:
            self.session.execute(sa.insert(table).values(**merge(rule, None, row)))
            return

        current = dict(existing)
        merged = merge(rule, current, row)
        changes = {k: v for k, v in merged.items() if current.get(k) != v}
        if changes:
            self.session.execute(sa.update(table).where(table.c.id == current["id"]).values(**changes))

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    @contextmanager
    def consistent_read(self):
        """
        Run several SELECTs against one committed state.

        PostgreSQL gets a REPEATABLE READ transaction. pysqlite runs bare
        SELECTs outside any transaction, so SQLite gets an explicit deferred
        BEGIN; its read snapshot starts at the first SELECT.
        """
        # scoped_session proxies get_transaction() but not in_transaction()
        opened = self.session.get_transaction() is None
        if opened:
            dialect = self.dialect_name
            if dialect == "postgresql":
                self.session.connection(execution_options={"isolation_level": "REPEATABLE READ"})
            elif dialect == "sqlite":
                self.session.execute(sa.text("BEGIN"))
        try:
            yield self
        finally:
            if opened:
                self.session.rollback()

    def count_changes(self, user_id: str, since: datetime) -> dict:
        def _count(model, column):
            return (
                sa.select(sa.func.count())
                .select_from(model)
                .where(model.user_id == user_id, column > since)
                .scalar_subquery()
            )

        stmt = sa.select(
            _count(Transaction, Transaction.created_at).label("new_transactions"),
            _count(Loan, Loan.updated_at).label("updated_loans"),
            _count(Product, Product.updated_at).label("updated_products"),
        )
        row = self.session.execute(stmt).mappings().one()
        return {k: int(v or 0) for k, v in row.items()}

    def transactions_for(self, user_id: str) -> list[Transaction]:
        return (
            self.session.query(Transaction)
            .filter(Transaction.user_id == user_id)
            .order_by(Transaction.date.desc(), Transaction.id.desc())
            .all()
        )

    def loans_for(self, user_id: str) -> list[Loan]:
        return (
            self.session.query(Loan)
            .filter(Loan.user_id == user_id)
            .order_by(Loan.created_at.desc(), Loan.id.desc())
            .all()
        )

    def products_for(self, user_id: str) -> list[Product]:
        return (
            self.session.query(Product)
            .filter(Product.user_id == user_id)
            .order_by(Product.id.asc())
            .all()
        )

    def settings_for(self, user_id: str) -> AppSettings | None:
        return self.session.query(AppSettings).filter(AppSettings.user_id == user_id).first()

    def ping(self) -> None:
        self.session.execute(sa.text("SELECT 1"))

    def table_counts(self) -> dict:
        return {
            model.__tablename__: self.session.query(model).count()
            for model in (Transaction, Loan, Product, AppSettings)
        }
