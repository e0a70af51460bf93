# Overview: Per-entity merge rules applied by the sync coordinator; pure, no session access.

"""
Upsert rules for synced entities.

Each rule describes how an incoming record merges with the stored row that
shares its natural key:

- transactions: append-only, a store-level conflict keeps the existing row
- loans:        (user_id, loan_id), replace every mutable field
- products:     (user_id, name), replace prices and stock levels
- settings:     (user_id), replace the whole blob

The entity store executes these either through the database's native
INSERT ... ON CONFLICT or by calling merge() on a locked row.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..models import AppSettings, Loan, Product, Transaction

ON_CONFLICT_UPDATE = "update"
ON_CONFLICT_IGNORE = "ignore"


@dataclass(frozen=True)
class UpsertRule:
    entity: str
    model: type
    key: tuple[str, ...]
    mutable: tuple[str, ...]
    touch: bool
    on_conflict: str


TRANSACTION_RULE = UpsertRule(
    entity="transactions",
    model=Transaction,
    key=(),
    mutable=(),
    touch=False,
    on_conflict=ON_CONFLICT_IGNORE,
)

LOAN_RULE = UpsertRule(
    entity="loans",
    model=Loan,
    key=("user_id", "loan_id"),
    mutable=(
        "full_name",
        "phone_number",
        "national_id",
        "date_taken",
        "date_paid",
        "total_amount",
        "status",
        "products",
        "reminders",
        "reminder_sent",
        "last_reminder_date",
    ),
    touch=True,
    on_conflict=ON_CONFLICT_UPDATE,
)

PRODUCT_RULE = UpsertRule(
    entity="products",
    model=Product,
    key=("user_id", "name"),
    mutable=("order_price", "selling_price", "reserve_stock", "market_stock"),
    touch=True,
    on_conflict=ON_CONFLICT_UPDATE,
)

SETTINGS_RULE = UpsertRule(
    entity="settings",
    model=AppSettings,
    key=("user_id",),
    mutable=("settings",),
    touch=True,
    on_conflict=ON_CONFLICT_UPDATE,
)


def transaction_row(user_id: str, record: dict, now: datetime) -> dict:
    return {
        "user_id": user_id,
        "date": record.get("date"),
        "product_id": record.get("product_id"),
        "product_name": record.get("product_name"),
        "quantity": record.get("quantity"),
        "order_price": record.get("order_price"),
        "selling_price": record.get("selling_price"),
        "profit": record.get("profit"),
        "created_at": now,
    }


def loan_row(user_id: str, record: dict, now: datetime) -> dict:
    products = record.get("products")
    reminders = record.get("reminders")
    return {
        "user_id": user_id,
        "loan_id": record["loan_id"],
        "full_name": record.get("full_name"),
        "phone_number": record.get("phone_number"),
        "national_id": record.get("national_id"),
        "date_taken": record.get("date_taken"),
        "date_paid": record.get("date_paid"),
        "total_amount": record.get("total_amount"),
        "status": record.get("status"),
        "products": products if products is not None else [],
        "reminders": reminders if reminders is not None else [],
        "reminder_sent": bool(record.get("reminder_sent") or False),
        "last_reminder_date": record.get("last_reminder_date"),
        "created_at": now,
        "updated_at": now,
    }


def product_row(user_id: str, record: dict, now: datetime) -> dict:
    return {
        "user_id": user_id,
        "name": record["name"],
        "order_price": record.get("order_price"),
        "selling_price": record.get("selling_price"),
        "reserve_stock": record.get("reserve_stock"),
        "market_stock": record.get("market_stock"),
        "created_at": now,
        "updated_at": now,
    }


def settings_row(user_id: str, settings: dict, now: datetime) -> dict:
    return {
        "user_id": user_id,
        "settings": settings,
        "created_at": now,
        "updated_at": now,
    }


def key_of(rule: UpsertRule, row: dict) -> tuple:
    return tuple(row[k] for k in rule.key)


def update_values(rule: UpsertRule, incoming: dict) -> dict:
    """Columns overwritten when the natural key already exists."""
    values = {k: incoming[k] for k in rule.mutable}
    if rule.touch:
        values["updated_at"] = incoming["updated_at"]
    return values


def merge(rule: UpsertRule, existing: dict | None, incoming: dict) -> dict:
    """
    Resolve the row to persist for one incoming record.

    - no existing row: the incoming row is inserted as-is
    - IGNORE rule: the existing row wins untouched
    - UPDATE rule: the existing row keeps its key and created_at, every
      mutable field takes the incoming value, updated_at is refreshed
    """
    if existing is None:
        return dict(incoming)
    if rule.on_conflict == ON_CONFLICT_IGNORE:
        return dict(existing)
    merged = dict(existing)
    merged.update(update_values(rule, incoming))
    return merged
