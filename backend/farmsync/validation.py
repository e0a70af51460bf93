from __future__ import annotations
import math
from datetime import datetime
from farmsync.time_utils import parse_iso_datetime

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, DateTime, JSON, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .models import AppSettings, Loan, Product, Transaction


MAX_USER_ID_LENGTH = 128

# Largest integer every supported store binds without overflow (signed 64-bit)
MAX_INTEGER = 2 ** 63 - 1


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class RecordSchema:
    """
    Boundary schema for one entity collection in a sync batch.

    - fields: client (camelCase) key -> model column key
    - required: client keys that must be present and non-null (natural key)
    - list_fields: JSON columns that must hold a list when supplied

    Keys not listed in `fields` are ignored; clients keep local-only state
    (ids, dirty flags) on the same objects they push.
    """
    entity: str
    model: DeclarativeMeta
    fields: dict[str, str]
    required: frozenset[str] = frozenset()
    list_fields: frozenset[str] = field(default_factory=frozenset)


TRANSACTION_SCHEMA = RecordSchema(
    entity="transaction",
    model=Transaction,
    fields={
        "date": "date",
        "productId": "product_id",
        "productName": "product_name",
        "quantity": "quantity",
        "orderPrice": "order_price",
        "sellingPrice": "selling_price",
        "profit": "profit",
    },
)

LOAN_SCHEMA = RecordSchema(
    entity="loan",
    model=Loan,
    fields={
        "id": "loan_id",
        "fullName": "full_name",
        "phoneNumber": "phone_number",
        "nationalId": "national_id",
        "dateTaken": "date_taken",
        "datePaid": "date_paid",
        "totalAmount": "total_amount",
        "status": "status",
        "products": "products",
        "reminders": "reminders",
        "reminderSent": "reminder_sent",
        "lastReminderDate": "last_reminder_date",
    },
    required=frozenset({"id"}),
    list_fields=frozenset({"products", "reminders"}),
)

PRODUCT_SCHEMA = RecordSchema(
    entity="product",
    model=Product,
    fields={
        "name": "name",
        "orderPrice": "order_price",
        "sellingPrice": "selling_price",
        "reserveStock": "reserve_stock",
        "marketStock": "market_stock",
    },
    required=frozenset({"name"}),
)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any, label: str):
    coltype = col.type

    if value is None:
        return None

    # Decimals - prices, quantities, stock levels, totals
    if isinstance(coltype, Numeric):
        # bool is a subclass of int; a checkbox value is never an amount
        if isinstance(value, bool):
            raise ValidationError(f"{label} must be a number")
        if isinstance(value, (int, float)):
            number = value
        elif isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{label} must be a number")
            try:
                number = float(stripped)
            except ValueError:
                raise ValidationError(f"{label} must be a number")
        else:
            raise ValidationError(f"{label} must be a number")
        if isinstance(number, float) and not math.isfinite(number):
            raise ValidationError(f"{label} must be a finite number")
        if isinstance(number, int) and abs(number) > MAX_INTEGER:
            raise ValidationError(f"{label} is out of range")
        return number

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # Older clients store flags as 0/1
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        raise ValidationError(f"{label} must be a boolean")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{label} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{label} must be an ISO-8601 datetime")

    # JSON passes through untouched; shape checks happen per schema
    if isinstance(coltype, JSON):
        return value

    # Strings / Text (client ids may arrive as numbers)
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{label} must be a string")
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_record(schema: RecordSchema, record: Any, *, index: int) -> dict:
    """
    Validates + normalizes one incoming record against:
    - the schema's client -> column field map
    - SQLAlchemy column metadata (type, String length)
    - the schema's required natural-key fields
    Returns a dict keyed by column name holding every mapped field; fields the
    client omitted come back as None so the upsert replaces the full field set.
    """
    where = f"{schema.entity}s[{index}]"
    if not isinstance(record, dict):
        raise ValidationError(f"{where} must be an object")

    for key in schema.required:
        raw = record.get(key)
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            raise ValidationError(f"{where}.{key} is required")

    cols = _columns_by_key(schema.model)
    row: dict = {}

    for client_key, col_key in schema.fields.items():
        col = cols[col_key]
        raw = record.get(client_key)
        label = f"{where}.{client_key}"

        if client_key in schema.list_fields and raw is not None and not isinstance(raw, list):
            raise ValidationError(f"{label} must be a list")

        val = _coerce_value(col, raw, label)

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{label} exceeds max length {col.type.length}")

        row[col_key] = val

    return row


def validate_settings(settings: Any) -> dict:
    if not isinstance(settings, dict):
        raise ValidationError("settings must be an object")
    return settings


def require_user_id(user_id: Any) -> str:
    """Normalize the owning user id; every public operation calls this first."""
    if user_id is None or isinstance(user_id, bool):
        raise ValidationError("User ID is required")
    if isinstance(user_id, int):
        user_id = str(user_id)
    if not isinstance(user_id, str):
        raise ValidationError("User ID must be a string")
    user_id = user_id.strip()
    if not user_id:
        raise ValidationError("User ID is required")
    if len(user_id) > MAX_USER_ID_LENGTH:
        raise ValidationError(f"User ID exceeds max length {MAX_USER_ID_LENGTH}")
    return user_id


@dataclass(frozen=True)
class ValidatedBatch:
    user_id: str
    transactions: list[dict]
    loans: list[dict]
    products: list[dict]
    settings: dict | None


def _collection(batch: dict, key: str, schema: RecordSchema) -> list[dict]:
    records = batch.get(key)
    # Absent or non-list collections mean "nothing to sync" for that entity
    if not isinstance(records, list):
        return []
    return [validate_record(schema, r, index=i) for i, r in enumerate(records)]


def validate_batch(user_id: Any, batch: Any) -> ValidatedBatch:
    """Validate a whole sync batch before any store access."""
    user_id = require_user_id(user_id)
    if batch is None:
        batch = {}
    if not isinstance(batch, dict):
        raise ValidationError("Invalid JSON payload")

    settings = batch.get("settings")
    return ValidatedBatch(
        user_id=user_id,
        transactions=_collection(batch, "transactions", TRANSACTION_SCHEMA),
        loans=_collection(batch, "loans", LOAN_SCHEMA),
        products=_collection(batch, "products", PRODUCT_SCHEMA),
        settings=None if settings is None else validate_settings(settings),
    )
