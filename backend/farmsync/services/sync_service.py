# backend/farmsync/services/sync_service.py
"""
Batch sync coordinator.

A client pushes everything it changed while offline in one batch. The batch
is merged inside a single unit of work:

    transactions -> loans -> products -> settings

Records are applied in the order the client sent them, so the last record for
a given loan id or product name wins. Any store error rolls the whole batch
back; since every rule is idempotent the client simply resends the batch.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from ..time_utils import to_utc_z, utcnow
from ..validation import ValidatedBatch, validate_batch
from .concurrency import is_statement_timeout, run_with_retry
from .entity_store import EntityStore, SyncFailure, SyncTimeout
from .upsert_rules import (
    LOAN_RULE,
    PRODUCT_RULE,
    SETTINGS_RULE,
    TRANSACTION_RULE,
    loan_row,
    product_row,
    settings_row,
    transaction_row,
)

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    synced_at: datetime
    counts: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "message": "Data synced successfully",
            "syncedAt": to_utc_z(self.synced_at),
            "counts": dict(self.counts),
        }


class _Deadline:
    def __init__(self, seconds: float | None):
        self.expires = time.monotonic() + seconds if seconds else None

    def check(self) -> None:
        if self.expires is not None and time.monotonic() > self.expires:
            raise SyncTimeout("Sync timed out")

    def remaining(self) -> float | None:
        if self.expires is None:
            return None
        return max(0.0, self.expires - time.monotonic())


def _apply(store: EntityStore, batch: ValidatedBatch, deadline: _Deadline) -> dict:
    now = utcnow()
    user_id = batch.user_id
    counts = {"transactions": 0, "loans": 0, "products": 0, "settings": 0}

    for record in batch.transactions:
        deadline.check()
        store.upsert(TRANSACTION_RULE, transaction_row(user_id, record, now))
        counts["transactions"] += 1

    for record in batch.loans:
        deadline.check()
        store.upsert(LOAN_RULE, loan_row(user_id, record, now))
        counts["loans"] += 1

    for record in batch.products:
        deadline.check()
        store.upsert(PRODUCT_RULE, product_row(user_id, record, now))
        counts["products"] += 1

    if batch.settings is not None:
        deadline.check()
        store.upsert(SETTINGS_RULE, settings_row(user_id, batch.settings, now))
        counts["settings"] = 1

    return counts


def sync_batch(
    user_id,
    batch,
    *,
    store: EntityStore | None = None,
    timeout_seconds: float | None = None,
    attempts: int | None = None,
) -> SyncResult:
    """
    Merge a client batch into the user's stored state, all or nothing.

    timeout_seconds and attempts default to SYNC_TIMEOUT_SECONDS and
    SYNC_RETRY_ATTEMPTS from the app config. The deadline spans every retry.

    Raises:
        ValidationError: user id missing or a record is malformed (no store access)
        SyncTimeout: the unit of work ran past timeout_seconds; nothing persisted
        SyncFailure: any store error; nothing persisted
    """
    validated = validate_batch(user_id, batch)
    if timeout_seconds is None:
        timeout_seconds = current_app.config["SYNC_TIMEOUT_SECONDS"]
    if attempts is None:
        attempts = current_app.config["SYNC_RETRY_ATTEMPTS"]
    if store is None:
        store = EntityStore()

    deadline = _Deadline(timeout_seconds)

    def _unit_of_work() -> dict:
        deadline.check()
        try:
            store.begin_unit(deadline.remaining())
            counts = _apply(store, validated, deadline)
            deadline.check()
            store.commit()
            return counts
        except Exception:
            store.rollback()
            raise

    try:
        counts = run_with_retry(_unit_of_work, session=store.session, attempts=attempts)
    except SyncTimeout:
        logger.error("Sync for user %s timed out after %ss; batch rolled back", validated.user_id, timeout_seconds)
        raise
    except OperationalError as exc:
        if is_statement_timeout(exc):
            logger.error("Sync for user %s hit the statement timeout; batch rolled back", validated.user_id)
            raise SyncTimeout("Sync timed out") from exc
        logger.exception("Sync for user %s failed; batch rolled back", validated.user_id)
        raise SyncFailure("Failed to sync data") from exc
    except SQLAlchemyError as exc:
        logger.exception("Sync for user %s failed; batch rolled back", validated.user_id)
        raise SyncFailure("Failed to sync data") from exc

    result = SyncResult(synced_at=utcnow(), counts=counts)
    logger.info(
        "Synced batch for user %s: %s transactions, %s loans, %s products, %s settings",
        validated.user_id,
        counts["transactions"],
        counts["loans"],
        counts["products"],
        counts["settings"],
    )
    return result
