# Overview: Cheap "anything new since T?" probe for polling clients.

from __future__ import annotations

import logging
from datetime import timedelta

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..time_utils import parse_since, to_utc_z, utcnow
from ..validation import require_user_id
from .entity_store import EntityStore, ReadFailure

logger = logging.getLogger(__name__)


def check_updates(user_id, since=None, *, store: EntityStore | None = None, lookback_seconds=None) -> dict:
    """
    Count rows changed after `since` without transferring them.

    The returned serverTime is meant to be the client's next `since`, so
    client clock skew never hides a change. Rows are stamped when their batch
    starts but only become visible when it commits, so serverTime trails the
    clock by lookback_seconds (UPDATES_LOOKBACK_SECONDS, longer than any
    batch may run). A batch still open during this check is therefore
    reported by the next one; a change may be reported twice, never missed.
    """
    user_id = require_user_id(user_id)
    cursor = parse_since(since)
    if lookback_seconds is None:
        lookback_seconds = current_app.config["UPDATES_LOOKBACK_SECONDS"]
    if store is None:
        store = EntityStore()

    server_time = utcnow() - timedelta(seconds=lookback_seconds)
    try:
        counts = store.count_changes(user_id, cursor)
    except SQLAlchemyError as exc:
        store.rollback()
        logger.exception("Update check for user %s failed", user_id)
        raise ReadFailure("Failed to check updates") from exc

    details = {
        "newTransactions": counts["new_transactions"],
        "updatedLoans": counts["updated_loans"],
        "updatedProducts": counts["updated_products"],
    }
    return {
        "hasUpdates": any(v > 0 for v in details.values()),
        "details": details,
        "serverTime": to_utc_z(server_time),
    }
