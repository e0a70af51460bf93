# backend/farmsync/services/snapshot_service.py
"""
Snapshot reader.

Returns a user's complete current state in the client's field naming. All
four reads run against one committed state, so a concurrent sync is seen
either entirely or not at all.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..validation import require_user_id
from .entity_store import EntityStore, ReadFailure

logger = logging.getLogger(__name__)


def get_snapshot(user_id, *, store: EntityStore | None = None) -> dict:
    """
    Full state for one user.

    Ordering: transactions by date (newest first), loans by creation time
    (newest first), products in insertion order. Settings fall back to {}.
    """
    user_id = require_user_id(user_id)
    if store is None:
        store = EntityStore()

    try:
        with store.consistent_read():
            transactions = [t.to_client_dict() for t in store.transactions_for(user_id)]
            loans = [loan.to_client_dict() for loan in store.loans_for(user_id)]
            products = [p.to_client_dict() for p in store.products_for(user_id)]
            settings_row = store.settings_for(user_id)
            settings = settings_row.to_client_dict() if settings_row else {}
    except SQLAlchemyError as exc:
        store.rollback()
        logger.exception("Snapshot for user %s failed", user_id)
        raise ReadFailure("Failed to fetch data") from exc

    return {
        "transactions": transactions,
        "loans": loans,
        "products": products,
        "settings": settings,
    }
