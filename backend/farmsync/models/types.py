from __future__ import annotations

from ..extensions import db


def Amount():
    """
    Unscaled decimal column read back as float.

    No precision/scale is declared so the store keeps whatever the client
    supplied; prices, quantities, stock levels and totals all use it.
    """
    return db.Numeric(asdecimal=False)


def as_float(value):
    if value is None:
        return None
    return float(value)
