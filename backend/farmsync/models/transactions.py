from __future__ import annotations

from ..extensions import db
from farmsync.time_utils import to_utc_z
from .types import Amount, as_float


class Transaction(db.Model):
    """
    A completed sale recorded on a client.

    Append-only: rows are never updated once stored, and identical submissions
    produce separate rows since there is no natural key to conflict on.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_user_created", "user_id", "created_at"),
        db.Index("ix_transactions_user_date", "user_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), nullable=False, index=True)

    date = db.Column(db.DateTime(timezone=True), nullable=True)
    product_id = db.Column(db.String(128), nullable=True)
    product_name = db.Column(db.String(255), nullable=True)
    quantity = db.Column(Amount(), nullable=True)
    order_price = db.Column(Amount(), nullable=True)
    selling_price = db.Column(Amount(), nullable=True)
    profit = db.Column(Amount(), nullable=True)

    # Set once at insertion by the sync coordinator
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} user_id={self.user_id!r} product_name={self.product_name!r}>"

    def to_client_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": as_float(self.quantity),
            "orderPrice": as_float(self.order_price),
            "sellingPrice": as_float(self.selling_price),
            "profit": as_float(self.profit),
        }
