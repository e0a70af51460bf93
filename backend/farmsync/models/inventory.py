from __future__ import annotations

from ..extensions import db
from .types import Amount, as_float


class Product(db.Model):
    """
    Product master data and stock levels.

    NATURAL KEY: (user_id, name). Clients identify products by name, so a
    rename on the client shows up here as a new row.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("user_id", "name", name="uq_products_user_name"),
        db.Index("ix_products_user_updated", "user_id", "updated_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)

    order_price = db.Column(Amount(), nullable=True)
    selling_price = db.Column(Amount(), nullable=True)
    reserve_stock = db.Column(Amount(), nullable=True)
    market_stock = db.Column(Amount(), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Product id={self.id} user_id={self.user_id!r} name={self.name!r}>"

    def to_client_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "orderPrice": as_float(self.order_price),
            "sellingPrice": as_float(self.selling_price),
            "reserveStock": as_float(self.reserve_stock),
            "marketStock": as_float(self.market_stock),
        }
