from __future__ import annotations

from ..extensions import db


class AppSettings(db.Model):
    """
    Per-user application settings blob.

    At most one row per user (uq_app_settings_user). The blob is opaque to the
    server and replaced wholesale on every sync that carries it.
    """
    __tablename__ = "app_settings"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_app_settings_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), nullable=False)
    settings = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<AppSettings id={self.id} user_id={self.user_id!r}>"

    def to_client_dict(self) -> dict:
        return dict(self.settings or {})
