from __future__ import annotations

from ..extensions import db
from farmsync.time_utils import to_utc_z
from .types import Amount, as_float


class Loan(db.Model):
    """
    Goods handed out on credit to a customer.

    NATURAL KEY: (user_id, loan_id). loan_id is the identifier minted by the
    client; the surrogate `id` never leaves the server. A repeat sync with the
    same loan_id replaces every mutable field.

    Reminder fields are opaque data owned by the client; nothing on the server
    schedules or sends reminders.
    """
    __tablename__ = "loans"
    __table_args__ = (
        db.UniqueConstraint("user_id", "loan_id", name="uq_loans_user_loan"),
        db.Index("ix_loans_user_updated", "user_id", "updated_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), nullable=False, index=True)
    loan_id = db.Column(db.String(128), nullable=False)

    full_name = db.Column(db.String(255), nullable=True)
    phone_number = db.Column(db.String(64), nullable=True)
    national_id = db.Column(db.String(64), nullable=True)
    date_taken = db.Column(db.DateTime(timezone=True), nullable=True)
    date_paid = db.Column(db.DateTime(timezone=True), nullable=True)
    total_amount = db.Column(Amount(), nullable=True)
    status = db.Column(db.String(32), nullable=True)

    # Line items and reminder entries exactly as the client sent them
    products = db.Column(db.JSON, nullable=False, default=list)
    reminders = db.Column(db.JSON, nullable=False, default=list)
    reminder_sent = db.Column(db.Boolean, nullable=False, default=False)
    last_reminder_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Loan id={self.id} user_id={self.user_id!r} loan_id={self.loan_id!r} status={self.status!r}>"

    def to_client_dict(self) -> dict:
        return {
            "id": self.loan_id,
            "fullName": self.full_name,
            "phoneNumber": self.phone_number,
            "nationalId": self.national_id,
            "dateTaken": to_utc_z(self.date_taken),
            "datePaid": to_utc_z(self.date_paid),
            "totalAmount": as_float(self.total_amount),
            "status": self.status,
            "products": self.products or [],
            "reminders": self.reminders or [],
            "reminderSent": bool(self.reminder_sent),
            "lastReminderDate": to_utc_z(self.last_reminder_date),
        }
