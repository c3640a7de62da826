from __future__ import annotations

from ..extensions import db
from till.time_utils import to_utc_z


class ZReport(db.Model):
    """
    Z (end-of-day) closing snapshot.

    Written once by a close, in the same transaction that stamps the closed
    sales with this id. IMMUTABLE: never updated or deleted afterwards;
    reprints read it back by id.
    """
    __tablename__ = "z_reports"
    __table_args__ = (
        db.Index("ix_z_reports_day_terminal", "business_date", "terminal_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Scope of the close
    business_date = db.Column(db.Date, nullable=False)
    terminal_id = db.Column(db.String(64), nullable=True)  # NULL = all terminals

    created_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sales_count = db.Column(db.Integer, nullable=False, default=0)

    # Sums across the closed batch (all amounts in cents)
    totals_subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    totals_tax_cents = db.Column(db.Integer, nullable=False, default=0)
    totals_total_cents = db.Column(db.Integer, nullable=False, default=0)
    totals_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    totals_change_cents = db.Column(db.Integer, nullable=False, default=0)

    # [{"method": "CASH", "amount_cents": 1234}, ...]
    payments_by_method = db.Column(db.JSON, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"<ZReport id={self.id} date={self.business_date} terminal={self.terminal_id!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": "Z",
            "business_date": self.business_date.isoformat() if self.business_date else None,
            "terminal_id": self.terminal_id,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "sales_count": self.sales_count,
            "subtotal_cents": self.totals_subtotal_cents,
            "tax_cents": self.totals_tax_cents,
            "total_cents": self.totals_total_cents,
            "paid_cents": self.totals_paid_cents,
            "change_cents": self.totals_change_cents,
            "payments_by_method": list(self.payments_by_method or []),
        }
