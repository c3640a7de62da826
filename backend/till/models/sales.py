from __future__ import annotations

from sqlalchemy.orm import validates

from ..extensions import db
from till.time_utils import to_utc_z


class SaleClosedError(Exception):
    """Raised when code tries to change a sale that a Z report has closed."""
    def __init__(self, sale_id: int | None, report_id: int | None):
        super().__init__(f"Sale {sale_id} is closed by report {report_id} and cannot be modified")
        self.sale_id = sale_id
        self.report_id = report_id


class Sale(db.Model):
    """
    Settled sale: the immutable financial record of one checkout.

    LIFECYCLE:
    - OPEN: report_id is NULL, included in X previews and the next Z close
    - CLOSED: report_id set by a Z close, excluded from every later report

    INVARIANTS:
    - total_cents = subtotal_cents + tax_cents, both summed from the lines
    - paid_cents >= total_cents, change_cents = paid_cents - total_cents
    - created together with all lines and payments in one transaction
    - once closed, totals, lines, payments and report_id never change
    """
    __tablename__ = "sales"
    __table_args__ = (
        # Report selection: open sales for a business day, optionally per terminal
        db.Index("ix_sales_day_terminal_report", "business_date", "terminal_id", "report_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    terminal_id = db.Column(db.String(64), nullable=False, index=True)
    cashier_id = db.Column(db.String(64), nullable=False)

    # Day the sale is reported under (independent of created_at)
    business_date = db.Column(db.Date, nullable=False, index=True)

    # Money (all amounts in cents)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)
    paid_cents = db.Column(db.Integer, nullable=False)
    change_cents = db.Column(db.Integer, nullable=False, default=0)

    # First tender's method, display only
    payment_method = db.Column(db.String(32), nullable=True)

    report_id = db.Column(db.Integer, db.ForeignKey("z_reports.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "SaleLine",
        back_populates="sale",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SaleLine.id",
    )
    payments = db.relationship(
        "Payment",
        back_populates="sale",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="Payment.id",
    )

    @property
    def is_closed(self) -> bool:
        return self.report_id is not None

    @validates(
        "terminal_id",
        "cashier_id",
        "business_date",
        "subtotal_cents",
        "tax_cents",
        "total_cents",
        "paid_cents",
        "change_cents",
        "payment_method",
        "report_id",
    )
    def _guard_closed(self, key, value):
        if self.report_id is not None:
            raise SaleClosedError(self.id, self.report_id)
        return value

    @validates("lines", "payments", include_removes=True)
    def _guard_children(self, key, value, is_remove):
        if self.report_id is not None:
            raise SaleClosedError(self.id, self.report_id)
        return value

    def __repr__(self) -> str:
        return f"<Sale id={self.id} terminal={self.terminal_id!r} total={self.total_cents} report={self.report_id}>"

    def to_dict(self, *, include_children: bool = False) -> dict:
        data = {
            "id": self.id,
            "terminal_id": self.terminal_id,
            "cashier_id": self.cashier_id,
            "business_date": self.business_date.isoformat() if self.business_date else None,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "paid_cents": self.paid_cents,
            "change_cents": self.change_cents,
            "payment_method": self.payment_method,
            "report_id": self.report_id,
            "is_closed": self.is_closed,
            "created_at": to_utc_z(self.created_at),
        }
        if include_children:
            data["lines"] = [line.to_dict() for line in self.lines]
            data["payments"] = [payment.to_dict() for payment in self.payments]
        return data


class SaleLine(db.Model):
    """
    Line item captured at sale time.

    unit_cents and tax_rate_bps are snapshots, so later catalog edits never
    change a recorded sale.
    """
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    qty = db.Column(db.Integer, nullable=False)
    unit_cents = db.Column(db.Integer, nullable=False)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="lines")
    product = db.relationship("Product")

    @validates(
        "product_id",
        "qty",
        "unit_cents",
        "tax_rate_bps",
        "subtotal_cents",
        "tax_cents",
        "line_total_cents",
    )
    def _guard_closed(self, key, value):
        if self.sale is not None and self.sale.report_id is not None:
            raise SaleClosedError(self.sale.id, self.sale.report_id)
        return value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "qty": self.qty,
            "unit_cents": self.unit_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "line_total_cents": self.line_total_cents,
        }


class Payment(db.Model):
    """
    One tender applied to a sale.

    Split payments are several Payment rows on the same sale. method holds
    the settlement code (CASH, CARD, ...) that X/Z reports group by.
    """
    __tablename__ = "payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    method = db.Column(db.String(32), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", back_populates="payments")

    @validates("method", "amount_cents")
    def _guard_closed(self, key, value):
        if self.sale is not None and self.sale.report_id is not None:
            raise SaleClosedError(self.sale.id, self.sale.report_id)
        return value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "method": self.method,
            "amount_cents": self.amount_cents,
            "created_at": to_utc_z(self.created_at),
        }
