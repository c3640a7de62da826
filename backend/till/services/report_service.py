# Overview: X/Z day-closing reports; aggregates open sales and closes them under a Z snapshot.

"""
X / Z Report Service

WHY: End-of-day accountability. X is a read-only preview of the open
(not yet closed) sales for a business day; Z snapshots the same totals and
locks those sales so no later report can count them again.

DESIGN:
- A sale is OPEN while report_id IS NULL and CLOSED once a Z stamps it
- X and Z both select: business_date = day AND report_id IS NULL
  [AND terminal_id = terminal]
- Z writes the snapshot and stamps the batch in ONE transaction, under a
  write lock, with an update over the same predicate (bounded by the last
  selected id) whose row count must match the selection
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from flask import current_app
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Sale, Payment, ZReport
from ..money import sum_cents
from .concurrency import begin_write_transaction, lock_for_update


class ReportError(Exception):
    """Raised when a report cannot be produced or closed."""
    code = "REPORT_ERROR"


class NothingToClose(ReportError):
    code = "NOTHING_TO_CLOSE"

    def __init__(self, business_date: date, terminal_id: str | None):
        scope = f"{business_date.isoformat()}" + (f" / {terminal_id}" if terminal_id else "")
        super().__init__(f"No open sales for {scope}")
        self.business_date = business_date
        self.terminal_id = terminal_id


class ConcurrentCloseDetected(ReportError):
    code = "CONCURRENT_CLOSE"

    def __init__(self, expected: int, stamped: int):
        super().__init__(
            f"Another close claimed part of this batch (expected {expected} sales, stamped {stamped})"
        )
        self.expected = expected
        self.stamped = stamped


class ReportNotFound(ReportError):
    code = "REPORT_NOT_FOUND"


class ReportPersistenceFailed(ReportError):
    """The close transaction failed in the store and was rolled back."""
    code = "PERSISTENCE_FAILED"


@dataclass
class ReportTotals:
    sales_count: int = 0
    subtotal_cents: int = 0
    tax_cents: int = 0
    total_cents: int = 0
    paid_cents: int = 0
    change_cents: int = 0
    payments_by_method: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sales_count": self.sales_count,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "paid_cents": self.paid_cents,
            "change_cents": self.change_cents,
            "payments_by_method": list(self.payments_by_method),
        }


# =============================================================================
# SELECTION + AGGREGATION
# =============================================================================

def _open_sales_criteria(business_date: date, terminal_id: str | None) -> list:
    criteria = [
        Sale.business_date == business_date,
        Sale.report_id.is_(None),
    ]
    if terminal_id:
        criteria.append(Sale.terminal_id == terminal_id)
    return criteria


def _open_sales_query(criteria: list):
    return db.session.query(
        Sale.id,
        Sale.subtotal_cents,
        Sale.tax_cents,
        Sale.total_cents,
        Sale.paid_cents,
        Sale.change_cents,
    ).filter(*criteria).order_by(Sale.id.asc())


def _payments_by_method(criteria: list) -> list[dict]:
    # Same predicate as the sale selection
    rows = db.session.query(
        Payment.method,
        func.sum(Payment.amount_cents).label("amount_cents"),
    ).filter(
        Payment.sale_id.in_(select(Sale.id).where(*criteria))
    ).group_by(Payment.method).order_by(Payment.method.asc()).all()
    return [{"method": row.method, "amount_cents": int(row.amount_cents or 0)} for row in rows]


def summarize(rows) -> ReportTotals:
    """Sum the five money columns over a selection of sale rows."""
    rows = list(rows)
    return ReportTotals(
        sales_count=len(rows),
        subtotal_cents=sum_cents(r.subtotal_cents for r in rows),
        tax_cents=sum_cents(r.tax_cents for r in rows),
        total_cents=sum_cents(r.total_cents for r in rows),
        paid_cents=sum_cents(r.paid_cents for r in rows),
        change_cents=sum_cents(r.change_cents for r in rows),
    )


def _aggregate(rows, criteria: list) -> ReportTotals:
    totals = summarize(rows)
    if rows:
        # Bound the breakdown to the rows already read
        totals.payments_by_method = _payments_by_method(criteria + [Sale.id <= rows[-1].id])
    return totals


def _stamp_batch(criteria: list, last_sale_id: int, report_id: int) -> int:
    """Stamp the selected open sales with report_id; returns the stamped row count."""
    result = db.session.execute(
        update(Sale)
        .where(*criteria, Sale.id <= last_sale_id)
        .values(report_id=report_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


# =============================================================================
# X (PREVIEW)
# =============================================================================

def preview_report(business_date: date, terminal_id: str | None = None) -> dict:
    """
    Totals of the open sales for a day (optionally one terminal).

    Read-only: nothing is written, calling it repeatedly with no new sales
    returns the same numbers.
    """
    criteria = _open_sales_criteria(business_date, terminal_id)
    rows = _open_sales_query(criteria).all()
    totals = _aggregate(rows, criteria)
    return {
        "kind": "X",
        "business_date": business_date.isoformat(),
        "terminal_id": terminal_id,
        **totals.to_dict(),
    }


# =============================================================================
# Z (CLOSE)
# =============================================================================

def close_report(
    business_date: date,
    terminal_id: str | None = None,
    closed_by: str | None = None,
) -> ZReport:
    """
    Close every open sale for the scope under a new Z report.

    All-or-nothing: the snapshot row and the report_id stamp on each sale
    commit together. Running it again for the same scope finds nothing
    open and raises NothingToClose instead of writing a duplicate.

    Raises:
        NothingToClose: no open sales in scope (nothing written)
        ConcurrentCloseDetected: a racing close stamped some of the batch first
        ReportPersistenceFailed: the store failed mid-transaction
    """
    criteria = _open_sales_criteria(business_date, terminal_id)
    try:
        begin_write_transaction()

        rows = lock_for_update(_open_sales_query(criteria)).all()
        if not rows:
            raise NothingToClose(business_date, terminal_id)

        totals = _aggregate(rows, criteria)

        report = ZReport(
            business_date=business_date,
            terminal_id=terminal_id,
            created_by=closed_by,
            sales_count=totals.sales_count,
            totals_subtotal_cents=totals.subtotal_cents,
            totals_tax_cents=totals.tax_cents,
            totals_total_cents=totals.total_cents,
            totals_paid_cents=totals.paid_cents,
            totals_change_cents=totals.change_cents,
            payments_by_method=totals.payments_by_method,
        )
        db.session.add(report)
        db.session.flush()

        stamped = _stamp_batch(criteria, rows[-1].id, report.id)
        if stamped != len(rows):
            raise ConcurrentCloseDetected(expected=len(rows), stamped=stamped)

        db.session.commit()
    except ReportError as exc:
        db.session.rollback()
        current_app.logger.warning("Z close rejected for %s/%s: %s", business_date, terminal_id, exc)
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Z close failed for %s/%s, rolled back", business_date, terminal_id)
        raise ReportPersistenceFailed("Z report could not be saved") from exc
    except Exception:
        db.session.rollback()
        raise

    # Stamped rows were updated behind the identity map
    db.session.expire_all()

    current_app.logger.info(
        "Z report %s closed %s sales for %s/%s by %s",
        report.id, report.sales_count, business_date, terminal_id or "*", closed_by,
    )
    return report


# =============================================================================
# LOOKUP
# =============================================================================

def get_report(report_id: int) -> ZReport:
    report = db.session.get(ZReport, report_id)
    if not report:
        raise ReportNotFound(f"Report {report_id} not found")
    return report


def list_reports(
    *,
    business_date: date | None = None,
    terminal_id: str | None = None,
    page: int = 1,
    page_size: int | None = None,
    max_page_size: int = 50,
) -> list[ZReport]:
    """Z reports newest first (business date desc, id desc), one capped page."""
    if not page_size or page_size <= 0 or page_size > max_page_size:
        page_size = max_page_size
    page = max(page, 1)

    query = db.session.query(ZReport)
    if business_date:
        query = query.filter(ZReport.business_date == business_date)
    if terminal_id:
        query = query.filter(ZReport.terminal_id == terminal_id)

    return query.order_by(
        ZReport.business_date.desc(),
        ZReport.id.desc(),
    ).offset((page - 1) * page_size).limit(page_size).all()
