"""
X / Z report tests.

Verifies:
- X previews open sales without writing anything
- Z snapshots the totals and closes exactly the sales it counted
- Closed sales are excluded from every later report and cannot be edited
"""

from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from till.models import Sale, SaleClosedError, ZReport
from till.services import report_service
from till.services.report_service import (
    ConcurrentCloseDetected,
    NothingToClose,
    ReportNotFound,
    ReportPersistenceFailed,
    close_report,
    get_report,
    list_reports,
    preview_report,
)

from conftest import BUSINESS_DAY


def _three_sales(make_sale):
    # 5000 / 6000 / 4000 cents via price overrides on an untaxed product
    make_sale(unit_cents=5000)
    make_sale(unit_cents=6000)
    make_sale(unit_cents=4000)


class TestPreview:
    def test_totals_open_sales(self, make_sale):
        _three_sales(make_sale)

        report = preview_report(BUSINESS_DAY, "T1")
        assert report["kind"] == "X"
        assert report["sales_count"] == 3
        assert report["total_cents"] == 15000
        assert report["subtotal_cents"] == 15000
        assert report["tax_cents"] == 0
        assert report["payments_by_method"] == [{"method": "CASH", "amount_cents": 15000}]

    def test_preview_is_read_only(self, db_session, make_sale):
        make_sale()
        first = preview_report(BUSINESS_DAY)
        second = preview_report(BUSINESS_DAY)
        assert first == second
        assert db_session.query(ZReport).count() == 0
        assert db_session.query(Sale).filter(Sale.report_id.isnot(None)).count() == 0

    def test_empty_day(self, db_session):
        report = preview_report(date(2030, 1, 1))
        assert report["sales_count"] == 0
        assert report["total_cents"] == 0
        assert report["payments_by_method"] == []

    def test_scope_by_date_and_terminal(self, make_sale):
        make_sale(terminal_id="T1")
        make_sale(terminal_id="T2", qty=2)
        make_sale(terminal_id="T1", business_date=date(2026, 1, 16))

        assert preview_report(BUSINESS_DAY, "T1")["total_cents"] == 800
        assert preview_report(BUSINESS_DAY, "T2")["total_cents"] == 1600
        assert preview_report(BUSINESS_DAY)["sales_count"] == 2

    def test_payments_grouped_and_sorted_by_method(self, make_sale):
        make_sale(method="CASH")
        make_sale(method="CARD")
        make_sale(method="CARD")

        report = preview_report(BUSINESS_DAY)
        assert report["payments_by_method"] == [
            {"method": "CARD", "amount_cents": 1600},
            {"method": "CASH", "amount_cents": 800},
        ]


class TestClose:
    def test_close_snapshots_and_stamps(self, db_session, make_sale):
        _three_sales(make_sale)

        report = close_report(BUSINESS_DAY, "T1", closed_by="manager-1")

        assert report.sales_count == 3
        assert report.totals_total_cents == 15000
        assert report.created_by == "manager-1"
        assert report.to_dict()["payments_by_method"] == [{"method": "CASH", "amount_cents": 15000}]

        stamped = {s.report_id for s in db_session.query(Sale).all()}
        assert stamped == {report.id}

    def test_x_after_z_is_empty(self, make_sale):
        _three_sales(make_sale)
        close_report(BUSINESS_DAY, "T1")

        assert preview_report(BUSINESS_DAY, "T1")["sales_count"] == 0

    def test_second_close_has_nothing_to_close(self, db_session, make_sale):
        make_sale()
        close_report(BUSINESS_DAY, "T1")

        with pytest.raises(NothingToClose):
            close_report(BUSINESS_DAY, "T1")
        assert db_session.query(ZReport).count() == 1

    def test_close_only_touches_its_scope(self, db_session, make_sale):
        t1 = make_sale(terminal_id="T1")
        t2 = make_sale(terminal_id="T2")
        t1_id, t2_id = t1.id, t2.id

        close_report(BUSINESS_DAY, "T1")

        assert db_session.get(Sale, t1_id).report_id is not None
        assert db_session.get(Sale, t2_id).report_id is None

    def test_sales_after_close_go_to_next_report(self, make_sale):
        make_sale()
        first = close_report(BUSINESS_DAY, "T1")
        make_sale(qty=2)
        second = close_report(BUSINESS_DAY, "T1")

        assert first.id != second.id
        assert second.sales_count == 1
        assert second.totals_total_cents == 1600

    def test_closed_sale_cannot_be_modified(self, db_session, make_sale):
        sale = make_sale()
        close_report(BUSINESS_DAY, "T1")

        sale = db_session.get(Sale, sale.id)
        with pytest.raises(SaleClosedError):
            sale.total_cents = 1
        with pytest.raises(SaleClosedError):
            sale.report_id = None
        with pytest.raises(SaleClosedError):
            sale.payments[0].amount_cents = 1
        with pytest.raises(SaleClosedError):
            sale.lines[0].qty = 5

    def test_nothing_written_when_nothing_open(self, db_session):
        with pytest.raises(NothingToClose):
            close_report(BUSINESS_DAY)
        assert db_session.query(ZReport).count() == 0

    def _assert_all_open(self, db_session, count):
        assert db_session.query(ZReport).count() == 0
        assert db_session.query(Sale).filter(Sale.report_id.isnot(None)).count() == 0
        assert preview_report(BUSINESS_DAY, "T1")["sales_count"] == count

    def test_partial_stamp_rolls_back_whole_close(self, db_session, make_sale):
        _three_sales(make_sale)
        stamp = report_service._stamp_batch

        def stamp_one_short(*args):
            return stamp(*args) - 1

        with patch.object(report_service, "_stamp_batch", side_effect=stamp_one_short):
            with pytest.raises(ConcurrentCloseDetected) as exc_info:
                close_report(BUSINESS_DAY, "T1")

        assert exc_info.value.expected == 3
        assert exc_info.value.stamped == 2
        self._assert_all_open(db_session, 3)

    def test_commit_failure_rolls_back_whole_close(self, db_session, make_sale):
        _three_sales(make_sale)

        with patch("sqlalchemy.orm.Session.commit", side_effect=OperationalError("UPDATE", {}, Exception("disk full"))):
            with pytest.raises(ReportPersistenceFailed):
                close_report(BUSINESS_DAY, "T1")

        self._assert_all_open(db_session, 3)

    def test_unexpected_failure_rolls_back_and_propagates(self, db_session, make_sale):
        _three_sales(make_sale)

        with patch.object(report_service, "_stamp_batch", side_effect=RuntimeError("driver crashed")):
            with pytest.raises(RuntimeError):
                close_report(BUSINESS_DAY, "T1")

        self._assert_all_open(db_session, 3)

    def test_breakdown_ignores_sales_outside_batch(self, make_sale):
        make_sale(unit_cents=5000, method="CASH")
        make_sale(unit_cents=6000, method="CARD")
        make_sale(unit_cents=4000, method="CARD", terminal_id="T2")

        report = close_report(BUSINESS_DAY, "T1")
        assert report.payments_by_method == [
            {"method": "CARD", "amount_cents": 6000},
            {"method": "CASH", "amount_cents": 5000},
        ]


class TestLookup:
    def test_get_report(self, make_sale):
        make_sale()
        report = close_report(BUSINESS_DAY, "T1")
        assert get_report(report.id).to_dict()["total_cents"] == 800

    def test_get_missing_report(self, db_session):
        with pytest.raises(ReportNotFound):
            get_report(12345)

    def test_list_newest_first(self, make_sale):
        make_sale(business_date=date(2026, 1, 14))
        older = close_report(date(2026, 1, 14), "T1")
        make_sale(business_date=date(2026, 1, 15), terminal_id="T1")
        make_sale(business_date=date(2026, 1, 15), terminal_id="T2")
        t1 = close_report(date(2026, 1, 15), "T1")
        t2 = close_report(date(2026, 1, 15), "T2")

        assert [r.id for r in list_reports()] == [t2.id, t1.id, older.id]
        assert [r.id for r in list_reports(business_date=date(2026, 1, 15), terminal_id="T1")] == [t1.id]

    def test_list_page_size_is_capped(self, make_sale):
        for day in range(1, 5):
            make_sale(business_date=date(2026, 2, day))
            close_report(date(2026, 2, day), "T1")

        assert len(list_reports(page_size=100, max_page_size=3)) == 3
        assert len(list_reports(page=2, page_size=3, max_page_size=3)) == 1


def test_summarize_sums_every_column():
    class Row:
        def __init__(self, total):
            self.subtotal_cents = total
            self.tax_cents = 0
            self.total_cents = total
            self.paid_cents = total + 100
            self.change_cents = 100

    totals = report_service.summarize([Row(5000), Row(6000), Row(4000)])
    assert totals.sales_count == 3
    assert totals.total_cents == 15000
    assert totals.paid_cents == 15300
    assert totals.change_cents == 300
