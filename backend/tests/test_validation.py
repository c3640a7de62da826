from datetime import date

import pytest

from till.services.sales_service import CartItem, TenderInput
from till.validation import ValidationError, coerce_int, parse_report_scope, parse_sale_request


TODAY = date(2026, 1, 15)


def test_coerce_int_accepts_plain_integers():
    assert coerce_int("qty", 3) == 3
    assert coerce_int("qty", " 12 ") == 12
    assert coerce_int("qty", "-4") == -4


@pytest.mark.parametrize("value", [True, 1.0, "1.5", "1e3", "", "abc", None])
def test_coerce_int_rejects(value):
    with pytest.raises(ValidationError):
        coerce_int("qty", value)


def test_parses_camel_case_body():
    request = parse_sale_request(
        {
            "terminalId": "T1",
            "items": [{"productId": 3, "qty": 2, "unitCentsOverride": 900}],
            "payments": [{"methodId": 10, "amountCents": 5000}, {"method": "CARD"}],
        },
        default_cashier_id="user-7",
        default_business_date=TODAY,
    )

    assert request.items == [CartItem(product_id=3, qty=2, unit_cents_override=900)]
    assert request.tenders == [
        TenderInput(method=None, method_id=10, amount_cents=5000),
        TenderInput(method="CARD", method_id=None, amount_cents=None),
    ]
    assert request.context.cashier_id == "user-7"
    assert request.context.business_date == TODAY


def test_quantity_defaults_to_one_and_amount_is_converted():
    request = parse_sale_request(
        {
            "terminal_id": "T2",
            "business_date": "2026-02-01",
            "sale_items": [{"product_id": "5"}],
            "tenders": [{"method_name": "Cash", "amount": "10.005"}],
        },
        default_cashier_id="user-7",
        default_business_date=TODAY,
    )

    assert request.items[0].qty == 1
    assert request.items[0].product_id == 5
    assert request.tenders[0].amount_cents == 1001
    assert request.context.business_date == date(2026, 2, 1)


def test_empty_lists_pass_through():
    request = parse_sale_request(
        {"terminalId": "T1"},
        default_cashier_id="user-7",
        default_business_date=TODAY,
    )
    assert request.items == []
    assert request.tenders == []


def test_cashier_required_when_no_caller():
    with pytest.raises(ValidationError):
        parse_sale_request({"terminalId": "T1"}, default_cashier_id=None, default_business_date=TODAY)


def test_report_scope():
    assert parse_report_scope({"date": "2026-01-15", "terminalId": " T1 "}) == (TODAY, "T1")
    assert parse_report_scope({"date": "2026-01-15"}) == (TODAY, None)
    with pytest.raises(ValidationError):
        parse_report_scope({})
    with pytest.raises(ValidationError):
        parse_report_scope({"date": "2026-1-5"})
