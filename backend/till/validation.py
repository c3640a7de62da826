from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from till.money import InvalidAmountError, to_minor_units
from till.services.sales_service import CartItem, SaleContext, TenderInput
from till.time_utils import parse_business_date


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class SaleRequest:
    items: list[CartItem]
    tenders: list[TenderInput]
    context: SaleContext


def _pick(data: dict, *keys: str) -> Any:
    """First present, non-None value among alternative spellings of a field."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def coerce_int(field: str, value: Any) -> int:
    """
    Strict integer parsing for JSON / query-string input.

    Rejects bools, floats, decimal strings and scientific notation so that
    nothing fractional ever reaches the money calculations.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def coerce_date(field: str, value: Any) -> date | None:
    try:
        return parse_business_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a date in YYYY-MM-DD format")


def _coerce_text(field: str, value: Any, *, max_length: int = 64) -> str | None:
    if value is None:
        return None
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise ValidationError(f"{field} must be a string")
    text = str(value).strip()
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text or None


def _list_field(payload: dict, field: str, *keys: str) -> list:
    raw = _pick(payload, *keys)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError(f"{field} must be a list")
    return raw


def _parse_item(index: int, raw: Any) -> CartItem:
    if not isinstance(raw, dict):
        raise ValidationError(f"items[{index}] must be an object")

    product_id = _pick(raw, "productId", "product_id")
    if product_id is None:
        raise ValidationError(f"items[{index}].productId is required")
    product_id = coerce_int(f"items[{index}].productId", product_id)
    if product_id <= 0:
        raise ValidationError(f"items[{index}].productId must be positive")

    qty = _pick(raw, "qty", "quantity")
    qty = 1 if qty is None else coerce_int(f"items[{index}].qty", qty)

    override = _pick(raw, "unitCentsOverride", "unit_cents_override", "unit_cents")
    if override is not None:
        override = coerce_int(f"items[{index}].unitCentsOverride", override)

    return CartItem(product_id=product_id, qty=qty, unit_cents_override=override)


def _parse_tender(index: int, raw: Any) -> TenderInput:
    if not isinstance(raw, dict):
        raise ValidationError(f"payments[{index}] must be an object")

    method = _coerce_text(f"payments[{index}].method", _pick(raw, "method", "method_code", "method_name"), max_length=32)

    method_id = _pick(raw, "methodId", "method_id")
    if method_id is not None:
        method_id = coerce_int(f"payments[{index}].methodId", method_id)

    amount_cents = _pick(raw, "amountCents", "amount_cents")
    if amount_cents is not None:
        amount_cents = coerce_int(f"payments[{index}].amountCents", amount_cents)
    elif raw.get("amount") is not None:
        try:
            amount_cents = to_minor_units(raw["amount"])
        except InvalidAmountError as exc:
            raise ValidationError(f"payments[{index}].amount: {exc}")

    return TenderInput(method=method, method_id=method_id, amount_cents=amount_cents)


def parse_sale_request(
    payload: Any,
    *,
    default_cashier_id: str | None,
    default_business_date: date,
) -> SaleRequest:
    """
    Turn a create-sale JSON body into typed builder input.

    Only shape and types are checked here; business rules (empty cart,
    positive quantities, coverage of the total) belong to the sale builder.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    terminal_id = _coerce_text("terminalId", _pick(payload, "terminalId", "terminal_id"))
    if not terminal_id:
        raise ValidationError("terminalId is required")

    cashier_id = _coerce_text("cashierId", _pick(payload, "cashierId", "cashier_id")) or default_cashier_id
    if not cashier_id:
        raise ValidationError("cashierId is required")

    business_date = coerce_date("businessDate", _pick(payload, "businessDate", "business_date"))

    items = [
        _parse_item(i, raw)
        for i, raw in enumerate(_list_field(payload, "items", "items", "sale_items"))
    ]
    tenders = [
        _parse_tender(i, raw)
        for i, raw in enumerate(_list_field(payload, "payments", "payments", "tenders"))
    ]

    return SaleRequest(
        items=items,
        tenders=tenders,
        context=SaleContext(
            terminal_id=terminal_id,
            cashier_id=cashier_id,
            business_date=business_date or default_business_date,
        ),
    )


def parse_report_scope(data: Any) -> tuple[date, str | None]:
    """(date, terminalId) from query args or a JSON body; date is required."""
    if data is None:
        data = {}
    if not hasattr(data, "get"):
        raise ValidationError("Invalid JSON payload")

    business_date = coerce_date("date", data.get("date"))
    if business_date is None:
        raise ValidationError("date (YYYY-MM-DD) is required")

    terminal_id = _coerce_text("terminalId", data.get("terminalId") or data.get("terminal_id"))
    return business_date, terminal_id
