"""
Sales Service - cart + tenders in, settled sale out

WHY: A sale is the immutable financial record the day's reports are built
from. All money is computed here from the catalog and the quantities; the
caller only chooses products, quantities, optional price overrides and
tenders.

DESIGN:
- build_sale() is pure: every validation error is raised before anything
  is written
- persist_sale() writes the sale, its lines and its payments in one commit
  or not at all
- Overpayment becomes change; underpayment rejects the sale
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Sale, SaleLine, Payment
from ..money import MAX_PRICE_CENTS, MAX_QTY, MAX_SALE_CENTS, line_tax_cents, sum_cents
from .catalog_service import Catalog, SqlCatalog


# =============================================================================
# ERRORS
# =============================================================================

class SaleError(Exception):
    """Raised for sale validation errors. Nothing is persisted."""
    code = "SALE_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class EmptyCart(SaleError):
    code = "EMPTY_CART"

    def __init__(self):
        super().__init__("Cart is empty: items[] required")


class NoPayment(SaleError):
    code = "NO_PAYMENT"

    def __init__(self):
        super().__init__("No payment: payments[] required")


class ProductNotFound(SaleError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} not found", details={"product_id": product_id})
        self.product_id = product_id


class InvalidLine(SaleError):
    code = "INVALID_LINE"


class InvalidTender(SaleError):
    code = "INVALID_TENDER"


class UnknownPaymentMethod(SaleError):
    code = "UNKNOWN_PAYMENT_METHOD"


class InsufficientPayment(SaleError):
    code = "INSUFFICIENT_PAYMENT"

    def __init__(self, paid_cents: int, total_cents: int):
        super().__init__(
            f"paid ({paid_cents}) is less than total ({total_cents})",
            details={"paid_cents": paid_cents, "total_cents": total_cents},
        )
        self.paid_cents = paid_cents
        self.total_cents = total_cents


class PersistenceFailed(SaleError):
    """The store rejected the write; the whole sale was rolled back."""
    code = "PERSISTENCE_FAILED"


# =============================================================================
# INPUT / OUTPUT VALUES
# =============================================================================

@dataclass(frozen=True)
class CartItem:
    product_id: int
    qty: int
    unit_cents_override: int | None = None


@dataclass(frozen=True)
class TenderInput:
    """One tender. Give method (code or label) or method_id; amount_cents None settles the balance."""
    method: str | None = None
    method_id: int | None = None
    amount_cents: int | None = None


@dataclass(frozen=True)
class SaleContext:
    terminal_id: str
    cashier_id: str
    business_date: date


@dataclass(frozen=True)
class LineDraft:
    product_id: int
    qty: int
    unit_cents: int
    tax_rate_bps: int
    subtotal_cents: int
    tax_cents: int
    line_total_cents: int


@dataclass(frozen=True)
class TenderDraft:
    method: str
    amount_cents: int


@dataclass(frozen=True)
class SaleDraft:
    context: SaleContext
    lines: tuple[LineDraft, ...]
    tenders: tuple[TenderDraft, ...]
    subtotal_cents: int
    tax_cents: int
    total_cents: int
    paid_cents: int
    change_cents: int

    @property
    def payment_method(self) -> str | None:
        return self.tenders[0].method if self.tenders else None


# =============================================================================
# COMPUTATION
# =============================================================================

def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def compute_line(product_id: int, qty: int, unit_cents: int, tax_rate_bps: int) -> LineDraft:
    """subtotal = unit x qty, tax = round(subtotal x bps / 10000), total = subtotal + tax."""
    subtotal = unit_cents * qty
    tax = line_tax_cents(subtotal, tax_rate_bps)
    return LineDraft(
        product_id=product_id,
        qty=qty,
        unit_cents=unit_cents,
        tax_rate_bps=tax_rate_bps,
        subtotal_cents=subtotal,
        tax_cents=tax,
        line_total_cents=subtotal + tax,
    )


def _build_lines(cart: list[CartItem], catalog: Catalog) -> list[LineDraft]:
    product_ids = {item.product_id for item in cart}
    products = catalog.products_by_ids(product_ids)

    # Report the first unknown product in cart order
    for item in cart:
        if item.product_id not in products:
            raise ProductNotFound(item.product_id)

    lines = []
    for index, item in enumerate(cart):
        if not _is_int(item.qty) or item.qty <= 0 or item.qty > MAX_QTY:
            raise InvalidLine(
                f"items[{index}].qty must be between 1 and {MAX_QTY}",
                details={"index": index, "product_id": item.product_id},
            )

        product = products[item.product_id]

        if item.unit_cents_override is not None:
            unit_cents = item.unit_cents_override
            if not _is_int(unit_cents) or unit_cents <= 0 or unit_cents > MAX_PRICE_CENTS:
                raise InvalidLine(
                    f"items[{index}] price override must be between 1 and {MAX_PRICE_CENTS} cents",
                    details={"index": index, "product_id": item.product_id},
                )
        else:
            unit_cents = product.price_cents
            if unit_cents is None:
                raise InvalidLine(
                    f"Product {item.product_id} has no price",
                    details={"index": index, "product_id": item.product_id},
                )

        lines.append(compute_line(item.product_id, item.qty, unit_cents, product.tax_rate_bps or 0))

    return lines


def _resolve_methods(tenders: list[TenderInput], catalog: Catalog) -> list[str]:
    method_ids = {t.method_id for t in tenders if t.method_id is not None}
    by_id = catalog.payment_methods_by_ids(method_ids) if method_ids else {}

    names = {t.method.strip() for t in tenders if t.method and t.method.strip()}
    by_name = catalog.payment_methods_by_names(names) if names else {}

    resolved = []
    for index, tender in enumerate(tenders):
        name = tender.method.strip() if tender.method else ""
        if name:
            known = by_name.get(name.lower())
            resolved.append(known.code if known else name)
        elif tender.method_id is not None:
            known = by_id.get(tender.method_id)
            if not known:
                raise UnknownPaymentMethod(
                    f"Payment method {tender.method_id} not found",
                    details={"index": index, "method_id": tender.method_id},
                )
            resolved.append(known.code or known.label)
        else:
            raise UnknownPaymentMethod(
                f"payments[{index}] needs a method or methodId",
                details={"index": index},
            )
    return resolved


def _resolve_amounts(tenders: list[TenderInput], total_cents: int) -> list[int]:
    open_ended = [i for i, t in enumerate(tenders) if t.amount_cents is None]
    if len(open_ended) > 1:
        raise InvalidTender(
            "Only one payment may omit its amount",
            details={"indexes": open_ended},
        )

    for index, tender in enumerate(tenders):
        if tender.amount_cents is None:
            continue
        if not _is_int(tender.amount_cents) or not 0 < tender.amount_cents <= MAX_SALE_CENTS:
            raise InvalidTender(
                f"payments[{index}].amount_cents must be between 1 and {MAX_SALE_CENTS}",
                details={"index": index},
            )

    explicit = sum_cents(t.amount_cents for t in tenders if t.amount_cents is not None)
    if explicit > MAX_SALE_CENTS:
        raise InvalidTender(
            f"Payments exceed {MAX_SALE_CENTS} cents",
            details={"paid_cents": explicit},
        )
    amounts = [t.amount_cents for t in tenders]

    if open_ended:
        remaining = total_cents - explicit
        if remaining <= 0:
            raise InvalidTender(
                "Payment without amount has no balance left to settle",
                details={"index": open_ended[0]},
            )
        amounts[open_ended[0]] = remaining

    return amounts


def build_sale(
    cart: list[CartItem],
    tenders: list[TenderInput],
    context: SaleContext,
    catalog: Catalog,
) -> SaleDraft:
    """
    Compute a complete, balanced sale without writing anything.

    Raises:
        EmptyCart, NoPayment, ProductNotFound, InvalidLine, InvalidTender,
        UnknownPaymentMethod, InsufficientPayment
    """
    if not cart:
        raise EmptyCart()
    if not tenders:
        raise NoPayment()

    lines = _build_lines(cart, catalog)

    subtotal_cents = sum_cents(line.subtotal_cents for line in lines)
    tax_cents = sum_cents(line.tax_cents for line in lines)
    total_cents = subtotal_cents + tax_cents
    if total_cents > MAX_SALE_CENTS:
        raise InvalidLine(
            f"Sale total exceeds {MAX_SALE_CENTS} cents",
            details={"total_cents": total_cents},
        )

    methods = _resolve_methods(tenders, catalog)
    amounts = _resolve_amounts(tenders, total_cents)

    paid_cents = sum_cents(amounts)
    if paid_cents < total_cents:
        raise InsufficientPayment(paid_cents, total_cents)

    return SaleDraft(
        context=context,
        lines=tuple(lines),
        tenders=tuple(TenderDraft(method=m, amount_cents=a) for m, a in zip(methods, amounts)),
        subtotal_cents=subtotal_cents,
        tax_cents=tax_cents,
        total_cents=total_cents,
        paid_cents=paid_cents,
        change_cents=paid_cents - total_cents,
    )


# =============================================================================
# PERSISTENCE
# =============================================================================

def persist_sale(draft: SaleDraft) -> Sale:
    """Write sale + lines + payments as one unit. Rolls back entirely on failure."""
    sale = Sale(
        terminal_id=draft.context.terminal_id,
        cashier_id=draft.context.cashier_id,
        business_date=draft.context.business_date,
        subtotal_cents=draft.subtotal_cents,
        tax_cents=draft.tax_cents,
        total_cents=draft.total_cents,
        paid_cents=draft.paid_cents,
        change_cents=draft.change_cents,
        payment_method=draft.payment_method,
        lines=[
            SaleLine(
                product_id=line.product_id,
                qty=line.qty,
                unit_cents=line.unit_cents,
                tax_rate_bps=line.tax_rate_bps,
                subtotal_cents=line.subtotal_cents,
                tax_cents=line.tax_cents,
                line_total_cents=line.line_total_cents,
            )
            for line in draft.lines
        ],
        payments=[
            Payment(method=tender.method, amount_cents=tender.amount_cents)
            for tender in draft.tenders
        ],
    )

    try:
        db.session.add(sale)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Sale write failed, rolled back")
        raise PersistenceFailed("Sale could not be saved") from exc
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Sale %s created: terminal=%s total=%s paid=%s change=%s",
        sale.id, sale.terminal_id, sale.total_cents, sale.paid_cents, sale.change_cents,
    )
    return sale


def create_sale(
    cart: list[CartItem],
    tenders: list[TenderInput],
    context: SaleContext,
    catalog: Catalog | None = None,
) -> Sale:
    """Validate, compute and persist a sale. See build_sale for the errors raised."""
    if catalog is None:
        catalog = SqlCatalog(db.session)
    draft = build_sale(cart, tenders, context, catalog)
    return persist_sale(draft)


def get_sale(sale_id: int) -> Sale | None:
    return db.session.get(Sale, sale_id)
