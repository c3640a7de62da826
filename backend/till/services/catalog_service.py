# Overview: Read-only catalog adapter; resolves products and payment methods for the sale builder.

"""
Catalog lookups

WHY: The sale builder needs unit prices, tax rates and settlement codes, but
does not own the catalog. Everything it reads goes through the small
Catalog protocol below so the computation can run against the database
(SqlCatalog) or an in-memory stand-in without touching a session.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..extensions import db
from ..models import PaymentMethod, Product, TaxRate


@dataclass(frozen=True)
class CatalogProduct:
    id: int
    price_cents: int | None
    tax_rate_bps: int


@dataclass(frozen=True)
class CatalogPaymentMethod:
    id: int
    code: str
    label: str
    is_active: bool = True
    opens_drawer: bool = False


class Catalog(Protocol):
    def products_by_ids(self, ids: Iterable[int]) -> dict[int, CatalogProduct]: ...

    def payment_methods_by_ids(self, ids: Iterable[int]) -> dict[int, CatalogPaymentMethod]: ...

    def payment_methods_by_names(self, names: Iterable[str]) -> dict[str, CatalogPaymentMethod]: ...


class SqlCatalog:
    """Catalog backed by the products / tax_rates / payment_methods tables."""

    def __init__(self, session: Session):
        self.session = session

    def products_by_ids(self, ids: Iterable[int]) -> dict[int, CatalogProduct]:
        ids = sorted(set(ids))
        if not ids:
            return {}
        rows = (
            self.session.query(Product.id, Product.price_cents, TaxRate.rate_bps)
            .outerjoin(TaxRate, Product.tax_rate_id == TaxRate.id)
            .filter(Product.id.in_(ids))
            .all()
        )
        return {
            row.id: CatalogProduct(id=row.id, price_cents=row.price_cents, tax_rate_bps=row.rate_bps or 0)
            for row in rows
        }

    def payment_methods_by_ids(self, ids: Iterable[int]) -> dict[int, CatalogPaymentMethod]:
        ids = sorted(set(ids))
        if not ids:
            return {}
        methods = self.session.query(PaymentMethod).filter(PaymentMethod.id.in_(ids)).all()
        return {m.id: _to_catalog_method(m) for m in methods}

    def payment_methods_by_names(self, names: Iterable[str]) -> dict[str, CatalogPaymentMethod]:
        """Match codes or labels case-insensitively; keys are the lowercased names asked for."""
        wanted = {name.strip().lower() for name in names if name and name.strip()}
        if not wanted:
            return {}
        methods = self.session.query(PaymentMethod).filter(
            or_(
                func.lower(PaymentMethod.code).in_(wanted),
                func.lower(PaymentMethod.label).in_(wanted),
            )
        ).order_by(PaymentMethod.sort.asc(), PaymentMethod.id.asc()).all()

        matched: dict[str, CatalogPaymentMethod] = {}
        # Code matches win over label matches
        for method in methods:
            key = method.code.lower()
            if key in wanted:
                matched[key] = _to_catalog_method(method)
        for method in methods:
            key = method.label.lower()
            if key in wanted and key not in matched:
                matched[key] = _to_catalog_method(method)
        return matched


def _to_catalog_method(method: PaymentMethod) -> CatalogPaymentMethod:
    return CatalogPaymentMethod(
        id=method.id,
        code=method.code,
        label=method.label,
        is_active=method.is_active,
        opens_drawer=method.opens_drawer,
    )


# =============================================================================
# REGISTER-FACING QUERIES
# =============================================================================

def search_products(
    *,
    query: str | None = None,
    sku: str | None = None,
    barcode: str | None = None,
    limit: int | None = None,
    max_limit: int = 50,
) -> list[Product]:
    """Active products matching sku / barcode / free text, newest first."""
    q = db.session.query(Product).filter(Product.is_active.is_(True))

    if sku:
        q = q.filter(Product.sku == sku)
    if barcode:
        q = q.filter(Product.barcode == barcode)
    if query:
        pattern = f"%{query}%"
        q = q.filter(or_(
            Product.name.ilike(pattern),
            Product.sku.ilike(pattern),
            Product.barcode.ilike(pattern),
        ))

    if not limit or limit <= 0 or limit > max_limit:
        limit = max_limit

    return q.order_by(Product.id.desc()).limit(limit).all()


def list_active_payment_methods() -> list[PaymentMethod]:
    return db.session.query(PaymentMethod).filter_by(
        is_active=True
    ).order_by(PaymentMethod.sort.asc(), PaymentMethod.id.asc()).all()


# =============================================================================
# SEED DATA
# =============================================================================

SEED_TAX_RATE = {"name": "VAT 15%", "rate_bps": 1500}

SEED_PRODUCTS = [
    {"sku": "TEA001", "name": "Milk Tea", "price_cents": 2500, "taxed": False, "barcode": None},
    {"sku": "SND001", "name": "Chicken Sandwich", "price_cents": 12000, "taxed": True, "barcode": "8901234567890"},
    {"sku": "WTR500", "name": "Water 500ml", "price_cents": 800, "taxed": False, "barcode": None},
]

SEED_PAYMENT_METHODS = [
    {"code": "CASH", "label": "Cash", "opens_drawer": True, "sort": 1},
    {"code": "CARD", "label": "Card", "opens_drawer": False, "sort": 2},
]


def seed_catalog() -> dict:
    """
    Idempotently create the demo tax rate, products and payment methods.

    Existing rows (matched by name / sku / code) are updated in place.
    """
    vat = db.session.query(TaxRate).filter_by(name=SEED_TAX_RATE["name"]).first()
    if not vat:
        vat = TaxRate(**SEED_TAX_RATE)
        db.session.add(vat)
        db.session.flush()

    for seed in SEED_PRODUCTS:
        fields = {
            "name": seed["name"],
            "price_cents": seed["price_cents"],
            "barcode": seed["barcode"],
            "tax_rate_id": vat.id if seed["taxed"] else None,
            "is_active": True,
        }
        product = db.session.query(Product).filter_by(sku=seed["sku"]).first()
        if product:
            for key, value in fields.items():
                setattr(product, key, value)
        else:
            db.session.add(Product(sku=seed["sku"], **fields))

    for seed in SEED_PAYMENT_METHODS:
        fields = {
            "label": seed["label"],
            "opens_drawer": seed["opens_drawer"],
            "sort": seed["sort"],
            "is_active": True,
        }
        method = db.session.query(PaymentMethod).filter_by(code=seed["code"]).first()
        if method:
            for key, value in fields.items():
                setattr(method, key, value)
        else:
            db.session.add(PaymentMethod(code=seed["code"], **fields))

    db.session.commit()

    return {
        "tax_rates": 1,
        "products": len(SEED_PRODUCTS),
        "payment_methods": len(SEED_PAYMENT_METHODS),
    }
