"""
Pytest fixtures for till backend tests.

Provides an in-memory database, a seeded catalog, caller headers and an
in-memory Catalog for exercising the sale builder without a session.
"""

from datetime import date

import pytest
from till import create_app
from till.extensions import db
from till.models import PaymentMethod, Product
from till.services import catalog_service
from till.services.catalog_service import CatalogPaymentMethod, CatalogProduct
from till.services.sales_service import CartItem, SaleContext, TenderInput, create_sale


BUSINESS_DAY = date(2026, 1, 15)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BUSINESS_TIMEZONE': 'UTC',
        'REPORT_PAGE_SIZE': 5,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def catalog(db_session):
    """Seed the demo catalog and return the ids tests refer to."""
    catalog_service.seed_catalog()

    def product_id(sku):
        return db_session.query(Product).filter_by(sku=sku).one().id

    def method_id(code):
        return db_session.query(PaymentMethod).filter_by(code=code).one().id

    return {
        "tea": product_id("TEA001"),
        "sandwich": product_id("SND001"),
        "water": product_id("WTR500"),
        "cash": method_id("CASH"),
        "card": method_id("CARD"),
    }


@pytest.fixture
def cashier_headers():
    return {"X-User-Id": "cashier-1", "X-User-Role": "CASHIER"}


@pytest.fixture
def manager_headers():
    return {"X-User-Id": "manager-1", "X-User-Role": "MANAGER"}


@pytest.fixture
def make_sale(db_session, catalog):
    """
    Create a persisted sale of `qty` waters (800 cents, untaxed) paid exactly in cash.

    Lets report tests produce sales of a known total quickly.
    """
    def _make(qty=1, terminal_id="T1", business_date=BUSINESS_DAY, unit_cents=None, method="CASH"):
        context = SaleContext(terminal_id=terminal_id, cashier_id="cashier-1", business_date=business_date)
        return create_sale(
            [CartItem(product_id=catalog["water"], qty=qty, unit_cents_override=unit_cents)],
            [TenderInput(method=method)],
            context,
        )

    return _make


# =============================================================================
# IN-MEMORY CATALOG
# =============================================================================

class DictCatalog:
    """Catalog backed by plain dicts, for builder tests that never touch the database."""

    def __init__(self, products, methods=()):
        self.products = {p.id: p for p in products}
        self.methods = {m.id: m for m in methods}

    def products_by_ids(self, ids):
        return {i: self.products[i] for i in ids if i in self.products}

    def payment_methods_by_ids(self, ids):
        return {i: self.methods[i] for i in ids if i in self.methods}

    def payment_methods_by_names(self, names):
        wanted = {n.strip().lower() for n in names}
        matched = {}
        for method in self.methods.values():
            if method.code.lower() in wanted:
                matched[method.code.lower()] = method
        for method in self.methods.values():
            if method.label.lower() in wanted:
                matched.setdefault(method.label.lower(), method)
        return matched


@pytest.fixture
def memory_catalog():
    return DictCatalog(
        products=[
            CatalogProduct(id=1, price_cents=800, tax_rate_bps=0),
            CatalogProduct(id=2, price_cents=2500, tax_rate_bps=0),
            CatalogProduct(id=3, price_cents=12000, tax_rate_bps=1500),
            CatalogProduct(id=4, price_cents=None, tax_rate_bps=1500),
            CatalogProduct(id=5, price_cents=333, tax_rate_bps=1500),
        ],
        methods=[
            CatalogPaymentMethod(id=10, code="CASH", label="Cash", opens_drawer=True),
            CatalogPaymentMethod(id=11, code="CARD", label="Card"),
        ],
    )


@pytest.fixture
def context():
    return SaleContext(terminal_id="T1", cashier_id="cashier-1", business_date=BUSINESS_DAY)
