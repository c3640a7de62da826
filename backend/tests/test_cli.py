from till.models import PaymentMethod, Product, TaxRate, ZReport

from conftest import BUSINESS_DAY


def test_seed_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["catalog", "seed"])
    second = runner.invoke(args=["catalog", "seed"])

    assert first.exit_code == 0, first.output
    assert second.exit_code == 0, second.output
    assert "PASS" in second.output
    assert db_session.query(TaxRate).count() == 1
    assert db_session.query(Product).count() == 3
    assert db_session.query(PaymentMethod).count() == 2


def test_x_then_z(app, db_session, make_sale):
    make_sale(qty=2)
    runner = app.test_cli_runner()

    x = runner.invoke(args=["reports", "x", "--date", BUSINESS_DAY.isoformat(), "--terminal", "T1"])
    assert x.exit_code == 0, x.output
    assert "16.00" in x.output
    assert db_session.query(ZReport).count() == 0

    z = runner.invoke(args=["reports", "z", "--date", BUSINESS_DAY.isoformat(), "--closed-by", "mgr"])
    assert z.exit_code == 0, z.output
    assert "PASS Z report" in z.output
    assert db_session.query(ZReport).one().created_by == "mgr"

    again = runner.invoke(args=["reports", "z", "--date", BUSINESS_DAY.isoformat()])
    assert "FAIL" in again.output

    listing = runner.invoke(args=["reports", "list"])
    assert "mgr" in listing.output


def test_bad_date_option(app, db_session):
    result = app.test_cli_runner().invoke(args=["reports", "x", "--date", "yesterday"])
    assert result.exit_code != 0
