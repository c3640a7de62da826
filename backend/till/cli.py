# Overview: Flask CLI command groups for catalog bootstrap and day-closing reports.

# backend/till/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "till:create_app" (PowerShell: $env:FLASK_APP="till:create_app").
# - Use: python -m flask <group> <command> [options]
#
# Schema:
# - python -m flask db upgrade
#   Create / migrate the tables (Flask-Migrate).
#
# Catalog bootstrap:
# - python -m flask catalog seed
#   Idempotently create the VAT rate, demo products and CASH / CARD methods.
#
# Day-closing reports:
# - python -m flask reports x --date 2026-01-15 [--terminal T1]
#   Print the open totals for a day without closing anything.
# - python -m flask reports z --date 2026-01-15 [--terminal T1] [--closed-by mgr]
#   Close the open sales for a day under a new Z report.
# - python -m flask reports list [--date 2026-01-15] [--terminal T1] [--limit 20]
#   List closed Z reports, newest first.

import click
from flask import current_app
from flask.cli import with_appcontext

from .money import format_cents
from .services import catalog_service, report_service
from .time_utils import parse_business_date, today_in


def _parse_date_option(ctx, param, value):
    try:
        return parse_business_date(value)
    except ValueError:
        raise click.BadParameter("expected YYYY-MM-DD")


def _scope_date(business_date):
    return business_date or today_in(current_app.config["BUSINESS_TIMEZONE"])


def _echo_totals(totals: dict) -> None:
    click.echo(f"   Sales:    {totals['sales_count']}")
    click.echo(f"   Subtotal: {format_cents(totals['subtotal_cents'])}")
    click.echo(f"   Tax:      {format_cents(totals['tax_cents'])}")
    click.echo(f"   Total:    {format_cents(totals['total_cents'])}")
    click.echo(f"   Paid:     {format_cents(totals['paid_cents'])}")
    click.echo(f"   Change:   {format_cents(totals['change_cents'])}")
    for row in totals["payments_by_method"]:
        click.echo(f"     {row['method']:<10} {format_cents(row['amount_cents'])}")


# =============================================================================
# CATALOG
# =============================================================================

@click.group('catalog')
def catalog_group():
    """Catalog bootstrap commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog_cli():
    """
    Create the demo tax rate, products and payment methods.

    Safe to run repeatedly: existing rows are updated in place.
    """
    click.echo("START Seeding catalog...")
    counts = catalog_service.seed_catalog()
    click.echo(
        f"PASS {counts['tax_rates']} tax rate, {counts['products']} products, "
        f"{counts['payment_methods']} payment methods"
    )


# =============================================================================
# REPORTS
# =============================================================================

@click.group('reports')
def reports_group():
    """X / Z day-closing reports."""


@reports_group.command('x')
@click.option('--date', 'business_date', callback=_parse_date_option, help='Business date (YYYY-MM-DD), defaults to today')
@click.option('--terminal', 'terminal_id', help='Limit to one terminal')
@with_appcontext
def x_report_cli(business_date, terminal_id):
    """
    Preview the open totals for a business day.

    Example:
        flask reports x --date 2026-01-15 --terminal T1
    """
    business_date = _scope_date(business_date)
    report = report_service.preview_report(business_date, terminal_id)

    click.echo(f"X report {report['business_date']} / {terminal_id or 'all terminals'}")
    _echo_totals(report)


@reports_group.command('z')
@click.option('--date', 'business_date', callback=_parse_date_option, help='Business date (YYYY-MM-DD), defaults to today')
@click.option('--terminal', 'terminal_id', help='Limit to one terminal')
@click.option('--closed-by', default='cli', show_default=True, help='Identity recorded on the report')
@with_appcontext
def z_report_cli(business_date, terminal_id, closed_by):
    """
    Close the open sales for a business day.

    Example:
        flask reports z --date 2026-01-15 --closed-by manager
    """
    business_date = _scope_date(business_date)

    try:
        report = report_service.close_report(business_date, terminal_id, closed_by=closed_by)
    except report_service.ReportError as e:
        click.echo(f"FAIL {str(e)}")
        return

    data = report.to_dict()
    click.echo(f"PASS Z report {report.id} closed {report.sales_count} sales for {data['business_date']}")
    _echo_totals(data)


@reports_group.command('list')
@click.option('--date', 'business_date', callback=_parse_date_option, help='Filter by business date')
@click.option('--terminal', 'terminal_id', help='Filter by terminal')
@click.option('--limit', default=20, show_default=True, help='Max reports to show')
@with_appcontext
def list_reports_cli(business_date, terminal_id, limit):
    """List closed Z reports, newest first."""
    reports = report_service.list_reports(
        business_date=business_date,
        terminal_id=terminal_id,
        page_size=limit,
        max_page_size=current_app.config["REPORT_PAGE_SIZE"],
    )

    if not reports:
        click.echo("No reports found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<6} {'Date':<12} {'Terminal':<12} {'Sales':<7} {'Total':>12}  {'Closed by'}")
    click.echo("="*80)

    for report in reports:
        click.echo(
            f"{report.id:<6} {report.business_date.isoformat():<12} {report.terminal_id or '*':<12} "
            f"{report.sales_count:<7} {format_cents(report.totals_total_cents):>12}  {report.created_by or '-'}"
        )

    click.echo("="*80 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(catalog_group)
    app.cli.add_command(reports_group)
