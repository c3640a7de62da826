"""Initial till schema: catalog, sales, payments and Z reports

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-01-15
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "tax_rates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("rate_bps", sa.Integer(), nullable=False),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sku", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("barcode", sa.String(64), nullable=True),
        sa.Column("price_cents", sa.Integer(), nullable=True),
        sa.Column("tax_rate_id", sa.Integer(), sa.ForeignKey("tax_rates.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_products_barcode", "products", ["barcode"])
    op.create_index("ix_products_active_name", "products", ["is_active", "name"])

    op.create_table(
        "payment_methods",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(32), nullable=False, unique=True),
        sa.Column("label", sa.String(64), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("opens_drawer", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sort", sa.Integer(), nullable=False, server_default="0"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "z_reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("business_date", sa.Date(), nullable=False),
        sa.Column("terminal_id", sa.String(64), nullable=True),
        sa.Column("created_by", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("sales_count", sa.Integer(), nullable=False),
        sa.Column("totals_subtotal_cents", sa.Integer(), nullable=False),
        sa.Column("totals_tax_cents", sa.Integer(), nullable=False),
        sa.Column("totals_total_cents", sa.Integer(), nullable=False),
        sa.Column("totals_paid_cents", sa.Integer(), nullable=False),
        sa.Column("totals_change_cents", sa.Integer(), nullable=False),
        sa.Column("payments_by_method", sa.JSON(), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_z_reports_day_terminal", "z_reports", ["business_date", "terminal_id"])

    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("terminal_id", sa.String(64), nullable=False),
        sa.Column("cashier_id", sa.String(64), nullable=False),
        sa.Column("business_date", sa.Date(), nullable=False),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False),
        sa.Column("tax_cents", sa.Integer(), nullable=False),
        sa.Column("total_cents", sa.Integer(), nullable=False),
        sa.Column("paid_cents", sa.Integer(), nullable=False),
        sa.Column("change_cents", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(32), nullable=True),
        sa.Column("report_id", sa.Integer(), sa.ForeignKey("z_reports.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sales_terminal_id", "sales", ["terminal_id"])
    op.create_index("ix_sales_business_date", "sales", ["business_date"])
    op.create_index("ix_sales_report_id", "sales", ["report_id"])
    op.create_index("ix_sales_day_terminal_report", "sales", ["business_date", "terminal_id", "report_id"])

    op.create_table(
        "sale_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("qty", sa.Integer(), nullable=False),
        sa.Column("unit_cents", sa.Integer(), nullable=False),
        sa.Column("tax_rate_bps", sa.Integer(), nullable=False),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False),
        sa.Column("tax_cents", sa.Integer(), nullable=False),
        sa.Column("line_total_cents", sa.Integer(), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sale_lines_sale_id", "sale_lines", ["sale_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=False),
        sa.Column("method", sa.String(32), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_payments_sale_id", "payments", ["sale_id"])
    op.create_index("ix_payments_method", "payments", ["method"])


def downgrade():
    op.drop_index("ix_payments_method", table_name="payments")
    op.drop_index("ix_payments_sale_id", table_name="payments")
    op.drop_table("payments")

    op.drop_index("ix_sale_lines_sale_id", table_name="sale_lines")
    op.drop_table("sale_lines")

    op.drop_index("ix_sales_day_terminal_report", table_name="sales")
    op.drop_index("ix_sales_report_id", table_name="sales")
    op.drop_index("ix_sales_business_date", table_name="sales")
    op.drop_index("ix_sales_terminal_id", table_name="sales")
    op.drop_table("sales")

    op.drop_index("ix_z_reports_day_terminal", table_name="z_reports")
    op.drop_table("z_reports")

    op.drop_table("payment_methods")

    op.drop_index("ix_products_active_name", table_name="products")
    op.drop_index("ix_products_barcode", table_name="products")
    op.drop_table("products")

    op.drop_table("tax_rates")
