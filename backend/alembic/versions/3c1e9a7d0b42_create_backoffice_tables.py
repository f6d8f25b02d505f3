"""Create suppliers, investors, purchases, sales and ledger tables

Revision ID: 3c1e9a7d0b42
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3c1e9a7d0b42"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(with_updated: bool = True):
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True)]
    if with_updated:
        columns.append(sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True))
    return columns


def _party_columns():
    return [
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "app_users",
        sa.Column("user_id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=150), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        *_timestamps(with_updated=False),
        sa.UniqueConstraint("username", name="uq_app_users_username"),
    )
    op.create_index("ix_app_users_user_id", "app_users", ["user_id"])

    op.create_table(
        "suppliers",
        sa.Column("supplier_id", sa.Integer(), primary_key=True),
        *_party_columns(),
        *_timestamps(),
    )
    op.create_index("ix_suppliers_supplier_id", "suppliers", ["supplier_id"])
    op.create_index("ix_suppliers_user_id", "suppliers", ["user_id"])

    op.create_table(
        "investors",
        sa.Column("investor_id", sa.Integer(), primary_key=True),
        *_party_columns(),
        *_timestamps(),
    )
    op.create_index("ix_investors_investor_id", "investors", ["investor_id"])
    op.create_index("ix_investors_user_id", "investors", ["user_id"])

    op.create_table(
        "purchases",
        sa.Column("purchase_id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.supplier_id", ondelete="RESTRICT"), nullable=False),
        sa.Column("investor_id", sa.Integer(), sa.ForeignKey("investors.investor_id", ondelete="RESTRICT"), nullable=False),
        sa.Column("supplier_invoice_number", sa.String(length=255), nullable=True),
        sa.Column("purchase_date", sa.Date(), nullable=False),
        sa.Column("subtotal", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("discount_value", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("discount_reason", sa.String(length=255), nullable=True),
        sa.Column("shipping_value", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("shipping_note", sa.String(length=255), nullable=True),
        sa.Column("total", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("invoice_image", sa.String(length=255), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
    )
    for column in ("purchase_id", "user_id", "supplier_id", "investor_id"):
        op.create_index(f"ix_purchases_{column}", "purchases", [column])

    op.create_table(
        "purchase_items",
        sa.Column("purchase_item_id", sa.Integer(), primary_key=True),
        sa.Column("purchase_id", sa.Integer(), sa.ForeignKey("purchases.purchase_id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("barcode_prinsipal", sa.String(length=255), nullable=True),
        sa.Column("barcode_generated", sa.String(length=255), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("quantity_selled", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit_price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("sale_price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("subtotal", sa.Numeric(precision=12, scale=2), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("quantity_selled >= 0", name="ck_purchase_items_selled_non_negative"),
        sa.CheckConstraint("quantity_selled <= quantity", name="ck_purchase_items_selled_within_quantity"),
    )
    for column in ("purchase_item_id", "purchase_id", "barcode_generated"):
        op.create_index(f"ix_purchase_items_{column}", "purchase_items", [column])

    op.create_table(
        "sales",
        sa.Column("sale_id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("investor_id", sa.Integer(), sa.ForeignKey("investors.investor_id", ondelete="RESTRICT"), nullable=False),
        sa.Column("invoice_number", sa.String(length=255), nullable=False),
        sa.Column("sale_date", sa.Date(), nullable=False),
        sa.Column("subtotal", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("discount_value", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("discount_reason", sa.String(length=255), nullable=True),
        sa.Column("total", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "invoice_number", name="uq_sales_user_invoice_number"),
    )
    for column in ("sale_id", "user_id", "investor_id"):
        op.create_index(f"ix_sales_{column}", "sales", [column])

    op.create_table(
        "sale_items",
        sa.Column("sale_item_id", sa.Integer(), primary_key=True),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.sale_id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "purchase_item_id",
            sa.Integer(),
            sa.ForeignKey("purchase_items.purchase_item_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("sale_price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("subtotal", sa.Numeric(precision=12, scale=2), nullable=False),
        *_timestamps(with_updated=False),
    )
    for column in ("sale_item_id", "sale_id", "purchase_item_id"):
        op.create_index(f"ix_sale_items_{column}", "sale_items", [column])

    op.create_table(
        "supplier_transactions",
        sa.Column("transaction_id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.supplier_id", ondelete="CASCADE"), nullable=False),
        sa.Column("purchase_id", sa.Integer(), sa.ForeignKey("purchases.purchase_id", ondelete="CASCADE"), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("amount >= 0", name="ck_supplier_transactions_amount_non_negative"),
    )
    for column in ("transaction_id", "user_id", "supplier_id", "purchase_id"):
        op.create_index(f"ix_supplier_transactions_{column}", "supplier_transactions", [column])

    op.create_table(
        "investor_transactions",
        sa.Column("transaction_id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("investor_id", sa.Integer(), sa.ForeignKey("investors.investor_id", ondelete="CASCADE"), nullable=False),
        sa.Column("purchase_id", sa.Integer(), sa.ForeignKey("purchases.purchase_id", ondelete="CASCADE"), nullable=True),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.sale_id", ondelete="CASCADE"), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("type", sa.Enum("In", "Out", name="investor_transaction_type"), nullable=False),
        sa.Column("amount", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("amount > 0", name="ck_investor_transactions_amount_positive"),
    )
    for column in ("transaction_id", "user_id", "investor_id", "purchase_id", "sale_id"):
        op.create_index(f"ix_investor_transactions_{column}", "investor_transactions", [column])


def downgrade() -> None:
    op.drop_table("investor_transactions")
    op.drop_table("supplier_transactions")
    op.drop_table("sale_items")
    op.drop_table("sales")
    op.drop_table("purchase_items")
    op.drop_table("purchases")
    op.drop_table("investors")
    op.drop_table("suppliers")
    op.drop_table("app_users")
    sa.Enum(name="investor_transaction_type").drop(op.get_bind(), checkfirst=True)
