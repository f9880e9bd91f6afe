"""initial stock ledger schema

Revision ID: 5b1e0c7d2a41
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5b1e0c7d2a41"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLE = sa.Enum("admin", "guest", name="role")
SOURCE_TYPE = sa.Enum("supplier", "warehouse", "return", "adjustment", name="source_type")
DESTINATION_TYPE = sa.Enum("customer", "warehouse", "scrap", "adjustment", name="destination_type")
TRANSFER_STATUS = sa.Enum("pending", "completed", "cancelled", name="transfer_status")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "categories",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("description", sa.Text()),
        *_timestamps(),
    )
    op.create_table(
        "warehouses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("location", sa.String(255), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "products",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("sku", sa.String(255), unique=True),
        sa.Column("category_id", sa.String(36), sa.ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("unit", sa.String(64), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("min_stock", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint("min_stock >= 0", name="ck_product_min_stock_nonneg"),
    )
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("username", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", ROLE, nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_table(
        "user_sessions",
        sa.Column("token", sa.String(128), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_user_sessions_user_id", "user_sessions", ["user_id"])

    op.create_table(
        "stock_levels",
        sa.Column("product_id", sa.String(36), sa.ForeignKey("products.id", ondelete="RESTRICT"), primary_key=True),
        sa.Column("warehouse_id", sa.String(36), sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), primary_key=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint("quantity >= 0", name="ck_stock_quantity_nonneg"),
    )

    for table, type_col, type_enum, detail_col in (
        ("stock_in", "source_type", SOURCE_TYPE, "source_detail"),
        ("stock_out", "destination_type", DESTINATION_TYPE, "destination_detail"),
    ):
        op.create_table(
            table,
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("date", sa.DateTime(timezone=True), nullable=False),
            sa.Column("product_id", sa.String(36), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("warehouse_id", sa.String(36), sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False),
            sa.Column("quantity", sa.Integer(), nullable=False),
            sa.Column(type_col, type_enum),
            sa.Column(detail_col, sa.String(255)),
            sa.Column("reference_code", sa.String(255), nullable=False, unique=True),
            sa.Column("notes", sa.Text()),
            *_timestamps(),
            sa.CheckConstraint("quantity > 0", name=f"ck_{table}_qty_pos"),
        )
        op.create_index(f"ix_{table}_product_id", table, ["product_id"])
        op.create_index(f"ix_{table}_warehouse_id", table, ["warehouse_id"])
        op.create_index(f"ix_{table}_pair", table, ["product_id", "warehouse_id"])

    op.create_table(
        "stock_transfers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("product_id", sa.String(36), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("from_warehouse_id", sa.String(36), sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("to_warehouse_id", sa.String(36), sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("reference_code", sa.String(255), nullable=False, unique=True),
        sa.Column("status", TRANSFER_STATUS, nullable=False),
        *_timestamps(),
        sa.CheckConstraint("quantity > 0", name="ck_stock_transfer_qty_pos"),
        sa.CheckConstraint("from_warehouse_id <> to_warehouse_id", name="ck_stock_transfer_distinct_wh"),
    )
    op.create_index("ix_stock_transfers_product_id", "stock_transfers", ["product_id"])
    op.create_index("ix_stock_transfers_product_date", "stock_transfers", ["product_id", "date"])


def downgrade() -> None:
    op.drop_table("stock_transfers")
    op.drop_table("stock_out")
    op.drop_table("stock_in")
    op.drop_table("stock_levels")
    op.drop_table("user_sessions")
    op.drop_table("users")
    op.drop_table("products")
    op.drop_table("warehouses")
    op.drop_table("categories")

    bind = op.get_bind()
    for enum in (TRANSFER_STATUS, DESTINATION_TYPE, SOURCE_TYPE, ROLE):
        enum.drop(bind, checkfirst=True)
