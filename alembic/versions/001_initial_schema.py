"""Initial schema

Revision ID: 001
Revises:
Create Date: 2025-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Menu catalog
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("name", sa.String(100), unique=True, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("thumbnail_url", sa.String(500), nullable=True),
        sa.Column("thumbnail_handle", sa.String(255), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "menu_items",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=False, index=True),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("image_handle", sa.String(255), nullable=True),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "customization_groups",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "menu_item_id", sa.Integer(),
            sa.ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column("name", sa.String(100), nullable=False),
    )

    op.create_table(
        "customization_options",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "group_id", sa.Integer(),
            sa.ForeignKey("customization_groups.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("price_addition", sa.Numeric(10, 2), nullable=False, server_default="0"),
    )

    # Tables and orders reference each other; the tables -> orders FK is added afterwards
    op.create_table(
        "tables",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("table_number", sa.Integer(), unique=True, nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="4"),
        sa.Column("status", sa.String(20), nullable=False, server_default="available"),
        sa.Column("current_order_id", sa.Integer(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("order_number", sa.String(50), unique=True, nullable=False),
        sa.Column(
            "table_id", sa.Integer(),
            sa.ForeignKey("tables.id", ondelete="SET NULL"), nullable=True, index=True,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending", index=True),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_method", sa.String(20), nullable=False, server_default="cash"),
        sa.Column("payment_transaction_id", sa.String(100), nullable=True),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    with op.batch_alter_table("tables") as batch_op:
        batch_op.create_foreign_key(
            "fk_tables_current_order_id", "orders", ["current_order_id"], ["id"]
        )

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "order_id", sa.Integer(),
            sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column(
            "menu_item_id", sa.Integer(),
            sa.ForeignKey("menu_items.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
    )

    op.create_table(
        "order_item_customizations",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "order_item_id", sa.Integer(),
            sa.ForeignKey("order_items.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column("option_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("selection", sa.String(100), nullable=False, server_default=""),
        sa.Column("price_addition", sa.Numeric(10, 2), nullable=False, server_default="0"),
    )

    # Payments
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column(
            "order_id", sa.Integer(),
            sa.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True,
        ),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("method", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("transaction_id", sa.String(100), nullable=True),
        sa.Column("ref_id", sa.String(100), nullable=True),
        sa.Column("payment_data", sa.JSON(), nullable=True),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # QR display
    op.create_table(
        "qr_codes",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("image_url", sa.String(500), nullable=False),
        sa.Column("public_id", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("qr_codes")
    op.drop_table("payments")
    op.drop_table("order_item_customizations")
    op.drop_table("order_items")
    with op.batch_alter_table("tables") as batch_op:
        batch_op.drop_constraint("fk_tables_current_order_id", type_="foreignkey")
    op.drop_table("orders")
    op.drop_table("tables")
    op.drop_table("customization_options")
    op.drop_table("customization_groups")
    op.drop_table("menu_items")
    op.drop_table("categories")
