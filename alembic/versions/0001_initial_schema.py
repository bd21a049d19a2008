"""initial schema: catalog, inventory ledger, orders, payments, returns

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BigIntId = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
TS = sa.DateTime(timezone=True)


def upgrade() -> None:
    """
    Money columns are BIGINT minor units.
    Counter columns on inventory carry non-negative CHECKs; stock_movements is append-only
    (enforced in the ORM, no FK to variants so history survives catalog deletes).
    """
    op.create_table(
        "segments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("discount_percent", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.CheckConstraint(
            "discount_percent >= 0 AND discount_percent <= 100",
            name="ck_segments_discount_percent_range",
        ),
        sa.UniqueConstraint("name", name="uq_segments_name"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", sa.String(16), nullable=False, server_default="customer"),
        sa.Column(
            "segment_id",
            sa.Integer(),
            sa.ForeignKey("segments.id", ondelete="SET NULL", name="fk_users_segment_id_segments"),
            nullable=True,
        ),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "products",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("price_cents", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
    )

    op.create_table(
        "product_variants",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column(
            "product_id",
            sa.String(64),
            sa.ForeignKey("products.id", ondelete="CASCADE", name="fk_product_variants_product_id_products"),
            nullable=False,
        ),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("additional_price_cents", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("option_values", sa.JSON(), nullable=True),
        sa.UniqueConstraint("sku", name="uq_product_variants_sku"),
    )
    op.create_index("ix_product_variants_product_id", "product_variants", ["product_id"])

    op.create_table(
        "inventory",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "variant_id",
            sa.String(64),
            sa.ForeignKey("product_variants.id", ondelete="CASCADE", name="fk_inventory_variant_id_product_variants"),
            nullable=False,
        ),
        sa.Column("stock_quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("reserved_quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("safety_stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("updated_at", TS, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("stock_quantity >= 0", name="ck_inventory_stock_non_negative"),
        sa.CheckConstraint("reserved_quantity >= 0", name="ck_inventory_reserved_non_negative"),
        sa.CheckConstraint("safety_stock >= 0", name="ck_inventory_safety_non_negative"),
        sa.UniqueConstraint("variant_id", name="uq_inventory_variant_id"),
    )

    op.create_table(
        "stock_movements",
        sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
        sa.Column("variant_id", sa.String(64), nullable=False),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("quantity_change", sa.Integer(), nullable=False),
        sa.Column("previous_quantity", sa.Integer(), nullable=False),
        sa.Column("new_quantity", sa.Integer(), nullable=False),
        sa.Column("previous_reserved", sa.Integer(), nullable=False),
        sa.Column("new_reserved", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("ref", sa.String(64), nullable=True),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("created_at", TS, nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_stock_movements_variant_id", "stock_movements", ["variant_id"])
    op.create_index("ix_stock_movements_ref", "stock_movements", ["ref"])
    op.create_index("ix_stock_movements_created_at", "stock_movements", ["created_at"])

    op.create_table(
        "orders",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(64),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_orders_user_id_users"),
            nullable=False,
        ),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("subtotal_cents", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("discount_cents", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("tax_cents", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("shipping_cents", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_cents", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("currency", sa.String(8), nullable=False, server_default="IDR"),
        sa.Column("coupon_code", sa.String(64), nullable=True),
        sa.Column("shipping_address", sa.JSON(), nullable=True),
        sa.Column("created_at", TS, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", TS, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("total_cents >= 0", name="ck_orders_total_non_negative"),
    )
    op.create_index("ix_orders_status", "orders", ["status"])
    op.create_index("ix_orders_coupon_code", "orders", ["coupon_code"])
    op.create_index("ix_orders_user_status", "orders", ["user_id", "status"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "order_id",
            sa.String(36),
            sa.ForeignKey("orders.id", ondelete="CASCADE", name="fk_order_items_order_id_orders"),
            nullable=False,
        ),
        sa.Column(
            "variant_id",
            sa.String(64),
            sa.ForeignKey("product_variants.id", ondelete="SET NULL", name="fk_order_items_variant_id_product_variants"),
            nullable=True,
        ),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("unit_price_cents", sa.BigInteger(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("total_price_cents", sa.BigInteger(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])
    op.create_index("ix_order_items_variant_id", "order_items", ["variant_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "order_id",
            sa.String(36),
            sa.ForeignKey("orders.id", ondelete="CASCADE", name="fk_payments_order_id_orders"),
            nullable=False,
        ),
        sa.Column("provider", sa.String(32), nullable=False),
        sa.Column("provider_payment_id", sa.String(255), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("currency", sa.String(8), nullable=False, server_default="IDR"),
        sa.Column("paid_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", TS, nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("order_id", name="uq_payments_order_id"),
    )
    op.create_index("ix_payments_status", "payments", ["status"])

    op.create_table(
        "shipments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "order_id",
            sa.String(36),
            sa.ForeignKey("orders.id", ondelete="CASCADE", name="fk_shipments_order_id_orders"),
            nullable=False,
        ),
        sa.Column("shipment_method_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="ready"),
        sa.Column("tracking_number", sa.String(128), nullable=True),
        sa.Column("shipped_at", TS, nullable=True),
        sa.Column("delivered_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("order_id", name="uq_shipments_order_id"),
    )

    op.create_table(
        "idempotency_keys",
        sa.Column("key", sa.String(255), primary_key=True),
        sa.Column(
            "order_id",
            sa.String(36),
            sa.ForeignKey("orders.id", ondelete="CASCADE", name="fk_idempotency_keys_order_id_orders"),
            nullable=False,
        ),
        sa.Column("created_at", TS, nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "returns",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "order_id",
            sa.String(36),
            sa.ForeignKey("orders.id", ondelete="CASCADE", name="fk_returns_order_id_orders"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.String(64),
            sa.ForeignKey("users.id", ondelete="SET NULL", name="fk_returns_user_id_users"),
            nullable=True,
        ),
        sa.Column("status", sa.String(16), nullable=False, server_default="requested"),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("images", sa.JSON(), nullable=True),
        sa.Column("created_at", TS, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", TS, nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_returns_user_id", "returns", ["user_id"])
    op.create_index("ix_returns_order_status", "returns", ["order_id", "status"])

    op.create_table(
        "return_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "return_id",
            sa.String(36),
            sa.ForeignKey("returns.id", ondelete="CASCADE", name="fk_return_items_return_id_returns"),
            nullable=False,
        ),
        sa.Column(
            "order_item_id",
            sa.Integer(),
            sa.ForeignKey("order_items.id", ondelete="CASCADE", name="fk_return_items_order_item_id_order_items"),
            nullable=False,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_return_items_quantity_positive"),
    )
    op.create_index("ix_return_items_return_id", "return_items", ["return_id"])

    op.create_table(
        "coupons",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("discount_type", sa.String(16), nullable=False),
        sa.Column("discount_value", sa.BigInteger(), nullable=False),
        sa.Column("min_subtotal_cents", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("usage_limit", sa.Integer(), nullable=True),
        sa.Column("starts_at", TS, nullable=True),
        sa.Column("expires_at", TS, nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.CheckConstraint("discount_value >= 0", name="ck_coupons_discount_non_negative"),
        sa.UniqueConstraint("code", name="uq_coupons_code"),
    )

    op.create_table(
        "coupon_segments",
        sa.Column(
            "coupon_id",
            sa.Integer(),
            sa.ForeignKey("coupons.id", ondelete="CASCADE", name="fk_coupon_segments_coupon_id_coupons"),
            primary_key=True,
        ),
        sa.Column(
            "segment_id",
            sa.Integer(),
            sa.ForeignKey("segments.id", ondelete="CASCADE", name="fk_coupon_segments_segment_id_segments"),
            primary_key=True,
        ),
    )

    op.create_table(
        "notifications",
        sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.String(64),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_notifications_user_id_users"),
            nullable=False,
        ),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", TS, nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])


def downgrade() -> None:
    for table in (
        "notifications",
        "coupon_segments",
        "coupons",
        "return_items",
        "returns",
        "idempotency_keys",
        "shipments",
        "payments",
        "order_items",
        "orders",
        "stock_movements",
        "inventory",
        "product_variants",
        "products",
        "users",
        "segments",
    ):
        op.drop_table(table)
