"""Create users, categories, campaigns, reward tiers, pledges and transactions

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""

import uuid
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

DEFAULT_CATEGORIES = [
    ("Technology", "Innovation and tech projects", "settings"),
    ("Education", "Learning and knowledge sharing", "book-open"),
    ("Community", "Local community initiatives", "users"),
    ("Environment", "Environmental and sustainability projects", "leaf"),
    ("Arts & Culture", "Creative and cultural projects", "palette"),
    ("Wellness", "Health and wellness initiatives", "heart"),
    ("Food & Beverage", "Culinary and beverage projects", "utensils"),
    ("Fashion & Design", "Fashion and design projects", "shirt"),
]


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        sa.UUID(),
        server_default=sa.text("gen_random_uuid()"),
        primary_key=True,
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
    )


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        _id_column(),
        sa.Column("cognito_sub", sa.String(255), nullable=False, unique=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("is_creator", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    # --- categories ---
    categories = op.create_table(
        "categories",
        _id_column(),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon_name", sa.String(50), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        _created_at(),
    )

    # --- campaigns ---
    op.create_table(
        "campaigns",
        _id_column(),
        sa.Column(
            "creator_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("category_id", sa.UUID(), sa.ForeignKey("categories.id"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("tagline", sa.String(500), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("story", sa.Text(), nullable=True),
        sa.Column("main_image_url", sa.String(500), nullable=True),
        sa.Column("video_url", sa.String(500), nullable=True),
        sa.Column("funding_goal", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "minimum_pledge", sa.Numeric(10, 2), nullable=False, server_default="1.00"
        ),
        sa.Column("funding_type", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'draft'")),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("duration_days", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('draft', 'pending', 'active', 'completed', 'failed', 'cancelled')",
            name="ck_campaigns_status",
        ),
        sa.CheckConstraint(
            "funding_type IN ('all-or-nothing', 'keep-it-all')",
            name="ck_campaigns_funding_type",
        ),
    )
    op.create_index("ix_campaigns_creator_id", "campaigns", ["creator_id"])
    op.create_index("ix_campaigns_category_id", "campaigns", ["category_id"])
    op.create_index("ix_campaigns_status", "campaigns", ["status"])
    op.create_index("ix_campaigns_end_date", "campaigns", ["end_date"])

    # --- reward_tiers ---
    op.create_table(
        "reward_tiers",
        _id_column(),
        sa.Column(
            "campaign_id",
            sa.UUID(),
            sa.ForeignKey("campaigns.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("estimated_delivery_date", sa.Date(), nullable=True),
        sa.Column("quantity_limit", sa.Integer(), nullable=True),
        sa.Column("quantity_claimed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "quantity_claimed >= 0", name="ck_reward_tiers_claimed_non_negative"
        ),
    )
    op.create_index("ix_reward_tiers_campaign_id", "reward_tiers", ["campaign_id"])

    # --- pledges ---
    op.create_table(
        "pledges",
        _id_column(),
        sa.Column(
            "campaign_id",
            sa.UUID(),
            sa.ForeignKey("campaigns.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "backer_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "reward_tier_id",
            sa.UUID(),
            sa.ForeignKey("reward_tiers.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'pending'")),
        sa.Column(
            "fulfillment_status",
            sa.Text(),
            nullable=False,
            server_default=sa.text("'pending'"),
        ),
        sa.Column("estimated_delivery_date", sa.Date(), nullable=True),
        sa.Column("shipping_address", postgresql.JSONB(), nullable=True),
        sa.Column("paypal_order_id", sa.String(255), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'refunded')",
            name="ck_pledges_status",
        ),
        sa.CheckConstraint(
            "fulfillment_status IN "
            "('pending', 'processing', 'shipped', 'delivered', 'delayed', 'refunded')",
            name="ck_pledges_fulfillment_status",
        ),
        sa.CheckConstraint("amount > 0", name="ck_pledges_amount_positive"),
    )
    op.create_index("ix_pledges_campaign_id", "pledges", ["campaign_id"])
    op.create_index("ix_pledges_backer_id", "pledges", ["backer_id"])
    op.create_index("ix_pledges_status", "pledges", ["status"])
    op.create_index("ix_pledges_paypal_order_id", "pledges", ["paypal_order_id"])
    # One live pledge per backer per campaign
    op.create_index(
        "uq_pledges_campaign_backer_active",
        "pledges",
        ["campaign_id", "backer_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('pending', 'confirmed')"),
    )

    # --- transactions ---
    op.create_table(
        "transactions",
        _id_column(),
        sa.Column(
            "pledge_id",
            sa.UUID(),
            sa.ForeignKey("pledges.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("paypal_capture_id", sa.String(255), nullable=True),
        sa.Column("platform_fee", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("processing_fee", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("net_amount", sa.Numeric(10, 2), nullable=False),
        _created_at(),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "type IN ('pledge', 'refund', 'payout', 'fee')", name="ck_transactions_type"
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'completed', 'failed', 'cancelled')",
            name="ck_transactions_status",
        ),
    )
    op.create_index("ix_transactions_pledge_id", "transactions", ["pledge_id"])

    # --- seed default categories ---
    op.bulk_insert(
        categories,
        [
            {
                "id": uuid.uuid4(),
                "name": name,
                "description": description,
                "icon_name": icon,
                "sort_order": index,
                "is_active": True,
            }
            for index, (name, description, icon) in enumerate(DEFAULT_CATEGORIES)
        ],
    )


def downgrade() -> None:
    op.drop_table("transactions")
    op.drop_index("uq_pledges_campaign_backer_active", table_name="pledges")
    op.drop_table("pledges")
    op.drop_table("reward_tiers")
    op.drop_table("campaigns")
    op.drop_table("categories")
    op.drop_table("users")
