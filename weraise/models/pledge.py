import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from weraise.db.base import Base, utcnow
from weraise.models.enums import FulfillmentStatus, PledgeStatus, sql_in

_ACTIVE_PLEDGE = text("status IN ('pending', 'confirmed')")


class Pledge(Base):
    __tablename__ = "pledges"
    __table_args__ = (
        CheckConstraint(f"status IN ({sql_in(PledgeStatus)})", name="ck_pledges_status"),
        CheckConstraint(
            f"fulfillment_status IN ({sql_in(FulfillmentStatus)})",
            name="ck_pledges_fulfillment_status",
        ),
        CheckConstraint("amount > 0", name="ck_pledges_amount_positive"),
        # At most one live (pending or confirmed) pledge per backer per campaign
        Index(
            "uq_pledges_campaign_backer_active",
            "campaign_id",
            "backer_id",
            unique=True,
            postgresql_where=_ACTIVE_PLEDGE,
            sqlite_where=_ACTIVE_PLEDGE,
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    campaign_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True
    )
    backer_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reward_tier_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("reward_tiers.id", ondelete="SET NULL"), nullable=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        Text, nullable=False, default=PledgeStatus.PENDING, index=True
    )
    fulfillment_status: Mapped[str] = mapped_column(
        Text, nullable=False, default=FulfillmentStatus.PENDING
    )
    estimated_delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    shipping_address: Mapped[dict | None] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=True
    )
    paypal_order_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=utcnow)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    backer: Mapped["User"] = relationship()  # noqa: F821
    campaign: Mapped["Campaign"] = relationship()  # noqa: F821
    reward_tier: Mapped["RewardTier | None"] = relationship()  # noqa: F821
