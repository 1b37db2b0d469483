import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy import func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from weraise.db.base import Base, utcnow


class RewardTier(Base):
    __tablename__ = "reward_tiers"
    __table_args__ = (
        CheckConstraint("quantity_claimed >= 0", name="ck_reward_tiers_claimed_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    campaign_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    estimated_delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    # quantity_claimed <= quantity_limit is kept by claim_reward_tier(), not a constraint
    quantity_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    quantity_claimed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=utcnow)

    campaign: Mapped["Campaign"] = relationship(back_populates="reward_tiers")  # noqa: F821

    @property
    def is_limited(self) -> bool:
        return self.quantity_limit is not None

    @property
    def is_sold_out(self) -> bool:
        return self.quantity_limit is not None and self.quantity_claimed >= self.quantity_limit

    @property
    def quantity_remaining(self) -> int | None:
        if self.quantity_limit is None:
            return None
        return max(self.quantity_limit - self.quantity_claimed, 0)
