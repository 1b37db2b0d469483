"""Pledge lifecycle: order intake, capture, cancellation and manual updates.

All functions run inside the caller's DB transaction (the ``get_db``
dependency). They validate every business rule before writing, and any
exception they raise rolls the whole request back, so a failed capture never
leaves a confirmed pledge or a claimed reward tier behind. The one exception
is a capture PayPal settled but the pledge rejects: that ledger row is
committed before the error propagates.

Races are closed in the database rather than in Python:

- confirming a pledge is ``UPDATE ... WHERE status = 'pending'``
- claiming a reward tier is ``UPDATE ... SET quantity_claimed = quantity_claimed + 1
  WHERE quantity_limit IS NULL OR quantity_claimed < quantity_limit``
- duplicate live pledges hit ``uq_pledges_campaign_backer_active``
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from weraise.core.config import settings
from weraise.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UpstreamFailureError,
    ValidationFailedError,
)
from weraise.db.base import ensure_utc, utcnow
from weraise.models.campaign import Campaign
from weraise.models.enums import (
    CampaignStatus,
    PledgeStatus,
    TransactionStatus,
    TransactionType,
)
from weraise.models.pledge import Pledge
from weraise.models.reward_tier import RewardTier
from weraise.models.transaction import Transaction
from weraise.models.user import User
from weraise.schemas.pledge import PledgeUpdateRequest
from weraise.services.notifications import Notifier, PledgeReceipt
from weraise.services.paypal import CaptureResult, PaymentProvider, PaymentProviderError
from weraise.services.transitions import (
    Actor,
    check_fulfillment_transition,
    check_pledge_transition,
)

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

ALREADY_PROCESSED = "Pledge has already been processed"
SOLD_OUT = "Reward tier is sold out"
ALREADY_CAPTURED = "Payment has already been captured"


@dataclass
class OpenedOrder:
    order_id: str
    pledge_id: uuid.UUID
    approval_url: str


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _dollars(value: Decimal) -> str:
    return f"{value.quantize(CENTS)}"


def pledge_return_urls(pledge_id: uuid.UUID) -> tuple[str, str]:
    base = settings.FRONTEND_URL.rstrip("/")
    return (
        f"{base}/pledge/success?pledgeId={pledge_id}",
        f"{base}/pledge/cancel?pledgeId={pledge_id}",
    )


async def claim_reward_tier(db: AsyncSession, tier_id: uuid.UUID) -> bool:
    """Atomically take one unit of a reward tier. False when it is sold out."""
    result = await db.execute(
        update(RewardTier)
        .where(
            RewardTier.id == tier_id,
            or_(
                RewardTier.quantity_limit.is_(None),
                RewardTier.quantity_claimed < RewardTier.quantity_limit,
            ),
        )
        .values(quantity_claimed=RewardTier.quantity_claimed + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _mark_confirmed(
    db: AsyncSession,
    pledge_id: uuid.UUID,
    now: datetime,
    order_id: str | None = None,
) -> bool:
    values: dict = {"status": PledgeStatus.CONFIRMED, "confirmed_at": now, "updated_at": now}
    if order_id is not None:
        values["paypal_order_id"] = order_id
    result = await db.execute(
        update(Pledge)
        .where(Pledge.id == pledge_id, Pledge.status == PledgeStatus.PENDING)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def compute_fees(
    amount: Decimal, paypal_fee: Decimal | None
) -> tuple[Decimal, Decimal, Decimal]:
    """Return (platform_fee, processing_fee, net_amount) for a captured amount."""
    platform_fee = (amount * settings.PLATFORM_FEE_PERCENT / Decimal(100)).quantize(
        CENTS, rounding=ROUND_HALF_UP
    )
    processing_fee = (paypal_fee or Decimal("0")).quantize(CENTS, rounding=ROUND_HALF_UP)
    net_amount = (amount - platform_fee - processing_fee).quantize(CENTS)
    return platform_fee, processing_fee, net_amount


def verify_captured_amount(
    pledge_id: uuid.UUID, expected: Decimal, captured: Decimal | None
) -> None:
    """Compare the settled amount with the pledge amount.

    Within tolerance is always accepted. Otherwise ``CAPTURE_AMOUNT_POLICY``
    decides: lenient logs a warning and accepts, strict rejects.
    """
    if captured is not None and abs(captured - expected) <= settings.CAPTURE_AMOUNT_TOLERANCE:
        return

    details = {
        "expected": _dollars(expected),
        "captured": _dollars(captured) if captured is not None else None,
    }
    if settings.strict_capture_amounts:
        logger.error(
            "Capture amount mismatch for pledge %s: expected=%s captured=%s (rejected)",
            pledge_id,
            details["expected"],
            details["captured"],
        )
        raise UpstreamFailureError(
            "Captured amount does not match the pledge amount",
            details=details,
            error="Payment Verification Failed",
        )

    logger.warning(
        "Capture amount mismatch for pledge %s: expected=%s captured=%s (accepted)",
        pledge_id,
        details["expected"],
        details["captured"],
    )


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------


async def open_pledge_order(
    db: AsyncSession,
    provider: PaymentProvider,
    *,
    backer: User,
    campaign_id: uuid.UUID,
    amount: Decimal,
    reward_tier_id: uuid.UUID | None = None,
) -> OpenedOrder:
    """Validate a pledge request and open a payment order for it.

    Reward tier quantity is not touched here; it is claimed at capture.
    """
    now = utcnow()

    campaign = await db.get(Campaign, campaign_id)
    if campaign is None:
        raise NotFoundError("Campaign not found")

    if campaign.status != CampaignStatus.ACTIVE:
        raise ConflictError("Campaign is not accepting pledges")
    end_date = ensure_utc(campaign.end_date)
    if end_date is not None and now > end_date:
        raise ConflictError("Campaign has ended")

    if amount < campaign.minimum_pledge:
        raise ConflictError(f"Minimum pledge amount is ${_dollars(campaign.minimum_pledge)}")

    if reward_tier_id is not None:
        tier = await db.get(RewardTier, reward_tier_id)
        if tier is None or tier.campaign_id != campaign.id:
            raise NotFoundError("Reward tier not found")
        if tier.is_sold_out:
            raise ConflictError(SOLD_OUT)
        if amount < tier.amount:
            raise ConflictError(
                f"Pledge amount must be at least ${_dollars(tier.amount)} for this reward tier"
            )

    result = await db.execute(
        select(Pledge).where(
            Pledge.campaign_id == campaign.id,
            Pledge.backer_id == backer.id,
            Pledge.status.in_([PledgeStatus.PENDING, PledgeStatus.CONFIRMED]),
        )
    )
    live = result.scalars().all()

    if any(p.status == PledgeStatus.CONFIRMED for p in live):
        raise ConflictError("You already have a confirmed pledge for this campaign")

    description = f"Pledge for {campaign.title}"
    pending = live[0] if live else None

    if pending is not None:
        await _release_previous_order(db, provider, pending)
        age = now - ensure_utc(pending.created_at)
        if age > timedelta(minutes=settings.PENDING_PLEDGE_TTL_MINUTES):
            logger.info(
                "Removing stale pending pledge %s (campaign=%s, age=%ss)",
                pending.id,
                campaign.id,
                int(age.total_seconds()),
            )
            await db.delete(pending)
            await db.flush()
        else:
            pending.amount = amount
            pending.reward_tier_id = reward_tier_id
            order = await _create_provider_order(
                provider, pending.id, amount, description, reused=True
            )
            pending.paypal_order_id = order.order_id
            await db.flush()
            return OpenedOrder(order.order_id, pending.id, order.approval_url)

    pledge = Pledge(
        campaign_id=campaign.id,
        backer_id=backer.id,
        reward_tier_id=reward_tier_id,
        amount=amount,
        status=PledgeStatus.PENDING,
    )
    db.add(pledge)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("You already have a pledge for this campaign") from exc

    try:
        order = await _create_provider_order(provider, pledge.id, amount, description)
    except UpstreamFailureError:
        await db.delete(pledge)
        await db.flush()
        raise

    pledge.paypal_order_id = order.order_id
    await db.flush()
    logger.info("Opened order %s for pledge %s", order.order_id, pledge.id)
    return OpenedOrder(order.order_id, pledge.id, order.approval_url)


async def _create_provider_order(
    provider: PaymentProvider,
    pledge_id: uuid.UUID,
    amount: Decimal,
    description: str,
    reused: bool = False,
):
    return_url, cancel_url = pledge_return_urls(pledge_id)
    try:
        return await provider.create_order(
            amount=amount,
            currency=settings.PLEDGE_CURRENCY,
            description=description,
            reference_id=str(pledge_id),
            return_url=return_url,
            cancel_url=cancel_url,
        )
    except PaymentProviderError as exc:
        logger.error(
            "Order creation failed for %s pledge %s: %s",
            "existing" if reused else "new",
            pledge_id,
            exc.message,
        )
        raise UpstreamFailureError(
            exc.message or "Failed to create PayPal order",
            details=exc.message,
            error="PayPal Order Creation Failed",
        ) from exc


# ---------------------------------------------------------------------------
# Capture
# ---------------------------------------------------------------------------


@dataclass
class CapturedPledge:
    pledge: Pledge
    capture: CaptureResult
    receipt: PledgeReceipt


async def capture_pledge_order(
    db: AsyncSession,
    provider: PaymentProvider,
    *,
    backer: User,
    order_id: str,
    pledge_id: uuid.UUID,
) -> CapturedPledge:
    """Capture the backer's approved order and confirm the pledge.

    The returned receipt is for the caller to send once the transaction has
    committed.
    """
    result = await db.execute(
        select(Pledge).where(Pledge.id == pledge_id, Pledge.backer_id == backer.id)
    )
    pledge = result.scalar_one_or_none()
    if pledge is None:
        raise NotFoundError("Pledge not found")

    if pledge.status != PledgeStatus.PENDING:
        raise ConflictError(ALREADY_PROCESSED)

    if pledge.paypal_order_id and pledge.paypal_order_id != order_id:
        raise ValidationFailedError("Order does not belong to this pledge")

    if await _has_capture_on_record(db, pledge.id):
        raise ConflictError(ALREADY_CAPTURED)

    expected = pledge.amount
    now = utcnow()
    if not await _mark_confirmed(db, pledge.id, now, order_id=order_id):
        raise ConflictError(ALREADY_PROCESSED)
    await db.refresh(pledge)

    if pledge.reward_tier_id is not None and not await claim_reward_tier(
        db, pledge.reward_tier_id
    ):
        raise ConflictError(SOLD_OUT)

    try:
        capture = await provider.capture_order(order_id, request_id=f"capture-{order_id}")
    except PaymentProviderError as exc:
        logger.error("Capture failed for pledge %s order %s: %s", pledge.id, order_id, exc.message)
        raise UpstreamFailureError(
            exc.message or "Failed to capture PayPal payment",
            details=exc.message,
            error="Payment Capture Failed",
        ) from exc

    # From here on PayPal has acted on the order; a rejection must leave a ledger row
    try:
        if capture.status != "COMPLETED":
            logger.error(
                "Capture for pledge %s returned status %s",
                pledge.id,
                capture.status or "UNKNOWN",
            )
            raise UpstreamFailureError(
                f"Payment was not completed (status: {capture.status or 'UNKNOWN'})",
                error="Payment Capture Failed",
            )
        verify_captured_amount(pledge.id, expected, capture.amount)
    except UpstreamFailureError:
        await _record_rejected_capture(
            db, pledge_id=pledge.id, order_id=order_id, expected=expected, capture=capture
        )
        raise

    settled = capture.amount if capture.amount is not None else pledge.amount
    platform_fee, processing_fee, net_amount = compute_fees(settled, capture.paypal_fee)
    db.add(
        Transaction(
            pledge_id=pledge.id,
            type=TransactionType.PLEDGE,
            amount=settled,
            currency=capture.currency or settings.PLEDGE_CURRENCY,
            status=TransactionStatus.COMPLETED,
            paypal_capture_id=capture.capture_id,
            platform_fee=platform_fee,
            processing_fee=processing_fee,
            net_amount=net_amount,
            completed_at=now,
        )
    )
    await db.flush()
    logger.info("Pledge %s confirmed via order %s", pledge.id, order_id)

    campaign = await db.get(Campaign, pledge.campaign_id)
    receipt = PledgeReceipt(
        recipient_email=backer.email,
        backer_name=backer.public_name,
        campaign_title=campaign.title if campaign is not None else "your campaign",
        amount=pledge.amount,
        currency=settings.PLEDGE_CURRENCY,
        pledge_id=str(pledge.id),
        confirmed_at=now,
    )
    return CapturedPledge(pledge, capture, receipt)


async def _has_capture_on_record(db: AsyncSession, pledge_id: uuid.UUID) -> bool:
    found = await db.scalar(
        select(Transaction.id)
        .where(Transaction.pledge_id == pledge_id, Transaction.type == TransactionType.PLEDGE)
        .limit(1)
    )
    return found is not None


async def _record_rejected_capture(
    db: AsyncSession,
    *,
    pledge_id: uuid.UUID,
    order_id: str,
    expected: Decimal,
    capture: CaptureResult,
) -> None:
    """Commit a failed ledger row for money PayPal took but the pledge refused.

    The request's own changes (confirmation, tier claim) are rolled back first.
    The pledge stays pending, and the ledger row keeps it from being reissued,
    swept or cancelled until someone resolves the payment.
    """
    await db.rollback()
    now = utcnow()
    amount = capture.amount if capture.amount is not None else expected
    db.add(
        Transaction(
            pledge_id=pledge_id,
            type=TransactionType.PLEDGE,
            amount=amount,
            currency=capture.currency or settings.PLEDGE_CURRENCY,
            status=TransactionStatus.FAILED,
            paypal_capture_id=capture.capture_id,
            net_amount=amount,
            failed_at=now,
        )
    )
    await db.execute(
        update(Pledge)
        .where(Pledge.id == pledge_id)
        .values(paypal_order_id=order_id, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    logger.error(
        "Rejected capture %s recorded for pledge %s (order %s, status=%s, amount=%s)",
        capture.capture_id,
        pledge_id,
        order_id,
        capture.status,
        _dollars(amount),
    )


async def send_pledge_confirmation(notifier: Notifier, receipt: PledgeReceipt) -> None:
    try:
        await notifier.send_pledge_confirmation(receipt)
    except Exception:
        # Confirmation emails never fail a capture
        logger.exception("Failed to send pledge confirmation for pledge %s", receipt.pledge_id)


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


async def _release_previous_order(
    db: AsyncSession, provider: PaymentProvider, pledge: Pledge
) -> None:
    """Check that a pending pledge's money was never taken before dropping its order.

    Raises ConflictError when a capture is on record or PayPal reports the
    order as captured. Lookup failures are logged and tolerated.
    """
    if await _has_capture_on_record(db, pledge.id):
        raise ConflictError(ALREADY_CAPTURED)
    if not pledge.paypal_order_id:
        return

    try:
        provider_status = await provider.void_order(pledge.paypal_order_id)
    except PaymentProviderError as exc:
        logger.warning(
            "Could not release order %s for pledge %s: %s",
            pledge.paypal_order_id,
            pledge.id,
            exc.message,
        )
        return
    if provider_status == "COMPLETED":
        logger.error(
            "Order %s for pending pledge %s is already captured", pledge.paypal_order_id, pledge.id
        )
        raise ConflictError(ALREADY_CAPTURED)


async def cancel_pledge_order(
    db: AsyncSession,
    provider: PaymentProvider,
    *,
    backer: User,
    pledge_id: uuid.UUID,
) -> uuid.UUID:
    """Abandon checkout for a pending pledge.

    Non-pending pledges are left untouched and the call still succeeds.
    """
    result = await db.execute(
        select(Pledge).where(Pledge.id == pledge_id, Pledge.backer_id == backer.id)
    )
    pledge = result.scalar_one_or_none()
    if pledge is None:
        raise NotFoundError("Pledge not found")

    if pledge.status != PledgeStatus.PENDING:
        logger.info("Cancel ignored for pledge %s in status %s", pledge.id, pledge.status)
        return pledge.id

    await _release_previous_order(db, provider, pledge)

    await db.delete(pledge)
    await db.flush()
    logger.info("Deleted pending pledge %s after checkout cancel", pledge_id)
    return pledge_id


# ---------------------------------------------------------------------------
# Manual updates
# ---------------------------------------------------------------------------

_CREATOR_ONLY_FIELDS = ("fulfillment_status", "shipping_address", "estimated_delivery_date")


async def update_pledge(
    db: AsyncSession,
    *,
    user: User,
    pledge_id: uuid.UUID,
    changes: PledgeUpdateRequest,
) -> Pledge:
    result = await db.execute(
        select(Pledge).options(selectinload(Pledge.campaign)).where(Pledge.id == pledge_id)
    )
    pledge = result.scalar_one_or_none()
    if pledge is None:
        raise NotFoundError("Pledge not found")

    actors: set[Actor] = set()
    if pledge.backer_id == user.id:
        actors.add(Actor.BACKER)
    if pledge.campaign.creator_id == user.id:
        actors.add(Actor.CREATOR)
    if not actors:
        raise ForbiddenError("You do not have permission to update this pledge")

    provided = changes.model_fields_set
    if not provided:
        raise ValidationFailedError("No valid updates provided")

    new_status = changes.status if "status" in provided and changes.status else None
    if new_status == pledge.status:
        new_status = None
    if new_status is not None:
        check_pledge_transition(pledge.status, new_status, actors)

    if Actor.CREATOR not in actors and any(f in provided for f in _CREATOR_ONLY_FIELDS):
        raise ForbiddenError("Only campaign creators can update fulfillment details")

    new_fulfillment = changes.fulfillment_status if "fulfillment_status" in provided else None
    if new_fulfillment is not None and new_fulfillment != pledge.fulfillment_status:
        effective_status = new_status or pledge.status
        if effective_status != PledgeStatus.CONFIRMED:
            raise ConflictError("Fulfillment can only be updated for confirmed pledges")
        check_fulfillment_transition(pledge.fulfillment_status, new_fulfillment)
    else:
        new_fulfillment = None

    now = utcnow()

    if new_status == PledgeStatus.CONFIRMED:
        if not await _mark_confirmed(db, pledge.id, now):
            raise ConflictError(ALREADY_PROCESSED)
        if pledge.reward_tier_id is not None and not await claim_reward_tier(
            db, pledge.reward_tier_id
        ):
            raise ConflictError(SOLD_OUT)
        logger.info("Pledge %s confirmed manually by creator %s", pledge.id, user.id)
    elif new_status == PledgeStatus.CANCELLED:
        pledge.status = PledgeStatus.CANCELLED
        pledge.cancelled_at = now
    elif new_status == PledgeStatus.REFUNDED:
        pledge.status = PledgeStatus.REFUNDED

    if new_fulfillment is not None:
        pledge.fulfillment_status = new_fulfillment
    if "shipping_address" in provided:
        pledge.shipping_address = changes.shipping_address
    if "estimated_delivery_date" in provided:
        pledge.estimated_delivery_date = changes.estimated_delivery_date

    pledge.updated_at = now
    await db.flush()
    await db.refresh(pledge)
    return pledge
