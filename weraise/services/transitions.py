"""Allowed status transitions for pledges, fulfillment and campaigns.

Pledge status changes depend on who is asking: the campaign creator and the
backer who owns the pledge each get their own table. A transition that some
other role could make is a 403; one no role may make is a validation error
listing the allowed targets.
"""

import enum

from weraise.core.exceptions import ForbiddenError, ValidationFailedError
from weraise.models.enums import CampaignStatus, FulfillmentStatus, PledgeStatus


class Actor(enum.StrEnum):
    BACKER = "backer"
    CREATOR = "creator"


PLEDGE_TRANSITIONS: dict[Actor, dict[PledgeStatus, frozenset[PledgeStatus]]] = {
    Actor.CREATOR: {
        # pending -> confirmed is the manual override for payments settled off-platform
        PledgeStatus.PENDING: frozenset({PledgeStatus.CONFIRMED}),
        PledgeStatus.CONFIRMED: frozenset({PledgeStatus.REFUNDED}),
    },
    Actor.BACKER: {
        PledgeStatus.PENDING: frozenset({PledgeStatus.CANCELLED}),
        PledgeStatus.CONFIRMED: frozenset({PledgeStatus.CANCELLED}),
    },
}

FULFILLMENT_TRANSITIONS: dict[FulfillmentStatus, frozenset[FulfillmentStatus]] = {
    FulfillmentStatus.PENDING: frozenset(
        {
            FulfillmentStatus.PROCESSING,
            FulfillmentStatus.SHIPPED,
            FulfillmentStatus.DELAYED,
            FulfillmentStatus.REFUNDED,
        }
    ),
    FulfillmentStatus.PROCESSING: frozenset(
        {FulfillmentStatus.SHIPPED, FulfillmentStatus.DELAYED, FulfillmentStatus.REFUNDED}
    ),
    FulfillmentStatus.DELAYED: frozenset(
        {FulfillmentStatus.PROCESSING, FulfillmentStatus.SHIPPED, FulfillmentStatus.REFUNDED}
    ),
    FulfillmentStatus.SHIPPED: frozenset({FulfillmentStatus.DELIVERED, FulfillmentStatus.DELAYED}),
    FulfillmentStatus.DELIVERED: frozenset(),
    FulfillmentStatus.REFUNDED: frozenset(),
}

CAMPAIGN_TRANSITIONS: dict[CampaignStatus, frozenset[CampaignStatus]] = {
    CampaignStatus.DRAFT: frozenset(
        {CampaignStatus.PENDING, CampaignStatus.ACTIVE, CampaignStatus.CANCELLED}
    ),
    CampaignStatus.PENDING: frozenset({CampaignStatus.ACTIVE, CampaignStatus.CANCELLED}),
    CampaignStatus.ACTIVE: frozenset(
        {CampaignStatus.COMPLETED, CampaignStatus.FAILED, CampaignStatus.CANCELLED}
    ),
    CampaignStatus.COMPLETED: frozenset(),
    CampaignStatus.FAILED: frozenset(),
    CampaignStatus.CANCELLED: frozenset(),
}

_ROLE_REQUIRED_MESSAGES = {
    PledgeStatus.CONFIRMED: "Only campaign creators can confirm pledges",
    PledgeStatus.REFUNDED: "Only campaign creators can refund pledges",
    PledgeStatus.CANCELLED: "Only pledge owners can cancel pledges",
}


def _sorted(values) -> list[str]:
    return sorted(str(v) for v in values)


def _reject(entity: str, current: str, requested: str, allowed) -> ValidationFailedError:
    return ValidationFailedError(
        f"Cannot transition {entity} from '{current}' to '{requested}'",
        details={"allowed": _sorted(allowed)},
    )


def allowed_pledge_targets(
    current: PledgeStatus, actors: set[Actor] | None = None
) -> set[PledgeStatus]:
    """Targets reachable from ``current`` by any of ``actors`` (all roles when None)."""
    roles = actors if actors is not None else set(Actor)
    targets: set[PledgeStatus] = set()
    for actor in roles:
        targets |= PLEDGE_TRANSITIONS[actor].get(current, frozenset())
    return targets


def check_pledge_transition(current: str, requested: str, actors: set[Actor]) -> None:
    """Raise unless one of ``actors`` may move a pledge from current to requested."""
    current_status = PledgeStatus(current)
    requested_status = PledgeStatus(requested)

    if requested_status in allowed_pledge_targets(current_status, actors):
        return

    if requested_status in allowed_pledge_targets(current_status):
        raise ForbiddenError(
            _ROLE_REQUIRED_MESSAGES.get(
                requested_status, "You are not allowed to make this status change"
            )
        )

    raise _reject(
        "pledge",
        current,
        requested,
        allowed_pledge_targets(current_status, actors),
    )


def check_fulfillment_transition(current: str, requested: str) -> None:
    allowed = FULFILLMENT_TRANSITIONS.get(FulfillmentStatus(current), frozenset())
    if FulfillmentStatus(requested) not in allowed:
        raise _reject("fulfillment", current, requested, allowed)


def check_campaign_transition(current: str, requested: str) -> None:
    allowed = CAMPAIGN_TRANSITIONS.get(CampaignStatus(current), frozenset())
    if CampaignStatus(requested) not in allowed:
        raise _reject("campaign", current, requested, allowed)
