import enum


class CampaignStatus(enum.StrEnum):
    DRAFT = "draft"
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class FundingType(enum.StrEnum):
    ALL_OR_NOTHING = "all-or-nothing"
    KEEP_IT_ALL = "keep-it-all"


class PledgeStatus(enum.StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class FulfillmentStatus(enum.StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    DELAYED = "delayed"
    REFUNDED = "refunded"


class TransactionType(enum.StrEnum):
    PLEDGE = "pledge"
    REFUND = "refund"
    PAYOUT = "payout"
    FEE = "fee"


class TransactionStatus(enum.StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


def sql_in(enum_cls: type[enum.StrEnum]) -> str:
    """Render "'a', 'b', ..." for CHECK constraints."""
    return ", ".join(f"'{member.value}'" for member in enum_cls)
