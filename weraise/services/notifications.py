"""Outbound email: pledge confirmations and reward shipping notices.

Dev mode logs the message instead of sending it. Callers treat every send as
best-effort; ``EmailNotifier`` raises on SMTP failure and the pledge workflow
logs and swallows it.
"""

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from email.message import EmailMessage
from email.utils import formataddr
from typing import Protocol

from weraise.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class PledgeReceipt:
    recipient_email: str
    backer_name: str
    campaign_title: str
    amount: Decimal
    currency: str
    pledge_id: str
    confirmed_at: datetime


@dataclass
class RewardTrackingNotice:
    recipient_email: str
    backer_name: str
    campaign_title: str
    tracking_number: str
    carrier_name: str
    tracking_url: str


class Notifier(Protocol):
    async def send_pledge_confirmation(self, receipt: PledgeReceipt) -> None: ...

    async def send_reward_tracking(self, notice: RewardTrackingNotice) -> None: ...


def render_pledge_confirmation(receipt: PledgeReceipt) -> tuple[str, str]:
    """Return (subject, plain-text body) for a pledge receipt."""
    subject = f"Pledge Confirmed - {receipt.campaign_title}"
    body = (
        f"Hi {receipt.backer_name},\n\n"
        f'Thank you for supporting "{receipt.campaign_title}"!\n\n'
        "Receipt details\n"
        f"  Campaign:       {receipt.campaign_title}\n"
        f"  Amount pledged: {receipt.amount:.2f} {receipt.currency}\n"
        f"  Date:           {receipt.confirmed_at:%Y-%m-%d %H:%M} UTC\n"
        f"  Pledge ID:      {receipt.pledge_id}\n\n"
        "Your pledge has been processed. You'll receive updates about the "
        "campaign's progress and be notified when rewards are ready to ship.\n\n"
        "Thank you for being part of the WeRaise community!\n"
    )
    return subject, body


def render_reward_tracking(notice: RewardTrackingNotice) -> tuple[str, str]:
    subject = f"Your Reward is Shipped - {notice.campaign_title}"
    body = (
        f"Hi {notice.backer_name},\n\n"
        f'Great news! Your reward from "{notice.campaign_title}" has been shipped.\n\n'
        "Tracking information\n"
        f"  Campaign:        {notice.campaign_title}\n"
        f"  Tracking number: {notice.tracking_number}\n"
        f"  Carrier:         {notice.carrier_name}\n"
        f"  Track package:   {notice.tracking_url}\n\n"
        "If you have any questions about your shipment, please contact the campaign creator.\n"
    )
    return subject, body


class EmailNotifier:
    def __init__(self, dev_mode: bool | None = None):
        self.dev_mode = settings.EMAIL_DEV_MODE if dev_mode is None else dev_mode

    async def send_pledge_confirmation(self, receipt: PledgeReceipt) -> None:
        subject, body = render_pledge_confirmation(receipt)
        await self._send(receipt.recipient_email, subject, body)
        logger.info("Pledge confirmation sent for pledge %s", receipt.pledge_id)

    async def send_reward_tracking(self, notice: RewardTrackingNotice) -> None:
        subject, body = render_reward_tracking(notice)
        await self._send(notice.recipient_email, subject, body)

    async def _send(self, to: str, subject: str, body: str) -> None:
        if self.dev_mode:
            logger.info("[DEV EMAIL] To: %s | Subject: %s | Body: %s", to, subject, body[:200])
            return

        message = EmailMessage()
        message["From"] = formataddr((settings.EMAIL_FROM_NAME, settings.EMAIL_FROM_ADDRESS))
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        await asyncio.to_thread(_deliver, message)


def _deliver(message: EmailMessage) -> None:
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
        if settings.SMTP_USE_TLS:
            smtp.starttls()
        if settings.SMTP_USERNAME:
            smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        smtp.send_message(message)
