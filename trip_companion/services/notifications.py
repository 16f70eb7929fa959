from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from trip_companion.config import Settings
from trip_companion.models import MonitoredTrip, OtpUser, TripMonitorNotification
from trip_companion.services.formatter import build_subject, join_bodies
from trip_companion.utils.http import post_json
from trip_companion.utils.text import split_message

logger = logging.getLogger(__name__)


class NotificationGateway:
    """Posts SMS and email messages to HTTP delivery gateways."""

    def __init__(
        self,
        sms_url: str | None = None,
        sms_key: str | None = None,
        email_url: str | None = None,
        email_key: str | None = None,
        email_from: str = "noreply@example.com",
    ) -> None:
        self.sms_url = sms_url
        self.sms_key = sms_key
        self.email_url = email_url
        self.email_key = email_key
        self.email_from = email_from

    @classmethod
    def from_settings(cls, settings: Settings) -> NotificationGateway:
        return cls(
            sms_url=settings.sms_gateway_url,
            sms_key=settings.sms_gateway_key,
            email_url=settings.email_gateway_url,
            email_key=settings.email_gateway_key,
            email_from=settings.email_from,
        )

    async def send_sms(self, phone_number: str | None, body: str) -> bool:
        if not phone_number:
            logger.warning("SMS not sent: user has no phone number")
            return False
        if not self.sms_url:
            logger.warning("SMS not sent: no SMS gateway configured")
            return False
        for part in split_message(body):
            ok = await self._post(self.sms_url, self.sms_key, {"to": phone_number, "body": part})
            if not ok:
                return False
        return True

    async def send_email(
        self,
        address: str,
        subject: str,
        body: str,
        attachments: list[dict[str, Any]] | None = None,
    ) -> bool:
        if not self.email_url:
            logger.warning("Email not sent: no email gateway configured")
            return False
        payload = {
            "from": self.email_from,
            "to": address,
            "subject": subject,
            "text": body,
            "attachments": attachments or [],
        }
        return await self._post(self.email_url, self.email_key, payload)

    async def _post(self, url: str, key: str | None, payload: dict[str, Any]) -> bool:
        headers = {"Authorization": f"Bearer {key}"} if key else None
        try:
            status = await post_json(url, payload, headers=headers)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error("Delivery to %s failed: %s", url, exc)
            return False
        return status < 400


async def send_notifications(
    gateway: NotificationGateway,
    trip: MonitoredTrip,
    user: OtpUser,
    notifications: list[TripMonitorNotification],
) -> bool:
    """Deliver the queued notifications on the user's chosen channel.

    Returns True only when something was delivered successfully.
    """
    if not notifications:
        return False
    subject = build_subject(trip, user)
    body = join_bodies(notifications)
    channel = (user.notification_channel or "").lower()
    if channel == "sms":
        return await gateway.send_sms(user.phone_number, body)
    if channel == "email":
        return await gateway.send_email(user.email, subject, body)
    if channel == "all":
        sms_ok, email_ok = await asyncio.gather(
            gateway.send_sms(user.phone_number, body),
            gateway.send_email(user.email, subject, body),
        )
        return sms_ok or email_ok
    logger.info("Trip %s: channel %r not recognised, nothing sent", trip.id, user.notification_channel)
    return False
