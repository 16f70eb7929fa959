from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from types import MappingProxyType

import aiohttp
import pytz

from trip_companion.config import Settings
from trip_companion.models import Leg, OtpUser, SegmentAction
from trip_companion.services.base import Interaction, InteractionError
from trip_companion.utils.http import post_json

MOBILITY_CODES = MappingProxyType({
    "None": 0,
    "Device": 1,
    "MScooter": 2,
    "WChairE": 3,
    "WChairM": 4,
    "Some": 5,
    "LowVision": 6,
    "Blind": 7,
    "Device-LowVision": 8,
    "MScooter-LowVision": 9,
    "WChairE-LowVision": 10,
    "WChairM-LowVision": 11,
    "Some-LowVision": 12,
    "Device-Blind": 13,
    "MScooter-Blind": 14,
    "WChairE-Blind": 15,
    "WChairM-Blind": 16,
    "Some-Blind": 17,
})


def mobility_mode(user: OtpUser) -> str | None:
    return user.mobility_profile.mobility_mode if user.mobility_profile else None


def needs_extended_phase(user: OtpUser) -> bool:
    mode = mobility_mode(user)
    return mode is not None and mode.lower() != "none"


def mobility_codes(user: OtpUser) -> list[int]:
    code = MOBILITY_CODES.get(mobility_mode(user) or "None")
    return [code] if code is not None else []


class PedestrianSignalNotifier(Interaction):
    """Requests a crossing phase at a signalised intersection.

    The segment action id is ``"<signal>:<crossing>"``. Travelers with a
    mobility need get the extended phase.
    """

    name = "pedestrian_signal"

    def __init__(self, host: str | None, path: str, api_key: str | None) -> None:
        super().__init__()
        self.host = host
        self.path = path
        self.api_key = api_key

    @classmethod
    def from_settings(cls, settings: Settings) -> PedestrianSignalNotifier:
        return cls(settings.ped_signal_api_host, settings.ped_signal_api_path, settings.ped_signal_api_key)

    def build_url(self, action: SegmentAction, user: OtpUser) -> str:
        signal, _, crossing = action.id.partition(":")
        url = f"{self.host}{self.path.format(signal=signal, crossing=crossing)}"
        if needs_extended_phase(user):
            url += "?extended=true"
        return url

    async def trigger_action(self, action: SegmentAction, user: OtpUser) -> None:
        if not self.host or not self.api_key:
            raise InteractionError("signal API host or key not configured")
        url = self.build_url(action, user)
        try:
            status = await post_json(url, headers={"X-API-KEY": self.api_key})
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise InteractionError(f"signal request failed: {exc!r}") from exc
        if status >= 400:
            raise InteractionError(f"signal request returned {status}")


@dataclass(frozen=True)
class BusNotification:
    """What the bus operator needs to know about a boarding rider."""

    leg: Leg
    msg_type: int = 1
    trusted_companion: bool = False


def format_timestamp(moment: datetime) -> str:
    """UTC ``yyyy-MM-ddTHH:mm:ss.SSSZ``."""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def build_bus_message(
    notification: BusNotification, user: OtpUser, now: datetime, tz: tzinfo
) -> dict:
    leg = notification.leg
    return {
        "timestamp": format_timestamp(now),
        "agency_id": leg.agency_id,
        "from_route_id": leg.route_id,
        "from_trip_id": leg.trip_id,
        "from_stop_id": leg.from_place.stop_id,
        "to_stop_id": leg.to_place.stop_id,
        "from_arrival_time": leg.scheduled_start_time.astimezone(tz).strftime("%H:%M:%S"),
        "msg_type": notification.msg_type,
        "mobility_codes": mobility_codes(user),
        "trusted_companion": notification.trusted_companion,
    }


class BusOperatorNotifier(Interaction):
    """Tells the agency that a rider is waiting for a bus."""

    name = "bus_operator"

    def __init__(self, url: str | None, api_key: str | None, tz: tzinfo | None = None) -> None:
        super().__init__()
        self.url = url
        self.api_key = api_key
        self.tz = tz or pytz.timezone("America/New_York")

    @classmethod
    def from_settings(cls, settings: Settings) -> BusOperatorNotifier:
        return cls(
            settings.bus_operator_api_url,
            settings.bus_operator_api_key,
            pytz.timezone(settings.timezone),
        )

    async def trigger_action(self, action: BusNotification, user: OtpUser) -> None:
        if not self.url or not self.api_key:
            raise InteractionError("bus operator API url or key not configured")
        message = build_bus_message(action, user, datetime.now(tz=timezone.utc), self.tz)
        try:
            status = await post_json(self.url, message, headers={"X-API-KEY": self.api_key})
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise InteractionError(f"bus operator request failed: {exc!r}") from exc
        if status >= 400:
            raise InteractionError(f"bus operator request returned {status}")


INTERACTIONS: dict[str, type[Interaction]] = {
    PedestrianSignalNotifier.name: PedestrianSignalNotifier,
    BusOperatorNotifier.name: BusOperatorNotifier,
}


def build_interactions(settings: Settings) -> dict[str, Interaction]:
    return {name: cls.from_settings(settings) for name, cls in INTERACTIONS.items()}
