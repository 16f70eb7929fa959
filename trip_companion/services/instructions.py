"""Rider-facing navigation instructions.

Each instruction kind is a frozen dataclass with a ``build`` method that
renders its text. Builders are pure: no I/O, no clock reads, no mutation.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, tzinfo

import pytz

from trip_companion.models import Leg, Place, Step
from trip_companion.utils.geometry import InstructionThresholds

NO_INSTRUCTION = "NO_INSTRUCTION"

PREFIX_IMMEDIATE = "IMMEDIATE: "
PREFIX_UPCOMING = "UPCOMING: "
PREFIX_ARRIVED = "ARRIVED: "

DEFAULT_TZ = pytz.timezone("America/New_York")


def readable_minutes(minutes: int) -> str:
    """`` 1 minute`` / `` N minutes``; empty when not positive."""
    if minutes == 1:
        return " 1 minute"
    if minutes > 1:
        return f" {minutes} minutes"
    return ""


@dataclass(frozen=True)
class OnTrackInstruction:
    distance: float
    step: Step | None = None
    destination: Place | None = None
    locale: str = "en"

    @property
    def is_destination(self) -> bool:
        return self.step is None and self.destination is not None

    def prefix(self, thresholds: InstructionThresholds) -> str:
        if self.distance <= thresholds.immediate_radius:
            return PREFIX_ARRIVED if self.is_destination else PREFIX_IMMEDIATE
        return PREFIX_UPCOMING

    def build(self, thresholds: InstructionThresholds) -> str:
        prefix = self.prefix(thresholds)
        if self.step is not None:
            if self.step.relative_direction == "DEPART":
                direction = f"Head {self.step.absolute_direction}"
            else:
                direction = self.step.relative_direction
            return f"{prefix}{direction} on {self.step.street_name}"
        return f"{prefix}{self.destination.name if self.destination else ''}"


@dataclass(frozen=True)
class DeviatedInstruction:
    location: str
    distance: float = 0.0
    locale: str = "en"

    def build(self, thresholds: InstructionThresholds) -> str:
        return f"Head to {self.location}"


@dataclass(frozen=True)
class WaitForTransitInstruction:
    leg: Leg
    now: datetime
    tz: tzinfo = DEFAULT_TZ
    distance: float = 0.0
    locale: str = "en"

    def build(self, thresholds: InstructionThresholds) -> str:
        scheduled = self.leg.scheduled_start_time
        until_departure = math.floor((scheduled - self.now).total_seconds() / 60)
        delay = round((self.leg.start_time - scheduled).total_seconds() / 60)
        if abs(delay) <= 1:
            arrival_info = ", on time"
        else:
            arrival_info = f" now{readable_minutes(abs(delay))} {'late' if delay > 0 else 'early'}"
        scheduled_at = scheduled.astimezone(self.tz).strftime("%I:%M %p").lstrip("0")
        return (
            f"Wait{readable_minutes(until_departure)} for your bus, "
            f"route {self.leg.route_short_name}, scheduled at {scheduled_at}{arrival_info}"
        )


@dataclass(frozen=True)
class TransitLegSummaryInstruction:
    leg: Leg
    distance: float = 0.0
    locale: str = "en"

    def build(self, thresholds: InstructionThresholds) -> str:
        minutes = math.floor(self.leg.duration / 60)
        stops = len(self.leg.intermediate_stops) + 1
        return f"Ride {minutes} min / {stops} stops to {self.leg.to_place.name}"


@dataclass(frozen=True)
class GetOffHereTransitInstruction:
    stop_name: str
    distance: float = 0.0
    locale: str = "en"

    def build(self, thresholds: InstructionThresholds) -> str:
        return f"Get off here ({self.stop_name})"


@dataclass(frozen=True)
class GetOffNextStopTransitInstruction:
    stop_name: str
    distance: float = 0.0
    locale: str = "en"

    def build(self, thresholds: InstructionThresholds) -> str:
        return f"Get off at next stop ({self.stop_name})"


@dataclass(frozen=True)
class GetOffSoonTransitInstruction:
    stop_name: str
    distance: float = 0.0
    locale: str = "en"

    def build(self, thresholds: InstructionThresholds) -> str:
        return f"Your stop is coming up ({self.stop_name})"


TripInstruction = (
    OnTrackInstruction
    | DeviatedInstruction
    | WaitForTransitInstruction
    | TransitLegSummaryInstruction
    | GetOffHereTransitInstruction
    | GetOffNextStopTransitInstruction
    | GetOffSoonTransitInstruction
)


def build_instruction(
    instruction: TripInstruction | None,
    thresholds: InstructionThresholds = InstructionThresholds(),
) -> str:
    """Render *instruction*, or ``NO_INSTRUCTION`` when it is out of range."""
    if instruction is None or instruction.distance > thresholds.upcoming_radius:
        return NO_INSTRUCTION
    return instruction.build(thresholds)
