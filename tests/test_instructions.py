"""
Instruction engine tests.

Validates:
  - Radius boundary for NO_INSTRUCTION
  - Prefix boundary between IMMEDIATE and UPCOMING, and ARRIVED at the destination
  - Exact rendering of every instruction kind
  - Minute pluralisation in wait instructions
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import local, make_leg, make_place, make_step
from trip_companion.services.instructions import (
    NO_INSTRUCTION,
    DeviatedInstruction,
    GetOffHereTransitInstruction,
    GetOffNextStopTransitInstruction,
    GetOffSoonTransitInstruction,
    OnTrackInstruction,
    TransitLegSummaryInstruction,
    WaitForTransitInstruction,
    build_instruction,
    readable_minutes,
)
from trip_companion.utils.geometry import InstructionThresholds

EPSILON = 1e-6
THRESHOLDS = InstructionThresholds(immediate_radius=2, upcoming_radius=10)
STEP = make_step("Main St", 33.95, -83.98, relative="LEFT")


class TestRadius:
    def test_at_upcoming_radius_yields_instruction(self):
        text = build_instruction(OnTrackInstruction(10, step=STEP), THRESHOLDS)
        assert text == "UPCOMING: LEFT on Main St"

    def test_just_past_upcoming_radius_is_suppressed(self):
        text = build_instruction(OnTrackInstruction(10 + EPSILON, step=STEP), THRESHOLDS)
        assert text == NO_INSTRUCTION

    def test_missing_instruction_is_suppressed(self):
        assert build_instruction(None, THRESHOLDS) == NO_INSTRUCTION


class TestPrefix:
    def test_at_immediate_radius_is_immediate(self):
        assert build_instruction(OnTrackInstruction(2, step=STEP), THRESHOLDS).startswith("IMMEDIATE:")

    def test_just_past_immediate_radius_is_upcoming(self):
        text = build_instruction(OnTrackInstruction(2 + EPSILON, step=STEP), THRESHOLDS)
        assert text.startswith("UPCOMING:")

    def test_destination_within_immediate_radius_is_arrived(self):
        text = build_instruction(OnTrackInstruction(1, destination=make_place("Work")), THRESHOLDS)
        assert text == "ARRIVED: Work"

    def test_destination_further_out_is_upcoming(self):
        text = build_instruction(OnTrackInstruction(5, destination=make_place("Work")), THRESHOLDS)
        assert text == "UPCOMING: Work"

    def test_depart_step_uses_absolute_direction(self):
        step = make_step("Oak Ave", 33.95, -83.98, relative="DEPART", absolute="SOUTHWEST")
        assert build_instruction(OnTrackInstruction(1, step=step), THRESHOLDS) == (
            "IMMEDIATE: Head SOUTHWEST on Oak Ave"
        )


class TestTransitTexts:
    leg = make_leg(
        local(2024, 6, 3, 8, 0),
        minutes=12,
        duration=779,
        intermediate_stops=(make_place("A"), make_place("B"), make_place("C")),
        to_place=make_place("Lawrenceville Station"),
    )

    def test_ride_summary_floors_minutes_and_counts_alighting_stop(self):
        text = build_instruction(TransitLegSummaryInstruction(self.leg), THRESHOLDS)
        assert text == "Ride 12 min / 4 stops to Lawrenceville Station"

    @pytest.mark.parametrize(
        "instruction, expected",
        [
            (GetOffHereTransitInstruction("Elm St"), "Get off here (Elm St)"),
            (GetOffNextStopTransitInstruction("Elm St"), "Get off at next stop (Elm St)"),
            (GetOffSoonTransitInstruction("Elm St"), "Your stop is coming up (Elm St)"),
            (DeviatedInstruction("Main St"), "Head to Main St"),
        ],
    )
    def test_fixed_texts(self, instruction, expected):
        assert build_instruction(instruction, THRESHOLDS) == expected


class TestWaitForTransit:
    scheduled = local(2024, 6, 3, 8, 30)

    def wait_text(self, minutes_until: int, delay_minutes: int = 0) -> str:
        leg = make_leg(
            self.scheduled + timedelta(minutes=delay_minutes),
            departure_delay=delay_minutes * 60,
            route_short_name="10A",
        )
        now = self.scheduled - timedelta(minutes=minutes_until)
        return build_instruction(WaitForTransitInstruction(leg, now), THRESHOLDS)

    def test_singular_minute(self):
        assert self.wait_text(1) == "Wait 1 minute for your bus, route 10A, scheduled at 8:30 AM, on time"

    def test_plural_minutes(self):
        assert self.wait_text(2).startswith("Wait 2 minutes for your bus")

    def test_zero_minutes_omitted(self):
        assert self.wait_text(0).startswith("Wait for your bus")

    def test_late_bus(self):
        assert self.wait_text(5, delay_minutes=4).endswith("scheduled at 8:30 AM now 4 minutes late")

    def test_early_bus(self):
        assert self.wait_text(5, delay_minutes=-2).endswith("now 2 minutes early")

    def test_one_minute_off_is_on_time(self):
        assert self.wait_text(5, delay_minutes=1).endswith(", on time")


@pytest.mark.parametrize("minutes, expected", [(1, " 1 minute"), (2, " 2 minutes"), (0, ""), (-3, "")])
def test_readable_minutes(minutes, expected):
    assert readable_minutes(minutes) == expected
