from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence

import yaml

from trip_companion.models import AgencyAction, Coordinates, OtpUser, Segment, SegmentAction, Step
from trip_companion.services.base import ConfigError, Interaction
from trip_companion.utils.geometry import get_distance

logger = logging.getLogger(__name__)

MAX_RADIUS = 10.0   # meters


def _endpoint_gap(segment: Segment, action: SegmentAction) -> float:
    """Larger endpoint distance, taking whichever orientation fits better."""
    forward = max(get_distance(segment.start, action.start), get_distance(segment.end, action.end))
    backward = max(get_distance(segment.start, action.end), get_distance(segment.end, action.start))
    return min(forward, backward)


def segment_from_step(step: Step, steps: Sequence[Step]) -> Segment | None:
    """The stretch walked from *step* to the one after it; None for the last step."""
    try:
        i = list(steps).index(step)
    except ValueError:
        return None
    if i + 1 >= len(steps):
        return None
    return Segment(step.to_coordinates(), steps[i + 1].to_coordinates())


class TripActions:
    """Geofenced segment actions, matched against the segment a traveler walks."""

    def __init__(
        self,
        segment_actions: Sequence[SegmentAction] = (),
        radius: float = MAX_RADIUS,
        interactions: dict[str, Interaction] | None = None,
    ) -> None:
        self.segment_actions = list(segment_actions)
        self.radius = radius
        self._interactions = interactions or {}

    def get_segment_action(self, segment: Segment) -> SegmentAction | None:
        best: SegmentAction | None = None
        best_gap = float("inf")
        for action in self.segment_actions:
            gap = _endpoint_gap(segment, action)
            if gap <= self.radius and gap < best_gap:
                best, best_gap = action, gap
        return best

    async def handle_segment_action(self, segment: Segment, user: OtpUser) -> SegmentAction | None:
        """Fire the interaction for the action matching *segment*, if any."""
        action = self.get_segment_action(segment)
        if action is None:
            return None
        interaction = self._interactions.get(action.trigger)
        if interaction is None:
            logger.error("Segment action %s: unknown trigger %r", action.id, action.trigger)
            return action
        await interaction.run(action, user)
        return action

    async def handle_step(self, step: Step, steps: Sequence[Step], user: OtpUser) -> SegmentAction | None:
        segment = segment_from_step(step, steps)
        if segment is None:
            return None
        return await self.handle_segment_action(segment, user)


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as fh:
            return yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc


def _coordinates(raw: dict[str, Any]) -> Coordinates:
    return Coordinates(float(raw["lat"]), float(raw["lon"]))


def load_segment_actions(path: Path) -> list[SegmentAction]:
    data = _load_yaml(path)
    try:
        actions = [
            SegmentAction(
                id=str(raw["id"]),
                start=_coordinates(raw["start"]),
                end=_coordinates(raw["end"]),
                trigger=raw["trigger"],
            )
            for raw in data.get("segment_actions") or []
        ]
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"malformed segment action in {path}: {exc!r}") from exc
    logger.info("Loaded %d segment actions from %s", len(actions), path)
    return actions


def load_agency_actions(path: Path) -> list[AgencyAction]:
    data = _load_yaml(path)
    try:
        actions = [
            AgencyAction(agency_id=str(raw["agency_id"]), trigger=raw["trigger"])
            for raw in data.get("agency_actions") or []
        ]
    except (KeyError, TypeError) as exc:
        raise ConfigError(f"malformed agency action in {path}: {exc!r}") from exc
    logger.info("Loaded %d agency actions from %s", len(actions), path)
    return actions
