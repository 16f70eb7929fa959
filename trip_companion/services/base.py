from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from trip_companion.models import OtpUser


class TripCompanionError(Exception):
    """Base for every error raised by this package."""


class PlannerError(TripCompanionError):
    """The planning service could not be reached or timed out."""


class ConfigError(TripCompanionError):
    """An action configuration file is missing or malformed."""


class InteractionError(TripCompanionError):
    """An interaction could not be triggered."""


class Interaction(ABC):
    """Contract for every geofenced side effect.

    Rules:
    - ``trigger_action`` talks to exactly one external system.
    - Raise InteractionError (or let a transport error escape) on failure;
      ``run`` logs it so instruction delivery is never interrupted.
    """

    name = "interaction"

    def __init__(self) -> None:
        self.logger = logging.getLogger(f"interaction.{self.name}")

    @abstractmethod
    async def trigger_action(self, action: Any, user: OtpUser) -> None:
        ...

    async def run(self, action: Any, user: OtpUser) -> bool:
        try:
            await self.trigger_action(action, user)
            self.logger.info("'%s': triggered for user %s", self.name, user.id)
            return True
        except InteractionError as exc:
            self.logger.warning("'%s': not triggered: %s", self.name, exc)
            return False
        except Exception:
            self.logger.exception("'%s': unexpected failure", self.name)
            return False
