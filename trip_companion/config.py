from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Planning service
    planner_url: str = "http://localhost:8080/otp/routers/default/plan"
    planner_timeout_seconds: float = 15.0

    # Trip monitor
    check_interval_seconds: int = 60   # 0 = disable the scheduler
    max_concurrent_checks: int = 8
    timezone: str = "America/New_York"

    # Live tracking thresholds, in meters
    trip_instruction_immediate_radius: float = 2.0
    trip_instruction_upcoming_radius: float = 10.0
    segment_match_radius: float = 10.0
    deviation_tolerance: float = 20.0
    notified_segment_ttl_seconds: int = 3 * 3600

    # Configuration files
    trip_actions_file: Path = PROJECT_ROOT / "configurations" / "trip-actions.yml"
    bus_notifier_actions_file: Path = PROJECT_ROOT / "configurations" / "bus-notifier-actions.yml"
    store_file: Path | None = None

    # Notification gateways
    sms_gateway_url: str | None = None
    sms_gateway_key: str | None = None
    email_gateway_url: str | None = None
    email_gateway_key: str | None = None
    email_from: str = "noreply@example.com"

    # Interactions
    ped_signal_api_host: str | None = None
    ped_signal_api_path: str = "/intersections/{signal}/crossings/{crossing}/call"
    ped_signal_api_key: str | None = None
    bus_operator_api_url: str | None = None
    bus_operator_api_key: str | None = None

    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def setup_logging(level: str = "INFO") -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(levelname)-8s | %(name)-25s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
