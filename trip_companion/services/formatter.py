from __future__ import annotations

from datetime import datetime, tzinfo

from trip_companion.models import LocalizedAlert, MonitoredTrip, OtpUser, TripMonitorNotification

ITINERARY_CHANGED = "Your itinerary has changed. Please check the trip planner for the updated route."
NOT_FOUND_TODAY = (
    "Your itinerary was not found in today's trip planner results. "
    "Please check real-time conditions and plan a new trip."
)
NOT_FOUND_ANY_DAY = (
    "Your itinerary is no longer possible on any monitored day of the week. "
    "Please plan and save a new trip."
)


def format_short_time(moment: datetime, tz: tzinfo) -> str:
    """``8:05 AM`` style, in the given zone."""
    return moment.astimezone(tz).strftime("%I:%M %p").lstrip("0")


def format_alert_body(unseen: list[LocalizedAlert], resolved: list[LocalizedAlert]) -> str:
    lines = ["🔔 New alerts found! They are:"]
    lines += [f"- {_alert_text(a)}" for a in unseen]
    if resolved:
        lines.append("Resolved alerts are:")
        lines += [f"- {_alert_text(a)}" for a in resolved]
    return "\n".join(lines)


def format_delay_body(delay_minutes: int, arrival: bool, estimate: datetime, tz: tzinfo) -> str:
    """Describe where the current estimate sits against the scheduled time.

    ``delay_minutes`` is positive when late, negative when early.
    """
    verb = "arrive" if arrival else "depart"
    if abs(delay_minutes) <= 1:
        status = "about on time"
    else:
        minutes = abs(delay_minutes)
        unit = "minute" if minutes == 1 else "minutes"
        status = f"{minutes} {unit} {'late' if delay_minutes > 0 else 'early'}"
    return (
        f"⏱ Your trip is now predicted to {verb} {status} "
        f"(at {format_short_time(estimate, tz)})."
    )


def format_not_found_body(still_possible: bool) -> str:
    return NOT_FOUND_TODAY if still_possible else NOT_FOUND_ANY_DAY


def build_subject(trip: MonitoredTrip, user: OtpUser) -> str:
    name = trip.trip_name or f"Trip for {user.email}"
    return f"{name} Notification"


def join_bodies(notifications: list[TripMonitorNotification]) -> str:
    return "\n\n".join(n.body for n in notifications)


def _alert_text(alert: LocalizedAlert) -> str:
    return alert.description_text or alert.header_text or ""
