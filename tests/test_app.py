from __future__ import annotations

from trip_companion.app import create_application
from trip_companion.config import Settings


def test_create_application_wires_components(tmp_path):
    actions = tmp_path / "trip-actions.yml"
    actions.write_text(
        "segment_actions:\n"
        "  - id: '1:1'\n"
        "    start: {lat: 33.95684, lon: -83.97971}\n"
        "    end: {lat: 33.95653, lon: -83.97973}\n"
        "    trigger: pedestrian_signal\n"
    )
    agencies = tmp_path / "bus.yml"
    agencies.write_text("agency_actions:\n  - agency_id: GCT\n    trigger: bus_operator\n")
    settings = Settings(
        _env_file=None,
        trip_actions_file=actions,
        bus_notifier_actions_file=agencies,
        check_interval_seconds=30,
        segment_match_radius=5,
    )

    app = create_application(settings)

    assert app.scheduler.get_job("check_monitored_trips") is not None
    assert app.tracker.trip_actions.radius == 5
    assert len(app.tracker.trip_actions.segment_actions) == 1
    assert set(app.tracker.agency_actions) == {"GCT"}
    assert app.pipeline.store.active_trip_ids() == []
