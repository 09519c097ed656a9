"""Tests for notifications.py - the page notification log."""
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from propcal.calendar.notifications import MAX_NOTIFICATIONS, Notification, Notifier


def test_levels_are_recorded_in_order():
    notifier = Notifier()
    notifier.info("Sync", "January 10, 2025 10:00")
    notifier.success("Meeting created successfully!")
    notifier.error("Failed to create meeting")

    assert [n.level for n in notifier.notifications] == ["info", "success", "error"]
    assert notifier.errors() == [Notification("error", "Failed to create meeting")]
    assert notifier.notifications[0].description == "January 10, 2025 10:00"

    notifier.clear()
    assert notifier.notifications == ()


def test_log_is_bounded():
    notifier = Notifier()
    for i in range(MAX_NOTIFICATIONS + 25):
        notifier.info(f"event {i}")

    messages = [n.message for n in notifier.notifications]
    assert len(messages) == MAX_NOTIFICATIONS
    assert messages[0] == "event 25"
    assert messages[-1] == f"event {MAX_NOTIFICATIONS + 24}"


def test_custom_bound_keeps_latest_error():
    notifier = Notifier(max_notifications=2)
    notifier.error("Failed to load calendar events")
    notifier.info("Sync")
    notifier.info("Rent Due - Ada ($1200)")

    assert notifier.errors() == []
    assert [n.message for n in notifier.notifications] == ["Sync", "Rent Due - Ada ($1200)"]
