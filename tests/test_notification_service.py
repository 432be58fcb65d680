# /tests/test_notification_service.py

from app.models.dashboard_model import NotificationLevel
from app.services.notification_service import NotificationCenter


def test_new_notification_replaces_previous(clock):
    center = NotificationCenter(3.0, clock=clock)
    center.success("Student added successfully")
    center.error("Error loading students")

    current = center.current()
    assert current.message == "Error loading students"
    assert current.level == NotificationLevel.ERROR
    assert len(center.history) == 2


def test_notification_auto_dismisses_after_timeout(clock):
    center = NotificationCenter(5.0, clock=clock)
    center.info("Logging out...")

    clock.advance(4.9)
    assert center.current() is not None
    clock.advance(0.1)
    assert center.current() is None


def test_replacement_restarts_the_timer(clock):
    center = NotificationCenter(3.0, clock=clock)
    center.info("first")
    clock.advance(2.0)
    center.info("second")
    clock.advance(2.0)

    assert center.current().message == "second"


def test_dismiss_clears_immediately(clock):
    center = NotificationCenter(3.0, clock=clock)
    center.success("done")
    center.dismiss()
    assert center.current() is None
