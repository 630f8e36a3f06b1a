from datetime import timedelta

from shared.config import config
from shared.notifications import LoggingNotificationChannel, NotificationChannel, Severity


def test_notify_keeps_visible_notifications_until_dismissed():
    channel = LoggingNotificationChannel()

    first = channel.notify("Workflow deleted successfully", Severity.SUCCESS)
    second = channel.notify("Error deleting workflow", "error", duration_ms=5000)

    assert [n.message for n in channel.visible] == ["Workflow deleted successfully", "Error deleting workflow"]
    assert channel.visible[0].duration_ms == config.notification_duration_ms
    assert channel.visible[1].duration_ms == 5000
    assert channel.visible[1].severity is Severity.ERROR

    channel.dismiss(first)
    channel.dismiss("unknown")

    assert [n.id for n in channel.visible] == [second]
    assert channel.messages == ["Workflow deleted successfully", "Error deleting workflow"]


def test_default_severity_is_info():
    channel = LoggingNotificationChannel(default_duration_ms=1000)

    channel.notify("Heads up")

    assert channel.visible[0].severity is Severity.INFO
    assert channel.visible[0].duration_ms == 1000


def test_logging_channel_satisfies_protocol():
    assert isinstance(LoggingNotificationChannel(), NotificationChannel)


def test_notifications_expire_after_their_duration():
    channel = LoggingNotificationChannel(default_duration_ms=5000)
    short = channel.notify("Workflow saved successfully")
    channel.notify("Error requesting deployment", Severity.ERROR, duration_ms=600_000)
    created_at = channel.history[0].created_at

    channel.expire(now=created_at + timedelta(milliseconds=4999))
    assert len(channel.visible) == 2

    channel.expire(now=created_at + timedelta(seconds=6))
    assert [n.message for n in channel.visible] == ["Error requesting deployment"]
    assert short not in [n.id for n in channel.visible]
    assert channel.messages == ["Workflow saved successfully", "Error requesting deployment"]
