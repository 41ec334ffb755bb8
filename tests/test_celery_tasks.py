"""Tests for Celery notification tasks."""
from __future__ import annotations

from unittest.mock import patch

import pytest

from app.tasks.notifications import run_scheduled_notifications, send_welcome_notification


def test_run_scheduled_notifications(session_factory, make_subscription):
    make_subscription()
    make_subscription()

    with patch("app.tasks.notifications.SessionLocal", session_factory):
        result = run_scheduled_notifications.run()

    assert result["subscribedUsers"] == 2
    assert result["eligibleUsers"] == 2
    assert result["sent"] == 0
    assert ":" in result["slot"]


def test_send_welcome_notification(session_factory, transport, make_subscription):
    subscription = make_subscription()

    with patch("app.tasks.notifications.SessionLocal", side_effect=session_factory), patch(
        "app.tasks.notifications.WebPushTransport.from_settings", return_value=transport
    ):
        first = send_welcome_notification.run(str(subscription.user_id))
        second = send_welcome_notification.run(str(subscription.user_id))

    assert first == {"sent": 1, "skipped": False}
    assert second == {"sent": 0, "skipped": True}
    assert len(transport.calls) == 1


def test_send_welcome_notification_rejects_bad_id():
    with pytest.raises(ValueError):
        send_welcome_notification.run("not-a-uuid")
