"""Tests for log-backed at-most-once sends."""
from __future__ import annotations

import uuid
from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy import select

from app.core.notifications import DayPeriod, NotificationStatus, NotificationType, ScheduleSlot
from app.db.models.notification_log import NotificationLogEntry
from app.schemas.notification import PushPayload
from app.services.dedup import WELCOME_PAYLOAD, DedupGuard, NotificationLog
from app.services.delivery import DeliveryEngine
from app.services.subscription_registry import SubscriptionRegistry

MORNING = ScheduleSlot(day=date(2026, 10, 18), period=DayPeriod.MORNING)
EVENING = ScheduleSlot(day=date(2026, 10, 18), period=DayPeriod.EVENING)
REMINDER = PushPayload(title="Budget reminder", body="Log today's spending.")


@pytest.fixture()
def guard(db_session, transport) -> DedupGuard:
    engine = DeliveryEngine(SubscriptionRegistry(db_session), transport, concurrency=2)
    return DedupGuard(NotificationLog(db_session), engine)


def log_entries(db_session, user_id) -> list[NotificationLogEntry]:
    return list(
        db_session.scalars(select(NotificationLogEntry).where(NotificationLogEntry.user_id == user_id))
    )


def test_welcome_is_sent_once(db_session, transport, guard, make_subscription):
    subscription = make_subscription()

    first = guard.send_welcome(subscription.user_id)
    second = guard.send_welcome(subscription.user_id)

    assert (first.sent, first.skipped) == (1, False)
    assert (second.sent, second.skipped) == (0, True)
    assert len(transport.calls) == 1

    entries = log_entries(db_session, subscription.user_id)
    assert len(entries) == 1
    assert entries[0].notification_type is NotificationType.WELCOME
    assert entries[0].status is NotificationStatus.SENT
    assert entries[0].schedule_slot is None
    assert entries[0].title == WELCOME_PAYLOAD.title


def test_existing_log_row_skips_without_transport_calls(db_session, transport, guard, make_subscription):
    subscription = make_subscription()
    NotificationLog(db_session).record_sent(subscription.user_id, NotificationType.WELCOME, WELCOME_PAYLOAD)

    result = guard.send_welcome(subscription.user_id)

    assert result.skipped is True
    assert result.sent == 0
    assert transport.calls == []


def test_user_without_devices_can_be_welcomed_later(db_session, transport, guard, make_subscription):
    user_id = uuid.uuid4()

    assert guard.send_welcome(user_id).sent == 0
    assert log_entries(db_session, user_id) == []

    make_subscription(user_id=user_id)
    assert guard.send_welcome(user_id).sent == 1


def test_failed_delivery_does_not_mark_sent(db_session, transport, guard, make_subscription):
    subscription = make_subscription()
    transport.outcomes[subscription.endpoint] = "transient"

    result = guard.send_welcome(subscription.user_id)

    assert (result.sent, result.failed) == (0, 1)
    assert log_entries(db_session, subscription.user_id) == []


def test_recurring_types_dedup_per_slot(db_session, transport, guard, make_subscription):
    subscription = make_subscription()
    user_id = subscription.user_id

    assert guard.send_once(user_id, NotificationType.BUDGET_REMINDER, REMINDER, MORNING).sent == 1
    assert guard.send_once(user_id, NotificationType.BUDGET_REMINDER, REMINDER, MORNING).skipped is True
    assert guard.send_once(user_id, NotificationType.BUDGET_REMINDER, REMINDER, EVENING).sent == 1
    assert guard.send_once(user_id, NotificationType.EXPENSE_REMINDER, REMINDER, MORNING).sent == 1

    assert len(transport.calls) == 3
    slots = sorted(entry.schedule_slot for entry in log_entries(db_session, user_id))
    assert slots == ["2026-10-18:evening", "2026-10-18:morning", "2026-10-18:morning"]


def test_slot_rules_per_notification_type(guard):
    user_id = uuid.uuid4()

    with pytest.raises(ValueError):
        guard.send_once(user_id, NotificationType.WELCOME, WELCOME_PAYLOAD, MORNING)
    with pytest.raises(ValueError):
        guard.send_once(user_id, NotificationType.BUDGET_REMINDER, REMINDER)


def test_duplicate_sent_rows_are_rejected(db_session):
    user_id = uuid.uuid4()
    log = NotificationLog(db_session)

    assert log.record_sent(user_id, NotificationType.WELCOME, WELCOME_PAYLOAD) is not None
    assert log.record_sent(user_id, NotificationType.WELCOME, WELCOME_PAYLOAD) is None
    assert log.record_sent(user_id, NotificationType.BUDGET_REMINDER, REMINDER, MORNING) is not None
    assert log.record_sent(user_id, NotificationType.BUDGET_REMINDER, REMINDER, MORNING) is None
    assert log.record_sent(user_id, NotificationType.BUDGET_REMINDER, REMINDER, EVENING) is not None

    assert len(log_entries(db_session, user_id)) == 3


def test_concurrent_welcome_keeps_a_single_log_row(db_session, transport, guard, make_subscription):
    subscription = make_subscription()
    # Another request delivered and logged after this one passed its check
    NotificationLog(db_session).record_sent(subscription.user_id, NotificationType.WELCOME, WELCOME_PAYLOAD)

    with patch.object(NotificationLog, "has_sent", return_value=False):
        result = guard.send_welcome(subscription.user_id)

    assert result.sent == 1
    assert len(transport.calls) == 1
    assert len(log_entries(db_session, subscription.user_id)) == 1
