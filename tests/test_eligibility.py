"""Tests for opt-out based eligibility filtering."""
from __future__ import annotations

import uuid

from app.db.models.notification_preference import NotificationPreference
from app.services.eligibility import EligibilityFilter


def test_default_allow_and_explicit_preferences(db_session):
    opted_out, no_row, opted_in = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    db_session.add_all(
        [
            NotificationPreference(user_id=opted_out, push_enabled=False),
            NotificationPreference(user_id=opted_in, push_enabled=True),
        ]
    )
    db_session.commit()

    eligible = EligibilityFilter(db_session).eligible_users([opted_out, no_row, opted_in])

    assert eligible == [no_row, opted_in]


def test_empty_candidates_short_circuit(db_session):
    assert EligibilityFilter(db_session).eligible_users([]) == []


def test_duplicate_candidates_are_collapsed(db_session):
    user_id = uuid.uuid4()

    assert EligibilityFilter(db_session).eligible_users([user_id, user_id]) == [user_id]
