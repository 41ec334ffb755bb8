"""Notification kinds and schedule slot arithmetic shared across services."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

SLOT_BOUNDARY_HOUR = 12


class NotificationType(str, enum.Enum):
    """Closed set of notification kinds written to the notification log."""

    BUDGET_REMINDER = "budget_reminder"
    EXPENSE_REMINDER = "expense_reminder"
    RELEASE_UPDATE = "release_update"
    WELCOME = "welcome"

    @property
    def is_one_shot(self) -> bool:
        return self in ONE_SHOT_TYPES


ONE_SHOT_TYPES = frozenset({NotificationType.WELCOME})


class DayPeriod(str, enum.Enum):
    """Coarse time-of-day bucket; local noon separates the two."""

    MORNING = "morning"
    EVENING = "evening"

    @classmethod
    def for_hour(cls, hour: int) -> "DayPeriod":
        return cls.MORNING if hour < SLOT_BOUNDARY_HOUR else cls.EVENING


class NotificationStatus(str, enum.Enum):
    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class ScheduleSlot:
    """A calendar day in the operator's time zone paired with a day period."""

    day: date
    period: DayPeriod

    @property
    def key(self) -> str:
        return f"{self.day.isoformat()}:{self.period.value}"

    def __str__(self) -> str:
        return self.key


def compute_schedule_slot(now: datetime | None = None, tz_name: str = "UTC") -> ScheduleSlot:
    """Return the slot containing ``now`` as observed in ``tz_name``.

    Naive datetimes are interpreted as UTC. Both the date and the period come
    from the local wall clock, so 01:00 local on the 5th is the 5th's morning
    even when UTC is still on the 4th.
    """

    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    local = moment.astimezone(ZoneInfo(tz_name))
    return ScheduleSlot(day=local.date(), period=DayPeriod.for_hour(local.hour))
