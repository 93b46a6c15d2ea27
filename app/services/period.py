# app/services/period.py
"""
Quota period keys and day boundaries, in campus local time.

period_key() is the only place a timestamp is turned into a quota period:
  week → "week:YYYY-MM-DD" (the Monday the week starts on)
  day  → "day:YYYY-MM-DD"
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Union

from app.models.enums import QuotaPeriod

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class PeriodKey:
    policy: QuotaPeriod
    start: date

    @property
    def label(self) -> str:
        return f"{self.policy.value}:{self.start.isoformat()}"

    def __str__(self):
        return self.label


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_local(moment: datetime, tz: tzinfo) -> datetime:
    # Naive datetimes are treated as UTC
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz)


def period_key(moment: datetime, policy: Union[QuotaPeriod, str], tz: tzinfo) -> PeriodKey:
    policy = QuotaPeriod(policy)
    local_day = to_local(moment, tz).date()
    if policy is QuotaPeriod.WEEK:
        return PeriodKey(policy, local_day - timedelta(days=local_day.weekday()))
    return PeriodKey(policy, local_day)


def end_of_day(moment: datetime, tz: tzinfo) -> datetime:
    """23:59:59.999 local time on the day `moment` falls on."""
    local_day = to_local(moment, tz).date()
    return datetime.combine(local_day, time(23, 59, 59, 999000), tzinfo=tz)


def to_epoch_ms(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - _EPOCH) // timedelta(milliseconds=1)
