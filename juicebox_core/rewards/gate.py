# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Daily gate for time-limited coin actions.

"Today" is a UTC calendar date, not a rolling 24h window: an ad watched at
23:59 and another at 00:01 fall on different days, while two claims twenty
hours apart on the same date are both "today".

Days only move forward. A clock reading earlier than the last recorded
action never opens a new day: the ad counter is kept and the daily claim
stays closed until the calendar date is strictly later.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Optional

from juicebox_core.users.models import UserAccount


def utc_date(ts: datetime) -> date:
    """Calendar date of `ts` in UTC. Naive datetimes are taken as UTC."""
    if ts.tzinfo is None:
        return ts.date()
    return ts.astimezone(timezone.utc).date()


def is_same_calendar_day(t1: Optional[datetime], t2: Optional[datetime]) -> bool:
    if t1 is None or t2 is None:
        return False
    return utc_date(t1) == utc_date(t2)


def is_previous_calendar_day(earlier: Optional[datetime], now: datetime) -> bool:
    if earlier is None:
        return False
    return (utc_date(now) - utc_date(earlier)).days == 1


def is_new_calendar_day(last: Optional[datetime], now: datetime) -> bool:
    """True when `now` falls on a UTC date strictly after `last` (or nothing was recorded)."""
    if last is None:
        return True
    return utc_date(now) > utc_date(last)


def not_before(last: Optional[datetime], now: datetime) -> datetime:
    """`now`, or `last` if the clock reads earlier than it. Result is UTC-aware."""
    now = _as_utc(now)
    if last is None:
        return now
    return max(now, _as_utc(last))


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def reset_if_new_day(account: UserAccount, now: datetime) -> UserAccount:
    if not is_new_calendar_day(account.last_ad_watch_date, now):
        return account
    if account.ads_watched_today == 0:
        return account
    return replace(account, ads_watched_today=0)


def can_watch_ad(account: UserAccount, now: datetime) -> bool:
    current = reset_if_new_day(account, now)
    return current.ads_watched_today < current.max_ads_per_day


def can_claim_daily(account: UserAccount, now: datetime) -> bool:
    return is_new_calendar_day(account.last_daily_reward_date, now)
