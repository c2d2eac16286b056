# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


def _to_int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _to_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    s = str(value).strip().lower()
    if s in ("1", "true", "yes", "y", "on"):
        return True
    if s in ("0", "false", "no", "n", "off", ""):
        return False
    return default


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if hasattr(value, "to_datetime"):
        return value.to_datetime()
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return None


@dataclass(frozen=True, slots=True)
class UserAccount:
    """Coin-economy view of a storefront user.

    The storage collaborator owns the record; the engine only ever holds a
    transient copy while an operation is in flight. Mutations produce new
    instances via `dataclasses.replace`.
    """

    id: str
    referral_code: str
    coin_balance: int = 0
    total_coins_earned: int = 0
    total_coins_spent: int = 0
    total_coins_purchased: int = 0

    ads_watched_today: int = 0
    max_ads_per_day: int = 10
    last_ad_watch_date: Optional[datetime] = None

    daily_reward_streak: int = 0
    max_daily_reward_streak: int = 0
    last_daily_reward_date: Optional[datetime] = None

    # Non-owning reference: id of the referring account, set at most once.
    referred_by: Optional[str] = None
    referred_at: Optional[datetime] = None
    referral_count: int = 0
    referral_rewards_earned: int = 0

    # Read-only here; VIP expiry is enforced elsewhere.
    is_vip: bool = False
    vip_expiry_date: Optional[datetime] = None

    created_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None

    @classmethod
    def new(
        cls,
        user_id: str,
        referral_code: str,
        *,
        max_ads_per_day: int,
        now: datetime,
    ) -> "UserAccount":
        return cls(
            id=user_id,
            referral_code=referral_code,
            max_ads_per_day=max_ads_per_day,
            created_at=now,
            last_activity_at=now,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserAccount":
        referred_by = data.get("referred_by")
        return cls(
            id=str(data.get("id", "")),
            referral_code=str(data.get("referral_code") or ""),
            coin_balance=_to_int(data.get("coin_balance")),
            total_coins_earned=_to_int(data.get("total_coins_earned")),
            total_coins_spent=_to_int(data.get("total_coins_spent")),
            total_coins_purchased=_to_int(data.get("total_coins_purchased")),
            ads_watched_today=_to_int(data.get("ads_watched_today")),
            max_ads_per_day=_to_int(data.get("max_ads_per_day"), default=10),
            last_ad_watch_date=_to_datetime(data.get("last_ad_watch_date")),
            daily_reward_streak=_to_int(data.get("daily_reward_streak")),
            max_daily_reward_streak=_to_int(data.get("max_daily_reward_streak")),
            last_daily_reward_date=_to_datetime(data.get("last_daily_reward_date")),
            referred_by=str(referred_by) if referred_by else None,
            referred_at=_to_datetime(data.get("referred_at")),
            referral_count=_to_int(data.get("referral_count")),
            referral_rewards_earned=_to_int(data.get("referral_rewards_earned")),
            is_vip=_to_bool(data.get("is_vip")),
            vip_expiry_date=_to_datetime(data.get("vip_expiry_date")),
            created_at=_to_datetime(data.get("created_at")),
            last_activity_at=_to_datetime(data.get("last_activity_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "referral_code": self.referral_code,
            "coin_balance": self.coin_balance,
            "total_coins_earned": self.total_coins_earned,
            "total_coins_spent": self.total_coins_spent,
            "total_coins_purchased": self.total_coins_purchased,
            "ads_watched_today": self.ads_watched_today,
            "max_ads_per_day": self.max_ads_per_day,
            "last_ad_watch_date": self.last_ad_watch_date,
            "daily_reward_streak": self.daily_reward_streak,
            "max_daily_reward_streak": self.max_daily_reward_streak,
            "last_daily_reward_date": self.last_daily_reward_date,
            "referred_by": self.referred_by,
            "referred_at": self.referred_at,
            "referral_count": self.referral_count,
            "referral_rewards_earned": self.referral_rewards_earned,
            "is_vip": self.is_vip,
            "vip_expiry_date": self.vip_expiry_date,
            "created_at": self.created_at,
            "last_activity_at": self.last_activity_at,
        }
