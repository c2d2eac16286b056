# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypeVar

from juicebox_core.rewards.errors import RewardError, RewardErrorCode

# -----------------------------------------------------------------------------
# Receipts (successful operation payloads, camelCase on the wire)
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AdWatchReceipt:
    coins_earned: int
    new_balance: int
    ads_watched_today: int
    max_ads_per_day: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "coinsEarned": self.coins_earned,
            "newBalance": self.new_balance,
            "adsWatchedToday": self.ads_watched_today,
            "maxAdsPerDay": self.max_ads_per_day,
        }


@dataclass(frozen=True, slots=True)
class DailyRewardReceipt:
    reward: int
    new_balance: int
    streak: int
    max_streak: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "reward": self.reward,
            "newBalance": self.new_balance,
            "streak": self.streak,
            "maxStreak": self.max_streak,
        }


@dataclass(frozen=True, slots=True)
class SpendReceipt:
    coins_spent: int
    new_balance: int
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "coinsSpent": self.coins_spent,
            "newBalance": self.new_balance,
            "reason": self.reason,
        }


@dataclass(frozen=True, slots=True)
class ReferralReceipt:
    referrer_id: str
    referred_id: str
    referrer_reward: int
    referred_reward: int
    new_balance: int  # referred account balance after the bonus

    def to_dict(self) -> dict[str, Any]:
        return {
            "referrerId": self.referrer_id,
            "referredId": self.referred_id,
            "referrerReward": self.referrer_reward,
            "referredReward": self.referred_reward,
            "newBalance": self.new_balance,
        }


@dataclass(frozen=True, slots=True)
class CoinSummary:
    current_coins: int
    total_earned: int
    total_spent: int
    total_purchased: int
    is_vip: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentCoins": self.current_coins,
            "totalEarned": self.total_earned,
            "totalSpent": self.total_spent,
            "totalPurchased": self.total_purchased,
            "isVIP": self.is_vip,
        }


@dataclass(frozen=True, slots=True)
class ReferralStats:
    referral_code: str
    referral_count: int
    referral_rewards_earned: int
    referrals: List[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "referralCode": self.referral_code,
            "referralCount": self.referral_count,
            "referralRewardsEarned": self.referral_rewards_earned,
            "referrals": list(self.referrals),
        }


# -----------------------------------------------------------------------------
# Operation result (success payload or typed failure)
# -----------------------------------------------------------------------------

T = TypeVar("T")


@dataclass(frozen=True)
class RewardResult(Generic[T]):
    ok: bool
    action: str
    data: Optional[T] = None
    error: Optional[RewardErrorCode] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, action: str, data: T, message: str | None = None) -> "RewardResult[T]":
        return cls(ok=True, action=action, data=data, message=message)

    @classmethod
    def failure(cls, action: str, error: RewardError) -> "RewardResult[T]":
        return cls(ok=False, action=action, error=error.code, message=error.message)

    def to_dict(self) -> dict[str, Any]:
        if not self.ok:
            return {
                "success": False,
                "error": self.error.value if self.error else None,
                "message": self.message,
            }
        payload: dict[str, Any] = {"success": True}
        if self.data is not None:
            payload["data"] = self.data.to_dict() if hasattr(self.data, "to_dict") else self.data
        if self.message:
            payload["message"] = self.message
        return payload
