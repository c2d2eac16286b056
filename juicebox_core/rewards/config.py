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
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class RewardsConfig:
    """Configuration for the coin economy."""

    # Firestore paths
    user_collection: str = "users"
    ledger_collection: str = "coin_ledger"
    referral_code_collection: str = "referral_codes"

    # Ad watching
    default_ad_reward: int = 5
    default_max_ads_per_day: int = 10

    # Daily reward: (base + floor(streak / every_days) * bonus) * multiplier
    daily_base_reward: int = 10
    streak_bonus_every_days: int = 7
    streak_bonus_coins: int = 5
    vip_multiplier: Decimal = Decimal("1.5")

    # Streak resets when a calendar day is skipped (off by default)
    reset_streak_on_gap: bool = False

    # Referral rewards
    referrer_reward: int = 100
    referred_reward: int = 50

    # Referral code shape: USER<epoch ms><suffix>
    referral_code_prefix: str = "USER"
    referral_code_suffix_len: int = 5
    referral_code_max_attempts: int = 5

    # Read-side limits
    max_history_entries: int = 200
