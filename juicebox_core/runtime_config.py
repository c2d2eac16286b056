# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from juicebox_core import REWARD_RULES_VERSION
from juicebox_core.rewards.config import RewardsConfig


def _parse_bool(raw: Any, *, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    s = str(raw).strip().lower()
    if not s:
        return default
    if s in ("1", "true", "yes", "y", "on"):
        return True
    if s in ("0", "false", "no", "n", "off"):
        return False
    return default


def _parse_int(raw: Any, *, default: int, min_v: int, max_v: int) -> int:
    try:
        if raw is None:
            v = default
        elif isinstance(raw, int):
            v = raw
        else:
            v = int(str(raw).strip())
    except (TypeError, ValueError):
        v = default
    return max(min_v, min(max_v, v))


def _parse_decimal(raw: Any, *, default: Decimal, min_v: Decimal, max_v: Decimal) -> Decimal:
    try:
        if raw is None or not str(raw).strip():
            v = default
        else:
            v = Decimal(str(raw).strip())
    except InvalidOperation:
        v = default
    if not v.is_finite():
        v = default
    return max(min_v, min(max_v, v))


@dataclass(frozen=True)
class RewardsFeatureFlags:
    # Trace is a local-only debug feature; enabled by default and can be disabled via env.
    trace_enabled: bool = True
    # Streak counts only consecutive days when on.
    reset_streak_on_gap: bool = False


@dataclass(frozen=True)
class RewardsDebugFlags:
    engine_debug: bool = False
    trace_max_str_chars: int = 4000


@dataclass(frozen=True)
class RewardsRuntimeConfig:
    features: RewardsFeatureFlags = field(default_factory=RewardsFeatureFlags)
    debug: RewardsDebugFlags = field(default_factory=RewardsDebugFlags)
    rewards: RewardsConfig = field(default_factory=RewardsConfig)

    @staticmethod
    def load_from_env() -> "RewardsRuntimeConfig":
        base = RewardsConfig()

        features = RewardsFeatureFlags(
            trace_enabled=not _parse_bool(os.getenv("JUICEBOX_TRACE_DISABLE"), default=False),
            reset_streak_on_gap=_parse_bool(os.getenv("JUICEBOX_RESET_STREAK_ON_GAP"), default=False),
        )

        debug = RewardsDebugFlags(
            engine_debug=_parse_bool(os.getenv("JUICEBOX_ENGINE_DEBUG"), default=False),
            trace_max_str_chars=_parse_int(
                os.getenv("JUICEBOX_TRACE_MAX_STR_CHARS"), default=4000, min_v=100, max_v=20_000
            ),
        )

        rewards = RewardsConfig(
            user_collection=(os.getenv("JUICEBOX_USER_COLLECTION") or base.user_collection).strip(),
            ledger_collection=(os.getenv("JUICEBOX_LEDGER_COLLECTION") or base.ledger_collection).strip(),
            default_ad_reward=_parse_int(
                os.getenv("JUICEBOX_DEFAULT_AD_REWARD"), default=base.default_ad_reward, min_v=1, max_v=1000
            ),
            default_max_ads_per_day=_parse_int(
                os.getenv("JUICEBOX_MAX_ADS_PER_DAY"), default=base.default_max_ads_per_day, min_v=1, max_v=100
            ),
            daily_base_reward=_parse_int(
                os.getenv("JUICEBOX_DAILY_BASE_REWARD"), default=base.daily_base_reward, min_v=0, max_v=10_000
            ),
            streak_bonus_every_days=_parse_int(
                os.getenv("JUICEBOX_STREAK_BONUS_EVERY_DAYS"), default=base.streak_bonus_every_days, min_v=1, max_v=365
            ),
            streak_bonus_coins=_parse_int(
                os.getenv("JUICEBOX_STREAK_BONUS_COINS"), default=base.streak_bonus_coins, min_v=0, max_v=10_000
            ),
            vip_multiplier=_parse_decimal(
                os.getenv("JUICEBOX_VIP_MULTIPLIER"),
                default=base.vip_multiplier,
                min_v=Decimal("1"),
                max_v=Decimal("10"),
            ),
            reset_streak_on_gap=features.reset_streak_on_gap,
            referrer_reward=_parse_int(
                os.getenv("JUICEBOX_REFERRER_REWARD"), default=base.referrer_reward, min_v=0, max_v=100_000
            ),
            referred_reward=_parse_int(
                os.getenv("JUICEBOX_REFERRED_REWARD"), default=base.referred_reward, min_v=0, max_v=100_000
            ),
        )

        return RewardsRuntimeConfig(features=features, debug=debug, rewards=rewards)

    def to_safe_log_dict(self) -> dict[str, Any]:
        r = self.rewards
        return {
            "rules_version": REWARD_RULES_VERSION,
            "features": {
                "trace_enabled": bool(self.features.trace_enabled),
                "reset_streak_on_gap": bool(self.features.reset_streak_on_gap),
            },
            "debug": {
                "engine_debug": bool(self.debug.engine_debug),
                "trace_max_str_chars": int(self.debug.trace_max_str_chars),
            },
            "rewards": {
                "user_collection": r.user_collection,
                "ledger_collection": r.ledger_collection,
                "default_ad_reward": int(r.default_ad_reward),
                "default_max_ads_per_day": int(r.default_max_ads_per_day),
                "daily_base_reward": int(r.daily_base_reward),
                "streak_bonus_every_days": int(r.streak_bonus_every_days),
                "streak_bonus_coins": int(r.streak_bonus_coins),
                "vip_multiplier": str(r.vip_multiplier),
                "referrer_reward": int(r.referrer_reward),
                "referred_reward": int(r.referred_reward),
            },
        }
