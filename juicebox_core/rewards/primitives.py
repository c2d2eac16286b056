# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Ledger primitives.

Pure coin arithmetic over a `UserAccount` snapshot. No I/O, no clock:
callers pass the account in and persist whatever comes back.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal, ROUND_FLOOR
from typing import Any

from juicebox_core.rewards.config import RewardsConfig
from juicebox_core.rewards.errors import InsufficientBalanceError, InvalidAmountError
from juicebox_core.users.models import UserAccount

_DEFAULT_CONFIG = RewardsConfig()


def is_positive_int(value: Any) -> bool:
    # bool is an int subclass; True must not count as one coin.
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def compute_ad_reward(requested_reward: Any = None, *, cfg: RewardsConfig = _DEFAULT_CONFIG) -> int:
    """Requested reward if it is a positive integer, else the configured default."""
    if is_positive_int(requested_reward):
        return int(requested_reward)
    return max(0, cfg.default_ad_reward)


def compute_daily_reward(
    streak_before_increment: int,
    is_vip: bool,
    *,
    cfg: RewardsConfig = _DEFAULT_CONFIG,
) -> int:
    """
    floor((base + floor(streak / every_days) * bonus) * multiplier)

    Uses the streak value *before* today's claim is counted.
    """
    streak = max(0, int(streak_before_increment))
    every = max(1, cfg.streak_bonus_every_days)
    streak_bonus = (streak // every) * cfg.streak_bonus_coins
    multiplier = cfg.vip_multiplier if is_vip else Decimal("1")
    raw = Decimal(cfg.daily_base_reward + streak_bonus) * multiplier
    return int(raw.to_integral_value(rounding=ROUND_FLOOR))


def apply_earn(account: UserAccount, amount: int) -> UserAccount:
    if amount < 0:
        raise InvalidAmountError(f"Cannot earn a negative amount ({amount}).")
    return replace(
        account,
        coin_balance=account.coin_balance + amount,
        total_coins_earned=account.total_coins_earned + amount,
    )


def apply_spend(account: UserAccount, amount: int) -> UserAccount:
    if amount < 0:
        raise InvalidAmountError(f"Cannot spend a negative amount ({amount}).")
    if account.coin_balance < amount:
        raise InsufficientBalanceError(
            f"Insufficient coins: balance {account.coin_balance}, requested {amount}."
        )
    return replace(
        account,
        coin_balance=account.coin_balance - amount,
        total_coins_spent=account.total_coins_spent + amount,
    )
