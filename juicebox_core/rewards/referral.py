# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Referral graph operations.

A referral links two accounts exactly once: the referred account records
who referred it (`referred_by`, a plain id reference) and both sides get a
fixed reward. The same function serves signup and the explicit
apply-code endpoint.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import replace
from datetime import datetime
from typing import Optional, Tuple

from juicebox_core.rewards.config import RewardsConfig
from juicebox_core.rewards.errors import (
    InvalidReferralCodeError,
    ReferralAlreadyUsedError,
    SelfReferralNotAllowedError,
)
from juicebox_core.rewards.ledger import CoinEventType, CoinLedgerEntry, build_referral_keys
from juicebox_core.rewards.primitives import apply_earn
from juicebox_core.rewards.store import AccountUpdate
from juicebox_core.users.models import UserAccount

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def normalize_referral_code(code: object) -> str:
    if not isinstance(code, str):
        return ""
    return code.strip().upper()


def generate_referral_code(now: datetime, *, cfg: RewardsConfig) -> str:
    """USER<epoch ms><random base36 suffix>, e.g. USER1718000000000K3F9Q."""
    epoch_ms = int(now.timestamp() * 1000)
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(cfg.referral_code_suffix_len))
    return f"{cfg.referral_code_prefix}{epoch_ms}{suffix}"


def validate_referral(referrer: Optional[UserAccount], referred: UserAccount) -> UserAccount:
    """Check preconditions; returns the resolved referrer."""
    if referred.referred_by:
        raise ReferralAlreadyUsedError()
    if referrer is None:
        raise InvalidReferralCodeError()
    if referrer.id == referred.id:
        raise SelfReferralNotAllowedError()
    return referrer


def apply_referral(
    referrer: Optional[UserAccount],
    referred: UserAccount,
    *,
    now: datetime,
    cfg: RewardsConfig,
) -> Tuple[AccountUpdate, AccountUpdate]:
    """Reward both sides and link `referred` to `referrer`.

    Pure: returns the updates for the store to commit together.
    """
    referrer = validate_referral(referrer, referred)
    referrer_key, referred_key = build_referral_keys(referred.id)

    new_referrer = apply_earn(referrer, cfg.referrer_reward)
    new_referrer = replace(
        new_referrer,
        referral_count=referrer.referral_count + 1,
        referral_rewards_earned=referrer.referral_rewards_earned + cfg.referrer_reward,
        last_activity_at=now,
    )

    new_referred = apply_earn(referred, cfg.referred_reward)
    new_referred = replace(
        new_referred,
        referred_by=referrer.id,
        referred_at=now,
        last_activity_at=now,
    )

    referrer_entry = CoinLedgerEntry(
        idempotency_key=referrer_key,
        user_id=referrer.id,
        event_type=CoinEventType.REFERRAL_REWARD,
        amount=cfg.referrer_reward,
        balance_after=new_referrer.coin_balance,
        created_at=now,
        meta={"referred_id": referred.id},
    )
    referred_entry = CoinLedgerEntry(
        idempotency_key=referred_key,
        user_id=referred.id,
        event_type=CoinEventType.REFERRAL_BONUS,
        amount=cfg.referred_reward,
        balance_after=new_referred.coin_balance,
        created_at=now,
        meta={"referrer_id": referrer.id},
    )
    return (
        AccountUpdate(account=new_referrer, entries=(referrer_entry,)),
        AccountUpdate(account=new_referred, entries=(referred_entry,)),
    )
