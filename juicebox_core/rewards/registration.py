# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Account creation for the coin economy.

A referral code given at signup goes through the same path as the
apply-code endpoint. If it fails to apply, the account is still created
and the failure is only logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from juicebox_core.rewards.engine import RewardEngine
from juicebox_core.rewards.errors import RewardErrorCode
from juicebox_core.rewards.referral import generate_referral_code, normalize_referral_code
from juicebox_core.rewards.store import ReferralCodeTakenError
from juicebox_core.users.models import UserAccount

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RegistrationResult:
    account: UserAccount
    referral_applied: bool = False
    referral_error: Optional[RewardErrorCode] = None

    def to_dict(self) -> dict:
        return {
            "id": self.account.id,
            "referralCode": self.account.referral_code,
            "coins": self.account.coin_balance,
            "referralApplied": self.referral_applied,
            "referralError": self.referral_error.value if self.referral_error else None,
        }


def register_account(
    engine: RewardEngine,
    user_id: str,
    referral_code: str | None = None,
    *,
    is_vip: bool = False,
    now: datetime | None = None,
) -> RegistrationResult:
    """
    Create the coin-economy record for a freshly registered user.

    Raises AccountExistsError if `user_id` is already registered and
    StorageUnavailableError if the store is down.
    """
    store = engine.store
    cfg = engine.config
    now = now or engine.now()

    account: UserAccount | None = None
    last_error: ReferralCodeTakenError | None = None
    for _ in range(max(1, cfg.referral_code_max_attempts)):
        candidate = UserAccount.new(
            user_id,
            generate_referral_code(now, cfg=cfg),
            max_ads_per_day=cfg.default_max_ads_per_day,
            now=now,
        )
        if is_vip:
            candidate = replace(candidate, is_vip=True)
        try:
            account = store.create_account(candidate)
            break
        except ReferralCodeTakenError as exc:
            last_error = exc
            logger.debug("[Registration] referral code collision for user=%s, retrying", user_id)
    if account is None:
        raise last_error or ReferralCodeTakenError("Could not allocate a referral code.")

    logger.info("[Registration] created user=%s code=%s", account.id, account.referral_code)

    if not normalize_referral_code(referral_code):
        return RegistrationResult(account=account)

    result = engine.use_referral_code(account.id, referral_code, now=now)
    if not result.ok:
        logger.warning(
            "[Registration] referral code ignored for user=%s: %s",
            account.id,
            result.error.value if result.error else "unknown",
        )
        return RegistrationResult(account=account, referral_error=result.error)

    refreshed = store.load_by_id(account.id) or account
    return RegistrationResult(account=refreshed, referral_applied=True)
