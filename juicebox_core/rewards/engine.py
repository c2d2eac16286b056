# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Reward engine.

Every mutating operation follows the same shape: build a pure mutation from
the primitives, hand it to `RewardStore.commit_atomic` (or
`commit_referral`), and turn the committed account into a receipt. The
check and the write happen inside one store transaction, so concurrent
calls for the same account cannot both pass a gate against the same
snapshot.

Validation failures come back as `RewardResult(ok=False)`;
`StorageUnavailableError` propagates to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, TypeVar

from juicebox_core.rewards.config import RewardsConfig
from juicebox_core.rewards.errors import (
    AccountNotFoundError,
    AlreadyClaimedTodayError,
    DailyLimitReachedError,
    InvalidAmountError,
    RewardError,
    is_fatal,
)
from juicebox_core.rewards.gate import (
    can_claim_daily,
    can_watch_ad,
    is_previous_calendar_day,
    not_before,
    reset_if_new_day,
    utc_date,
)
from juicebox_core.rewards.ledger import CoinEventType, CoinLedgerEntry, build_idempotency_key
from juicebox_core.rewards.primitives import (
    apply_earn,
    apply_spend,
    compute_ad_reward,
    compute_daily_reward,
    is_positive_int,
)
from juicebox_core.rewards.referral import apply_referral, normalize_referral_code
from juicebox_core.rewards.store import AccountMutation, AccountUpdate, RewardStore
from juicebox_core.rewards.types import (
    AdWatchReceipt,
    CoinSummary,
    DailyRewardReceipt,
    ReferralReceipt,
    ReferralStats,
    RewardResult,
    SpendReceipt,
)
from juicebox_core.users.models import UserAccount
from juicebox_core.utils.trace import Trace

logger = logging.getLogger(__name__)

R = TypeVar("R")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RewardEngine:
    def __init__(
        self,
        *,
        store: RewardStore,
        config: RewardsConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._config = config or RewardsConfig()
        self._clock = clock or _utcnow

    @property
    def config(self) -> RewardsConfig:
        return self._config

    @property
    def store(self) -> RewardStore:
        return self._store

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def watch_ad(
        self,
        user_id: str,
        requested_reward: Any = None,
        *,
        ad_type: str | None = None,
        now: datetime | None = None,
    ) -> RewardResult[AdWatchReceipt]:
        now = now or self._clock()
        coins = compute_ad_reward(requested_reward, cfg=self._config)

        def _mutate(account: UserAccount) -> AccountUpdate:
            # A clock behind the last watch stays on that watch's day.
            at = not_before(account.last_ad_watch_date, now)
            current = reset_if_new_day(account, at)
            if not can_watch_ad(current, at):
                raise DailyLimitReachedError()
            updated = apply_earn(current, coins)
            updated = replace(
                updated,
                ads_watched_today=current.ads_watched_today + 1,
                last_ad_watch_date=at,
                last_activity_at=now,
            )
            entry = CoinLedgerEntry(
                idempotency_key=build_idempotency_key(
                    account.id, "ad", utc_date(at).isoformat(), str(updated.ads_watched_today)
                ),
                user_id=account.id,
                event_type=CoinEventType.AD_REWARD,
                amount=coins,
                balance_after=updated.coin_balance,
                created_at=at,
                meta={"ad_type": ad_type} if ad_type else {},
            )
            return AccountUpdate(account=updated, entries=(entry,))

        return self._commit(
            "watch_ad",
            user_id,
            _mutate,
            lambda acc: AdWatchReceipt(
                coins_earned=coins,
                new_balance=acc.coin_balance,
                ads_watched_today=acc.ads_watched_today,
                max_ads_per_day=acc.max_ads_per_day,
            ),
        )

    def claim_daily_reward(
        self,
        user_id: str,
        *,
        now: datetime | None = None,
    ) -> RewardResult[DailyRewardReceipt]:
        now = now or self._clock()
        cfg = self._config
        # Firestore may re-run the mutation; the last run is the committed one.
        computed: Dict[str, int] = {}

        def _mutate(account: UserAccount) -> AccountUpdate:
            if not can_claim_daily(account, now):
                raise AlreadyClaimedTodayError()
            streak_before = account.daily_reward_streak
            if (
                cfg.reset_streak_on_gap
                and account.last_daily_reward_date is not None
                and not is_previous_calendar_day(account.last_daily_reward_date, now)
            ):
                streak_before = 0
            reward = compute_daily_reward(streak_before, account.is_vip, cfg=cfg)
            streak = streak_before + 1

            updated = apply_earn(account, reward)
            updated = replace(
                updated,
                daily_reward_streak=streak,
                max_daily_reward_streak=max(account.max_daily_reward_streak, streak),
                last_daily_reward_date=now,
                last_activity_at=now,
            )
            computed["reward"] = reward
            entry = CoinLedgerEntry(
                idempotency_key=build_idempotency_key(account.id, "daily", utc_date(now).isoformat()),
                user_id=account.id,
                event_type=CoinEventType.DAILY_REWARD,
                amount=reward,
                balance_after=updated.coin_balance,
                created_at=now,
                meta={"streak": streak, "vip": account.is_vip},
            )
            return AccountUpdate(account=updated, entries=(entry,))

        return self._commit(
            "claim_daily_reward",
            user_id,
            _mutate,
            lambda acc: DailyRewardReceipt(
                reward=computed["reward"],
                new_balance=acc.coin_balance,
                streak=acc.daily_reward_streak,
                max_streak=acc.max_daily_reward_streak,
            ),
        )

    def spend_coins(
        self,
        user_id: str,
        amount: Any,
        reason: str | None = None,
        *,
        item_id: str | None = None,
        now: datetime | None = None,
    ) -> RewardResult[SpendReceipt]:
        now = now or self._clock()

        def _mutate(account: UserAccount) -> AccountUpdate:
            if not is_positive_int(amount):
                raise InvalidAmountError(f"Amount must be a positive integer, got {amount!r}.")
            updated = apply_spend(account, amount)
            updated = replace(updated, last_activity_at=now)
            entry = CoinLedgerEntry(
                # total_coins_spent strictly increases, so it numbers the spends.
                idempotency_key=build_idempotency_key(account.id, "spend", str(updated.total_coins_spent)),
                user_id=account.id,
                event_type=CoinEventType.SPEND,
                amount=-amount,
                balance_after=updated.coin_balance,
                created_at=now,
                reason=reason,
                meta={"item_id": item_id} if item_id else {},
            )
            return AccountUpdate(account=updated, entries=(entry,))

        return self._commit(
            "spend_coins",
            user_id,
            _mutate,
            lambda acc: SpendReceipt(coins_spent=amount, new_balance=acc.coin_balance, reason=reason),
        )

    def use_referral_code(
        self,
        user_id: str,
        code: Any,
        *,
        now: datetime | None = None,
    ) -> RewardResult[ReferralReceipt]:
        now = now or self._clock()
        normalized = normalize_referral_code(code)
        action = "use_referral_code"

        def _mutate(referrer: Optional[UserAccount], referred: UserAccount):
            return apply_referral(referrer, referred, now=now, cfg=self._config)

        try:
            referrer, referred = self._store.commit_referral(normalized, user_id, _mutate)
        except RewardError as exc:
            if is_fatal(exc):
                logger.error("[Rewards] %s storage failure for user=%s: %s", action, user_id, exc)
                raise
            return self._rejected(action, user_id, exc)

        receipt = ReferralReceipt(
            referrer_id=referrer.id,
            referred_id=referred.id,
            referrer_reward=self._config.referrer_reward,
            referred_reward=self._config.referred_reward,
            new_balance=referred.coin_balance,
        )
        logger.info(
            "[Rewards] referral applied referrer=%s referred=%s (+%d/+%d)",
            referrer.id,
            referred.id,
            receipt.referrer_reward,
            receipt.referred_reward,
        )
        Trace.event(f"rewards.{action}.ok", receipt.to_dict())
        return RewardResult.success(action, receipt, message="Referral code applied successfully")

    # ------------------------------------------------------------------
    # Read-side
    # ------------------------------------------------------------------

    def get_coin_summary(self, user_id: str) -> RewardResult[CoinSummary]:
        account = self._store.load_by_id(user_id)
        if account is None:
            return self._rejected("get_coin_summary", user_id, AccountNotFoundError())
        summary = CoinSummary(
            current_coins=account.coin_balance,
            total_earned=account.total_coins_earned,
            total_spent=account.total_coins_spent,
            total_purchased=account.total_coins_purchased,
            is_vip=account.is_vip,
        )
        return RewardResult.success("get_coin_summary", summary)

    def get_referral_stats(self, user_id: str) -> RewardResult[ReferralStats]:
        account = self._store.load_by_id(user_id)
        if account is None:
            return self._rejected("get_referral_stats", user_id, AccountNotFoundError())
        referrals = [
            {"id": r.id, "referredAt": r.referred_at.isoformat() if r.referred_at else None}
            for r in self._store.list_referrals(account.id)
        ]
        stats = ReferralStats(
            referral_code=account.referral_code,
            referral_count=account.referral_count,
            referral_rewards_earned=account.referral_rewards_earned,
            referrals=referrals,
        )
        return RewardResult.success("get_referral_stats", stats)

    def get_coin_history(self, user_id: str, limit: Any = 50) -> RewardResult[list]:
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            return self._rejected("get_coin_history", user_id, InvalidAmountError("limit must be an integer."))
        account = self._store.load_by_id(user_id)
        if account is None:
            return self._rejected("get_coin_history", user_id, AccountNotFoundError())
        limit = max(1, min(limit, self._config.max_history_entries))
        entries = self._store.list_ledger(account.id, limit=limit)
        return RewardResult.success("get_coin_history", [e.to_public_dict() for e in entries])

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _commit(
        self,
        action: str,
        user_id: str,
        mutation: AccountMutation,
        to_receipt: Callable[[UserAccount], R],
    ) -> RewardResult[R]:
        try:
            account = self._store.commit_atomic(user_id, mutation)
        except RewardError as exc:
            if is_fatal(exc):
                logger.error("[Rewards] %s storage failure for user=%s: %s", action, user_id, exc)
                raise
            return self._rejected(action, user_id, exc)

        receipt = to_receipt(account)
        logger.info("[Rewards] %s ok user=%s balance=%d", action, user_id, account.coin_balance)
        Trace.event(f"rewards.{action}.ok", {"user_id": user_id, **_receipt_dict(receipt)})
        return RewardResult.success(action, receipt)

    def _rejected(self, action: str, user_id: str, exc: RewardError) -> RewardResult[Any]:
        logger.debug("[Rewards] %s rejected user=%s: %s", action, user_id, exc.code.value)
        Trace.event(f"rewards.{action}.rejected", {"user_id": user_id, "error": exc.code.value})
        return RewardResult.failure(action, exc)


def _receipt_dict(receipt: Any) -> dict[str, Any]:
    if hasattr(receipt, "to_dict"):
        return receipt.to_dict()
    return {"value": receipt}
