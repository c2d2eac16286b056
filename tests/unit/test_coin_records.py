# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Unit tests for account records, ledger entries and result envelopes."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from juicebox_core.rewards.errors import DailyLimitReachedError, StorageUnavailableError, is_fatal
from juicebox_core.rewards.ledger import (
    CoinEventType,
    CoinLedgerEntry,
    build_idempotency_key,
    build_referral_keys,
)
from juicebox_core.rewards.types import AdWatchReceipt, RewardResult
from juicebox_core.schema.requests import SpendCoinsRequest, WatchAdRequest
from juicebox_core.users.models import UserAccount

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class TestUserAccountFromDict:
    def test_tolerates_missing_and_legacy_fields(self):
        account = UserAccount.from_dict({
            "id": "alice",
            "referral_code": "USERALICE",
            "coin_balance": "12",
            "ads_watched_today": None,
            "last_ad_watch_date": "2025-03-10T08:00:00+00:00",
        })
        assert account.coin_balance == 12
        assert account.ads_watched_today == 0
        assert account.max_ads_per_day == 10
        assert account.last_ad_watch_date == datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc)
        assert account.referred_by is None

    def test_firestore_timestamps(self):
        ts = MagicMock()
        ts.to_datetime.return_value = NOW
        account = UserAccount.from_dict({"id": "alice", "referral_code": "X", "created_at": ts})
        assert account.created_at == NOW

    @pytest.mark.parametrize(
        "raw, expected",
        [("false", False), ("False", False), ("0", False), ("", False), (0, False),
         ("true", True), ("1", True), (1, True), (True, True)],
    )
    def test_vip_flag_parsing(self, raw, expected):
        account = UserAccount.from_dict({"id": "alice", "referral_code": "X", "is_vip": raw})
        assert account.is_vip is expected

    def test_dict_roundtrip(self):
        account = UserAccount.new("alice", "USERALICE", max_ads_per_day=7, now=NOW)
        assert UserAccount.from_dict(account.to_dict()) == account


class TestLedger:
    def test_keys(self):
        assert build_idempotency_key("alice", "daily", "2025-03-10") == "alice:daily:2025-03-10"
        assert build_idempotency_key("alice", "", None, "x") == "alice:x"
        assert build_referral_keys("bob") == ("referral:bob:referrer", "referral:bob:referred")

    def test_public_dict(self):
        entry = CoinLedgerEntry(
            idempotency_key="alice:spend:4",
            user_id="alice",
            event_type=CoinEventType.SPEND,
            amount=-4,
            balance_after=6,
            created_at=NOW,
            reason="sticker",
        )
        assert entry.to_public_dict() == {
            "type": "spend",
            "amount": -4,
            "balanceAfter": 6,
            "createdAt": "2025-03-10T12:00:00+00:00",
            "reason": "sticker",
        }


class TestRewardResult:
    def test_success_envelope(self):
        receipt = AdWatchReceipt(coins_earned=5, new_balance=5, ads_watched_today=1, max_ads_per_day=10)
        body = RewardResult.success("watch_ad", receipt).to_dict()
        assert body == {"success": True, "data": receipt.to_dict()}

    def test_failure_envelope(self):
        body = RewardResult.failure("watch_ad", DailyLimitReachedError()).to_dict()
        assert body == {
            "success": False,
            "error": "daily_limit_reached",
            "message": "Daily ad watching limit reached.",
        }

    def test_fatal_errors(self):
        assert is_fatal(StorageUnavailableError())
        assert not is_fatal(DailyLimitReachedError())


class TestRequestSchemas:
    def test_aliases_and_snake_case(self):
        req = SpendCoinsRequest.from_dict({"amount": 3, "item_id": "sku-1"})
        assert req.item_id == "sku-1"
        assert req.to_dict() == {"amount": 3, "itemId": "sku-1"}

    @pytest.mark.parametrize("amount", [True, "3", 3.0])
    def test_spend_amount_is_strict(self, amount):
        with pytest.raises(ValidationError):
            SpendCoinsRequest.from_dict({"amount": amount})

    def test_watch_ad_all_optional(self):
        req = WatchAdRequest.from_dict({})
        assert req.reward is None
        assert req.ad_type is None
