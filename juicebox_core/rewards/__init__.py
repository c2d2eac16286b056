# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from juicebox_core.rewards.config import RewardsConfig
from juicebox_core.rewards.engine import RewardEngine
from juicebox_core.rewards.errors import (
    AccountNotFoundError,
    AlreadyClaimedTodayError,
    DailyLimitReachedError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidReferralCodeError,
    ReferralAlreadyUsedError,
    RewardError,
    RewardErrorCode,
    SelfReferralNotAllowedError,
    StorageUnavailableError,
)
from juicebox_core.rewards.ledger import CoinEventType, CoinLedgerEntry
from juicebox_core.rewards.registration import RegistrationResult, register_account
from juicebox_core.rewards.store import AccountUpdate, RewardStore
from juicebox_core.rewards.adapters.firestore import FirestoreRewardStore
from juicebox_core.rewards.adapters.memory import InMemoryRewardStore
from juicebox_core.rewards.types import (
    AdWatchReceipt,
    CoinSummary,
    DailyRewardReceipt,
    ReferralReceipt,
    ReferralStats,
    RewardResult,
    SpendReceipt,
)

__all__ = [
    "RewardsConfig",
    "RewardEngine",
    "RewardError",
    "RewardErrorCode",
    "AccountNotFoundError",
    "AlreadyClaimedTodayError",
    "DailyLimitReachedError",
    "InsufficientBalanceError",
    "InvalidAmountError",
    "InvalidReferralCodeError",
    "ReferralAlreadyUsedError",
    "SelfReferralNotAllowedError",
    "StorageUnavailableError",
    "CoinEventType",
    "CoinLedgerEntry",
    "RegistrationResult",
    "register_account",
    "AccountUpdate",
    "RewardStore",
    "FirestoreRewardStore",
    "InMemoryRewardStore",
    "AdWatchReceipt",
    "CoinSummary",
    "DailyRewardReceipt",
    "ReferralReceipt",
    "ReferralStats",
    "RewardResult",
    "SpendReceipt",
]
