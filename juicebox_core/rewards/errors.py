# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

from enum import Enum


class RewardErrorCode(str, Enum):
    NOT_FOUND = "not_found"
    DAILY_LIMIT_REACHED = "daily_limit_reached"
    ALREADY_CLAIMED_TODAY = "already_claimed_today"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INVALID_AMOUNT = "invalid_amount"
    REFERRAL_ALREADY_USED = "referral_already_used"
    SELF_REFERRAL_NOT_ALLOWED = "self_referral_not_allowed"
    INVALID_REFERRAL_CODE = "invalid_referral_code"
    STORAGE_UNAVAILABLE = "storage_unavailable"


class RewardError(RuntimeError):
    code: RewardErrorCode = RewardErrorCode.STORAGE_UNAVAILABLE
    default_message: str = "Reward operation failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class AccountNotFoundError(RewardError):
    code = RewardErrorCode.NOT_FOUND
    default_message = "User not found."


class DailyLimitReachedError(RewardError):
    code = RewardErrorCode.DAILY_LIMIT_REACHED
    default_message = "Daily ad watching limit reached."


class AlreadyClaimedTodayError(RewardError):
    code = RewardErrorCode.ALREADY_CLAIMED_TODAY
    default_message = "Daily reward already claimed today."


class InsufficientBalanceError(RewardError):
    code = RewardErrorCode.INSUFFICIENT_BALANCE
    default_message = "Insufficient coins."


class InvalidAmountError(RewardError):
    code = RewardErrorCode.INVALID_AMOUNT
    default_message = "Amount must be a positive integer."


class ReferralAlreadyUsedError(RewardError):
    code = RewardErrorCode.REFERRAL_ALREADY_USED
    default_message = "User has already used a referral code."


class SelfReferralNotAllowedError(RewardError):
    code = RewardErrorCode.SELF_REFERRAL_NOT_ALLOWED
    default_message = "Cannot use your own referral code."


class InvalidReferralCodeError(RewardError):
    code = RewardErrorCode.INVALID_REFERRAL_CODE
    default_message = "Invalid referral code."


class StorageUnavailableError(RewardError):
    """Fatal: the account store could not complete the operation.

    Never recovered or retried by the engine.
    """

    code = RewardErrorCode.STORAGE_UNAVAILABLE
    default_message = "Account storage unavailable."


def is_fatal(error: RewardError) -> bool:
    return error.code == RewardErrorCode.STORAGE_UNAVAILABLE
