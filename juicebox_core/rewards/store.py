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
from typing import Callable, List, Optional, Protocol, Tuple, runtime_checkable

from juicebox_core.rewards.ledger import CoinLedgerEntry
from juicebox_core.users.models import UserAccount


class AccountExistsError(ValueError):
    pass


class ReferralCodeTakenError(ValueError):
    pass


class InvalidUpdateError(ValueError):
    """A mutation returned an update that breaks a record invariant (id, referral code)."""


@dataclass(frozen=True, slots=True)
class AccountUpdate:
    """New state for one account plus the ledger entries that explain it."""
    account: UserAccount
    entries: Tuple[CoinLedgerEntry, ...] = ()


AccountMutation = Callable[[UserAccount], AccountUpdate]
ReferralMutation = Callable[[Optional[UserAccount], UserAccount], Tuple[AccountUpdate, AccountUpdate]]


@runtime_checkable
class RewardStore(Protocol):
    """Storage collaborator for the coin economy.

    Implementations must serialize `commit_atomic` / `commit_referral` per
    account: a mutation always sees the latest committed state and no other
    commit on the same account can interleave between its read and write.
    Any exception raised by a mutation aborts the commit with nothing
    written. Backend failures surface as `StorageUnavailableError`.
    """

    def load_by_id(self, user_id: str) -> UserAccount | None:
        ...

    def load_by_referral_code(self, code: str) -> UserAccount | None:
        ...

    def create_account(self, account: UserAccount) -> UserAccount:
        """Insert a new account. Raises AccountExistsError or ReferralCodeTakenError on collisions."""
        ...

    def commit_atomic(self, user_id: str, mutation: AccountMutation) -> UserAccount:
        """
        Atomically apply `mutation` to the account and persist the result
        together with its ledger entries.
        Raises AccountNotFoundError if the account does not exist.
        """
        ...

    def commit_referral(
        self,
        referrer_code: str,
        referred_id: str,
        mutation: ReferralMutation,
    ) -> Tuple[UserAccount, UserAccount]:
        """
        Resolve `referrer_code`, load `referred_id` and apply `mutation` to
        both in a single transaction. The referrer is passed as None when the
        code does not resolve. Returns (referrer, referred) as committed.
        """
        ...

    def list_referrals(self, referrer_id: str) -> List[UserAccount]:
        ...

    def list_ledger(self, user_id: str, limit: int = 50) -> List[CoinLedgerEntry]:
        """Ledger entries for a user, newest first."""
        ...
