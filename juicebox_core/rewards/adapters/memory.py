# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

import threading
from contextlib import ExitStack
from typing import Dict, Iterable, List, Sequence, Tuple

from juicebox_core.rewards.errors import AccountNotFoundError, StorageUnavailableError
from juicebox_core.rewards.ledger import CoinLedgerEntry
from juicebox_core.rewards.store import (
    AccountExistsError,
    AccountMutation,
    AccountUpdate,
    InvalidUpdateError,
    ReferralCodeTakenError,
    ReferralMutation,
    RewardStore,
)
from juicebox_core.users.models import UserAccount


class InMemoryRewardStore(RewardStore):
    """Process-local store with one lock per account.

    The lock registry is only held while looking up or creating a lock, so
    operations on different accounts never wait on each other.
    """

    def __init__(self, accounts: Iterable[UserAccount] | None = None) -> None:
        self._accounts: Dict[str, UserAccount] = {}
        self._codes: Dict[str, str] = {}
        self._ledger: Dict[str, CoinLedgerEntry] = {}
        self._ledger_by_user: Dict[str, List[str]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        for account in accounts or ():
            self.create_account(account)

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[user_id] = lock
            return lock

    def load_by_id(self, user_id: str) -> UserAccount | None:
        return self._accounts.get(user_id)

    def load_by_referral_code(self, code: str) -> UserAccount | None:
        user_id = self._codes.get(code)
        if user_id is None:
            return None
        return self._accounts.get(user_id)

    def create_account(self, account: UserAccount) -> UserAccount:
        with self._lock_for(account.id):
            with self._locks_guard:
                if account.id in self._accounts:
                    raise AccountExistsError(f"Account {account.id!r} already exists.")
                if account.referral_code and account.referral_code in self._codes:
                    raise ReferralCodeTakenError(f"Referral code {account.referral_code!r} already assigned.")
                self._accounts[account.id] = account
                if account.referral_code:
                    self._codes[account.referral_code] = account.id
        return account

    def commit_atomic(self, user_id: str, mutation: AccountMutation) -> UserAccount:
        with self._lock_for(user_id):
            current = self._accounts.get(user_id)
            if current is None:
                raise AccountNotFoundError()
            update = mutation(current)
            self._persist([(current, update)])
            return update.account

    def commit_referral(
        self,
        referrer_code: str,
        referred_id: str,
        mutation: ReferralMutation,
    ) -> Tuple[UserAccount, UserAccount]:
        # Codes are immutable, so resolving outside the account locks is safe.
        referrer_id = self._codes.get(referrer_code)
        lock_ids = sorted({referred_id} | ({referrer_id} if referrer_id else set()))

        with ExitStack() as stack:
            for uid in lock_ids:
                stack.enter_context(self._lock_for(uid))

            referred = self._accounts.get(referred_id)
            if referred is None:
                raise AccountNotFoundError()
            referrer = self._accounts.get(referrer_id) if referrer_id else None

            referrer_update, referred_update = mutation(referrer, referred)
            if referrer is None:
                raise AccountNotFoundError("Referrer not found.")
            self._persist([(referrer, referrer_update), (referred, referred_update)])
            return referrer_update.account, referred_update.account

    def list_referrals(self, referrer_id: str) -> List[UserAccount]:
        found = [a for a in list(self._accounts.values()) if a.referred_by == referrer_id]
        return sorted(found, key=lambda a: (a.referred_at is None, a.referred_at, a.id))

    def list_ledger(self, user_id: str, limit: int = 50) -> List[CoinLedgerEntry]:
        keys = list(self._ledger_by_user.get(user_id, ()))
        entries = [self._ledger[k] for k in reversed(keys)]
        return entries[: max(0, limit)]

    def _persist(self, changes: Sequence[Tuple[UserAccount, AccountUpdate]]) -> None:
        """Validate every change first, then write all of them."""
        seen_keys: set[str] = set()
        for before, update in changes:
            after = update.account
            if after.id != before.id:
                raise InvalidUpdateError("Mutation must not change the account id.")
            if after.referral_code != before.referral_code:
                raise InvalidUpdateError("Referral code is immutable once assigned.")
            for entry in update.entries:
                if entry.idempotency_key in self._ledger or entry.idempotency_key in seen_keys:
                    raise StorageUnavailableError(
                        f"Ledger entry already exists for idempotency key {entry.idempotency_key!r}."
                    )
                seen_keys.add(entry.idempotency_key)

        for _, update in changes:
            self._accounts[update.account.id] = update.account
            for entry in update.entries:
                self._ledger[entry.idempotency_key] = entry
                self._ledger_by_user.setdefault(entry.user_id, []).append(entry.idempotency_key)
