# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Tuple

from firebase_admin import firestore
from google.api_core import exceptions as gexc

from juicebox_core.rewards.config import RewardsConfig
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

logger = logging.getLogger(__name__)


@contextmanager
def _storage_call(op: str) -> Iterator[None]:
    try:
        yield
    except (gexc.GoogleAPICallError, gexc.RetryError) as exc:
        logger.error("[FirestoreRewardStore] %s failed: %s", op, exc)
        raise StorageUnavailableError(f"{op} failed: {exc}") from exc


@contextmanager
def _transaction_call(op: str) -> Iterator[None]:
    """Like `_storage_call`, for `@firestore.transactional` bodies.

    The transactional wrapper retries `Aborted` commits and, once its attempts
    are used up, raises a plain `ValueError`. Store-level `ValueError`s
    (duplicates, invalid updates) pass through unchanged.
    """
    with _storage_call(op):
        try:
            yield
        except (AccountExistsError, ReferralCodeTakenError, InvalidUpdateError):
            raise
        except ValueError as exc:
            logger.error("[FirestoreRewardStore] %s transaction gave up: %s", op, exc)
            raise StorageUnavailableError(f"{op} failed: {exc}") from exc


def _check_update(before: UserAccount, update: AccountUpdate) -> None:
    if update.account.id != before.id:
        raise InvalidUpdateError("Mutation must not change the account id.")
    if update.account.referral_code != before.referral_code:
        raise InvalidUpdateError("Referral code is immutable once assigned.")


class FirestoreRewardStore(RewardStore):
    """Firestore-backed account store.

    Writes go through `@firestore.transactional`, which retries on
    contention; mutations may therefore run more than once and must be pure.
    Referral codes are reserved in their own collection so that uniqueness
    and code lookup are both transactional document reads.
    """

    def __init__(self, db: firestore.Client, *, config: RewardsConfig | None = None) -> None:
        self._db = db
        self._config = config or RewardsConfig()
        self._users = self._db.collection(self._config.user_collection)
        self._ledger = self._db.collection(self._config.ledger_collection)
        self._codes = self._db.collection(self._config.referral_code_collection)

    def load_by_id(self, user_id: str) -> UserAccount | None:
        with _storage_call("load_by_id"):
            snapshot = self._users.document(user_id).get()
        if not snapshot.exists:
            return None
        return self._account_from_snapshot(snapshot)

    def load_by_referral_code(self, code: str) -> UserAccount | None:
        if not code:
            return None
        with _storage_call("load_by_referral_code"):
            code_snapshot = self._codes.document(code).get()
            if not code_snapshot.exists:
                return None
            user_id = (code_snapshot.to_dict() or {}).get("user_id")
            if not user_id:
                return None
            snapshot = self._users.document(user_id).get()
        if not snapshot.exists:
            return None
        return self._account_from_snapshot(snapshot)

    def create_account(self, account: UserAccount) -> UserAccount:
        transaction = self._db.transaction()

        @firestore.transactional
        def _create(transaction):  # type: ignore[no-untyped-def]
            user_ref = self._users.document(account.id)
            code_ref = self._codes.document(account.referral_code)
            if user_ref.get(transaction=transaction).exists:
                raise AccountExistsError(f"Account {account.id!r} already exists.")
            if code_ref.get(transaction=transaction).exists:
                raise ReferralCodeTakenError(f"Referral code {account.referral_code!r} already assigned.")
            transaction.set(user_ref, self._account_to_dict(account))
            transaction.set(code_ref, {"user_id": account.id, "created_at": firestore.SERVER_TIMESTAMP})
            return account

        with _transaction_call("create_account"):
            return _create(transaction)

    def commit_atomic(self, user_id: str, mutation: AccountMutation) -> UserAccount:
        transaction = self._db.transaction()

        @firestore.transactional
        def _commit(transaction):  # type: ignore[no-untyped-def]
            user_ref = self._users.document(user_id)
            snapshot = user_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise AccountNotFoundError()
            current = self._account_from_snapshot(snapshot)
            update = mutation(current)
            _check_update(current, update)
            transaction.set(user_ref, self._account_to_dict(update.account))
            for entry in update.entries:
                transaction.create(self._ledger.document(entry.idempotency_key), self._entry_to_dict(entry))
            return update.account

        with _transaction_call("commit_atomic"):
            return _commit(transaction)

    def commit_referral(
        self,
        referrer_code: str,
        referred_id: str,
        mutation: ReferralMutation,
    ) -> Tuple[UserAccount, UserAccount]:
        transaction = self._db.transaction()

        @firestore.transactional
        def _commit(transaction):  # type: ignore[no-untyped-def]
            # All reads first: Firestore rejects reads after writes in a transaction.
            referred_ref = self._users.document(referred_id)
            referred_snapshot = referred_ref.get(transaction=transaction)
            if not referred_snapshot.exists:
                raise AccountNotFoundError()
            referred = self._account_from_snapshot(referred_snapshot)

            referrer = None
            referrer_ref = None
            if referrer_code:
                code_snapshot = self._codes.document(referrer_code).get(transaction=transaction)
                referrer_id = (code_snapshot.to_dict() or {}).get("user_id") if code_snapshot.exists else None
                if referrer_id:
                    referrer_ref = self._users.document(referrer_id)
                    referrer_snapshot = referrer_ref.get(transaction=transaction)
                    if referrer_snapshot.exists:
                        referrer = self._account_from_snapshot(referrer_snapshot)

            referrer_update, referred_update = mutation(referrer, referred)
            if referrer is None or referrer_ref is None:
                raise AccountNotFoundError("Referrer not found.")
            _check_update(referrer, referrer_update)
            _check_update(referred, referred_update)

            transaction.set(referrer_ref, self._account_to_dict(referrer_update.account))
            transaction.set(referred_ref, self._account_to_dict(referred_update.account))
            for entry in referrer_update.entries + referred_update.entries:
                transaction.create(self._ledger.document(entry.idempotency_key), self._entry_to_dict(entry))
            return referrer_update.account, referred_update.account

        with _transaction_call("commit_referral"):
            return _commit(transaction)

    def list_referrals(self, referrer_id: str) -> List[UserAccount]:
        query = self._users.where("referred_by", "==", referrer_id)
        with _storage_call("list_referrals"):
            return [self._account_from_snapshot(doc) for doc in query.stream()]

    def list_ledger(self, user_id: str, limit: int = 50) -> List[CoinLedgerEntry]:
        # Note: Requires composite index on (user_id, created_at desc)
        query = (
            self._ledger.where("user_id", "==", user_id)
            .order_by("created_at", direction=firestore.Query.DESCENDING)
            .limit(max(1, limit))
        )
        with _storage_call("list_ledger"):
            return [CoinLedgerEntry.from_dict(doc.to_dict() or {}) for doc in query.stream()]

    def _account_from_snapshot(self, snapshot) -> UserAccount:
        data = snapshot.to_dict() or {}
        data.setdefault("id", snapshot.id)
        return UserAccount.from_dict(data)

    def _account_to_dict(self, account: UserAccount) -> dict[str, Any]:
        return {**account.to_dict(), "updated_at": firestore.SERVER_TIMESTAMP}

    def _entry_to_dict(self, entry: CoinLedgerEntry) -> dict[str, Any]:
        return entry.to_dict()
