# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Unit tests for FirestoreRewardStore with a mocked client."""

from dataclasses import replace
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as gexc

from juicebox_core.rewards.adapters import firestore as fs_adapter
from juicebox_core.rewards.adapters.firestore import FirestoreRewardStore
from juicebox_core.rewards.config import RewardsConfig
from juicebox_core.rewards.errors import (
    AccountNotFoundError,
    InvalidReferralCodeError,
    StorageUnavailableError,
)
from juicebox_core.rewards.ledger import CoinEventType, CoinLedgerEntry
from juicebox_core.rewards.primitives import apply_earn
from juicebox_core.rewards.referral import apply_referral
from juicebox_core.rewards.store import (
    AccountExistsError,
    AccountUpdate,
    InvalidUpdateError,
    ReferralCodeTakenError,
)

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def _snapshot(doc_id, data):
    snap = MagicMock()
    snap.id = doc_id
    snap.exists = data is not None
    snap.to_dict.return_value = data
    return snap


class FakeCollection:
    def __init__(self, name):
        self.name = name
        self.docs = {}
        self.where = MagicMock(name=f"{name}.where")

    def document(self, doc_id):
        if doc_id not in self.docs:
            ref = MagicMock(name=f"{self.name}/{doc_id}")
            ref.id = doc_id
            ref.get.return_value = _snapshot(doc_id, None)
            self.docs[doc_id] = ref
        return self.docs[doc_id]

    def seed(self, doc_id, data):
        self.document(doc_id).get.return_value = _snapshot(doc_id, data)


@pytest.fixture(autouse=True)
def fake_firestore(monkeypatch):
    fake = MagicMock()
    # Run transactional bodies directly against the mocked transaction.
    fake.transactional = lambda fn: fn
    monkeypatch.setattr(fs_adapter, "firestore", fake)
    return fake


@pytest.fixture
def collections():
    return {}


@pytest.fixture
def db(collections):
    client = MagicMock()
    client.collection.side_effect = lambda name: collections.setdefault(name, FakeCollection(name))
    return client


@pytest.fixture
def fs_store(db):
    return FirestoreRewardStore(db, config=RewardsConfig())


def _ad_mutation(account):
    updated = apply_earn(account, 5)
    entry = CoinLedgerEntry(
        idempotency_key=f"{account.id}:ad:2025-03-10:1",
        user_id=account.id,
        event_type=CoinEventType.AD_REWARD,
        amount=5,
        balance_after=updated.coin_balance,
        created_at=NOW,
    )
    return AccountUpdate(account=updated, entries=(entry,))


class TestReads:
    def test_missing_account(self, fs_store):
        assert fs_store.load_by_id("ghost") is None

    def test_account_from_snapshot(self, fs_store, collections, make_account):
        data = make_account("alice", coin_balance=42).to_dict()
        del data["id"]
        collections["users"].seed("alice", data)

        account = fs_store.load_by_id("alice")

        assert account.id == "alice"
        assert account.coin_balance == 42
        assert account.referral_code == "USERALICE"

    def test_lookup_by_referral_code(self, fs_store, collections, make_account):
        collections["users"].seed("alice", make_account("alice").to_dict())
        collections["referral_codes"].seed("USERALICE", {"user_id": "alice"})
        assert fs_store.load_by_referral_code("USERALICE").id == "alice"
        assert fs_store.load_by_referral_code("USERNOBODY") is None
        assert fs_store.load_by_referral_code("") is None

    def test_backend_errors_become_storage_unavailable(self, fs_store, collections):
        fs_store.load_by_id("alice")
        collections["users"].document("alice").get.side_effect = gexc.ServiceUnavailable("down")
        with pytest.raises(StorageUnavailableError):
            fs_store.load_by_id("alice")

    def test_list_ledger_query(self, fs_store, collections, make_account):
        entry = _ad_mutation(make_account("alice")).entries[0]
        query = collections["coin_ledger"].where.return_value.order_by.return_value.limit.return_value
        query.stream.return_value = [_snapshot(entry.idempotency_key, entry.to_dict())]

        entries = fs_store.list_ledger("alice", limit=10)

        assert entries == [entry]
        collections["coin_ledger"].where.assert_called_once_with("user_id", "==", "alice")


class TestCreateAccount:
    def test_writes_account_and_code(self, fs_store, db, collections, make_account):
        account = make_account("dave")
        fs_store.create_account(account)

        transaction = db.transaction.return_value
        written = {call.args[0].id: call.args[1] for call in transaction.set.call_args_list}
        assert written["dave"]["referral_code"] == "USERDAVE"
        assert written["USERDAVE"]["user_id"] == "dave"

    def test_existing_account(self, fs_store, collections, make_account):
        collections["users"].seed("alice", make_account("alice").to_dict())
        with pytest.raises(AccountExistsError):
            fs_store.create_account(make_account("alice"))

    def test_taken_code(self, fs_store, collections, make_account):
        collections["referral_codes"].seed("USERDAVE", {"user_id": "someone"})
        with pytest.raises(ReferralCodeTakenError):
            fs_store.create_account(make_account("dave"))


class TestCommitAtomic:
    def test_commit_writes_account_and_ledger(self, fs_store, db, collections, make_account):
        collections["users"].seed("alice", make_account("alice").to_dict())

        committed = fs_store.commit_atomic("alice", _ad_mutation)

        assert committed.coin_balance == 5
        transaction = db.transaction.return_value
        (set_call,) = transaction.set.call_args_list
        assert set_call.args[1]["coin_balance"] == 5
        (create_call,) = transaction.create.call_args_list
        assert create_call.args[0].id == "alice:ad:2025-03-10:1"
        assert create_call.args[1]["event_type"] == "ad_reward"

    def test_missing_account(self, fs_store, db):
        with pytest.raises(AccountNotFoundError):
            fs_store.commit_atomic("ghost", _ad_mutation)
        db.transaction.return_value.set.assert_not_called()

    def test_mutation_error_aborts(self, fs_store, db, collections, make_account):
        collections["users"].seed("alice", make_account("alice").to_dict())

        def _boom(account):
            raise InvalidReferralCodeError()

        with pytest.raises(InvalidReferralCodeError):
            fs_store.commit_atomic("alice", _boom)
        db.transaction.return_value.set.assert_not_called()

    def test_contention_failure_is_storage_unavailable(self, fs_store, db, collections, make_account):
        collections["users"].seed("alice", make_account("alice").to_dict())
        db.transaction.return_value.create.side_effect = gexc.Aborted("contention")
        with pytest.raises(StorageUnavailableError):
            fs_store.commit_atomic("alice", _ad_mutation)

    def test_invalid_update_is_not_storage_failure(self, fs_store, db, collections, make_account):
        collections["users"].seed("alice", make_account("alice").to_dict())

        def _rename(account):
            return AccountUpdate(account=replace(account, id="mallory"))

        with pytest.raises(InvalidUpdateError):
            fs_store.commit_atomic("alice", _rename)
        db.transaction.return_value.set.assert_not_called()


class TestCommitReferral:
    def _mutation(self, referrer, referred):
        return apply_referral(referrer, referred, now=NOW, cfg=RewardsConfig())

    def test_commits_both_sides(self, fs_store, db, collections, make_account):
        collections["users"].seed("alice", make_account("alice").to_dict())
        collections["users"].seed("bob", make_account("bob").to_dict())
        collections["referral_codes"].seed("USERALICE", {"user_id": "alice"})

        referrer, referred = fs_store.commit_referral("USERALICE", "bob", self._mutation)

        assert referrer.coin_balance == 100
        assert referred.referred_by == "alice"
        transaction = db.transaction.return_value
        assert transaction.set.call_count == 2
        keys = sorted(call.args[0].id for call in transaction.create.call_args_list)
        assert keys == ["referral:bob:referred", "referral:bob:referrer"]

    def test_unknown_code(self, fs_store, db, collections, make_account):
        collections["users"].seed("bob", make_account("bob").to_dict())
        with pytest.raises(InvalidReferralCodeError):
            fs_store.commit_referral("USERNOBODY", "bob", self._mutation)
        db.transaction.return_value.set.assert_not_called()
