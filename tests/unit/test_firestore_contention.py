# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""FirestoreRewardStore under write contention, driven through a real Transaction."""

from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as gexc
from google.cloud.firestore_v1.transaction import Transaction

from juicebox_core.rewards.adapters.firestore import FirestoreRewardStore
from juicebox_core.rewards.engine import RewardEngine
from juicebox_core.rewards.errors import StorageUnavailableError
from juicebox_core.rewards.handlers import RewardHandlers
from juicebox_core.rewards.store import AccountUpdate


@pytest.fixture
def client():
    """Low-level client whose commits always abort."""
    client = MagicMock()
    client._firestore_api.begin_transaction.return_value = MagicMock(transaction=b"txn-1")
    client._firestore_api.commit.side_effect = gexc.Aborted("contention")
    return client


@pytest.fixture
def transaction(client):
    txn = Transaction(client, max_attempts=2)
    # Writes are queued on the batch; keep them out of protobuf conversion.
    txn.set = MagicMock()
    txn.create = MagicMock()
    return txn


@pytest.fixture
def db(transaction, make_account):
    snapshot = MagicMock()
    snapshot.exists = True
    snapshot.id = "alice"
    snapshot.to_dict.return_value = make_account("alice").to_dict()

    db = MagicMock()
    db.transaction.return_value = transaction
    db.collection.return_value.document.return_value.get.return_value = snapshot
    return db


def test_exhausted_retries_raise_storage_unavailable(db, client):
    store = FirestoreRewardStore(db)

    with pytest.raises(StorageUnavailableError):
        store.commit_atomic("alice", lambda account: AccountUpdate(account=account))

    assert client._firestore_api.commit.call_count == 2


def test_watch_ad_under_contention_is_503(db, client, clock):
    handlers = RewardHandlers(RewardEngine(store=FirestoreRewardStore(db), clock=clock))

    resp = handlers.watch_ad("alice", {})

    assert resp.status == 503
    assert resp.body["success"] is False
    assert resp.body["error"] == "storage_unavailable"
    assert client._firestore_api.commit.call_count == 2


def test_create_account_under_contention(db, client, make_account):
    db.collection.return_value.document.return_value.get.return_value.exists = False
    store = FirestoreRewardStore(db)

    with pytest.raises(StorageUnavailableError):
        store.create_account(make_account("dave"))
