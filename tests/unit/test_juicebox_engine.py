# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

import json
from unittest.mock import MagicMock

import pytest

from juicebox_core import engine as engine_module
from juicebox_core.config import JuiceboxConfig
from juicebox_core.engine import JuiceboxEngine, create_firestore_client
from juicebox_core.rewards.adapters.memory import InMemoryRewardStore
from juicebox_core.runtime_config import RewardsRuntimeConfig
from juicebox_core.utils.trace import current_trace_id


def test_engine_with_injected_store():
    config = JuiceboxConfig(runtime=RewardsRuntimeConfig())
    engine = JuiceboxEngine(config, store=InMemoryRewardStore())

    registered = engine.register_user("alice")
    engine.rewards.watch_ad("alice")

    assert registered.account.id == "alice"
    assert engine.coin_summary("alice")["data"]["currentCoins"] == 5
    assert engine.handlers.coin_summary("alice").status == 200


def test_firestore_client_reuses_existing_app(monkeypatch):
    fake_admin = MagicMock()
    fake_firestore = MagicMock()
    monkeypatch.setattr(engine_module, "firebase_admin", fake_admin)
    monkeypatch.setattr(engine_module, "firestore", fake_firestore)

    config = JuiceboxConfig(firestore_database="rewards", runtime=RewardsRuntimeConfig())
    create_firestore_client(config)

    fake_admin.initialize_app.assert_not_called()
    fake_firestore.client.assert_called_once_with(fake_admin.get_app.return_value, database_id="rewards")


def test_firestore_client_initializes_app(monkeypatch):
    fake_admin = MagicMock()
    fake_admin.get_app.side_effect = ValueError("no app")
    fake_credentials = MagicMock()
    fake_firestore = MagicMock()
    monkeypatch.setattr(engine_module, "firebase_admin", fake_admin)
    monkeypatch.setattr(engine_module, "credentials", fake_credentials)
    monkeypatch.setattr(engine_module, "firestore", fake_firestore)

    config = JuiceboxConfig(
        firestore_project_id="juicebox-dev",
        credentials_path="/secrets/sa.json",
        runtime=RewardsRuntimeConfig(),
    )
    create_firestore_client(config)

    fake_credentials.Certificate.assert_called_once_with("/secrets/sa.json")
    fake_admin.initialize_app.assert_called_once_with(
        fake_credentials.Certificate.return_value, {"projectId": "juicebox-dev"}
    )
    fake_firestore.client.assert_called_once_with(fake_admin.initialize_app.return_value)


def test_handle_routes_and_traces(monkeypatch, tmp_path, clock):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("JUICEBOX_ENV", "test")
    engine = JuiceboxEngine(JuiceboxConfig(runtime=RewardsRuntimeConfig()), store=InMemoryRewardStore(), clock=clock)
    engine.register_user("alice")

    resp = engine.handle("watch_ad", "alice", {"reward": 7})

    assert resp.status == 200
    assert resp.body["data"]["coinsEarned"] == 7
    assert current_trace_id() is None
    traces = sorted((tmp_path / "data" / "trace").glob("*.jsonl"))
    assert len(traces) == 2
    events = [
        json.loads(line)["event"]
        for path in traces
        for line in path.read_text(encoding="utf-8").splitlines()
    ]
    assert "engine.register_user.start" in events
    assert "rewards.watch_ad.ok" in events
    assert "engine.watch_ad.done" in events


def test_handle_unknown_action():
    engine = JuiceboxEngine(JuiceboxConfig(runtime=RewardsRuntimeConfig()), store=InMemoryRewardStore())
    with pytest.raises(ValueError):
        engine.handle("jump", "alice")
