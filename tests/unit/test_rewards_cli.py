# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

import json

import pytest

from juicebox_cli.rewards_cmd import create_parser, main, replay_scenario


def test_replay_scenario():
    records = replay_scenario({
        "start": "2025-03-10T23:58:00+00:00",
        "steps": [
            {"action": "register", "user": "alice"},
            {"action": "register", "user": "bob", "referrer": "alice"},
            {"action": "claim_daily_reward", "user": "bob"},
            {"action": "claim_daily_reward", "user": "bob"},
            {"action": "claim_daily_reward", "user": "bob", "at": "2025-03-11T00:01:00"},
            {"action": "spend_coins", "user": "bob", "body": {"amount": 70, "reason": "theme"}},
            {"action": "coin_summary", "user": "alice"},
        ],
    })

    statuses = [r["status"] for r in records]
    assert statuses == [200, 200, 200, 400, 200, 200, 200]
    assert records[1]["body"]["data"]["referralApplied"] is True
    assert records[3]["body"]["error"] == "already_claimed_today"
    assert records[5]["body"]["data"]["newBalance"] == 0
    assert records[6]["body"]["data"]["currentCoins"] == 100


def test_replay_unknown_action():
    with pytest.raises(ValueError):
        replay_scenario({"steps": [{"action": "jump", "user": "alice"}]})


def test_replay_command_prints_records(tmp_path, capsys):
    path = tmp_path / "scenario.json"
    path.write_text(json.dumps([{"action": "register", "user": "alice"}]), encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        main(["replay", str(path)])

    assert exc.value.code == 0
    (line,) = capsys.readouterr().out.strip().splitlines()
    assert json.loads(line)["user"] == "alice"


def test_replay_missing_file(tmp_path):
    with pytest.raises(SystemExit) as exc:
        main(["replay", str(tmp_path / "nope.json")])
    assert exc.value.code == 1


def test_config_command(capsys, monkeypatch):
    monkeypatch.setenv("JUICEBOX_REFERRER_REWARD", "120")
    with pytest.raises(SystemExit) as exc:
        main(["config"])
    assert exc.value.code == 0
    assert json.loads(capsys.readouterr().out)["rewards"]["referrer_reward"] == 120


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        create_parser().parse_args([])


def test_replay_runs_under_one_trace(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("JUICEBOX_ENV", "test")

    records = replay_scenario({
        "start": "2025-03-10T12:00:00+00:00",
        "steps": [
            {"action": "register", "user": "alice"},
            {"action": "watch_ad", "user": "alice"},
            {"action": "coin_history", "user": "alice", "body": {"limit": "many"}},
        ],
    })

    assert [r["status"] for r in records] == [200, 200, 400]
    assert records[2]["body"]["error"] == "invalid_amount"
    (path,) = (tmp_path / "data" / "trace").glob("*.jsonl")
    events = [json.loads(line)["event"] for line in path.read_text(encoding="utf-8").splitlines()]
    assert events[0] == "trace.start"
    assert events[1] == "cli.replay.start"
    assert "rewards.watch_ad.ok" in events
    assert events[-2:] == ["cli.replay.done", "trace.stop"]


def test_replay_clock_going_backwards():
    records = replay_scenario({
        "start": "2025-03-10T12:00:00+00:00",
        "steps": [
            {"action": "register", "user": "alice"},
            {"action": "watch_ad", "user": "alice"},
            {"action": "watch_ad", "user": "alice", "at": "2025-03-11T00:00:01+00:00"},
            {"action": "watch_ad", "user": "alice", "at": "2025-03-10T23:59:59+00:00"},
        ],
    })
    assert [r["status"] for r in records] == [200, 200, 200, 200]
    assert records[3]["body"]["data"]["adsWatchedToday"] == 2
