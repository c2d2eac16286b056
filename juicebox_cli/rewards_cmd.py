# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Juicebox Contributors
"""
Rewards CLI Commands

Commands:
- config: Print the effective runtime config (env overrides applied)
- replay: Replay a scenario of reward actions against an in-memory store

Scenario format:

    {
      "start": "2025-03-01T09:00:00+00:00",
      "steps": [
        {"action": "register", "user": "alice"},
        {"action": "register", "user": "bob", "referrer": "alice"},
        {"action": "watch_ad", "user": "bob", "body": {"reward": 5}},
        {"action": "claim_daily_reward", "user": "bob", "at": "2025-03-02T00:01:00+00:00"}
      ]
    }

`referrer` resolves to that user's generated referral code; `referralCode`
passes a literal code. `at` moves the scenario clock forward.
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, NoReturn


class ScenarioClock:
    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current


def _parse_ts(raw: str) -> datetime:
    ts = datetime.fromisoformat(raw)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def replay_scenario(scenario: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Run every step and return one `{step, action, user, status, body}` record per step.

    The whole scenario runs under a single trace.
    """
    from juicebox_core.config import JuiceboxConfig
    from juicebox_core.engine import JuiceboxEngine
    from juicebox_core.rewards import InMemoryRewardStore
    from juicebox_core.rewards.store import AccountExistsError
    from juicebox_core.runtime_config import RewardsRuntimeConfig
    from juicebox_core.utils.trace import Trace, new_trace_id

    start = scenario.get("start")
    clock = ScenarioClock(_parse_ts(start) if start else datetime.now(timezone.utc))
    runtime = RewardsRuntimeConfig.load_from_env()
    engine = JuiceboxEngine(JuiceboxConfig(runtime=runtime), store=InMemoryRewardStore(), clock=clock)
    steps = scenario.get("steps") or []

    records: List[Dict[str, Any]] = []
    trace_id = new_trace_id()
    Trace.start(trace_id, runtime=runtime)
    try:
        Trace.event("cli.replay.start", {"steps": len(steps), "start": clock.current.isoformat()})
        for idx, step in enumerate(steps):
            if step.get("at"):
                clock.current = _parse_ts(step["at"])
            action = step.get("action")
            user_id = step.get("user")
            body = step.get("body") or {}

            if action == "register":
                code = step.get("referralCode")
                if step.get("referrer"):
                    referrer = engine.rewards.store.load_by_id(step["referrer"])
                    code = referrer.referral_code if referrer else step["referrer"]
                try:
                    result = engine.register_user(user_id, code, is_vip=bool(step.get("vip")))
                    status, payload = 200, {"success": True, "data": result.to_dict()}
                except AccountExistsError as e:
                    status, payload = 409, {"success": False, "error": "already_exists", "message": str(e)}
            elif action in engine.actions:
                response = engine.handle(action, user_id, body)
                status, payload = response.status, response.body
            else:
                raise ValueError(f"Unknown action at step {idx}: {action!r}")

            records.append({"step": idx, "action": action, "user": user_id, "status": status, "body": payload})
        Trace.event("cli.replay.done", {"records": len(records)})
    finally:
        Trace.stop()
    return records


def cmd_config(args: argparse.Namespace) -> int:
    """Print the effective runtime config."""
    from juicebox_core.runtime_config import RewardsRuntimeConfig

    print(json.dumps(RewardsRuntimeConfig.load_from_env().to_safe_log_dict(), ensure_ascii=False, indent=2))
    return 0


def cmd_replay(args: argparse.Namespace) -> int:
    """Replay a scenario file and print each response."""
    path = Path(args.scenario_file)
    if not path.exists():
        print(f"✗ Scenario file not found: {path}", file=sys.stderr)
        return 1

    try:
        scenario = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        print(f"✗ Failed to parse JSON: {e}", file=sys.stderr)
        return 1

    if isinstance(scenario, list):
        scenario = {"steps": scenario}
    if not isinstance(scenario, dict):
        print("✗ Scenario JSON must be a list of steps or {steps:[...]}.", file=sys.stderr)
        return 1

    try:
        records = replay_scenario(scenario)
    except ValueError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    for record in records:
        print(json.dumps(record, ensure_ascii=False, default=str))

    failed = [r for r in records if r["status"] >= 500]
    return 2 if failed else 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="juicebox-cli rewards",
        description="Coin economy developer commands",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    config_parser = subparsers.add_parser(
        "config",
        help="Print the effective rewards runtime config",
    )
    config_parser.set_defaults(func=cmd_config)

    replay_parser = subparsers.add_parser(
        "replay",
        help="Replay reward actions against an in-memory store",
    )
    replay_parser.add_argument(
        "scenario_file",
        help="Path to scenario JSON (list of steps or {start, steps:[...]})",
    )
    replay_parser.set_defaults(func=cmd_replay)

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for rewards CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        exit_code = args.func(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
