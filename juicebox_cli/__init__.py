# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Juicebox Contributors
"""
Juicebox CLI Module

Developer tools for the coin economy.

Commands:
- rewards config: Print the effective rewards runtime config
- rewards replay <scenario.json>: Replay reward actions against an in-memory store

Usage:
    python -m juicebox_cli rewards config
    python -m juicebox_cli rewards replay ticket-1234.json
"""

from juicebox_cli.rewards_cmd import main

__all__ = ["main"]
