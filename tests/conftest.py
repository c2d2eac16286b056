# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from juicebox_core.rewards.adapters.memory import InMemoryRewardStore
from juicebox_core.rewards.config import RewardsConfig
from juicebox_core.rewards.engine import RewardEngine
from juicebox_core.users.models import UserAccount

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def rewards_config():
    return RewardsConfig()


@pytest.fixture
def make_account():
    """Factory: make_account("alice", coin_balance=50) -> UserAccount with code USERALICE."""

    def _make(user_id: str, **overrides) -> UserAccount:
        account = UserAccount.new(user_id, f"USER{user_id.upper()}", max_ads_per_day=10, now=NOW)
        return replace(account, **overrides) if overrides else account

    return _make


@pytest.fixture
def store(make_account):
    return InMemoryRewardStore([make_account("alice"), make_account("bob"), make_account("carol")])


@pytest.fixture
def engine(store, rewards_config, clock):
    return RewardEngine(store=store, config=rewards_config, clock=clock)
