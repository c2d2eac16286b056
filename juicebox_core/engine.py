# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
# Juicebox Engine - main entry point

import json
import logging
import os
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import firebase_admin
from firebase_admin import credentials, firestore

from juicebox_core.config import JuiceboxConfig
from juicebox_core.rewards.adapters.firestore import FirestoreRewardStore
from juicebox_core.rewards.engine import RewardEngine
from juicebox_core.rewards.handlers import HandlerResponse, RewardHandlers
from juicebox_core.rewards.registration import RegistrationResult, register_account
from juicebox_core.rewards.store import RewardStore
from juicebox_core.utils.trace import Trace

logger = logging.getLogger(__name__)


def create_firestore_client(config: JuiceboxConfig):
    """Initialize (or reuse) the default firebase_admin app and return a Firestore client."""
    if config.emulator_host:
        os.environ.setdefault("FIRESTORE_EMULATOR_HOST", config.emulator_host)
    try:
        app = firebase_admin.get_app()
    except ValueError:
        if config.credentials_path:
            cred = credentials.Certificate(config.credentials_path)
        else:
            cred = credentials.ApplicationDefault()
        options = {"projectId": config.firestore_project_id} if config.firestore_project_id else None
        app = firebase_admin.initialize_app(cred, options)
        logger.info("[JuiceboxEngine] firebase_admin initialized (project=%s)", config.firestore_project_id)
    if config.firestore_database:
        return firestore.client(app, database_id=config.firestore_database)
    return firestore.client(app)


class JuiceboxEngine:
    """The main entry point for the Juicebox coin economy."""

    def __init__(
        self,
        config: JuiceboxConfig,
        store: Optional[RewardStore] = None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config
        rewards_cfg = config.runtime.rewards
        if store is None:
            store = FirestoreRewardStore(create_firestore_client(config), config=rewards_cfg)
        self.rewards = RewardEngine(store=store, config=rewards_cfg, clock=clock)
        self.handlers = RewardHandlers(self.rewards)
        self._routes: Dict[str, Callable[[str, Dict[str, Any]], HandlerResponse]] = {
            "watch_ad": self.handlers.watch_ad,
            "claim_daily_reward": self.handlers.claim_daily_reward,
            "use_referral": self.handlers.use_referral,
            "spend_coins": self.handlers.spend_coins,
            "coin_summary": lambda uid, _body: self.handlers.coin_summary(uid),
            "referral_stats": lambda uid, _body: self.handlers.referral_stats(uid),
            "coin_history": lambda uid, body: self.handlers.coin_history(uid, limit=body.get("limit", 50)),
        }
        logger.debug(
            "Effective config: %s",
            json.dumps(self.config.runtime.to_safe_log_dict(), ensure_ascii=False),
        )

    @property
    def actions(self) -> tuple[str, ...]:
        return tuple(self._routes)

    def handle(self, action: str, user_id: str, body: Optional[Dict[str, Any]] = None) -> HandlerResponse:
        """
        Run one reward endpoint by name and return its status and JSON envelope.
        Each call is traced unless a trace is already open (e.g. a CLI replay).
        """
        route = self._routes.get(action)
        if route is None:
            raise ValueError(f"Unknown action: {action!r}")
        with Trace.session(runtime=self.config.runtime):
            Trace.event(f"engine.{action}.start", {"user_id": user_id, "body": body or {}})
            response = route(user_id, body or {})
            Trace.event(f"engine.{action}.done", {"user_id": user_id, "status": response.status})
        return response

    def register_user(
        self,
        user_id: str,
        referral_code: Optional[str] = None,
        *,
        is_vip: bool = False,
    ) -> RegistrationResult:
        with Trace.session(runtime=self.config.runtime):
            Trace.event("engine.register_user.start", {"user_id": user_id, "referral_code": referral_code})
            return register_account(self.rewards, user_id, referral_code, is_vip=is_vip)

    def coin_summary(self, user_id: str) -> Dict[str, Any]:
        return self.handle("coin_summary", user_id).body
