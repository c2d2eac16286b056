# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Framework-agnostic request handlers for the reward endpoints.

The web layer resolves the user id from the verified bearer token and
passes the parsed JSON body; handlers return a status code and the JSON
envelope (`{"success": ..., "data" | "error": ...}`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from juicebox_core.rewards.engine import RewardEngine
from juicebox_core.rewards.errors import (
    InvalidAmountError,
    InvalidReferralCodeError,
    RewardError,
    RewardErrorCode,
    StorageUnavailableError,
)
from juicebox_core.rewards.types import RewardResult
from juicebox_core.schema.requests import SpendCoinsRequest, UseReferralRequest, WatchAdRequest
from juicebox_core.schema.serialization import SchemaModel

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: Dict[RewardErrorCode, int] = {
    RewardErrorCode.NOT_FOUND: 404,
    RewardErrorCode.STORAGE_UNAVAILABLE: 503,
}


@dataclass(frozen=True, slots=True)
class HandlerResponse:
    status: int
    body: Dict[str, Any]


def status_for(result: RewardResult[Any]) -> int:
    if result.ok:
        return 200
    if result.error is None:
        return 400
    return STATUS_BY_ERROR.get(result.error, 400)


class RewardHandlers:
    def __init__(self, engine: RewardEngine) -> None:
        self._engine = engine

    def watch_ad(self, user_id: str, body: Optional[dict] = None) -> HandlerResponse:
        return self._handle(
            "watch_ad",
            body,
            WatchAdRequest,
            InvalidAmountError,
            lambda req: self._engine.watch_ad(user_id, req.reward, ad_type=req.ad_type),
        )

    def claim_daily_reward(self, user_id: str, body: Optional[dict] = None) -> HandlerResponse:
        return self._guard(lambda: self._engine.claim_daily_reward(user_id))

    def use_referral(self, user_id: str, body: Optional[dict] = None) -> HandlerResponse:
        return self._handle(
            "use_referral",
            body,
            UseReferralRequest,
            InvalidReferralCodeError,
            lambda req: self._engine.use_referral_code(user_id, req.referral_code),
        )

    def spend_coins(self, user_id: str, body: Optional[dict] = None) -> HandlerResponse:
        return self._handle(
            "spend_coins",
            body,
            SpendCoinsRequest,
            InvalidAmountError,
            lambda req: self._engine.spend_coins(user_id, req.amount, req.reason, item_id=req.item_id),
        )

    def coin_summary(self, user_id: str) -> HandlerResponse:
        return self._guard(lambda: self._engine.get_coin_summary(user_id))

    def referral_stats(self, user_id: str) -> HandlerResponse:
        return self._guard(lambda: self._engine.get_referral_stats(user_id))

    def coin_history(self, user_id: str, limit: Any = 50) -> HandlerResponse:
        return self._guard(lambda: self._engine.get_coin_history(user_id, limit=limit))

    def _handle(
        self,
        action: str,
        body: Optional[dict],
        schema: type[SchemaModel],
        invalid_error: type[RewardError],
        call: Callable[[Any], RewardResult[Any]],
    ) -> HandlerResponse:
        try:
            request = schema.from_dict(body or {})
        except (ValidationError, TypeError) as exc:
            logger.debug("[RewardHandlers] %s invalid body: %s", action, exc)
            failure = RewardResult.failure(action, invalid_error())
            return HandlerResponse(status=status_for(failure), body=failure.to_dict())
        return self._guard(lambda: call(request))

    def _guard(self, call: Callable[[], RewardResult[Any]]) -> HandlerResponse:
        try:
            result = call()
        except StorageUnavailableError as exc:
            failure = RewardResult.failure("storage", exc)
            return HandlerResponse(status=status_for(failure), body=failure.to_dict())
        return HandlerResponse(status=status_for(result), body=result.to_dict())
