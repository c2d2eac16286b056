# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Juicebox Contributors
"""
Bodies accepted by the reward endpoints (camelCase on the wire).
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import Field, StrictInt

from juicebox_core.schema.serialization import SchemaModel


class WatchAdRequest(SchemaModel):
    """POST watch-ad. All fields optional; a reward that is not a positive integer uses the default."""

    ad_type: Optional[str] = Field(default=None, alias="adType", max_length=64)
    duration: Optional[float] = Field(default=None, ge=0)
    reward: Any = None


class UseReferralRequest(SchemaModel):
    """POST use-referral."""

    referral_code: str = Field(alias="referralCode", min_length=1, max_length=64)


class SpendCoinsRequest(SchemaModel):
    """POST spend-coins. Amount bounds are enforced by the engine."""

    amount: StrictInt
    item_id: Optional[str] = Field(default=None, alias="itemId", max_length=128)
    reason: Optional[str] = Field(default=None, max_length=256)
