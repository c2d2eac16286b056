# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class CoinEventType(str, Enum):
    AD_REWARD = "ad_reward"
    DAILY_REWARD = "daily_reward"
    REFERRAL_REWARD = "referral_reward"  # referrer side
    REFERRAL_BONUS = "referral_bonus"    # referred side
    SPEND = "spend"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class CoinLedgerEntry:
    # Core fields
    idempotency_key: str
    user_id: str
    event_type: CoinEventType
    amount: int  # signed: earn > 0, spend < 0
    balance_after: int
    created_at: datetime = field(default_factory=_utcnow)

    # Optional context
    reason: Optional[str] = None
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for persistence."""
        return {
            "idempotency_key": self.idempotency_key,
            "user_id": self.user_id,
            "event_type": self.event_type.value,
            "amount": self.amount,
            "balance_after": self.balance_after,
            "created_at": self.created_at,
            "reason": self.reason,
            "meta": self.meta,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CoinLedgerEntry":
        """Load from dictionary."""
        created = data.get("created_at")
        if isinstance(created, str):
            created = datetime.fromisoformat(created)
        elif created is not None and hasattr(created, "to_datetime"):
            created = created.to_datetime()

        return cls(
            idempotency_key=data.get("idempotency_key", ""),
            user_id=data.get("user_id", ""),
            event_type=CoinEventType(data.get("event_type", CoinEventType.AD_REWARD.value)),
            amount=int(data.get("amount", 0)),
            balance_after=int(data.get("balance_after", 0)),
            created_at=created or _utcnow(),
            reason=data.get("reason"),
            meta=data.get("meta") or {},
        )

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "type": self.event_type.value,
            "amount": self.amount,
            "balanceAfter": self.balance_after,
            "createdAt": self.created_at.isoformat(),
            "reason": self.reason,
        }


def build_idempotency_key(*parts: str) -> str:
    cleaned = [str(p).strip() for p in parts if p is not None and str(p).strip()]
    return ":".join(cleaned)


def build_referral_keys(referred_id: str) -> tuple[str, str]:
    """
    Ledger keys for a referral reward pair.
    Derived from the referred account only: an account can be referred once.
    """
    base = build_idempotency_key("referral", referred_id)
    return f"{base}:referrer", f"{base}:referred"
