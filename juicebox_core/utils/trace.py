# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Juicebox Engine.
#
# Juicebox Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# Juicebox Engine is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with Juicebox Engine. If not, see <https://www.gnu.org/licenses/>.

"""
Per-request audit trail for coin operations.

A trace groups every reward event of one engine call (or one CLI replay)
into `data/trace/<trace_id>.jsonl`. Records carry a sequence number and the
milliseconds since the trace was opened, so a replay can be diffed line by
line. Only local runs write anything.
"""

from __future__ import annotations

import contextvars
import hashlib
import json
import logging
import re
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterator
from uuid import uuid4

from juicebox_core.utils.runtime import is_local_run

if TYPE_CHECKING:
    from juicebox_core.runtime_config import RewardsRuntimeConfig

logger = logging.getLogger(__name__)

TRACE_DIR = Path("data/trace")


@dataclass(frozen=True)
class TraceContext:
    trace_id: str
    enabled: bool
    max_str: int = 4000
    started_ms: int = 0


_active: contextvars.ContextVar[TraceContext | None] = contextvars.ContextVar("juicebox_trace", default=None)
_seq: contextvars.ContextVar[int] = contextvars.ContextVar("juicebox_trace_seq", default=0)

# Keys whose values never reach a trace file.
_SECRET_KEYS = frozenset({"authorization", "token", "access_token", "id_token", "password", "credentials", "api_key"})

_REDACTIONS = (
    (re.compile(r"([?&](?:access_|id_)?token=)[^&\s]+", re.IGNORECASE), r"\1***"),
    (re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE), r"\1***"),
)


def new_trace_id() -> str:
    return f"{datetime.now().strftime('%Y-%m-%d_%H-%M-%S')}_{str(uuid4())[:6]}"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _redact_text(s: str) -> str:
    for pattern, repl in _REDACTIONS:
        s = pattern.sub(repl, s)
    return s


def _clip(s: str, max_str: int) -> Any:
    if len(s) <= max_str:
        return s
    keep = min(300, max_str // 2)
    return {
        "len": len(s),
        "sha256": hashlib.sha256(s.encode("utf-8")).hexdigest(),
        "head": s[:keep],
        "tail": s[-keep:] if keep else "",
    }


def _sanitize(obj: Any, *, max_str: int = 4000, max_items: int = 100) -> Any:
    """JSON-safe, redacted and size-capped copy of `obj`."""
    if obj is None or isinstance(obj, (bool, int, float)):
        return obj
    if isinstance(obj, str):
        return _clip(_redact_text(obj), max_str)
    if isinstance(obj, bytes):
        return f"<bytes:{len(obj)}>"
    if isinstance(obj, dict):
        out: dict[str, Any] = {}
        for key, value in list(obj.items())[:max_items]:
            key = str(key)
            out[key] = "***" if key.lower() in _SECRET_KEYS else _sanitize(value, max_str=max_str, max_items=max_items)
        if len(obj) > max_items:
            out["..."] = f"(+{len(obj) - max_items} more keys)"
        return out
    if isinstance(obj, (list, tuple, set)):
        items = list(obj)
        out_list = [_sanitize(x, max_str=max_str, max_items=max_items) for x in items[:max_items]]
        if len(items) > max_items:
            out_list.append(f"...(+{len(items) - max_items} more)")
        return out_list
    if hasattr(obj, "to_dict"):
        return _sanitize(obj.to_dict(), max_str=max_str, max_items=max_items)
    return _sanitize(str(obj), max_str=max_str, max_items=max_items)


def _trace_path(trace_id: str) -> Path:
    safe = "".join(c if c.isalnum() or c in "._-" else "_" for c in trace_id)
    TRACE_DIR.mkdir(parents=True, exist_ok=True)
    return TRACE_DIR / f"{safe}.jsonl"


def trace_enabled() -> bool:
    ctx = _active.get()
    return bool(ctx and ctx.enabled)


def current_trace_id() -> str | None:
    ctx = _active.get()
    return ctx.trace_id if ctx else None


class Trace:
    """
    Local-only JSONL sink for reward flows.

    Production never writes: `start` checks `is_local_run()` and the
    `trace_enabled` feature flag, and `event` is a no-op otherwise.
    """

    @staticmethod
    def start(trace_id: str, *, runtime: RewardsRuntimeConfig | None = None) -> TraceContext:
        if runtime is None:
            from juicebox_core.runtime_config import RewardsRuntimeConfig

            runtime = RewardsRuntimeConfig.load_from_env()
        ctx = TraceContext(
            trace_id=trace_id,
            enabled=bool(is_local_run() and runtime.features.trace_enabled),
            max_str=runtime.debug.trace_max_str_chars,
            started_ms=_now_ms(),
        )
        _active.set(ctx)
        _seq.set(0)
        Trace.event("trace.start", {"trace_id": trace_id, "rules": runtime.to_safe_log_dict()["rules_version"]})
        return ctx

    @staticmethod
    def stop() -> None:
        ctx = _active.get()
        if ctx is not None:
            Trace.event("trace.stop", {"trace_id": ctx.trace_id, "events": _seq.get()})
        _active.set(None)
        _seq.set(0)

    @staticmethod
    @contextmanager
    def session(
        trace_id: str | None = None,
        *,
        runtime: RewardsRuntimeConfig | None = None,
    ) -> Iterator[TraceContext]:
        """Open a trace unless one is already active; nested sessions join the outer one."""
        outer = _active.get()
        if outer is not None:
            yield outer
            return
        ctx = Trace.start(trace_id or new_trace_id(), runtime=runtime)
        try:
            yield ctx
        finally:
            Trace.stop()

    @staticmethod
    def event(name: str, data: Any | None = None) -> None:
        ctx = _active.get()
        if ctx is None or not ctx.enabled:
            return
        seq = _seq.get() + 1
        _seq.set(seq)
        now = _now_ms()
        rec = {
            "ts_ms": now,
            "elapsed_ms": now - ctx.started_ms,
            "seq": seq,
            "trace_id": ctx.trace_id,
            "event": str(name),
            "data": _sanitize(data, max_str=ctx.max_str),
        }
        try:
            with _trace_path(ctx.trace_id).open("a", encoding="utf-8") as f:
                f.write(json.dumps(rec, ensure_ascii=False, default=str) + "\n")
        except OSError as exc:
            # Tracing must never break the main flow.
            logger.debug("[Trace] write failed: %s", exc)
