from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Optional

TRACE_HEADER = "X-Request-ID"

_trace_id_ctx: ContextVar[str | None] = ContextVar("trace_id", default=None)


def new_trace_id() -> str:
    return uuid.uuid4().hex


def bind_trace_id(trace_id: str | None) -> None:
    """Attach a trace id to the current context (None to clear)."""
    _trace_id_ctx.set(trace_id)


def current_trace_id() -> Optional[str]:
    return _trace_id_ctx.get()
