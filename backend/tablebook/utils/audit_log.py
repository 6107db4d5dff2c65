from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Literal, Optional

from .trace import current_trace_id

AuditAction = Literal[
    "reservation.confirmed",
    "promo_code.applied",
    "capacity.booked_seats_set",
    "capacity.seats_reserved",
]
AuditInitiator = Literal["customer", "staff", "system"]

_audit_logger = logging.getLogger("audit")
_audit_logger.setLevel(logging.INFO)
if not _audit_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    _audit_logger.addHandler(handler)
_audit_logger.propagate = False


def _to_jsonable(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, "value"):
        return str(value.value)
    return value


def emit_audit_log(
    *,
    action: AuditAction,
    initiator: AuditInitiator,
    restaurant_id: Optional[int] = None,
    reservation_id: Optional[int] = None,
    request_id: Optional[int] = None,
    capacity_id: Optional[int] = None,
    promo_code_id: Optional[int] = None,
    actor_id: Optional[int] = None,
    party_size: Optional[int] = None,
    status_from: Optional[str] = None,
    status_to: Optional[str] = None,
    message: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Emit structured JSON audit log. Raises RuntimeError if logging fails."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": "info",
        "action": action,
        "initiator": initiator,
        "trace_id": current_trace_id(),
        "restaurant_id": restaurant_id,
        "reservation_id": reservation_id,
        "reservation_request_id": request_id,
        "capacity_id": capacity_id,
        "promo_code_id": promo_code_id,
        "actor_id": actor_id,
        "party_size": party_size,
        "status_from": _to_jsonable(status_from),
        "status_to": _to_jsonable(status_to),
    }
    if message is not None:
        payload["message"] = message
    if extra:
        payload.update({k: _to_jsonable(v) for k, v in extra.items()})

    # Drop None values to keep the log compact.
    compact_payload = {k: v for k, v in payload.items() if v is not None}
    try:
        _audit_logger.info(json.dumps(compact_payload, ensure_ascii=True))
    except Exception as exc:
        raise RuntimeError("failed to emit audit log") from exc
