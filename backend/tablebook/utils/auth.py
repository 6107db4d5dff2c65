from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

import jwt
from jwt import InvalidTokenError


@dataclass(frozen=True)
class StaffClaims:
    staff_id: int
    restaurant_id: Optional[int]


def issue_staff_token(
    *,
    staff_id: int,
    secret: str,
    restaurant_id: Optional[int] = None,
    algorithm: str = "HS256",
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(hours=8))
    payload: dict[str, object] = {"sub": str(staff_id), "iat": now, "exp": exp}
    if restaurant_id is not None:
        payload["restaurant_id"] = restaurant_id
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_staff_token(
    token: str,
    *,
    secret: str,
    algorithms: Sequence[str],
) -> StaffClaims:
    try:
        payload = jwt.decode(token, secret, algorithms=list(algorithms))
    except InvalidTokenError as exc:  # includes ExpiredSignatureError
        raise ValueError("invalid token") from exc

    sub = payload.get("sub")
    if sub is None:
        raise ValueError("token missing sub")
    try:
        staff_id = int(sub)
    except (TypeError, ValueError) as exc:
        raise ValueError("token sub is not an integer") from exc

    restaurant_id = payload.get("restaurant_id")
    if restaurant_id is not None and not isinstance(restaurant_id, int):
        raise ValueError("token restaurant_id is not an integer")
    return StaffClaims(staff_id=staff_id, restaurant_id=restaurant_id)
