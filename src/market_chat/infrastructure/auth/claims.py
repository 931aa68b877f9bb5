from __future__ import annotations

from typing import Any

import jwt

from market_chat.application.dto.principal import Principal


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    subject = payload.get("sub", payload.get("id"))
    if subject is None:
        raise jwt.InvalidTokenError("Token carries no subject")
    try:
        user_id = int(subject)
    except (TypeError, ValueError) as exc:
        raise jwt.InvalidTokenError(f"Malformed subject: {subject!r}") from exc
    return Principal(user_id=user_id, role=payload.get("role"))
