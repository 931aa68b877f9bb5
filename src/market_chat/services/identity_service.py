"""Resolve a bearer token to an active marketplace account.

Used once per WebSocket connection attempt and once per REST request.
"""
from __future__ import annotations

import logging

import jwt

from market_chat.application.exceptions import AuthenticationError, TransientStoreError
from market_chat.application.ports.auth import TokenVerifier
from market_chat.application.uow import UnitOfWork
from market_chat.domain.entities.account import Account

logger = logging.getLogger(__name__)


async def authenticate(
    token: str | None,
    verifier: TokenVerifier,
    uow: UnitOfWork,
) -> Account:
    if not token:
        raise AuthenticationError(AuthenticationError.MISSING_TOKEN)

    try:
        principal = await verifier.verify(token)
    except jwt.PyJWKClientConnectionError as exc:
        logger.warning("JWKS endpoint unreachable: %s", exc)
        raise TransientStoreError("Identity provider unavailable") from exc
    except jwt.PyJWTError as exc:
        logger.info("Token rejected: %s", exc)
        raise AuthenticationError(AuthenticationError.INVALID_OR_EXPIRED_TOKEN) from exc

    account = await uow.accounts.get_by_id(principal.user_id)
    if account is None:
        raise AuthenticationError(AuthenticationError.ACCOUNT_NOT_FOUND)
    if not account.is_active:
        raise AuthenticationError(AuthenticationError.ACCOUNT_INACTIVE)
    return account
