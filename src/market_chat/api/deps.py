"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.requests import HTTPConnection

from market_chat.application.ports.auth import TokenVerifier
from market_chat.application.uow import UnitOfWork, UoWFactory
from market_chat.config import settings
from market_chat.domain.entities.account import Account
from market_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from market_chat.infrastructure.auth.jwks_verifier import JWKSVerifier
from market_chat.infrastructure.db.uow import open_uow
from market_chat.infrastructure.ws.gateway import RealtimeGateway
from market_chat.infrastructure.ws.manager import ConnectionManager
from market_chat.services import identity_service

_bearer_scheme = HTTPBearer(auto_error=False)


def get_uow_factory() -> UoWFactory:
    return open_uow


UoWFactoryDep = Annotated[UoWFactory, Depends(get_uow_factory)]


async def get_uow(factory: UoWFactoryDep) -> AsyncIterator[UnitOfWork]:
    async with factory() as uow:
        yield uow


UoWDep = Annotated[UnitOfWork, Depends(get_uow)]


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


VerifierDep = Annotated[TokenVerifier, Depends(get_verifier)]


async def get_current_account(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
    verifier: VerifierDep,
    uow: UoWDep,
) -> Account:
    token = credentials.credentials if credentials else None
    return await identity_service.authenticate(token, verifier, uow)


CurrentAccount = Annotated[Account, Depends(get_current_account)]


def get_manager(conn: HTTPConnection) -> ConnectionManager:
    return conn.app.state.manager


BroadcasterDep = Annotated[ConnectionManager, Depends(get_manager)]


def get_gateway(conn: HTTPConnection) -> RealtimeGateway:
    return conn.app.state.gateway


GatewayDep = Annotated[RealtimeGateway, Depends(get_gateway)]
