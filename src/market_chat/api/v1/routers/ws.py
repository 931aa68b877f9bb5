from __future__ import annotations

from fastapi import APIRouter, Query, WebSocket

from market_chat.api.deps import GatewayDep, UoWFactoryDep, VerifierDep

router = APIRouter(tags=["websocket"])


def _bearer_token(websocket: WebSocket) -> str | None:
    scheme, _, credentials = websocket.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


@router.websocket("/ws")
async def ws_endpoint(
    websocket: WebSocket,
    gateway: GatewayDep,
    verifier: VerifierDep,
    uow_factory: UoWFactoryDep,
    token: str | None = Query(None),
) -> None:
    await gateway.handle(websocket, token or _bearer_token(websocket), verifier, uow_factory)
