"""Entrypoint: python -m market_chat"""
from __future__ import annotations

import uvicorn

from market_chat.config import settings
from market_chat.log import configure_logging


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        "market_chat.app:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        ws_ping_interval=settings.WS_HEARTBEAT_SECONDS,
        ws_ping_timeout=settings.WS_HEARTBEAT_TIMEOUT_SECONDS,
        log_config=None,
    )


if __name__ == "__main__":
    main()
