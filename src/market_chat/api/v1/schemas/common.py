from __future__ import annotations

from market_chat.application.dto.events import WireModel
from market_chat.application.dto.message import MessagePage


class Pagination(WireModel):
    total: int
    page: int
    pages: int

    @classmethod
    def of(cls, page: MessagePage) -> Pagination:
        return cls(total=page.total, page=page.page, pages=page.pages)


class StatusMessage(WireModel):
    message: str
