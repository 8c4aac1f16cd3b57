"""
User-visible notices.

Stands in for the host application's toast messages: anything the user should
see (corrupt deck, rejected save, end of a review session) is logged and kept
in a short history that the frontend polls from ``GET /notices``.
"""
from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone

from gated_notes.config import settings
from gated_notes.models.notice import Notice

logger = logging.getLogger(__name__)

_LEVELS = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class NoticeBoard:
    def __init__(self, maxlen: int = 50) -> None:
        self._notices: deque[Notice] = deque(maxlen=maxlen)

    def notify(self, message: str, level: str = "info") -> Notice:
        logger.log(_LEVELS.get(level, logging.INFO), "Notice: %s", message)
        notice = Notice(
            message=message,
            level=level,
            created_at=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
        )
        self._notices.append(notice)
        return notice

    def recent(self) -> list[Notice]:
        """Newest first."""
        return list(reversed(self._notices))

    def clear(self) -> None:
        self._notices.clear()


notice_board = NoticeBoard(maxlen=settings.notice_history)


def get_notice_board() -> NoticeBoard:
    return notice_board
