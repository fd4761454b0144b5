"""User-visible notices ("toasts") raised by the client core"""

import threading
from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.result import ErrorKind
from ..utils.logger import get_logger

logger = get_logger(__name__)

MAX_NOTICES = 50


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notice(BaseModel):
    level: NoticeLevel
    message: str
    category: Optional[ErrorKind] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class NoticeBoard:
    """Bounded, thread-safe queue of notices waiting to be shown"""

    def __init__(self, maxlen: int = MAX_NOTICES):
        self._notices = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def post(
        self,
        level: NoticeLevel,
        message: str,
        category: Optional[ErrorKind] = None,
    ) -> Notice:
        notice = Notice(level=level, message=message, category=category)
        with self._lock:
            self._notices.append(notice)
        log = logger.warning if level == NoticeLevel.ERROR else logger.info
        log("Notice posted", level=level.value, category=category.value if category else None, message=message)
        return notice

    def success(self, message: str) -> Notice:
        return self.post(NoticeLevel.SUCCESS, message)

    def error(self, message: str, category: Optional[ErrorKind] = None) -> Notice:
        return self.post(NoticeLevel.ERROR, message, category=category)

    def drain(self) -> List[Notice]:
        """Return and remove all pending notices"""
        with self._lock:
            notices = list(self._notices)
            self._notices.clear()
        return notices

    def recent(self) -> List[Notice]:
        with self._lock:
            return list(self._notices)
