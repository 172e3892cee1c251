"""
notifications.py — User-facing progress messages for one pipeline run.

Each run gets its own PipelineNotifier. Messages are logged and kept in
order so the route can hand them back to the client alongside the report
(or the failure).
"""

import logging

from vericlip.models.verification import Notification

logger = logging.getLogger(__name__)


class PipelineNotifier:
    def __init__(self) -> None:
        self.messages: list[Notification] = []

    def info(self, message: str) -> None:
        logger.info("[notify] %s", message)
        self.messages.append(Notification(level="info", message=message))

    def success(self, message: str) -> None:
        logger.info("[notify] %s", message)
        self.messages.append(Notification(level="success", message=message))

    def error(self, message: str) -> None:
        logger.error("[notify] %s", message)
        self.messages.append(Notification(level="error", message=message))

    @property
    def errors(self) -> list[Notification]:
        return [m for m in self.messages if m.level == "error"]
