"""No-op notification provider (logs only)."""
from __future__ import annotations

import logging

from easymode.services.notifications.base import NotificationResult, NotificationService


logger = logging.getLogger(__name__)


class NoopNotificationService(NotificationService):
    def send(self, *, token: str, title: str, body: str) -> NotificationResult:
        logger.info("Notification queued (noop) token=%s... title=%r", token[:8], title)
        return NotificationResult(status="noop", reason="notification provider is noop")
