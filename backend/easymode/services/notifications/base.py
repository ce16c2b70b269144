"""Push notification service interface."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass
class NotificationResult:
    status: str
    reason: str = ""

    @property
    def delivered(self) -> bool:
        return self.status in {"sent", "noop"}


class NotificationService:
    """Base interface for push providers: one device token, one title/body pair."""

    def send(self, *, token: str, title: str, body: str) -> NotificationResult:
        raise NotImplementedError
