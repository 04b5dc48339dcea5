"""
Notification delivery result models.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

MAX_ERROR_MESSAGE_LENGTH = 500


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class NotificationResult:
    """Outcome of notifying one target about one matched post."""

    success: bool
    target: str
    delivery_time: datetime = field(default_factory=_now)
    error_message: Optional[str] = None

    @classmethod
    def delivered(cls, target: str) -> "NotificationResult":
        return cls(success=True, target=target)

    @classmethod
    def failed(cls, target: str, error: BaseException) -> "NotificationResult":
        """Build a failed result, truncating the error text to fit."""
        message = str(error) or type(error).__name__
        return cls(success=False, target=target, error_message=message[:MAX_ERROR_MESSAGE_LENGTH])

    def validate(self) -> bool:
        """Validate notification result data."""
        if not isinstance(self.success, bool):
            raise ValueError("success must be a boolean")

        if not isinstance(self.target, str) or not self.target:
            raise ValueError("target must be a non-empty string")

        if not isinstance(self.delivery_time, datetime):
            raise ValueError("delivery_time must be a datetime object")

        if self.error_message is not None and len(self.error_message) > MAX_ERROR_MESSAGE_LENGTH:
            raise ValueError(f"error_message too long (max {MAX_ERROR_MESSAGE_LENGTH} characters)")

        if not self.success and not self.error_message:
            raise ValueError("error_message should be provided when success is False")

        return True
