"""
Processing result models.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from .config import NotificationTarget
from .post import Post


@dataclass(frozen=True)
class MatchedPost:
    """One rule firing on one post."""

    post: Post
    match_reason: str
    notification_targets: List[NotificationTarget]


@dataclass(frozen=True)
class ProcessingResult:
    """Outcome of a sifting run.

    ``last_created`` is the newest ``published`` timestamp seen across all
    feeds, or None when no posts were fetched. An external scheduler persists
    it as the next run's ``since`` cursor.
    """

    total_processed: int
    last_created: Optional[datetime]
    matches: List[MatchedPost]
