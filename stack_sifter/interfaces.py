"""
Protocol interfaces for Stack Sifter.

This module defines the protocol interfaces that establish the boundaries
between the orchestrator and its collaborators and enable dependency
injection throughout the application.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Protocol

from .models.post import Post

if TYPE_CHECKING:
    from .models.config import Config


class IFeedSource(Protocol):
    """Protocol for components that retrieve posts from a feed."""

    async def fetch_since(self, url: str, since: datetime) -> List[Post]:
        """Return posts newer than ``since``, ordered by publication time."""
        ...


class IClassifier(Protocol):
    """Protocol for deciding whether a post satisfies one rule."""

    async def is_match(self, post: Post) -> bool:
        """Return True if the post matches the rule this classifier was built for."""
        ...


class INotifier(Protocol):
    """Protocol for delivering a matched post to one destination."""

    async def notify(self, post: Post, match_reason: str) -> None:
        """Send a notification about a matched post."""
        ...


class IConfigurationManager(Protocol):
    """Protocol for loading system configuration."""

    def load_config(self) -> "Config":
        """Load and validate configuration."""
        ...
