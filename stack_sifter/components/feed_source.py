"""
RSS/Atom feed source for Stack Sifter.

Fetches a feed over the shared transport, parses it with feedparser and
returns the posts published after a given timestamp, oldest first.
"""

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

import feedparser
import requests
from dateutil import parser as date_parser

from ..models.post import Post
from ..utils.error_handling import FeedFetchError
from .transport import HttpTransport

logger = logging.getLogger(__name__)

# Entities some feeds emit that are not defined in XML
ENTITY_REPLACEMENTS = {
    "&bull;": "•",
}


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class RSSFeedSource:
    """Feed source for RSS and Atom documents."""

    def __init__(self, transport: HttpTransport, timeout: int = 30):
        """
        Initialize feed source.

        Args:
            transport: Shared HTTP transport
            timeout: Request timeout in seconds
        """
        self.transport = transport
        self.timeout = timeout

    async def fetch_since(self, url: str, since: datetime) -> List[Post]:
        """
        Fetch posts published strictly after ``since``.

        Returns:
            Posts ordered by publication time, oldest first

        Raises:
            FeedFetchError: If the feed could not be retrieved
        """
        try:
            content = await self.transport.get_text(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise FeedFetchError(url, f"Failed to fetch feed {url}: {e}", cause=e) from e

        posts = self.parse_posts(content, since)
        logger.info(f"Fetched {len(posts)} new posts from {url}")
        return posts

    def parse_posts(self, content: str, since: datetime) -> List[Post]:
        """Parse feed content into posts newer than ``since``."""
        for entity, replacement in ENTITY_REPLACEMENTS.items():
            content = content.replace(entity, replacement)

        parsed_feed = feedparser.parse(content)

        if parsed_feed.bozo:
            logger.warning(f"Feed parsing warning: {parsed_feed.bozo_exception}")

        since = ensure_utc(since)
        posts = []

        for entry in parsed_feed.entries:
            published = self._extract_published(entry)
            if published is None:
                logger.debug(f"Skipping entry without a usable date: {entry.get('title', 'Unknown')}")
                continue

            if published <= since:
                continue

            posts.append(
                Post(
                    published=published,
                    title=entry.get("title", "").strip(),
                    brief=(entry.get("summary") or entry.get("description") or "").strip(),
                    tags=self._extract_tags(entry),
                    author=entry.get("author", "").strip(),
                    url=entry.get("link", "").strip(),
                )
            )

        posts.sort(key=lambda post: post.published)
        return posts

    def _extract_published(self, entry: Any) -> Optional[datetime]:
        for field in ("published", "updated"):
            value = entry.get(field)
            if not value:
                continue
            try:
                return ensure_utc(date_parser.parse(value))
            except (ValueError, OverflowError) as e:
                logger.warning(f"Could not parse date '{value}': {e}")
        return None

    def _extract_tags(self, entry: Any) -> List[str]:
        tags = []
        for tag in entry.get("tags", []) or []:
            term = tag.get("term") if hasattr(tag, "get") else None
            if term:
                tags.append(term)
        return tags
