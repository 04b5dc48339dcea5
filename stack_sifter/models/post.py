"""
Post data model for Stack Sifter.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List


@dataclass(frozen=True)
class Post:
    """A single feed entry. Created by a feed source and never mutated."""

    published: datetime
    title: str
    brief: str = ""
    tags: List[str] = field(default_factory=list)
    author: str = ""
    url: str = ""

    def validate(self) -> bool:
        """Validate the post data."""
        if not isinstance(self.published, datetime):
            raise ValueError("Post published must be a datetime")

        if self.published.tzinfo is None:
            raise ValueError("Post published must be timezone-aware")

        if not isinstance(self.tags, list):
            raise ValueError("Post tags must be a list")

        return True
