"""
JSON report rendering for processing results.

The report shape is consumed by the scheduler that persists ``LastCreated``
as the next run's cursor, so field names are stable.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..models.result import MatchedPost, ProcessingResult


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Render a timestamp as ISO-8601 UTC with a trailing Z."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _match_to_dict(match: MatchedPost) -> Dict[str, Any]:
    return {
        "Created": format_timestamp(match.post.published),
        "Title": match.post.title,
        "Tags": list(match.post.tags),
        "Url": match.post.url,
        "MatchReason": match.match_reason,
        "NotificationTargets": [target.description for target in match.notification_targets],
    }


def build_report(result: ProcessingResult) -> Dict[str, Any]:
    """Convert a ProcessingResult into the report dictionary."""
    return {
        "TotalProcessed": result.total_processed,
        "LastCreated": format_timestamp(result.last_created),
        "MatchingPosts": [_match_to_dict(match) for match in result.matches],
    }


def render_report(result: ProcessingResult) -> str:
    return json.dumps(build_report(result), indent=2, ensure_ascii=False)
