"""
Unit tests for JSON report rendering.
"""

import json
from datetime import datetime, timedelta, timezone

from stack_sifter.models.config import NotificationTarget
from stack_sifter.models.post import Post
from stack_sifter.models.result import MatchedPost, ProcessingResult
from stack_sifter.services.report import build_report, format_timestamp, render_report


class TestReport:
    """Test cases for report rendering."""

    def test_build_report(self, sample_post, sample_rule):
        result = ProcessingResult(
            total_processed=3,
            last_created=sample_post.published,
            matches=[MatchedPost(sample_post, sample_rule.prompt, sample_rule.notify_targets)],
        )

        report = build_report(result)

        assert report == {
            "TotalProcessed": 3,
            "LastCreated": "2025-07-05T12:34:56Z",
            "MatchingPosts": [
                {
                    "Created": "2025-07-05T12:34:56Z",
                    "Title": "OAuth token refresh fails with 401",
                    "Tags": ["oauth", "authentication"],
                    "Url": "https://stackoverflow.com/q/1",
                    "MatchReason": "about authentication",
                    "NotificationTargets": ["Slack: #auth-team", "Email: security@example.com"],
                }
            ],
        }

    def test_empty_run(self):
        report = json.loads(render_report(ProcessingResult(0, None, [])))

        assert report == {"TotalProcessed": 0, "LastCreated": None, "MatchingPosts": []}

    def test_render_is_indented_and_keeps_unicode(self, sample_rule):
        post_time = datetime(2025, 7, 5, 12, 0, tzinfo=timezone.utc)

        post = Post(published=post_time, title="Café • encoding", url="https://example.com/1")
        text = render_report(
            ProcessingResult(1, post_time, [MatchedPost(post, "x", [NotificationTarget(slack="#a")])])
        )

        assert text.startswith("{\n  ")
        assert "Café • encoding" in text

    def test_format_timestamp_converts_to_utc(self):
        value = datetime(2025, 7, 5, 14, 0, tzinfo=timezone(timedelta(hours=2)))

        assert format_timestamp(value) == "2025-07-05T12:00:00Z"
        assert format_timestamp(None) is None

    def test_format_timestamp_keeps_microseconds(self):
        value = datetime(2025, 7, 5, 12, 0, 0, 123456, tzinfo=timezone.utc)

        assert format_timestamp(value) == "2025-07-05T12:00:00.123456Z"
