"""
Unit tests for the RSS/Atom feed source.
"""

from datetime import datetime, timezone

import pytest
import requests

from stack_sifter.components.feed_source import RSSFeedSource, ensure_utc
from stack_sifter.utils.error_handling import FeedFetchError

ATOM_FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Newest questions tagged oauth</title>
  <id>https://stackoverflow.com/feeds/tag/oauth</id>
  <updated>2025-07-05T13:00:00Z</updated>
  <entry>
    <id>https://stackoverflow.com/q/3</id>
    <title type="text">Refresh token rotation &bull; best practice</title>
    <category scheme="https://stackoverflow.com/tags" term="oauth" />
    <category scheme="https://stackoverflow.com/tags" term="jwt" />
    <author><name>carol</name></author>
    <link rel="alternate" href="https://stackoverflow.com/q/3" />
    <published>2025-07-05T13:00:00Z</published>
    <updated>2025-07-05T13:00:00Z</updated>
    <summary type="html">How often should refresh tokens rotate?</summary>
  </entry>
  <entry>
    <id>https://stackoverflow.com/q/1</id>
    <title type="text">Old question</title>
    <category scheme="https://stackoverflow.com/tags" term="oauth" />
    <author><name>alice</name></author>
    <link rel="alternate" href="https://stackoverflow.com/q/1" />
    <published>2025-07-04T09:00:00Z</published>
    <updated>2025-07-04T09:00:00Z</updated>
    <summary type="html">Already seen.</summary>
  </entry>
  <entry>
    <id>https://stackoverflow.com/q/2</id>
    <title type="text">OAuth token refresh fails with 401</title>
    <category scheme="https://stackoverflow.com/tags" term="oauth" />
    <author><name>bob</name></author>
    <link rel="alternate" href="https://stackoverflow.com/q/2" />
    <published>2025-07-05T12:00:00+02:00</published>
    <updated>2025-07-05T12:00:00+02:00</updated>
    <summary type="html">The refresh grant returns 401.</summary>
  </entry>
</feed>
"""

RSS_FEED = """<?xml version="1.0"?>
<rss version="2.0">
  <channel>
    <title>Example</title>
    <link>https://example.com</link>
    <description>Example feed</description>
    <item>
      <title>Dated item</title>
      <link>https://example.com/1</link>
      <description>Has a date.</description>
      <pubDate>Sat, 05 Jul 2025 08:30:00 GMT</pubDate>
    </item>
    <item>
      <title>Undated item</title>
      <link>https://example.com/2</link>
      <description>No date.</description>
    </item>
  </channel>
</rss>
"""


class TestRSSFeedSource:
    """Test cases for RSSFeedSource."""

    def test_parse_atom_feed(self, mock_transport, since):
        source = RSSFeedSource(mock_transport)

        posts = source.parse_posts(ATOM_FEED, since)

        assert [post.title for post in posts] == [
            "OAuth token refresh fails with 401",
            "Refresh token rotation • best practice",
        ]
        first = posts[0]
        assert first.published == datetime(2025, 7, 5, 10, 0, tzinfo=timezone.utc)
        assert first.tags == ["oauth"]
        assert first.author == "bob"
        assert first.url == "https://stackoverflow.com/q/2"
        assert first.brief == "The refresh grant returns 401."
        assert posts[1].tags == ["oauth", "jwt"]

    def test_since_is_exclusive(self, mock_transport):
        source = RSSFeedSource(mock_transport)

        posts = source.parse_posts(ATOM_FEED, datetime(2025, 7, 5, 13, 0, tzinfo=timezone.utc))

        assert posts == []

    def test_naive_since_is_utc(self, mock_transport):
        source = RSSFeedSource(mock_transport)

        posts = source.parse_posts(ATOM_FEED, datetime(2025, 7, 5, 10, 0))

        assert [post.title for post in posts] == ["Refresh token rotation • best practice"]

    def test_parse_rss_skips_undated_items(self, mock_transport, since):
        source = RSSFeedSource(mock_transport)

        posts = source.parse_posts(RSS_FEED, since)

        assert len(posts) == 1
        assert posts[0].title == "Dated item"
        assert posts[0].published == datetime(2025, 7, 5, 8, 30, tzinfo=timezone.utc)
        assert posts[0].tags == []

    def test_posts_are_valid(self, mock_transport, since):
        for post in RSSFeedSource(mock_transport).parse_posts(ATOM_FEED, since):
            assert post.validate() is True

    @pytest.mark.asyncio
    async def test_fetch_since(self, mock_transport, since):
        mock_transport.get_text.return_value = ATOM_FEED
        source = RSSFeedSource(mock_transport, timeout=10)

        posts = await source.fetch_since("https://stackoverflow.com/feeds/tag/oauth", since)

        mock_transport.get_text.assert_awaited_once_with(
            "https://stackoverflow.com/feeds/tag/oauth", timeout=10
        )
        assert len(posts) == 2

    @pytest.mark.asyncio
    async def test_fetch_failure(self, mock_transport, since):
        mock_transport.get_text.side_effect = requests.HTTPError("404 Client Error: Not Found")
        source = RSSFeedSource(mock_transport)

        with pytest.raises(FeedFetchError, match="404 Client Error") as exc_info:
            await source.fetch_since("https://stackoverflow.com/feeds/tag/missing", since)

        assert exc_info.value.feed_url == "https://stackoverflow.com/feeds/tag/missing"
        assert isinstance(exc_info.value.__cause__, requests.HTTPError)


class TestEnsureUtc:
    """Test cases for ensure_utc."""

    def test_naive_is_utc(self):
        assert ensure_utc(datetime(2025, 1, 1)) == datetime(2025, 1, 1, tzinfo=timezone.utc)

    def test_aware_is_converted(self):
        value = ensure_utc(datetime.fromisoformat("2025-01-01T02:00:00+02:00"))

        assert value.tzinfo == timezone.utc
        assert value.hour == 0
