"""
Unit tests for the HTTP transport.
"""

from unittest.mock import Mock

import pytest
import requests

from stack_sifter.components.transport import NOTIFY_RETRY_METHODS, USER_AGENT, HttpTransport


class TestHttpTransport:
    """Test cases for HttpTransport."""

    def test_default_session(self):
        transport = HttpTransport(max_retries=5)

        assert transport.session.headers["User-Agent"] == USER_AGENT
        adapter = transport.session.get_adapter("https://stackoverflow.com/feeds")
        assert adapter.max_retries.total == 5
        assert 429 in adapter.max_retries.status_forcelist
        assert "POST" in adapter.max_retries.allowed_methods
        transport.close()

    def test_notification_session_leaves_post_retries_to_caller(self):
        transport = HttpTransport(retry_methods=NOTIFY_RETRY_METHODS)

        adapter = transport.session.get_adapter("https://hooks.slack.com/services/x")
        assert "POST" not in adapter.max_retries.allowed_methods
        assert "GET" in adapter.max_retries.allowed_methods
        transport.close()

    @pytest.mark.asyncio
    async def test_get_text(self):
        response = Mock()
        response.text = "<feed/>"
        session = Mock()
        session.get.return_value = response
        transport = HttpTransport(session=session, default_timeout=15)

        text = await transport.get_text("https://example.com/feed")

        assert text == "<feed/>"
        session.get.assert_called_once_with("https://example.com/feed", timeout=15)
        response.raise_for_status.assert_called_once()

    @pytest.mark.asyncio
    async def test_get_text_raises_on_http_error(self):
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("404 Client Error")
        session = Mock()
        session.get.return_value = response

        with pytest.raises(requests.HTTPError):
            await HttpTransport(session=session).get_text("https://example.com/missing")

    @pytest.mark.asyncio
    async def test_post_json_returns_response_unchecked(self):
        response = Mock()
        response.status_code = 500
        session = Mock()
        session.post.return_value = response
        transport = HttpTransport(session=session)

        result = await transport.post_json(
            "https://example.com/hook", {"a": 1}, headers={"X-Test": "1"}, timeout=5
        )

        assert result is response
        session.post.assert_called_once_with(
            "https://example.com/hook", json={"a": 1}, headers={"X-Test": "1"}, timeout=5
        )
        response.raise_for_status.assert_not_called()

    def test_close(self):
        session = Mock()

        HttpTransport(session=session).close()

        session.close.assert_called_once()
