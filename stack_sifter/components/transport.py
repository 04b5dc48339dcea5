"""
HTTP transport shared by the feed source, the classifier and the notifiers.

A requests session with a retry strategy is created per run and injected
into every component that performs I/O. Notifiers get their own session that
leaves POST retries to them. Blocking calls are run in the event loop's
default executor so they can be awaited concurrently.
"""

import asyncio
import functools
import logging
from typing import Any, Dict, Optional, Sequence

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

USER_AGENT = "StackSifterBot/1.0 (+https://github.com/gcasar/stack-sifter)"

RETRY_METHODS = ("HEAD", "GET", "POST")

# Notifiers retry deliveries themselves
NOTIFY_RETRY_METHODS = ("HEAD", "GET")


class HttpTransport:
    """Awaitable wrapper around a shared requests session."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        max_retries: int = 3,
        default_timeout: int = 30,
        retry_methods: Sequence[str] = RETRY_METHODS,
    ):
        """
        Initialize the transport.

        Args:
            session: Pre-built session to use, mainly for tests
            max_retries: Retry attempts for 429/5xx responses
            default_timeout: Request timeout in seconds when none is given
            retry_methods: HTTP methods the session retries
        """
        self.max_retries = max_retries
        self.default_timeout = default_timeout
        self.retry_methods = list(retry_methods)
        self.session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry configuration."""
        session = requests.Session()

        retry_strategy = Retry(
            total=self.max_retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=self.retry_methods,
            raise_on_status=False,
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update({"User-Agent": USER_AGENT})

        return session

    async def _run(self, func, *args, **kwargs):
        return await asyncio.get_running_loop().run_in_executor(
            None, functools.partial(func, *args, **kwargs)
        )

    async def get_text(self, url: str, timeout: Optional[int] = None) -> str:
        """
        GET a URL and return the body as text.

        Raises:
            requests.RequestException: On network failure or non-2xx status
        """
        logger.debug(f"GET {url}")
        response = await self._run(self.session.get, url, timeout=timeout or self.default_timeout)
        response.raise_for_status()
        return response.text

    async def post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[int] = None,
    ) -> requests.Response:
        """
        POST a JSON payload and return the response.

        The status code is not checked here; callers decide how to map it.

        Raises:
            requests.RequestException: On network failure
        """
        logger.debug(f"POST {url}")
        return await self._run(
            self.session.post,
            url,
            json=payload,
            headers=headers,
            timeout=timeout or self.default_timeout,
        )

    def close(self) -> None:
        """Release pooled connections."""
        self.session.close()
