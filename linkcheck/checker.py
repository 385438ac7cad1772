"""HTTP reachability check for a single URL."""
import logging
import os
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = 'RunEventsLinkChecker/1.0 (+https://freiburg.run)'
# Servers that refuse HEAD get a second chance with GET
HEAD_REJECTED_STATUSES = (403, 405, 501)


class LinkCheckError(Exception):
    """Raised when a URL is not reachable."""


def _build_retry(total: int = 2, backoff_factor: float = 0.5) -> Retry:
    return Retry(
        total=total,
        connect=total,
        read=total,
        status=total,
        backoff_factor=backoff_factor,
        status_forcelist=(429, 502, 503, 504),
        allowed_methods=frozenset({'HEAD', 'GET'}),
        raise_on_status=False,
        respect_retry_after_header=True,
    )


class LinkChecker:
    """
    Checks URLs with HEAD requests, falling back to GET.

    Shares one requests.Session between threads; the session only holds
    the connection pool and default headers.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        max_retries: int = 2,
        user_agent: Optional[str] = None
    ):
        """
        Initialize the link checker.

        Args:
            timeout: Per-request timeout in seconds
            max_retries: Retries for transient errors (429, 502-504, connection errors)
            user_agent: User-Agent header; defaults to LINKCHECK_USER_AGENT or a built-in value
        """
        self.timeout = timeout
        self.session = requests.Session()
        adapter = HTTPAdapter(max_retries=_build_retry(total=max_retries), pool_maxsize=20)
        self.session.mount('http://', adapter)
        self.session.mount('https://', adapter)
        self.session.headers.update({
            'User-Agent': user_agent or os.getenv('LINKCHECK_USER_AGENT', DEFAULT_USER_AGENT),
        })

    def check(self, url: str) -> None:
        """
        Check that a URL answers with a non-error status.

        Args:
            url: http(s) URL

        Raises:
            LinkCheckError: If the request fails or the status is >= 400
        """
        try:
            response = self.session.head(url, timeout=self.timeout, allow_redirects=True)
            if response.status_code in HEAD_REJECTED_STATUSES:
                logger.debug(f"HEAD {url} -> {response.status_code}, retrying with GET")
                response = self.session.get(url, timeout=self.timeout, allow_redirects=True, stream=True)
                response.close()
        except requests.RequestException as e:
            raise LinkCheckError(f"request failed: {e}") from e

        if response.status_code >= 400:
            raise LinkCheckError(f"HTTP status {response.status_code}")
