"""
Plain HTML fetcher used to preview external pages (news articles, reports).
"""

import logging
from typing import Optional

import requests

from stockflow.config import InvalidRequest, config

logger = logging.getLogger(__name__)


class FetchError(Exception):
    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def fetch_html(url: str, session: Optional[requests.Session] = None, timeout: float = 30) -> str:
    """
    Fetch a page with a browser user agent.

    Raises:
        InvalidRequest: Empty URL
        FetchError: Network failure (500) or non-2xx upstream status
    """
    if not url or not url.strip():
        raise InvalidRequest("URL parameter is required")

    http = session or requests
    try:
        response = http.get(url, headers={"User-Agent": config.HTTP_USER_AGENT}, timeout=timeout)
    except requests.RequestException as e:
        logger.warning(f"Fetching {url} failed: {e}")
        raise FetchError(f"Failed to fetch HTML: {e}") from e

    if not response.ok:
        raise FetchError(f"Failed to fetch: {response.reason}", response.status_code)

    logger.info(f"Fetched {url} ({len(response.text)} chars)")
    return response.text
