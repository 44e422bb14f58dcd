"""
Shared plumbing for talking to the Compass analysis API.
Every endpoint is a plain GET returning JSON; this module owns the mapping
from transport/HTTP outcomes to the engine's FetchError taxonomy.
"""
import logging
from typing import Any
from urllib.parse import quote

import httpx

from .config import get_settings
from .errors import DecodeError, HTTPStatusError, NoDataError, TransportError

logger = logging.getLogger(__name__)

HEADERS = {
    "Content-Type": "application/json",
    "User-Agent": "compass-engine/0.1",
}


def require_topic(topic: str) -> None:
    if not topic or not topic.strip():
        raise ValueError("topic must be a non-empty organization name")


def topic_path(endpoint: str, topic: str) -> str:
    """`/getWokenessScore` + `Acme Corp` -> `/getWokenessScore/Acme%20Corp`"""
    return f"{endpoint}/{quote(topic, safe='')}"


class ServiceClient:
    """
    Base client. A new httpx.AsyncClient is opened per request, so instances
    are cheap and safe to share between concurrent fetches.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if base_url is None or timeout is None:
            settings = get_settings()
            base_url = settings.base_url if base_url is None else base_url
            timeout = settings.http_timeout if timeout is None else timeout
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport  # injected in tests

    async def _get_json(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        logger.info("Requesting %s", url)
        try:
            async with httpx.AsyncClient(
                headers=HEADERS,
                timeout=self.timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                resp = await client.get(url)
        except httpx.TransportError as e:
            logger.warning("Network error for %s: %s", url, e)
            raise TransportError(f"No response from analysis service: {e}") from e

        if not resp.is_success:
            logger.warning("HTTP error %s for %s", resp.status_code, url)
            raise HTTPStatusError(resp.status_code)

        if not resp.content.strip():
            logger.warning("Empty body from %s", url)
            raise NoDataError()

        try:
            return resp.json()
        except ValueError as e:
            logger.error("Response from %s is not JSON: %s", url, e)
            raise DecodeError("Failed to decode response: body is not valid JSON") from e
