"""Resolver adapter for AIO-DL style download services.

The service hands out a short-lived token embedded in its landing page
(``<input id="token" value="...">``). That token authorises a form POST to
its video-data endpoint, whose JSON answer lists the downloadable media.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from bs4 import BeautifulSoup
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from clipcache.core.exceptions import NoMediaFoundError, ResolutionError


if TYPE_CHECKING:
    from tenacity.wait import WaitBaseT


logger = logging.getLogger(__name__)

VIDEO_DATA_PATH = "/wp-json/aio-dl/video-data/"

DEFAULT_RESOLVE_TIMEOUT = 30.0


class AioDlResolver:
    """Resolver adapter backed by an AIO-DL download service.

    Implements ResolverPort. Transport failures while fetching the token
    page are retried with exponential backoff.
    """

    def __init__(
        self,
        service_url: str | None,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_RESOLVE_TIMEOUT,
        retry_attempts: int = 3,
        wait: WaitBaseT | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            service_url: Base address of the service. None leaves the
                resolver unconfigured; every resolve() then fails.
            client: Optional httpx client. If not provided, creates one.
            timeout: Timeout in seconds for each request.
            retry_attempts: Attempts for the token request.
            wait: Backoff between token attempts. Defaults to exponential
                backoff from 2 to 10 seconds.
        """
        self.service_url = service_url.rstrip("/") if service_url else None
        self._owns_client = client is None
        self._client = client or httpx.Client(follow_redirects=True)
        self.timeout = timeout
        self._retrying = Retrying(
            stop=stop_after_attempt(retry_attempts),
            wait=(
                wait
                if wait is not None
                else wait_exponential(multiplier=1, min=2, max=10)
            ),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )

    def close(self) -> None:
        """Close the underlying client if this resolver created it."""
        if self._owns_client:
            self._client.close()

    def resolve(self, url: str) -> str:
        """Exchange a media page URL for a direct download URL.

        Args:
            url: Candidate URL extracted from user input.

        Returns:
            URL of the first media entry listed by the service.

        Raises:
            ResolutionError: If the service is unconfigured or fails.
            NoMediaFoundError: If the service lists no media.
        """
        if not self.service_url:
            raise ResolutionError("Resolution service is not configured", url=url)

        token = self._fetch_token(url)

        try:
            response = self._client.post(
                f"{self.service_url}{VIDEO_DATA_PATH}",
                data={"url": url},
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ResolutionError(
                "Resolution service request failed", url=url, cause=e
            ) from e

        if not response.is_success:
            raise ResolutionError(
                f"API error: HTTP {response.status_code}", url=url
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ResolutionError(
                "Resolution service returned invalid JSON", url=url, cause=e
            ) from e

        download_url = first_media_url(data)
        if not download_url:
            raise NoMediaFoundError(url)

        logger.debug("Resolved %s to %s", url, download_url)
        return download_url

    def _fetch_token(self, url: str) -> str:
        """Scrape the authentication token from the service landing page."""
        try:
            html = self._retrying.copy()(self._get_token_page)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error("Error fetching token: %s", e)
            raise ResolutionError("Error fetching token", url=url, cause=e) from e

        token = extract_token(html)
        if not token:
            raise ResolutionError("Token not found or empty", url=url)
        return token

    def _get_token_page(self) -> str:
        response = self._client.get(self.service_url or "", timeout=self.timeout)
        response.raise_for_status()
        return response.text


def extract_token(html: str) -> str | None:
    """Read the value of the element with id "token" from an HTML page."""
    element = BeautifulSoup(html, "html.parser").find(id="token")
    if element is None:
        return None
    value = element.get("value")
    if isinstance(value, list):
        value = " ".join(value)
    value = value.strip() if value else ""
    return value or None


def first_media_url(data: Any) -> str | None:
    """Return ``medias[0].url`` from a video-data response, if present."""
    if not isinstance(data, dict):
        return None
    medias = data.get("medias")
    if not isinstance(medias, list) or not medias:
        return None
    first = medias[0]
    if not isinstance(first, dict):
        return None
    media_url = first.get("url")
    return media_url if isinstance(media_url, str) and media_url else None
