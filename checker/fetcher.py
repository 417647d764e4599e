"""
Retrieval of the signed version metadata token.
"""

from typing import Dict, Optional

import httpx
import structlog

from .errors import FetchError

logger = structlog.get_logger(__name__)


class MetadataFetcher:
    """
    Fetches the raw metadata token with a single GET.

    There is no retry loop; the next scheduled check is the retry.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the fetcher.

        Args:
            url: Metadata endpoint
            timeout: Request timeout in seconds
            headers: Extra request headers
            transport: Optional httpx transport, used by tests
        """
        self.url = url
        self.logger = logger.bind(component="metadata_fetcher")

        self.client_config = {
            "timeout": timeout,
            "headers": headers or {},
            "follow_redirects": True,
        }
        if transport is not None:
            self.client_config["transport"] = transport

    async def fetch(self) -> str:
        """
        Download the metadata token.

        Returns:
            Response body with surrounding whitespace removed

        Raises:
            FetchError: on network errors, timeouts and non-2xx responses
        """
        try:
            async with httpx.AsyncClient(**self.client_config) as client:
                response = await client.get(self.url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"Metadata endpoint returned HTTP {e.response.status_code}",
                status_code=e.response.status_code
            ) from e
        except httpx.TimeoutException as e:
            raise FetchError(f"Timed out fetching metadata: {e}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch metadata: {e}") from e

        self.logger.debug(
            "Fetched metadata token",
            url=self.url,
            status_code=response.status_code,
            length=len(response.text)
        )
        return response.text.strip()
