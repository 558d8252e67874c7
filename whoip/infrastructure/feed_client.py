"""HTTP implementation of the FeedFetcher port."""

import asyncio
import logging

import httpx

from ..application.domain import FeedFetcher
from ..application.exceptions import HTTPStatusError, TransportError

from .decorators import retry_on_network_error


class HttpFeedFetcher(FeedFetcher):
    """A fetcher that downloads feed documents with a plain HTTP GET."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float,
        total_timeout: float = 15.0,
        retry_attempts: int = 2,
        retry_min_wait: float = 0.5,
        retry_max_wait: float = 4,
    ):
        """
        Initializes the fetcher adapter.

        `timeout` bounds each phase of a request (connect, read, ...);
        `total_timeout` bounds a whole attempt, so a server trickling bytes
        cannot hold a refresh forever.
        """
        self.client = client
        self.timeout = timeout
        self.total_timeout = total_timeout
        self.logger = logging.getLogger(self.__class__.__name__)
        self._execute_with_retry = retry_on_network_error(
            attempts=retry_attempts,
            min_wait=retry_min_wait,
            max_wait=retry_max_wait,
        )(self._execute_fetch)

    async def _execute_fetch(self, url: str) -> httpx.Response:
        """Executes the raw HTTP GET request within the overall deadline."""
        try:
            return await asyncio.wait_for(
                self.client.get(url, timeout=self.timeout),
                timeout=self.total_timeout,
            )
        except asyncio.TimeoutError as e:
            raise httpx.TimeoutException(
                f"No complete answer within {self.total_timeout}s"
            ) from e

    async def fetch(self, url: str) -> bytes:
        """
        Downloads a feed document.

        This method serves as the public contract fulfillment for the
        FeedFetcher port.

        Args:
            url: The feed URL.

        Returns:
            The raw response body.

        Raises:
            TransportError: If the server could not be reached in time or
                            its answer could not be read.
            HTTPStatusError: If the server answered with anything but 200.
        """

        try:
            response = await self._execute_with_retry(url)
        except httpx.RequestError as e:
            raise TransportError(
                f"Failed to fetch {url}: {type(e).__name__}: {e}"
            ) from e

        if response.status_code != httpx.codes.OK:
            raise HTTPStatusError(url, response.status_code)

        self.logger.debug(f"Fetched {len(response.content)} bytes from {url}")
        return response.content
