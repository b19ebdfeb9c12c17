"""HTTP client for the Ticketmaster Discovery API."""
import logging
import time
from typing import Any, Dict

import requests

from sources.errors import (
    DecodeFailure,
    HTTPFailure,
    InvalidRequest,
    NetworkFailure,
    RateLimited,
)

logger = logging.getLogger(__name__)


class TicketmasterClient:
    """Client for the Discovery v2 events endpoint."""

    BASE_URL = "https://app.ticketmaster.com/discovery/v2"

    def __init__(
        self,
        api_key: str,
        base_url: str = BASE_URL,
        timeout: int = 15,
        max_retries: int = 3,
        retry_base_delay: float = 1.0
    ):
        """
        Initialize the client.

        Args:
            api_key: Discovery API consumer key
            base_url: API root (default: production Discovery v2)
            timeout: HTTP request timeout in seconds (default: 15)
            max_retries: Attempts made on transport errors (default: 3)
            retry_base_delay: First backoff delay in seconds
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_base_delay = retry_base_delay

    @property
    def events_url(self) -> str:
        return f"{self.base_url}/events.json"

    def get_events(self, params: Dict[str, str]) -> Dict[str, Any]:
        """
        Fetch one page of events.

        Args:
            params: Discovery API query parameters (apikey is added here)

        Returns:
            Decoded JSON payload

        Raises:
            InvalidRequest: If no API key is configured
            NetworkFailure: If every attempt failed at the transport level
            RateLimited: On HTTP 429
            HTTPFailure: On any other non-200 status
            DecodeFailure: If the body is not a JSON object
        """
        if not self.api_key:
            raise InvalidRequest("No API key configured (set TICKETMASTER_API_KEY)")

        query = dict(params)
        query['apikey'] = self.api_key

        response = self._get_with_retry(query)

        if response.status_code != 200:
            logger.warning(
                f"Ticketmaster responded with HTTP {response.status_code}"
            )
            if response.status_code == 429:
                raise RateLimited()
            raise HTTPFailure(response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise DecodeFailure(f"Response body is not valid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise DecodeFailure("Response body is not a JSON object")
        return payload

    def _get_with_retry(self, query: Dict[str, str]) -> requests.Response:
        """
        Issue the GET request, retrying transport errors with backoff.

        Status code responses are returned as-is and never retried.
        """
        for attempt in range(self.max_retries):
            try:
                logger.info(
                    f"Fetching Ticketmaster events "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                return requests.get(
                    self.events_url,
                    params=query,
                    timeout=self.timeout
                )
            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    delay = self.retry_base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} attempts failed. Last error: {e}"
                    )
                    raise NetworkFailure(f"Could not reach Ticketmaster: {e}") from e
