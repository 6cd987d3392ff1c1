"""Async client for the Amber Electric public REST API."""

import asyncio
import datetime as dt
import os
from enum import Enum
from typing import Any, Optional, Sequence, TypeVar, Union

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from .models import (
    INTERVALS, RENEWABLES, SITES, USAGE,
    ActualInterval, ActualRenewable, CurrentInterval, CurrentRenewable,
    ForecastInterval, ForecastRenewable, Resolution, Site, State, Usage,
)

logger = structlog.get_logger(__name__)

API_BASE_URL = "https://api.amber.com.au/v1/"
API_KEY_ENV = "AMBER_API_KEY"

RATE_LIMIT_RESET_HEADER = "RateLimit-Reset"
RATE_LIMIT_REMAINING_HEADER = "RateLimit-Remaining"
DEFAULT_RETRY_AFTER = 60

T = TypeVar("T")

IntervalList = list[Union[ActualInterval, ForecastInterval, CurrentInterval]]
RenewableList = list[Union[ActualRenewable, ForecastRenewable, CurrentRenewable]]


def build_query(*pairs: tuple[str, Any]) -> list[tuple[str, str]]:
    """
    Encode query parameters, dropping any whose value is ``None``.

    Dates are sent in ISO calendar form and enums by their value, so
    ``Resolution.THIRTY_MINUTE`` becomes ``"30"``. A datetime is sent as
    its calendar date.
    """
    query = []
    for key, value in pairs:
        if value is None:
            continue
        if isinstance(value, dt.datetime):
            value = value.date().isoformat()
        elif isinstance(value, dt.date):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        query.append((key, str(value)))
    return query


def _parse_retry_after(value: Optional[str]) -> int:
    """Seconds until the rate limit window resets, or the 60s fallback."""
    if value is None:
        return DEFAULT_RETRY_AFTER
    try:
        seconds = int(value.strip())
    except ValueError:
        return DEFAULT_RETRY_AFTER
    return seconds if seconds >= 0 else DEFAULT_RETRY_AFTER


def _check_count(name: str, value: Optional[int]) -> Optional[int]:
    """Interval counts are optional but never negative."""
    if value is not None and value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


class AmberClient:
    """
    Async client for Amber Electric's public API.

    Every endpoint goes through a single GET path that adds bearer auth,
    waits out HTTP 429 responses for as long as the server's
    ``RateLimit-Reset`` header says (60 seconds when it is missing), and
    decodes the body into typed models.

    Example:
        >>> async with AmberClient(api_key="psk_xxx") as client:
        ...     sites = await client.get_sites()
        ...     prices = await client.get_current_prices(sites[0].id, next=8)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: str = API_BASE_URL,
        max_retries: int = 3,
        retry_on_rate_limit: bool = True,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the Amber client.

        Args:
            api_key: Amber API key (starts with psk_). Read once from the
                AMBER_API_KEY environment variable when not given.
            base_url: API root, override for testing or proxies
            max_retries: Retry attempts on HTTP 429 before giving up
            retry_on_rate_limit: Set False to fail immediately on HTTP 429
            timeout: Request timeout in seconds (ignored with http_client)
            http_client: Pre-built httpx.AsyncClient to send requests with.
                It is left open when this client closes.
        """
        if max_retries < 0:
            raise ConfigurationError(f"max_retries must be >= 0, got {max_retries}")

        if api_key is None:
            api_key = os.environ.get(API_KEY_ENV)

        self._api_key: Optional[str] = api_key or None
        self._base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self._max_retries = max_retries
        self._retry_on_rate_limit = retry_on_rate_limit
        self._timeout = timeout

        self._http: Optional[httpx.AsyncClient] = http_client
        self._owns_http = http_client is None

        logger.debug(
            "amber_client_created",
            base_url=self._base_url,
            authenticated=self._api_key is not None,
            max_retries=max_retries,
            retry_on_rate_limit=retry_on_rate_limit,
        )

    @property
    def api_key(self) -> Optional[str]:
        return self._api_key

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @property
    def retry_on_rate_limit(self) -> bool:
        return self._retry_on_rate_limit

    async def __aenter__(self) -> "AmberClient":
        """Async context manager entry."""
        await self._get_http()
        return self

    async def __aexit__(self, *args) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None

    async def _get_http(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._http

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def _get(
        self,
        path: str,
        params: Sequence[tuple[str, str]],
        adapter: TypeAdapter[T],
    ) -> T:
        """
        GET ``path`` relative to the base URL and decode the JSON body.

        HTTP 429 is retried in a loop, sleeping for the advertised reset time
        between attempts, until ``max_retries`` is reached. Every other
        failure is raised straight away.

        Raises:
            TransportError: The request never produced a response
            RateLimitExceededError: 429 with retries disabled
            RateLimitExhaustedError: 429 after max_retries retries
            UnexpectedStatusError: Any other non-2xx response
            DeserializationError: Body did not match the expected models
        """
        url = f"{self._base_url}{path}"
        params = list(params)
        headers = self._headers()
        http = await self._get_http()

        attempt = 0
        while True:
            logger.debug(
                "amber_request",
                url=url,
                params=params,
                attempt=attempt + 1,
                max_attempts=self._max_retries + 1,
            )

            try:
                resp = await http.get(url, params=params, headers=headers)
            except httpx.HTTPError as e:
                logger.warning("amber_transport_error", url=url, error=str(e))
                raise TransportError(f"GET {url} failed: {e}") from e

            logger.debug(
                "amber_response",
                url=url,
                status_code=resp.status_code,
                rate_limit_remaining=resp.headers.get(RATE_LIMIT_REMAINING_HEADER),
            )

            if resp.status_code == 429:
                retry_after = _parse_retry_after(resp.headers.get(RATE_LIMIT_RESET_HEADER))
                if not self._retry_on_rate_limit:
                    raise RateLimitExceededError(retry_after)
                if attempt >= self._max_retries:
                    raise RateLimitExhaustedError(attempt, retry_after)

                logger.info(
                    "amber_rate_limited",
                    url=url,
                    retry_after=retry_after,
                    attempt=attempt + 1,
                )
                await asyncio.sleep(retry_after)
                attempt += 1
                continue

            if not resp.is_success:
                body = resp.text or "<body not available>"
                logger.warning("amber_unexpected_status", url=url, status_code=resp.status_code)
                raise UnexpectedStatusError(resp.status_code, body)

            try:
                return adapter.validate_json(resp.content)
            except ValidationError as e:
                logger.error(
                    "amber_deserialization_error",
                    url=url,
                    errors=e.error_count(),
                )
                raise DeserializationError(f"Could not decode response from {url}: {e}") from e

    @staticmethod
    def _check_resolution(records: Sequence[Any], resolution: Optional[Resolution]) -> None:
        """Every record must span the resolution that was asked for."""
        if resolution is None:
            return
        for record in records:
            if record.duration != resolution:
                raise DeserializationError(
                    f"Requested {int(resolution)}min resolution but received a "
                    f"{record.duration}min {record.kind}"
                )

    # -------------------------------------------------------------------------
    # Sites
    # -------------------------------------------------------------------------

    async def get_sites(self) -> list[Site]:
        """
        Get all sites linked to the account.

        Requires an API key.

        Returns:
            List of Site objects
        """
        return await self._get("sites", [], SITES)

    # -------------------------------------------------------------------------
    # Prices
    # -------------------------------------------------------------------------

    async def get_prices(
        self,
        site_id: str,
        start_date: Optional[dt.date] = None,
        end_date: Optional[dt.date] = None,
        resolution: Optional[Resolution] = None,
    ) -> IntervalList:
        """
        Get historical prices for a site.

        The API caps the range at 7 days and defaults both dates to today.

        Args:
            site_id: Site ID from get_sites()
            start_date: First day to return (optional)
            end_date: Last day to return (optional)
            resolution: 5 or 30 minute intervals (defaults to the billing interval)

        Returns:
            List of intervals, grouped General > Controlled Load > Feed In
        """
        resolution = Resolution(resolution) if resolution is not None else None
        intervals = await self._get(
            f"sites/{site_id}/prices",
            build_query(
                ("startDate", start_date),
                ("endDate", end_date),
                ("resolution", resolution),
            ),
            INTERVALS,
        )
        self._check_resolution(intervals, resolution)
        return intervals

    async def get_current_prices(
        self,
        site_id: str,
        previous: Optional[int] = None,
        next: Optional[int] = None,
        resolution: Optional[Resolution] = None,
    ) -> IntervalList:
        """
        Get the current price for a site, with optional history and forecast.

        Args:
            site_id: Site ID from get_sites()
            previous: Number of past intervals to include
            next: Number of forecast intervals to include
            resolution: 5 or 30 minute intervals (defaults to the billing interval)

        Returns:
            List of intervals, grouped General > Controlled Load > Feed In
        """
        resolution = Resolution(resolution) if resolution is not None else None
        intervals = await self._get(
            f"sites/{site_id}/prices/current",
            build_query(
                ("previous", _check_count("previous", previous)),
                ("next", _check_count("next", next)),
                ("resolution", resolution),
            ),
            INTERVALS,
        )
        self._check_resolution(intervals, resolution)
        return intervals

    # -------------------------------------------------------------------------
    # Renewables
    # -------------------------------------------------------------------------

    async def get_current_renewables(
        self,
        state: Union[State, str],
        previous: Optional[int] = None,
        next: Optional[int] = None,
        resolution: Optional[Resolution] = None,
    ) -> RenewableList:
        """
        Get the renewable share of the grid for a state.

        This endpoint does not need an API key.

        Args:
            state: nsw, vic, qld or sa
            previous: Number of past intervals to include
            next: Number of forecast intervals to include
            resolution: 5 or 30 minute intervals (default 30)

        Returns:
            List of renewables entries
        """
        state = State(state)
        resolution = Resolution(resolution) if resolution is not None else None
        renewables = await self._get(
            f"state/{state.value}/renewables/current",
            build_query(
                ("previous", _check_count("previous", previous)),
                ("next", _check_count("next", next)),
                ("resolution", resolution),
            ),
            RENEWABLES,
        )
        self._check_resolution(renewables, resolution)
        return renewables

    # -------------------------------------------------------------------------
    # Usage
    # -------------------------------------------------------------------------

    async def get_usage(
        self,
        site_id: str,
        start_date: dt.date,
        end_date: dt.date,
    ) -> list[Usage]:
        """
        Get metered usage for a site.

        The range may not exceed 7 days and only the last 90 days are kept.

        Args:
            site_id: Site ID from get_sites()
            start_date: First day to return
            end_date: Last day to return

        Returns:
            List of Usage records, grouped General > Controlled Load > Feed In
        """
        if start_date is None or end_date is None:
            raise ValueError("get_usage needs both start_date and end_date")
        return await self._get(
            f"sites/{site_id}/usage",
            build_query(("startDate", start_date), ("endDate", end_date)),
            USAGE,
        )


# -----------------------------------------------------------------------------
# Exceptions
# -----------------------------------------------------------------------------

class AmberError(Exception):
    """Base exception for Open Amber errors."""
    pass


class ConfigurationError(AmberError):
    """Missing or invalid configuration."""
    pass


class TransportError(AmberError):
    """The request failed before a response was received."""
    pass


class DeserializationError(AmberError):
    """The response body did not match the expected models."""
    pass


class RateLimitExceededError(AmberError):
    """HTTP 429 received while automatic retries are disabled."""

    def __init__(self, retry_after: int):
        super().__init__(f"Rate limit exceeded, retry after {retry_after}s")
        self.retry_after = retry_after


class RateLimitExhaustedError(AmberError):
    """HTTP 429 kept coming back after every retry was spent."""

    def __init__(self, attempts: int, retry_after: int):
        super().__init__(
            f"Rate limit still exceeded after {attempts} retries, retry after {retry_after}s"
        )
        self.attempts = attempts
        self.retry_after = retry_after


class UnexpectedStatusError(AmberError):
    """Any non-2xx response other than HTTP 429."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Unexpected HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body
