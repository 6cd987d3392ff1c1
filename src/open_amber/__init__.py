"""
Open Amber - Modern async Python client for the Amber Electric API.

Covers the public REST API:
- Sites linked to your account
- Historical and current prices (actual, current and forecast intervals)
- Renewable share of the grid per state
- Metered usage and cost

Example:
    >>> from open_amber import AmberClient, Resolution
    >>>
    >>> async with AmberClient(api_key="psk_xxx") as client:
    ...     sites = await client.get_sites()
    ...     prices = await client.get_current_prices(
    ...         sites[0].id, next=8, resolution=Resolution.THIRTY_MINUTE
    ...     )
    ...     for interval in prices:
    ...         print(interval)
"""

__version__ = "0.1.0"

from .client import (
    AmberClient,
    AmberError,
    ConfigurationError,
    TransportError,
    DeserializationError,
    RateLimitExceededError,
    RateLimitExhaustedError,
    UnexpectedStatusError,
)
from .models import (
    State,
    Resolution,
    ChannelType,
    SiteStatus,
    SpikeStatus,
    PriceDescriptor,
    RenewableDescriptor,
    UsageQuality,
    TariffPeriod,
    TariffSeason,
    Channel,
    Site,
    Range,
    AdvancedPrice,
    TariffInformation,
    BaseInterval,
    ActualInterval,
    ForecastInterval,
    CurrentInterval,
    Interval,
    Usage,
    BaseRenewable,
    ActualRenewable,
    ForecastRenewable,
    CurrentRenewable,
    Renewable,
    parse_sites,
    parse_intervals,
    parse_renewables,
    parse_usage,
)

__all__ = [
    # Client
    "AmberClient",
    # Exceptions
    "AmberError",
    "ConfigurationError",
    "TransportError",
    "DeserializationError",
    "RateLimitExceededError",
    "RateLimitExhaustedError",
    "UnexpectedStatusError",
    # Request parameters
    "State",
    "Resolution",
    # Enums
    "ChannelType",
    "SiteStatus",
    "SpikeStatus",
    "PriceDescriptor",
    "RenewableDescriptor",
    "UsageQuality",
    "TariffPeriod",
    "TariffSeason",
    # Models
    "Channel",
    "Site",
    "Range",
    "AdvancedPrice",
    "TariffInformation",
    "BaseInterval",
    "ActualInterval",
    "ForecastInterval",
    "CurrentInterval",
    "Interval",
    "Usage",
    "BaseRenewable",
    "ActualRenewable",
    "ForecastRenewable",
    "CurrentRenewable",
    "Renewable",
    # Decoding
    "parse_sites",
    "parse_intervals",
    "parse_renewables",
    "parse_usage",
]
