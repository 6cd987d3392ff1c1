"""
Data models for the Amber Electric API.

Responses are decoded into frozen Pydantic models. Polymorphic resources
(price intervals and renewable entries) are tagged unions discriminated by the
``type`` field of each JSON object, so an unknown tag is a validation error
rather than a silently-defaulted variant.
"""

import datetime as dt
from enum import Enum, IntEnum
from typing import Annotated, Literal, Optional, Union

from pydantic import (
    AwareDatetime, BaseModel, ConfigDict, Field, TypeAdapter, model_validator,
)
from pydantic.alias_generators import to_camel


# -----------------------------------------------------------------------------
# Request parameters
# -----------------------------------------------------------------------------

class State(str, Enum):
    """Australian states covered by the renewables endpoint."""

    NSW = "nsw"
    VIC = "vic"
    QLD = "qld"
    SA = "sa"

    def __str__(self) -> str:
        return self.value


class Resolution(IntEnum):
    """Interval length in minutes."""

    FIVE_MINUTE = 5
    THIRTY_MINUTE = 30

    def __str__(self) -> str:
        return str(self.value)


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class ChannelType(str, Enum):
    """Meter channel kind."""

    GENERAL = "general"
    CONTROLLED_LOAD = "controlledLoad"
    FEED_IN = "feedIn"


class SiteStatus(str, Enum):
    """Lifecycle status of a site."""

    PENDING = "pending"
    ACTIVE = "active"
    CLOSED = "closed"


class SpikeStatus(str, Enum):
    """Whether an interval is in, or close to, a price spike."""

    NONE = "none"
    POTENTIAL = "potential"
    SPIKE = "spike"


class PriceDescriptor(str, Enum):
    """Qualitative description of a price relative to the site's usual range."""

    NEGATIVE = "negative"  # deprecated, the API now sends extremelyLow
    EXTREMELY_LOW = "extremelyLow"
    VERY_LOW = "veryLow"
    LOW = "low"
    NEUTRAL = "neutral"
    HIGH = "high"
    SPIKE = "spike"

    def normalized(self) -> "PriceDescriptor":
        """Map the deprecated ``negative`` descriptor onto ``extremelyLow``."""
        if self is PriceDescriptor.NEGATIVE:
            return PriceDescriptor.EXTREMELY_LOW
        return self


class RenewableDescriptor(str, Enum):
    """Renewable share of the grid, best first."""

    BEST = "best"
    GREAT = "great"
    OK = "ok"
    NOT_GREAT = "notGreat"
    WORST = "worst"

    @property
    def rank(self) -> int:
        """Position in the best-to-worst ordering (0 is best)."""
        return list(RenewableDescriptor).index(self)


class UsageQuality(str, Enum):
    """Estimated readings may be revised; billable ones appear on the bill."""

    ESTIMATED = "estimated"
    BILLABLE = "billable"


class TariffPeriod(str, Enum):
    """Time-of-use period an interval falls in."""

    OFF_PEAK = "offPeak"
    SHOULDER = "shoulder"
    SOLAR_SPONGE = "solarSponge"
    PEAK = "peak"


class TariffSeason(str, Enum):
    """Tariff season or day type an interval falls in."""

    DEFAULT = "default"
    SUMMER = "summer"
    AUTUMN = "autumn"
    WINTER = "winter"
    SPRING = "spring"
    NON_SUMMER = "nonSummer"
    HOLIDAY = "holiday"
    WEEKEND = "weekend"
    WEEKEND_HOLIDAY = "weekendHoliday"
    WEEKDAY = "weekday"


# -----------------------------------------------------------------------------
# Sites
# -----------------------------------------------------------------------------

class _Model(BaseModel):
    """Read-only model keyed by the API's camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Channel(_Model):
    """A meter channel on a site.

    Attributes:
        identifier: Channel identifier, e.g. ``E1``
        channel_type: General, controlled load or feed in
        tariff: Network tariff code
    """

    identifier: str
    channel_type: ChannelType = Field(alias="type")
    tariff: str

    def __str__(self) -> str:
        return f"{self.identifier} ({self.channel_type.value}, tariff {self.tariff})"


class Site(_Model):
    """An electricity site linked to the account.

    Attributes:
        id: Unique site identifier
        nmi: National Metering Identifier
        channels: Meter channels on the site
        network: Name of the distribution network
        status: Pending, active or closed
        active_from: Date the site became active, if it has
        closed_on: Date the site closed, if it has
        interval_length: Billing interval length in minutes (5 or 30)
    """

    id: str
    nmi: str
    channels: list[Channel]
    network: str
    status: SiteStatus
    active_from: Optional[dt.date] = None
    closed_on: Optional[dt.date] = None
    interval_length: Literal[5, 30]

    def __str__(self) -> str:
        channels = ", ".join(str(c) for c in self.channels) or "no channels"
        return (
            f"Site {self.id} (NMI {self.nmi}) on {self.network}: "
            f"{self.status.value}, {self.interval_length}min intervals, {channels}"
        )


# -----------------------------------------------------------------------------
# Price intervals
# -----------------------------------------------------------------------------

class Range(_Model):
    """Price range seen while the current interval is volatile."""

    min: float
    max: float


class AdvancedPrice(_Model):
    """Price prediction expressed as a low/predicted/high band."""

    low: float
    predicted: float
    high: float


class TariffInformation(_Model):
    """Time-of-use tariff metadata attached to an interval."""

    period: Optional[TariffPeriod] = None
    season: Optional[TariffSeason] = None
    block: Optional[int] = None
    demand_window: Optional[bool] = None


class _Timed(_Model):
    """Fields shared by every time-boxed record."""

    type: str
    duration: int = Field(gt=0)
    date: dt.date
    nem_time: AwareDatetime
    start_time: AwareDatetime
    end_time: AwareDatetime
    renewables: float = Field(ge=0, le=100)

    @model_validator(mode="after")
    def check_time_order(self):
        if self.start_time >= self.end_time:
            raise ValueError(
                f"startTime {self.start_time.isoformat()} must be before "
                f"endTime {self.end_time.isoformat()}"
            )
        return self

    @property
    def kind(self) -> str:
        """The variant tag as sent by the API."""
        return self.type

    @property
    def is_actual(self) -> bool:
        return self.type.startswith("Actual")

    @property
    def is_forecast(self) -> bool:
        return self.type.startswith("Forecast")

    @property
    def is_current(self) -> bool:
        return self.type.startswith("Current")


class BaseInterval(_Timed):
    """Fields common to every price interval.

    Prices are in c/kWh including GST. ``nem_time`` is the settlement
    timestamp in NEM time; ``start_time`` and ``end_time`` are UTC.
    """

    spot_per_kwh: float
    per_kwh: float
    channel_type: ChannelType
    tariff_information: Optional[TariffInformation] = None
    spike_status: SpikeStatus
    descriptor: PriceDescriptor

    def __str__(self) -> str:
        return (
            f"{self.type} {self.start_time.isoformat()} to {self.end_time.isoformat()} "
            f"[{self.channel_type.value}] {self.per_kwh:.2f}c/kWh "
            f"({self.descriptor.value}, {self.renewables:.0f}% renewables)"
        )


class ActualInterval(BaseInterval):
    """Confirmed price for a completed interval."""

    type: Literal["ActualInterval"]


class ForecastInterval(BaseInterval):
    """Predicted price for a future interval."""

    type: Literal["ForecastInterval"]
    range: Optional[Range] = None
    advanced_price: Optional[AdvancedPrice] = None


class CurrentInterval(BaseInterval):
    """Price for the interval in progress."""

    type: Literal["CurrentInterval"]
    range: Optional[Range] = None
    estimate: bool
    advanced_price: Optional[AdvancedPrice] = None


Interval = Annotated[
    Union[ActualInterval, ForecastInterval, CurrentInterval],
    Field(discriminator="type"),
]


# -----------------------------------------------------------------------------
# Usage
# -----------------------------------------------------------------------------

class Usage(BaseInterval):
    """Metered consumption or generation for one interval of one channel.

    ``kwh`` is negative for energy exported to the grid.
    """

    type: Literal["Usage"] = "Usage"
    channel_identifier: str
    kwh: float
    quality: UsageQuality
    cost: float

    def __str__(self) -> str:
        return (
            f"{self.channel_identifier} {self.start_time.isoformat()}: "
            f"{self.kwh:.3f} kWh, ${self.cost:.2f} ({self.quality.value})"
        )


# -----------------------------------------------------------------------------
# Renewables
# -----------------------------------------------------------------------------

class BaseRenewable(_Timed):
    """Fields common to every renewables entry."""

    descriptor: RenewableDescriptor

    def __str__(self) -> str:
        return (
            f"{self.type} {self.start_time.isoformat()} to {self.end_time.isoformat()}: "
            f"{self.renewables:.0f}% renewables ({self.descriptor.value})"
        )


class ActualRenewable(BaseRenewable):
    type: Literal["ActualRenewable"]


class ForecastRenewable(BaseRenewable):
    type: Literal["ForecastRenewable"]


class CurrentRenewable(BaseRenewable):
    type: Literal["CurrentRenewable"]


Renewable = Annotated[
    Union[ActualRenewable, ForecastRenewable, CurrentRenewable],
    Field(discriminator="type"),
]


# -----------------------------------------------------------------------------
# Decoding
# -----------------------------------------------------------------------------

SITES = TypeAdapter(list[Site])
INTERVALS = TypeAdapter(list[Interval])
RENEWABLES = TypeAdapter(list[Renewable])
USAGE = TypeAdapter(list[Usage])


def parse_sites(data: Union[str, bytes]) -> list[Site]:
    """Decode a JSON array of sites."""
    return SITES.validate_json(data)


def parse_intervals(data: Union[str, bytes]) -> list[Union[ActualInterval, ForecastInterval, CurrentInterval]]:
    """Decode a JSON array of tagged price intervals."""
    return INTERVALS.validate_json(data)


def parse_renewables(data: Union[str, bytes]) -> list[Union[ActualRenewable, ForecastRenewable, CurrentRenewable]]:
    """Decode a JSON array of tagged renewables entries."""
    return RENEWABLES.validate_json(data)


def parse_usage(data: Union[str, bytes]) -> list[Usage]:
    """Decode a JSON array of usage records."""
    return USAGE.validate_json(data)
