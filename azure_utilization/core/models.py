"""
Rate card and utilization data models.

Immutable records for the rate catalog, usage records and the priced
line items derived from them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple


class Granularity(Enum):
    """Aggregation granularity for utilization queries."""
    DAILY = "daily"
    HOURLY = "hourly"


@dataclass(frozen=True)
class UsageWindow:
    """Time range covered by a utilization query."""
    start: datetime
    end: datetime

    def __post_init__(self):
        """Validate the window is not inverted."""
        if self.end < self.start:
            raise ValueError("usage window end must not precede start")

    @classmethod
    def trailing_days(cls, days: int, now: datetime) -> "UsageWindow":
        """Build a window covering the last ``days`` days up to ``now``."""
        if days <= 0:
            raise ValueError("days must be > 0")
        return cls(start=now - timedelta(days=days), end=now)


@dataclass(frozen=True)
class RateCatalogEntry:
    """Pricing for a single meter.

    ``rates`` is ordered by ascending tier threshold, so ``rates[0]``
    is the base rate.
    """
    resource_id: str
    rates: Tuple[Decimal, ...]
    name: str = ""
    category: str = ""
    subcategory: str = ""
    region: str = ""
    unit: str = ""
    included_quantity: Decimal = Decimal("0")

    def __post_init__(self):
        """Validate the entry carries an id and at least one rate."""
        if not self.resource_id:
            raise ValueError("resource_id is required")
        if not self.rates:
            raise ValueError(f"Meter {self.resource_id} has no rates")

    @property
    def base_rate(self) -> Decimal:
        """Unit price of the first tier."""
        return self.rates[0]


@dataclass(frozen=True)
class RateCatalog:
    """Read-only mapping from meter id to its catalog entry."""
    entries: Mapping[str, RateCatalogEntry]
    currency: str = ""
    locale: str = ""
    is_tax_included: bool = False

    def __post_init__(self):
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    @classmethod
    def from_entries(cls, entries: Iterable[RateCatalogEntry], **kwargs) -> "RateCatalog":
        """Build a catalog, rejecting duplicate meter ids.

        Raises:
            ValueError: If two entries share a resource id
        """
        by_id = {}
        for entry in entries:
            if entry.resource_id in by_id:
                raise ValueError(f"Duplicate meter id in rate card: {entry.resource_id}")
            by_id[entry.resource_id] = entry
        return cls(entries=by_id, **kwargs)

    def get(self, resource_id: str) -> Optional[RateCatalogEntry]:
        """Exact, case-sensitive lookup."""
        return self.entries.get(resource_id)

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self.entries

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class UsageRecord:
    """Quantity of a resource consumed over a time range."""
    resource_id: str
    resource_name: str
    category: str
    region: str
    quantity: Decimal
    usage_start_time: datetime
    usage_end_time: datetime
    subcategory: str = ""
    unit: str = ""
    instance_uri: Optional[str] = None

    def __post_init__(self):
        """Validate quantity and time range."""
        if self.quantity < 0:
            raise ValueError("quantity must be >= 0")
        if self.usage_end_time < self.usage_start_time:
            raise ValueError("usage_end_time must not precede usage_start_time")


@dataclass(frozen=True)
class LineItem:
    """A usage record priced against the rate card."""
    category: str
    subcategory: str
    id: str
    name: str
    region: str
    quantity: Decimal
    price: Decimal
    usage_start_time: datetime
    usage_end_time: datetime
    resource_uri: Optional[str] = field(default=None)
