"""
Usage-to-price reconciliation.

Joins utilization records to the rate card by meter id and prices them
at the base tier rate.

Known simplification: tiered pricing, included quantities and proration
are not applied, so prices will not match the partner reconciliation
file for meters with volume tiers.
"""

import logging
from enum import Enum
from typing import Iterable, List

from .errors import PriceLookupFailed
from .models import LineItem, RateCatalog, UsageRecord

logger = logging.getLogger(__name__)


class LookupPolicy(Enum):
    """How to react to usage whose meter is missing from the rate card."""
    FAIL_FAST = "fail_fast"  # Raise on the first missing meter
    COLLECT = "collect"      # Consume everything, then raise with all missing meters


def price_record(catalog: RateCatalog, record: UsageRecord) -> LineItem:
    """Price a single usage record.

    Raises:
        PriceLookupFailed: If the record's meter is not in the catalog
    """
    entry = catalog.get(record.resource_id)
    if entry is None:
        raise PriceLookupFailed([record.resource_id])

    return LineItem(
        category=record.category,
        subcategory=record.subcategory,
        id=record.resource_id,
        name=record.resource_name,
        region=record.region,
        quantity=record.quantity,
        price=entry.base_rate * record.quantity,
        usage_start_time=record.usage_start_time,
        usage_end_time=record.usage_end_time,
        resource_uri=record.instance_uri,
    )


def reconcile(
    catalog: RateCatalog,
    usage: Iterable[UsageRecord],
    policy: LookupPolicy = LookupPolicy.FAIL_FAST,
) -> List[LineItem]:
    """Join usage records to the rate card, preserving input order.

    Args:
        catalog: Rate card keyed by meter id
        usage: Usage records, consumed exactly once
        policy: Whether to stop at the first missing meter or report all of them

    Returns:
        One LineItem per usage record, in input order

    Raises:
        PriceLookupFailed: If any record's meter is missing; no items are returned
    """
    items: List[LineItem] = []
    missing: List[str] = []

    for record in usage:
        if record.resource_id not in catalog:
            logger.warning("Meter %s missing from rate card", record.resource_id)
            if policy is LookupPolicy.FAIL_FAST:
                raise PriceLookupFailed([record.resource_id])
            if record.resource_id not in missing:
                missing.append(record.resource_id)
            continue
        items.append(price_record(catalog, record))

    if missing:
        raise PriceLookupFailed(missing)

    logger.debug("Reconciled %d usage records", len(items))
    return items
