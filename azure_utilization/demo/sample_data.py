# azure_utilization/demo/sample_data.py

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List

from azure_utilization.core.models import RateCatalog, RateCatalogEntry, UsageRecord

SUBSCRIPTION_URI = (
    "/subscriptions/00000000-0000-0000-0000-000000000000"
    "/resourceGroups/demo-rg/providers"
)


def sample_rate_card() -> RateCatalog:
    """Small offline rate card for the demo command."""
    return RateCatalog.from_entries(
        [
            RateCatalogEntry(
                resource_id="meter-storage-lrs",
                rates=(Decimal("0.024"), Decimal("0.0236")),
                name="Standard LRS Data Stored",
                category="Storage",
                subcategory="Locally Redundant",
                region="US East",
                unit="1 GB/Month",
            ),
            RateCatalogEntry(
                resource_id="meter-vm-d2",
                rates=(Decimal("0.096"),),
                name="Compute Hours",
                category="Virtual Machines",
                subcategory="Standard_D2 VM",
                region="US East",
                unit="1 Hour",
            ),
            RateCatalogEntry(
                resource_id="meter-bandwidth-out",
                rates=(Decimal("0"), Decimal("0.087")),
                name="Data Transfer Out (GB)",
                category="Networking",
                subcategory="",
                region="Zone 1",
                unit="1 GB",
                included_quantity=Decimal("5"),
            ),
        ],
        currency="USD",
        locale="en-US",
    )


def sample_usage(days: int = 2) -> List[UsageRecord]:
    """Daily usage for each sample meter over the last ``days`` days."""
    end = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    records = []
    for offset in range(days, 0, -1):
        start = end - timedelta(days=offset)
        stop = start + timedelta(days=1)
        records.extend([
            UsageRecord(
                resource_id="meter-storage-lrs",
                resource_name="Standard LRS Data Stored",
                category="Storage",
                subcategory="Locally Redundant",
                region="US East",
                quantity=Decimal("12.5"),
                unit="1 GB/Month",
                usage_start_time=start,
                usage_end_time=stop,
                instance_uri=f"{SUBSCRIPTION_URI}/Microsoft.Storage/storageAccounts/demostore",
            ),
            UsageRecord(
                resource_id="meter-vm-d2",
                resource_name="Compute Hours",
                category="Virtual Machines",
                subcategory="Standard_D2 VM",
                region="US East",
                quantity=Decimal("24"),
                unit="1 Hour",
                usage_start_time=start,
                usage_end_time=stop,
                instance_uri=f"{SUBSCRIPTION_URI}/Microsoft.Compute/virtualMachines/demo-vm",
            ),
        ])
    return records
