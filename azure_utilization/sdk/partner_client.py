"""
Partner Center REST client.

Retrieves the Azure rate card and Azure utilization records for a
customer subscription. Failures are loud and mapped onto the package's
error taxonomy; nothing is retried.
"""

import logging
import re
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterator, Optional

import requests

from ..config.loader import PartnerCenterConfig
from ..core.errors import CatalogUnavailable, UsageFetchFailed
from ..core.models import Granularity, RateCatalog, RateCatalogEntry, UsageRecord, UsageWindow
from ..core.pagination import Page, iter_items, iter_pages
from .auth import PartnerCredentials

logger = logging.getLogger(__name__)

API_VERSION = "v1"
CONTINUATION_HEADER = "MS-ContinuationToken"

_FRACTION = re.compile(r"\.(\d{6})\d+")


class PartnerCenterClient:
    """Partner Center operations bound to one correlation id.

    Every request issued by an instance carries the same
    ``MS-CorrelationId`` so a run can be traced end to end.
    """

    def __init__(
        self,
        config: PartnerCenterConfig,
        credentials: PartnerCredentials,
        correlation_id: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            config: Partner Center configuration
            credentials: Access token from ``authenticate``
            correlation_id: Request tracing id, generated when omitted
            session: Optional HTTP session
        """
        self.config = config
        self.credentials = credentials
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.session = session or requests.Session()
        self.base_url = f"{config.endpoint}/{API_VERSION}"

    def get_rate_card(self, currency: Optional[str] = None, region: Optional[str] = None) -> RateCatalog:
        """Fetch the full Azure rate card in a single request.

        Raises:
            CatalogUnavailable: On any transport, HTTP or decoding failure
        """
        params = {}
        if currency:
            params["currency"] = currency
        if region:
            params["region"] = region

        try:
            body = self._get("/ratecards/azure", params=params)
            catalog = parse_rate_card(body)
        except requests.RequestException as e:
            raise CatalogUnavailable(f"Unable to retrieve the Azure rate card: {e}") from e
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise CatalogUnavailable(f"Malformed Azure rate card response: {e}") from e

        logger.info("Loaded rate card with %d meters (%s)", len(catalog), catalog.currency)
        return catalog

    def query_utilization(
        self,
        customer_id: str,
        subscription_id: str,
        window: UsageWindow,
        granularity: Granularity = Granularity.DAILY,
        show_details: bool = True,
        page_size: int = 10,
    ) -> Iterator[UsageRecord]:
        """Lazily iterate utilization records across all pages.

        The first request is sent on the first ``next()``; each following
        page is requested only once the previous one is consumed.

        Raises:
            UsageFetchFailed: When any page cannot be fetched or decoded
        """
        path = (
            f"/customers/{customer_id}/subscriptions/{subscription_id}"
            "/utilizations/azure"
        )
        params = {
            "start_time": window.start.isoformat(),
            "end_time": window.end.isoformat(),
            "granularity": granularity.value,
            "show_details": str(show_details).lower(),
            "size": page_size,
        }

        def first_page() -> Page[UsageRecord]:
            return self._usage_page(self._get(path, params=params))

        def next_page(link: Dict[str, Any]) -> Page[UsageRecord]:
            return self._usage_page(self._follow(link))

        try:
            yield from iter_items(iter_pages(first_page(), next_page))
        except requests.RequestException as e:
            raise UsageFetchFailed(
                f"Unable to retrieve utilization for subscription {subscription_id}: {e}"
            ) from e
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise UsageFetchFailed(f"Malformed utilization response: {e}") from e

    def _usage_page(self, body: Dict[str, Any]) -> Page[UsageRecord]:
        items = [parse_usage_record(item) for item in body.get("items") or []]
        next_link = (body.get("links") or {}).get("next")
        logger.debug("Fetched utilization page with %d records", len(items))
        return Page(items=items, continuation=next_link)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.credentials.access_token}",
            "Accept": "application/json",
            "MS-CorrelationId": self.correlation_id,
            "MS-RequestId": str(uuid.uuid4()),
            "MS-PartnerCenter-Application": self.config.application_name,
            "X-Locale": self.config.locale,
        }

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None,
             extra_headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        headers = self._headers()
        if extra_headers:
            headers.update(extra_headers)

        logger.debug("GET %s (correlation id %s)", url, self.correlation_id)
        response = self.session.get(
            url, params=params, headers=headers, timeout=self.config.request_timeout
        )
        response.raise_for_status()
        body = response.json(parse_float=Decimal)
        if not isinstance(body, dict):
            raise ValueError("expected a JSON object")
        return body

    def _follow(self, link: Dict[str, Any]) -> Dict[str, Any]:
        """Request the page a ``links.next`` entry points at."""
        uri = link["uri"]
        if not uri.startswith("http"):
            if not uri.startswith("/"):
                uri = f"/{uri}"
            if uri.startswith(f"/{API_VERSION}/"):
                uri = uri[len(API_VERSION) + 1:]
        headers = {h["key"]: h["value"] for h in link.get("headers") or []}
        return self._get(uri, extra_headers=headers)


def parse_rate_card(body: Dict[str, Any]) -> RateCatalog:
    """Build a RateCatalog from a rate card response body."""
    entries = [parse_meter(meter) for meter in body.get("meters") or []]
    return RateCatalog.from_entries(
        entries,
        currency=body.get("currency") or "",
        locale=body.get("locale") or "",
        is_tax_included=bool(body.get("isTaxIncluded", False)),
    )


def parse_meter(meter: Dict[str, Any]) -> RateCatalogEntry:
    """Build a RateCatalogEntry, ordering rates by tier threshold."""
    tiers = sorted(
        (_decimal(threshold), _decimal(rate))
        for threshold, rate in (meter.get("rates") or {}).items()
    )
    return RateCatalogEntry(
        resource_id=meter["id"],
        rates=tuple(rate for _, rate in tiers),
        name=meter.get("name") or "",
        category=meter.get("category") or "",
        subcategory=meter.get("subcategory") or "",
        region=meter.get("region") or "",
        unit=meter.get("unit") or "",
        included_quantity=_decimal(meter.get("includedQuantity", 0)),
    )


def parse_usage_record(item: Dict[str, Any]) -> UsageRecord:
    """Build a UsageRecord from one utilization item."""
    resource = item["resource"]
    instance_data = item.get("instanceData") or {}
    return UsageRecord(
        resource_id=resource["id"],
        resource_name=resource.get("name") or "",
        category=resource.get("category") or "",
        subcategory=resource.get("subcategory") or "",
        region=resource.get("region") or "",
        quantity=_decimal(item["quantity"]),
        unit=item.get("unit") or "",
        usage_start_time=parse_timestamp(item["usageStartTime"]),
        usage_end_time=parse_timestamp(item["usageEndTime"]),
        instance_uri=instance_data.get("resourceUri"),
    )


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp as emitted by Partner Center.

    Handles a trailing ``Z`` and seven-digit fractional seconds.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(r".\1", text)
    return datetime.fromisoformat(text)


def _decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
