"""
Error taxonomy for rate card and utilization processing.

Every failure that aborts a run derives from UtilizationError so the
CLI can report it and exit in one place.
"""

from typing import Iterable, Tuple


class UtilizationError(Exception):
    """Base class for all fatal errors raised by this package."""


class AuthenticationFailed(UtilizationError):
    """Raised when the credential exchange is rejected."""


class CatalogUnavailable(UtilizationError):
    """Raised when the Azure rate card cannot be retrieved."""


class UsageFetchFailed(UtilizationError):
    """Raised when any page of utilization records cannot be retrieved."""


class PriceLookupFailed(UtilizationError):
    """Raised when usage references meters that are missing from the rate card.

    Carries every missing id that was found before failing; under the
    fail-fast policy that is exactly one.
    """

    def __init__(self, resource_ids: Iterable[str]):
        self.resource_ids: Tuple[str, ...] = tuple(resource_ids)
        if not self.resource_ids:
            raise ValueError("PriceLookupFailed requires at least one resource id")
        if len(self.resource_ids) == 1:
            message = f"No rate card entry for resource {self.resource_ids[0]}"
        else:
            message = (
                f"No rate card entry for {len(self.resource_ids)} resources: "
                f"{', '.join(self.resource_ids)}"
            )
        super().__init__(message)

    @property
    def resource_id(self) -> str:
        """First missing resource id."""
        return self.resource_ids[0]


class ValidationFailed(UtilizationError):
    """Raised for blank interactive input; handled by re-prompting."""


def require_non_empty(value: str, message: str) -> str:
    """Return ``value`` stripped, or raise ValidationFailed when blank."""
    if value is None or not value.strip():
        raise ValidationFailed(message)
    return value.strip()
