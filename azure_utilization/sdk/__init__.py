"""
SDK for Partner Center.

Provides authentication and the REST client for rate cards and utilization.
"""

from .auth import PartnerCredentials, authenticate
from .partner_client import PartnerCenterClient

__all__ = ["PartnerCenterClient", "PartnerCredentials", "authenticate"]
