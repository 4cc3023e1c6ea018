"""
App-only authentication against Partner Center.

Exchanges application credentials for an Azure AD token, then exchanges
that token for a Partner Center access token.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import requests

from ..config.loader import PartnerCenterConfig
from ..core.errors import AuthenticationFailed

logger = logging.getLogger(__name__)

GRAPH_RESOURCE = "https://graph.windows.net"

# Tokens are refreshed this long before they actually expire
EXPIRY_SKEW = timedelta(minutes=5)


@dataclass(frozen=True)
class PartnerCredentials:
    """Bearer credential used for Partner Center requests."""
    access_token: str = field(repr=False)
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at - EXPIRY_SKEW


def authenticate(
    config: PartnerCenterConfig,
    session: Optional[requests.Session] = None,
) -> PartnerCredentials:
    """Generate Partner Center credentials from application credentials.

    Args:
        config: Partner Center configuration holding the app id, secret and account id
        session: Optional HTTP session, a new one is created when omitted

    Returns:
        PartnerCredentials holding the Partner Center access token

    Raises:
        AuthenticationFailed: If either token exchange is rejected or malformed
    """
    session = session or requests.Session()

    ad_token = _request_token(
        session,
        f"{config.authority}/{config.account_id}/oauth2/token",
        data={
            "grant_type": "client_credentials",
            "resource": GRAPH_RESOURCE,
            "client_id": config.application_id,
            "client_secret": config.application_secret,
        },
        timeout=config.request_timeout,
        stage="Azure AD",
    )
    logger.debug("Obtained Azure AD token for account %s", config.account_id)

    pc_token = _request_token(
        session,
        f"{config.endpoint}/generatetoken",
        data={"grant_type": "jwt_token"},
        headers={
            "Authorization": f"Bearer {ad_token['access_token']}",
            "Accept": "application/json",
        },
        timeout=config.request_timeout,
        stage="Partner Center",
    )
    logger.debug("Obtained Partner Center token")

    return PartnerCredentials(
        access_token=pc_token["access_token"],
        expires_at=_expiry(pc_token),
    )


def _request_token(session, url, data, timeout, stage, headers=None) -> dict:
    """POST a token request and return the decoded body."""
    try:
        response = session.post(url, data=data, headers=headers, timeout=timeout)
        response.raise_for_status()
        body = response.json()
    except requests.HTTPError as e:
        raise AuthenticationFailed(
            f"{stage} token request rejected with HTTP {e.response.status_code}"
        ) from e
    except requests.RequestException as e:
        raise AuthenticationFailed(f"{stage} token request failed: {e}") from e
    except ValueError as e:
        raise AuthenticationFailed(f"{stage} token response is not valid JSON") from e

    if not isinstance(body, dict) or not body.get("access_token"):
        raise AuthenticationFailed(f"{stage} token response missing access_token")
    return body


def _expiry(token: dict) -> datetime:
    """Absolute expiry from the relative ``expires_in`` seconds, if present."""
    try:
        seconds = int(token.get("expires_in", 3600))
    except (TypeError, ValueError):
        seconds = 3600
    return datetime.now(timezone.utc) + timedelta(seconds=seconds)
