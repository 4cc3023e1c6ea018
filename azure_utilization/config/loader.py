"""
Configuration management and loading.

Handles Partner Center credentials, query defaults and environment
variable overrides.
"""

import os
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from azure_utilization.core.models import Granularity, UsageWindow

DEFAULT_APPLICATION_NAME = "Partner-Center-Labs Azure Utilization HOL"
DEFAULT_ENDPOINT = "https://api.partnercenter.microsoft.com"
DEFAULT_AUTHORITY = "https://login.windows.net"
DEFAULT_CONFIG_PATH = "azure_utilization.yaml"

MAX_PAGE_SIZE = 1000

ENV_APPLICATION_ID = "PARTNER_CENTER_APPLICATION_ID"
ENV_APPLICATION_SECRET = "PARTNER_CENTER_APPLICATION_SECRET"
ENV_ACCOUNT_ID = "PARTNER_CENTER_ACCOUNT_ID"


@dataclass(frozen=True)
class PartnerCenterConfig:
    """Application credentials and endpoints for Partner Center."""
    application_id: str
    application_secret: str = field(repr=False)
    account_id: str
    application_name: str = DEFAULT_APPLICATION_NAME
    endpoint: str = DEFAULT_ENDPOINT
    authority: str = DEFAULT_AUTHORITY
    locale: str = "en-US"
    request_timeout: float = 60.0

    def __post_init__(self):
        """Validate credentials are present and timeout is positive."""
        if not self.application_id:
            raise ValueError("application_id is required")
        if not self.application_secret:
            raise ValueError("application_secret is required")
        if not self.account_id:
            raise ValueError("account_id is required")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")


@dataclass(frozen=True)
class QueryConfig:
    """Defaults for the utilization query."""
    days: int = 7
    granularity: Granularity = Granularity.DAILY
    show_details: bool = True
    page_size: int = 10

    def __post_init__(self):
        """Validate query window and batching values."""
        if self.days <= 0:
            raise ValueError("days must be > 0")
        if not 0 < self.page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")

    def window(self, now: Optional[datetime] = None) -> UsageWindow:
        """Trailing window of ``days`` ending at ``now``."""
        return UsageWindow.trailing_days(self.days, now or datetime.now().astimezone())


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    partner_center: PartnerCenterConfig
    query: QueryConfig = field(default_factory=QueryConfig)


def load_config(path: str, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load and validate configuration from a YAML file.

    Credentials found in the environment take precedence over the file so
    secrets can stay out of it.

    Args:
        path: Path to YAML configuration file
        environ: Environment mapping, defaults to ``os.environ``

    Returns:
        Validated AppConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'partner_center', 'query'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    if 'partner_center' not in raw_config:
        raise ValueError("Missing required 'partner_center' section")

    pc_data = raw_config['partner_center']
    if not isinstance(pc_data, dict):
        raise ValueError("'partner_center' must be a dictionary")

    pc_data = _apply_env_overrides(pc_data, os.environ if environ is None else environ)
    partner_center = _parse_partner_center(pc_data)

    query_data = raw_config.get('query') or {}
    if not isinstance(query_data, dict):
        raise ValueError("'query' must be a dictionary")
    query = _parse_query(query_data)

    return AppConfig(partner_center=partner_center, query=query)


def load_config_from_env(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Build configuration from environment variables only.

    Raises:
        ValueError: If any credential variable is missing
    """
    env = os.environ if environ is None else environ
    missing = [
        name for name in (ENV_APPLICATION_ID, ENV_APPLICATION_SECRET, ENV_ACCOUNT_ID)
        if not env.get(name)
    ]
    if missing:
        raise ValueError(f"Missing environment variables: {', '.join(missing)}")

    return AppConfig(
        partner_center=PartnerCenterConfig(
            application_id=env[ENV_APPLICATION_ID],
            application_secret=env[ENV_APPLICATION_SECRET],
            account_id=env[ENV_ACCOUNT_ID],
        )
    )


def resolve_config(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load ``path`` when it exists, otherwise fall back to the environment."""
    config_path = path or DEFAULT_CONFIG_PATH
    if Path(config_path).exists():
        return load_config(config_path, environ)
    if path is not None:
        raise FileNotFoundError(f"Config file not found: {path}")
    return load_config_from_env(environ)


def _apply_env_overrides(data: Dict, environ: Mapping[str, str]) -> Dict:
    """Return a copy of ``data`` with credentials replaced from the environment."""
    merged = dict(data)
    for key, env_name in (
        ('application_id', ENV_APPLICATION_ID),
        ('application_secret', ENV_APPLICATION_SECRET),
        ('account_id', ENV_ACCOUNT_ID),
    ):
        if environ.get(env_name):
            merged[key] = environ[env_name]
    return merged


def _parse_partner_center(data: Dict) -> PartnerCenterConfig:
    """Parse and validate the partner_center section.

    Raises:
        ValueError: If configuration is invalid
    """
    required_keys = {'application_id', 'application_secret', 'account_id'}
    optional_keys = {'application_name', 'endpoint', 'authority', 'locale', 'request_timeout'}
    unknown_keys = set(data.keys()) - required_keys - optional_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in partner_center: {unknown_keys}")

    for key in sorted(required_keys):
        if key not in data:
            raise ValueError(f"Missing required '{key}' in partner_center")
        if not isinstance(data[key], str) or not data[key].strip():
            raise ValueError(f"'{key}' in partner_center must be a non-empty string")

    timeout = data.get('request_timeout', 60.0)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ValueError("'request_timeout' in partner_center must be > 0")

    config = PartnerCenterConfig(
        application_id=data['application_id'].strip(),
        application_secret=data['application_secret'],
        account_id=data['account_id'].strip(),
        request_timeout=float(timeout),
    )

    overrides = {}
    for key in ('application_name', 'endpoint', 'authority', 'locale'):
        if key in data:
            value = data[key]
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"'{key}' in partner_center must be a non-empty string")
            overrides[key] = value.strip().rstrip('/') if key in ('endpoint', 'authority') else value.strip()

    return replace(config, **overrides) if overrides else config


def _parse_query(data: Dict) -> QueryConfig:
    """Parse and validate the query section.

    Raises:
        ValueError: If configuration is invalid
    """
    allowed_keys = {'days', 'granularity', 'show_details', 'page_size'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in query: {unknown_keys}")

    defaults = QueryConfig()

    days = data.get('days', defaults.days)
    if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
        raise ValueError("'days' in query must be a positive integer")

    page_size = data.get('page_size', defaults.page_size)
    if isinstance(page_size, bool) or not isinstance(page_size, int) or not 0 < page_size <= MAX_PAGE_SIZE:
        raise ValueError(f"'page_size' in query must be between 1 and {MAX_PAGE_SIZE}")

    show_details = data.get('show_details', defaults.show_details)
    if not isinstance(show_details, bool):
        raise ValueError("'show_details' in query must be a boolean")

    granularity_str = data.get('granularity', defaults.granularity.value)
    if not isinstance(granularity_str, str):
        raise ValueError("'granularity' in query must be a string")

    try:
        granularity = Granularity(granularity_str.lower())
    except ValueError:
        valid = [g.value for g in Granularity]
        raise ValueError(f"'granularity' in query must be one of: {valid}")

    return QueryConfig(
        days=days,
        granularity=granularity,
        show_details=show_details,
        page_size=page_size,
    )
