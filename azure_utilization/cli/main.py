"""
CLI interface for Azure utilization pricing.

Combines the Partner Center Azure rate card with a subscription's
utilization records and prints the priced line items.
"""

import logging
import sys
import uuid
from typing import Optional

import requests
import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler

from azure_utilization.cli.console import ConsoleHelper
from azure_utilization.config.loader import AppConfig, resolve_config
from azure_utilization.core.errors import UtilizationError
from azure_utilization.core.reconcile import LookupPolicy, reconcile
from azure_utilization.demo.sample_data import sample_rate_card, sample_usage
from azure_utilization.sdk.auth import authenticate
from azure_utilization.sdk.partner_client import PartnerCenterClient

app = typer.Typer()
console = Console()

logger = logging.getLogger("azure_utilization")

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

CONFIG_OPTION_HELP = "Path to YAML config (defaults to azure_utilization.yaml, then environment variables)"


def _configure_logging(verbose: bool) -> None:
    """Send package logs to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(helper: ConsoleHelper, path: Optional[str]) -> AppConfig:
    try:
        return resolve_config(path)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        helper.error(f"Configuration error: {e}")
        sys.exit(EXIT_CODE_FAIL)


def _connect(helper: ConsoleHelper, config: AppConfig, correlation_id: str) -> PartnerCenterClient:
    """Authenticate and build a client bound to ``correlation_id``."""
    session = requests.Session()
    with helper.progress("Authenticating with Partner Center"):
        credentials = authenticate(config.partner_center, session)
    return PartnerCenterClient(config.partner_center, credentials, correlation_id, session)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Azure utilization pricing CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Azure Utilization - Use --help to see available commands")


@app.command()
def usage(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help=CONFIG_OPTION_HELP
    ),
    customer_id: Optional[str] = typer.Option(
        None,
        "--customer-id",
        help="Customer identifier (prompted for when omitted)"
    ),
    subscription_id: Optional[str] = typer.Option(
        None,
        "--subscription-id",
        help="Azure subscription identifier (prompted for when omitted)"
    ),
    collect_missing: bool = typer.Option(
        False,
        "--collect-missing",
        help="Report every meter missing from the rate card instead of stopping at the first"
    ),
    pause: bool = typer.Option(
        True,
        "--pause/--no-pause",
        help="Wait for enter before exiting"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging"
    )
):
    """
    Price a subscription's Azure utilization against the rate card.

    Queries the trailing window configured under ``query`` (seven days of
    daily records by default) and prints one line item per usage record.
    Nothing is printed if any record cannot be priced.
    """
    _configure_logging(verbose)
    helper = ConsoleHelper(console)
    config = _load_config(helper, config_path)
    correlation_id = str(uuid.uuid4())
    logger.info("Starting run with correlation id %s", correlation_id)

    try:
        client = _connect(helper, config, correlation_id)

        with helper.progress("Retrieving the Azure rate card"):
            catalog = client.get_rate_card()

        customer_id = customer_id or helper.obtain_customer_id()
        subscription_id = subscription_id or helper.obtain_subscription_id()

        query = config.query
        with helper.progress("Querying Azure utilization records"):
            records = list(client.query_utilization(
                customer_id,
                subscription_id,
                query.window(),
                granularity=query.granularity,
                show_details=query.show_details,
                page_size=query.page_size,
            ))
        logger.info("Retrieved %d utilization records", len(records))

        policy = LookupPolicy.COLLECT if collect_missing else LookupPolicy.FAIL_FAST
        with helper.progress("Combining utilization records with rate card details"):
            items = reconcile(catalog, records, policy)

    except UtilizationError as e:
        helper.error(f"Error: {e}")
        sys.exit(EXIT_CODE_FAIL)

    helper.write_line_items(items)

    if pause:
        helper.pause()
    sys.exit(EXIT_CODE_PASS)


@app.command()
def ratecard(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help=CONFIG_OPTION_HELP
    ),
    currency: Optional[str] = typer.Option(
        None,
        "--currency",
        help="ISO currency code for the rate card"
    ),
    region: Optional[str] = typer.Option(
        None,
        "--region",
        help="Two-letter market of the rate card"
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-n",
        min=0,
        help="Print at most this many meters"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging"
    )
):
    """Print the Azure rate card."""
    _configure_logging(verbose)
    helper = ConsoleHelper(console)
    config = _load_config(helper, config_path)

    try:
        client = _connect(helper, config, str(uuid.uuid4()))
        with helper.progress("Retrieving the Azure rate card"):
            catalog = client.get_rate_card(currency=currency, region=region)
    except UtilizationError as e:
        helper.error(f"Error: {e}")
        sys.exit(EXIT_CODE_FAIL)

    helper.write_rate_card(catalog, limit=limit)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def demo(
    days: int = typer.Option(
        2,
        "--days",
        "-d",
        min=1,
        help="Number of days of sample usage"
    )
):
    """Price built-in sample usage without contacting Partner Center."""
    helper = ConsoleHelper(console)
    try:
        items = reconcile(sample_rate_card(), sample_usage(days))
    except UtilizationError as e:
        helper.error(f"Error: {e}")
        sys.exit(EXIT_CODE_FAIL)

    helper.write_line_items(items, title="Azure Utilization Line Items (sample data)")
    sys.exit(EXIT_CODE_PASS)


if __name__ == "__main__":
    app()
