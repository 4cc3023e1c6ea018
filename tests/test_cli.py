"""
Tests for the CLI interface.
"""
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import patch, MagicMock

import pytest
from typer.testing import CliRunner

from azure_utilization.cli.main import app, EXIT_CODE_PASS, EXIT_CODE_FAIL
from azure_utilization.config.loader import AppConfig, PartnerCenterConfig
from azure_utilization.core.errors import AuthenticationFailed, CatalogUnavailable, UsageFetchFailed
from azure_utilization.core.models import RateCatalog, RateCatalogEntry, UsageRecord

runner = CliRunner()

T0 = datetime(2024, 3, 1, tzinfo=timezone.utc)
T1 = datetime(2024, 3, 2, tzinfo=timezone.utc)


def make_record(resource_id: str, quantity: str = "3") -> UsageRecord:
    return UsageRecord(
        resource_id=resource_id,
        resource_name="Data Stored",
        category="Storage",
        region="eastus",
        quantity=Decimal(quantity),
        usage_start_time=T0,
        usage_end_time=T1,
    )


@pytest.fixture
def mock_config():
    """Patch configuration resolution."""
    config = AppConfig(partner_center=PartnerCenterConfig(
        application_id="app", application_secret="secret", account_id="tenant"
    ))
    with patch('azure_utilization.cli.main.resolve_config', return_value=config) as mock:
        yield mock


@pytest.fixture
def mock_authenticate():
    """Patch the token exchange."""
    with patch('azure_utilization.cli.main.authenticate') as mock:
        yield mock


@pytest.fixture
def mock_client():
    """Patch the Partner Center client with a single-meter rate card."""
    with patch('azure_utilization.cli.main.PartnerCenterClient') as mock_class:
        client = MagicMock()
        client.get_rate_card.return_value = RateCatalog.from_entries(
            [RateCatalogEntry(resource_id="meter-A", rates=(Decimal("2.50"),))],
            currency="USD",
        )
        client.query_utilization.return_value = iter([make_record("meter-A")])
        mock_class.return_value = client
        yield client


class TestUsageCommand:
    """Test the usage command."""

    def test_prints_priced_line_items(self, mock_config, mock_authenticate, mock_client):
        """Test the full flow with prompted ids."""
        result = runner.invoke(app, ["usage"], input="cust-1\nsub-1\n\n")

        assert result.exit_code == EXIT_CODE_PASS
        assert "Azure Utilization Line Items" in result.output
        assert "Price: 7.50" in result.output
        assert "Press enter to exit..." in result.output

        args, kwargs = mock_client.query_utilization.call_args
        assert args[0] == "cust-1"
        assert args[1] == "sub-1"
        assert kwargs["page_size"] == 10
        assert kwargs["show_details"] is True

    def test_blank_ids_reprompt(self, mock_config, mock_authenticate, mock_client):
        """Test blank customer id input is re-prompted."""
        result = runner.invoke(app, ["usage", "--no-pause"], input="\ncust-1\nsub-1\n")

        assert result.exit_code == EXIT_CODE_PASS
        assert "The customer identifier cannot be empty" in result.output
        assert mock_client.query_utilization.call_args.args[0] == "cust-1"

    def test_ids_from_options(self, mock_config, mock_authenticate, mock_client):
        """Test ids given as options skip the prompts."""
        result = runner.invoke(
            app, ["usage", "--customer-id", "c9", "--subscription-id", "s9", "--no-pause"]
        )

        assert result.exit_code == EXIT_CODE_PASS
        assert "Enter the customer ID" not in result.output
        assert mock_client.query_utilization.call_args.args[:2] == ("c9", "s9")

    def test_client_shares_correlation_id(self, mock_config, mock_authenticate, mock_client):
        """Test the client is built with a correlation id for the run."""
        with patch('azure_utilization.cli.main.PartnerCenterClient') as mock_class:
            mock_class.return_value = mock_client
            runner.invoke(app, ["usage", "--customer-id", "c", "--subscription-id", "s", "--no-pause"])

            correlation_id = mock_class.call_args.args[2]
            assert len(correlation_id) == 36

    def test_missing_meter_prints_no_items(self, mock_config, mock_authenticate, mock_client):
        """Test a pricing failure exits non-zero without partial output."""
        mock_client.query_utilization.return_value = iter([
            make_record("meter-A"), make_record("meter-B"),
        ])

        result = runner.invoke(app, ["usage", "--customer-id", "c", "--subscription-id", "s"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "No rate card entry for resource meter-B" in result.output
        assert "Azure Utilization Line Items" not in result.output
        assert "Price:" not in result.output

    def test_collect_missing_reports_all(self, mock_config, mock_authenticate, mock_client):
        """Test --collect-missing lists every missing meter."""
        mock_client.query_utilization.return_value = iter([
            make_record("meter-X"), make_record("meter-A"), make_record("meter-Y"),
        ])

        result = runner.invoke(
            app, ["usage", "--customer-id", "c", "--subscription-id", "s", "--collect-missing"]
        )

        assert result.exit_code == EXIT_CODE_FAIL
        assert "meter-X" in result.output
        assert "meter-Y" in result.output

    def test_authentication_failure(self, mock_config, mock_authenticate, mock_client):
        """Test auth failures abort before any fetch."""
        mock_authenticate.side_effect = AuthenticationFailed("Azure AD token request rejected with HTTP 401")

        result = runner.invoke(app, ["usage", "--no-pause"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "rejected with HTTP 401" in result.output
        mock_client.get_rate_card.assert_not_called()

    def test_catalog_failure(self, mock_config, mock_authenticate, mock_client):
        """Test rate card failures abort before prompting."""
        mock_client.get_rate_card.side_effect = CatalogUnavailable("Unable to retrieve the Azure rate card")

        result = runner.invoke(app, ["usage", "--no-pause"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Unable to retrieve the Azure rate card" in result.output
        assert "Enter the customer ID" not in result.output

    def test_usage_fetch_failure(self, mock_config, mock_authenticate, mock_client):
        """Test usage failures exit non-zero."""
        def failing_feed(*args, **kwargs):
            yield make_record("meter-A")
            raise UsageFetchFailed("Unable to retrieve utilization for subscription s")

        mock_client.query_utilization.side_effect = failing_feed

        result = runner.invoke(app, ["usage", "--customer-id", "c", "--subscription-id", "s"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Unable to retrieve utilization" in result.output
        assert "Price:" not in result.output

    def test_configuration_error(self, mock_authenticate):
        """Test configuration problems are reported."""
        with patch('azure_utilization.cli.main.resolve_config', side_effect=ValueError("Missing environment variables: X")):
            result = runner.invoke(app, ["usage"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Configuration error" in result.output
        mock_authenticate.assert_not_called()


class TestOtherCommands:
    """Test ratecard, demo and the root callback."""

    def test_ratecard(self, mock_config, mock_authenticate, mock_client):
        result = runner.invoke(app, ["ratecard", "--currency", "EUR", "--limit", "5"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Azure Rate Card" in result.output
        assert "Id: meter-A" in result.output
        mock_client.get_rate_card.assert_called_once_with(currency="EUR", region=None)

    def test_ratecard_failure(self, mock_config, mock_authenticate, mock_client):
        mock_client.get_rate_card.side_effect = CatalogUnavailable("boom")

        result = runner.invoke(app, ["ratecard"])

        assert result.exit_code == EXIT_CODE_FAIL

    def test_demo(self):
        """Test the demo prices sample data without network access."""
        result = runner.invoke(app, ["demo", "--days", "1"])

        assert result.exit_code == EXIT_CODE_PASS
        assert "sample data" in result.output
        # 12.5 GB at 0.024 and 24 hours at 0.096
        assert "Price: 0.3000" in result.output
        assert "Price: 2.304" in result.output

    def test_root_without_command(self):
        result = runner.invoke(app, [])
        assert "Use --help" in result.output
