"""
Console helpers for prompting, progress and rendering.

One ConsoleHelper is created by the CLI and handed to whatever needs to
talk to the user.
"""

from contextlib import contextmanager
from decimal import Decimal
from typing import IO, Iterator, List, Optional, Sequence, Tuple

from rich.console import Console
from rich.markup import escape

from azure_utilization.core.errors import ValidationFailed, require_non_empty
from azure_utilization.core.models import LineItem, RateCatalog, RateCatalogEntry

RULE_WIDTH = 90
ITEM_RULE_WIDTH = 80
INDENT = " " * 4


def line_item_fields(item: LineItem) -> List[Tuple[str, str]]:
    """Printable (label, value) pairs for a line item."""
    return [
        ("Category", item.category),
        ("Subcategory", item.subcategory),
        ("Id", item.id),
        ("Name", item.name),
        ("Region", item.region),
        ("Quantity", _format_decimal(item.quantity)),
        ("Price", _format_decimal(item.price)),
        ("UsageStartTime", item.usage_start_time.isoformat()),
        ("UsageEndTime", item.usage_end_time.isoformat()),
        ("ResourceUri", item.resource_uri or ""),
    ]


def meter_fields(entry: RateCatalogEntry) -> List[Tuple[str, str]]:
    """Printable (label, value) pairs for a rate card meter."""
    return [
        ("Id", entry.resource_id),
        ("Name", entry.name),
        ("Category", entry.category),
        ("Subcategory", entry.subcategory),
        ("Region", entry.region),
        ("Unit", entry.unit),
        ("Rates", ", ".join(_format_decimal(rate) for rate in entry.rates)),
        ("IncludedQuantity", _format_decimal(entry.included_quantity)),
    ]


def _format_decimal(value: Decimal) -> str:
    # Drop exponent notation such as 7.5E+1 but keep every significant digit
    return format(value, "f")


class ConsoleHelper:
    """Prompts, progress indicator and renderers on top of a rich Console."""

    def __init__(self, console: Optional[Console] = None, stream: Optional[IO[str]] = None):
        """Initialize the helper.

        Args:
            console: Console to write to, a default stdout console when omitted
            stream: Optional input stream, standard input when omitted
        """
        self.console = console or Console()
        self.stream = stream

    def obtain_customer_id(self, prompt: Optional[str] = None) -> str:
        """Prompt until a non-empty customer id is entered."""
        return self.read_non_empty(
            prompt or "Enter the customer ID",
            "The customer identifier cannot be empty",
        )

    def obtain_subscription_id(self, prompt: Optional[str] = None) -> str:
        """Prompt until a non-empty subscription id is entered."""
        return self.read_non_empty(
            prompt or "Enter the subscription ID",
            "The subscription identifier cannot be empty",
        )

    def read_non_empty(self, prompt: str, validation_message: str = "Enter a non-empty value") -> str:
        """Read a line, re-prompting while it is blank.

        Raises:
            EOFError: If input ends before a value is entered
        """
        while True:
            value = self._read_line(f"{escape(prompt)}: ")
            try:
                return require_non_empty(value, validation_message)
            except ValidationFailed as e:
                self.error(str(e))

    def pause(self, message: str = "Press enter to exit...") -> None:
        self.console.print(message)
        try:
            self._read_line("")
        except EOFError:
            # Nothing left to wait for
            return

    def _read_line(self, prompt: str) -> str:
        if self.stream is None:
            return self.console.input(prompt)
        self.console.print(prompt, end="")
        line = self.stream.readline()
        if not line:
            raise EOFError("input stream closed")
        return line.rstrip("\n")

    def error(self, message: str) -> None:
        self.console.print(f"[red]{escape(message)}[/]")

    @contextmanager
    def progress(self, message: str) -> Iterator[None]:
        """Show a spinner while the enclosed block runs.

        The spinner thread is stopped and joined before the block's caller
        regains control, so later output never interleaves with it.
        """
        self.console.print()
        with self.console.status(f"[cyan]{escape(message)}[/]"):
            yield
        self.console.print()

    def write_line_items(self, items: Sequence[LineItem], title: str = "Azure Utilization Line Items") -> None:
        """Render each line item with its fields indented under the title."""
        self._write_records(title, [line_item_fields(item) for item in items])

    def write_rate_card(self, catalog: RateCatalog, title: str = "Azure Rate Card", limit: Optional[int] = None) -> None:
        """Render rate card metadata followed by its meters."""
        self.console.print(title)
        self._rule(RULE_WIDTH)
        self._write_field("Currency", catalog.currency, 1)
        self._write_field("Locale", catalog.locale, 1)
        self._write_field("IsTaxIncluded", str(catalog.is_tax_included), 1)
        self._write_field("Meters", str(len(catalog)), 1)

        meters = list(catalog.entries.values())
        if limit is not None:
            meters = meters[:limit]
        for entry in meters:
            self._rule(ITEM_RULE_WIDTH)
            for label, value in meter_fields(entry):
                self._write_field(label, value, 1)
        self._rule(RULE_WIDTH)

    def _write_records(self, title: str, records: List[List[Tuple[str, str]]]) -> None:
        self.console.print(title)
        self._rule(RULE_WIDTH)
        if not records:
            self.console.print(f"{INDENT}[dim]No utilization records found.[/]")
        for fields in records:
            for label, value in fields:
                self._write_field(label, value, 1)
            self._rule(ITEM_RULE_WIDTH)
        self._rule(RULE_WIDTH)

    def _write_field(self, label: str, value: str, indent: int) -> None:
        self.console.print(
            f"{INDENT * indent}[yellow]{escape(label)}:[/] {escape(value)}",
            highlight=False,
            soft_wrap=True,
        )

    def _rule(self, width: int) -> None:
        self.console.print("-" * width, soft_wrap=True)
