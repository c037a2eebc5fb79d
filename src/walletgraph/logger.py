"""Console logger for walletgraph CLI output."""

import json
import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler


class WalletGraphLogger(logging.Logger):
    """
    Logger that combines Python logging with the CLI output helpers.

    Standard levels (debug, info, warning, error) go through a RichHandler,
    the helpers (success, rule, key_value, print_dict) write to the console directly.
    """

    def __init__(self, name: str, level: int = logging.INFO) -> None:
        super().__init__(name, level)
        self.console = Console()

        handler = RichHandler(
            console=self.console,
            rich_tracebacks=True,
            show_time=True,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        self.addHandler(handler)
        self.propagate = False

    def print(self, message: str) -> None:
        """Print a plain message (with Rich markup support)."""
        self.console.print(message)

    def colored(self, message: str, style: str = "bold cyan") -> None:
        self.print(f"[{style}]{message}[/{style}]")

    def success(self, message: str) -> None:
        """Print a success message in green with a checkmark icon."""
        self.print(f"[green]✓[/green] {message}")

    def rule(self, title: str, style: str = "bold blue") -> None:
        """
        Print a horizontal rule with a title.

        Args:
            title: Title text for the rule
            style: Rich style string (default: "bold blue")
        """
        self.console.rule(f"[{style}]{title}")

    def print_dict(self, data: dict[str, Any]) -> None:
        """
        Print dictionary data as highlighted JSON.

        Args:
            data: Dictionary to display
        """
        self.console.print_json(json.dumps(data, indent=2, default=str))

    def key_value(self, key: str, value: Any, key_style: str = "dim") -> None:
        """
        Print a formatted key-value pair such as "Cache-Control: max-age=60, public".

        Args:
            key: The key/label to display
            value: The value to display
            key_style: Style for the key (default: "dim")
        """
        self.print(f"[{key_style}]{key}:[/{key_style}] {value}")


def get_logger(name: str = "walletgraph.cli") -> WalletGraphLogger:
    """
    Get or create a WalletGraphLogger instance.

    Args:
        name: Logger name (default: "walletgraph.cli")

    Returns:
        WalletGraphLogger instance
    """
    logging.setLoggerClass(WalletGraphLogger)
    try:
        logger = logging.getLogger(name)
    finally:
        logging.setLoggerClass(logging.Logger)

    return logger  # type: ignore[return-value]
