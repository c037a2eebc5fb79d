import logging

from rich.logging import RichHandler

__version__ = "0.3.0"

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)],
)

log = logging.getLogger("walletgraph")
