"""
Utility modules for the deal ledger.
"""

from .formatting import format_currency, format_percent
from .config import Config
from .log import configure_logging

__all__ = ["format_currency", "format_percent", "Config", "configure_logging"]
