"""
Configuration management.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: _env_bool("DEBUG", "false"))

    # Data
    data_dir: str = field(default_factory=lambda: os.getenv("DATA_DIR", "./data"))
    store_path: str = field(default_factory=lambda: os.getenv("DEAL_STORE_PATH", ""))
    receipts_dir: str = field(default_factory=lambda: os.getenv("RECEIPTS_DIR", ""))

    # Presentation
    currency: str = field(default_factory=lambda: os.getenv("CURRENCY", "PKR"))
    company_name: str = field(default_factory=lambda: os.getenv("COMPANY_NAME", "AARAAZI"))

    # Commission policy
    require_full_split_allocation: bool = field(
        default_factory=lambda: _env_bool("REQUIRE_FULL_SPLIT", "true")
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    def __post_init__(self):
        """Derive data paths that were not set explicitly."""
        if not self.store_path:
            self.store_path = str(Path(self.data_dir) / "deal_store.json")
        if not self.receipts_dir:
            self.receipts_dir = str(Path(self.data_dir) / "receipts")

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "data_dir": self.data_dir,
            "store_path": self.store_path,
            "receipts_dir": self.receipts_dir,
            "currency": self.currency,
            "company_name": self.company_name,
            "require_full_split_allocation": self.require_full_split_allocation,
            "log_level": self.log_level,
        }
