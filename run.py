#!/usr/bin/env python3
"""
Run the Deal Ledger web server.
"""

import uvicorn

from utils.config import Config
from utils.log import configure_logging


def main():
    """Start the web server."""
    config = Config.load()
    configure_logging(config.log_level)

    print(f"Starting Deal Ledger on http://{config.host}:{config.port}")
    print(f"Record store: {config.store_path}")
    print("Press Ctrl+C to stop")

    uvicorn.run(
        "web.app:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
    )


if __name__ == "__main__":
    main()
