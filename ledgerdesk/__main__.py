"""
LedgerDesk Entry Point

Starts the FastAPI server with the reservation desk and ATM ledger.
"""

import sys

from ledgerdesk.api import run_server
from ledgerdesk.config import get_config
from ledgerdesk.logging_config import setup_logging


def main() -> None:
    config = get_config()
    setup_logging(config.log_level, config.log_format)
    
    print("Starting LedgerDesk...")
    print(f"Data directory: {config.data_dir}")
    print(f"API available at: http://{config.api_host}:{config.api_port}")
    print(f"Documentation at: http://{config.api_host}:{config.api_port}/docs")
    print()
    
    try:
        run_server(host=config.api_host, port=config.api_port)
    except KeyboardInterrupt:
        print("\nShutting down LedgerDesk...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
