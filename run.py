#!/usr/bin/env python3
"""
LedgerDesk Entry Point

Starts the FastAPI server. Equivalent to `python -m ledgerdesk`.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from ledgerdesk.__main__ import main


if __name__ == "__main__":
    main()
