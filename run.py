#!/usr/bin/env python3
"""
Bag Ledger Entry Point

Starts the FastAPI server with settings from the BAGS_* environment.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from bag_ledger.config import get_config
from bag_ledger.logging_config import setup_logging
from bag_ledger.api import run_server


if __name__ == "__main__":
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)

    print(f"Starting {config.collection_name} ledger...")
    print(f"Storage: {config.database_url}")
    print(f"Settlement mode: {config.settlement_mode}")
    print(f"API available at: http://{config.api_host}:{config.api_port}")
    print(f"Documentation at: http://{config.api_host}:{config.api_port}/docs")
    print()

    try:
        run_server(host=config.api_host, port=config.api_port)
    except KeyboardInterrupt:
        print("\nShutting down...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
