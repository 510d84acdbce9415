#!/usr/bin/env python3
"""
Loanbook Entry Point

Starts the FastAPI server with the lending engine.
"""

import sys

from loanbook.api import run_server
from loanbook.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("💵 Starting Loanbook...")
    print(f"🗄️  Storage: {'SQLite at ' + config.database_path if config.use_sqlite else 'in-memory'}")
    print(f"🌐 API available at: http://localhost:{config.api_port}")
    print(f"📚 Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server()
    except KeyboardInterrupt:
        print("\n👋 Shutting down Loanbook...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)
