#!/usr/bin/env python3
"""
Run the security event ledger API with uvicorn.
Agent polls and block sealing start with the app when HEARTBEAT_ENABLED=true.
"""

import argparse
import sys
from pathlib import Path

# Add the project root to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))


def main():
    parser = argparse.ArgumentParser(description="Security event ledger API server")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=3000, help="Port to listen on (default: 3000)")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    args = parser.parse_args()

    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload
    )


if __name__ == "__main__":
    main()
