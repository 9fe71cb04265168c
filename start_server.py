#!/usr/bin/env python3
"""Run the route planner API, honouring the PORT and HOST environment variables."""

import os
import sys

import uvicorn

# Make the src layout importable when the package is not installed
sys.path.insert(0, os.path.abspath("src"))


def _port() -> int:
    raw = os.environ.get("PORT", "8000")
    try:
        return int(raw)
    except ValueError:
        print(f"Warning: Invalid PORT value '{raw}', using default 8000", file=sys.stderr)
        return 8000


if __name__ == "__main__":
    port = _port()
    print(f"Starting route planner on port {port}...", file=sys.stderr)
    uvicorn.run(
        "routeplanner.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=port,
        proxy_headers=True,
        forwarded_allow_ips="*",
    )
