"""Development entry point for running the dashboard API."""
from __future__ import annotations

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "vizboard.app:app",
        host=os.getenv("API_HOST", "127.0.0.1"),
        port=int(os.getenv("API_PORT", "8080")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        reload=os.getenv("API_RELOAD", "").lower() in ("1", "true", "yes"),
    )


if __name__ == "__main__":
    main()
