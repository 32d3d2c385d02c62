"""Simple server runner that keeps uvicorn alive."""
import logging
import signal
import sys

import uvicorn

from trustmeds.core.config import settings


def handle_signal(sig, frame):
    print(f"\nReceived signal {sig}, shutting down gracefully...")
    sys.exit(0)


signal.signal(signal.SIGINT, handle_signal)
signal.signal(signal.SIGTERM, handle_signal)

if __name__ == "__main__":
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    print("=" * 50)
    print("  Starting TrustMeds Inventory Ledger")
    print("=" * 50)
    uvicorn.run(
        "trustmeds.main:app",
        host="127.0.0.1",
        port=8000,
        log_level=settings.LOG_LEVEL.lower(),
    )
