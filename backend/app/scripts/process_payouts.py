"""
Pay performers for finished bookings.

    python -m app.scripts.process_payouts

Meant to run from cron every few minutes. Exits non-zero when any payout
failed so the scheduler surfaces it.
"""

import asyncio
import sys

from app.core.logging import get_logger, setup_logging
from app.db.session import AsyncSessionLocal
from app.services.gateway_factory import get_payment_gateway
from app.services.payment_service import process_payouts

logger = get_logger(__name__)


async def run() -> dict:
    async with AsyncSessionLocal() as db:
        return await process_payouts(db, get_payment_gateway())


def main() -> int:
    setup_logging()
    summary = asyncio.run(run())
    return 1 if summary["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
