"""
Mark unanswered enquiries as EXPIRED once their expiry date passes.

    python -m app.scripts.expire_enquiries
"""

import asyncio

from app.core.logging import setup_logging
from app.db.session import AsyncSessionLocal
from app.services.enquiry_service import expire_stale_enquiries


async def run() -> int:
    async with AsyncSessionLocal() as db:
        count = await expire_stale_enquiries(db)
        await db.commit()
        return count


def main() -> None:
    setup_logging()
    asyncio.run(run())


if __name__ == "__main__":
    main()
