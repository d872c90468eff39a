"""
Balance reminder job runner
Run this from a scheduler once a day: python run_balance_reminder.py
"""

import asyncio
import logging
import sys

from spinbook.database import SessionLocal
from spinbook.domain.reminders.service import BalanceReminderService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


async def run_balance_reminders() -> dict:
    db = SessionLocal()
    try:
        return await BalanceReminderService(db).run()
    finally:
        db.close()


if __name__ == "__main__":
    logger.info("🚀 Starting balance reminder job...")
    try:
        result = asyncio.run(run_balance_reminders())
        logger.info(f"✅ Balance reminder job finished: {result}")
    except KeyboardInterrupt:
        logger.info("👋 Balance reminder job stopped by user")
    except Exception as e:
        logger.error(f"❌ Balance reminder job crashed: {e}")
        sys.exit(1)
