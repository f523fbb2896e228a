"""
Run the daily jobs once, outside the ARQ scheduler.
Usage: python run_worker.py [reminders|archive]
"""

import asyncio
import logging
import sys

from routieroo.worker import auto_archive_task, date_reminders_task

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

JOBS = {"reminders": date_reminders_task, "archive": auto_archive_task}

if __name__ == "__main__":
    job_name = sys.argv[1] if len(sys.argv) > 1 else "reminders"
    if job_name not in JOBS:
        logger.error(f"❌ Unknown job '{job_name}', expected one of: {', '.join(JOBS)}")
        sys.exit(2)

    logger.info(f"🚀 Running {job_name} job...")
    try:
        result = asyncio.run(JOBS[job_name]({}))
        logger.info(f"✅ Done: {result}")
    except KeyboardInterrupt:
        logger.info("👋 Stopped by user")
