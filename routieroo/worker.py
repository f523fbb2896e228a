"""
ARQ Background Worker
Daily important-date reminders and nightly auto-archiving of completed routes
"""

import logging
import os
from datetime import datetime

from arq.connections import RedisSettings
from arq.cron import cron

# Register models with Base
from . import models  # noqa: F401
from .config import REDIS_URL
from .database import SessionLocal
from .domain.routes.service import RouteService
from .models import User
from .services.reminder_service import process_user_reminders

logger = logging.getLogger(__name__)


def get_redis_settings() -> RedisSettings:
    """Get Redis settings for ARQ worker"""
    settings = RedisSettings.from_dsn(REDIS_URL)
    settings.conn_timeout = 15
    settings.conn_retry_delay = 1
    return settings


async def date_reminders_task(ctx):
    """Daily cron job: email reminders for users with date reminders enabled"""
    logger.info("🔔 Starting daily date reminders")

    db = SessionLocal()
    try:
        users = db.query(User).filter(User.enable_date_reminders.is_(True)).all()

        processed = sent = failed = 0
        for user in users:
            try:
                result = await process_user_reminders(db, user)
                processed += result["processed"]
                sent += result["sent"]
            except Exception as e:
                failed += 1
                logger.error(f"❌ Reminders failed for user {user.id}: {str(e)}")
                continue

        summary = {"users": len(users), "processed": processed, "sent": sent, "failed": failed}
        logger.info(f"Date reminders complete: {summary}")
        return summary
    finally:
        db.close()


async def auto_archive_task(ctx):
    """Nightly cron job: archive completed routes older than each user's auto_archive_days"""
    logger.info("🗄️ Starting route auto-archive")

    db = SessionLocal()
    try:
        users = db.query(User).filter(User.auto_archive_days.isnot(None)).all()
        service = RouteService(db)
        now = datetime.utcnow()

        archived = 0
        for user in users:
            try:
                archived += service.auto_archive_routes(user, now)
            except Exception as e:
                db.rollback()
                logger.error(f"❌ Auto-archive failed for user {user.id}: {str(e)}")
                continue

        logger.info(f"Auto-archive complete: {archived} routes archived for {len(users)} users")
        return {"users": len(users), "archived": archived}
    finally:
        db.close()


class WorkerSettings:
    """ARQ Worker Settings"""

    functions = [date_reminders_task, auto_archive_task]
    redis_settings = get_redis_settings()

    max_jobs = int(os.getenv("ARQ_MAX_JOBS", "10"))
    job_timeout = int(os.getenv("ARQ_JOB_TIMEOUT", "600"))
    keep_result = int(os.getenv("ARQ_KEEP_RESULT", "3600"))

    max_tries = 3

    cron_jobs = [
        cron(date_reminders_task, hour=9, minute=0),  # 9 AM UTC
        cron(auto_archive_task, hour=2, minute=0),  # 2 AM UTC
    ]
