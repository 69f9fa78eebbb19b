"""Background job tasks"""

import asyncio
import structlog

from app.jobs.celery_app import celery_app

logger = structlog.get_logger()


def run_async(coro):
    """Helper to run async functions in sync context"""
    return asyncio.run(coro)


@celery_app.task(name="complete_paid_bills")
def complete_paid_bills():
    """Finish bill cascades for payments that completed without closing their bill"""
    logger.info("Checking for unfinished paid bills")

    async def _complete():
        from app.database import SessionLocal, engine
        from app.payments.reconciliation import complete_paid_bills as recover

        async with SessionLocal() as db:
            recovered = await recover(db)
        # Each task run gets a fresh event loop; pooled connections cannot outlive it
        await engine.dispose()

        if recovered:
            logger.info("Recovered paid bills", count=recovered)
        return recovered

    return run_async(_complete())
