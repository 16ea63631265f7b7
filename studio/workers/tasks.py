"""
RQ Task Definitions
Defines the task functions executed by RQ workers.
"""

import asyncio
import logging
from dataclasses import asdict
from typing import Any, Dict

from studio.core.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def _run_async(coro):
    """Helper to run async code in sync context (for RQ)."""
    try:
        loop = asyncio.get_event_loop()
        if loop.is_closed():
            raise RuntimeError("event loop is closed")
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


def run_job_task(job_id: str, owner_id: str) -> Dict[str, Any]:
    """
    RQ task that executes one stored job as its owner.

    A trigger that finds the job already claimed is a no-op; the outcome of
    the run that did claim it is on the job record.
    """
    logger.info(f"[Task] Executing job {job_id}")

    async def _execute():
        from studio.core.database import SessionLocal
        from studio.workers.dispatcher import JobDispatcher

        db = SessionLocal()
        try:
            return await JobDispatcher(db).execute(job_id, owner_id)
        finally:
            db.close()

    try:
        outcome = _run_async(_execute())
    except (ConflictError, NotFoundError) as e:
        logger.warning(f"[Task] Skipping job {job_id}: {e.message}")
        return {"job_id": job_id, "skipped": True, "reason": e.code}

    logger.info(f"[Task] Job {job_id} finished with status {outcome.status}")
    return asdict(outcome)


__all__ = ["run_job_task"]
