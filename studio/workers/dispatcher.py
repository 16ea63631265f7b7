"""
Job Dispatcher
Claims a queued job, routes it to its processor and records the outcome.

Status only moves forward: queued -> running -> succeeded | failed. The claim
and the terminal write are both conditional updates, so a job is processed
at most once no matter how many triggers arrive.
"""

import logging
import traceback
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studio.core.config import settings as default_settings
from studio.core.errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    StudioError,
    ValidationError,
)
from studio.models import Job, JobStatus, JobType
from studio.workers.base import BaseProcessor, ProcessorContext
from studio.workers.body_shot import BodyShotProcessor
from studio.workers.headshot import HeadshotProcessor
from studio.workers.outfit_render import OutfitRenderProcessor
from studio.workers.product_shot import ProductShotProcessor
from studio.workers.tagger import TagProcessor

logger = logging.getLogger(__name__)


PROCESSORS: Dict[str, Type[BaseProcessor]] = {
    JobType.TAG: TagProcessor,
    JobType.PRODUCT_SHOT: ProductShotProcessor,
    JobType.HEADSHOT_GENERATE: HeadshotProcessor,
    JobType.BODY_SHOT_GENERATE: BodyShotProcessor,
    JobType.OUTFIT_RENDER: OutfitRenderProcessor,
}


@dataclass
class ExecutionOutcome:
    """Terminal outcome of one execution, as persisted on the job."""
    job_id: str
    status: str
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    billable: bool = True

    @property
    def success(self) -> bool:
        return self.status == JobStatus.SUCCEEDED


class JobDispatcher:
    """Executes jobs for their owners."""

    def __init__(
        self,
        db: Session,
        gateway=None,
        media=None,
        processors: Optional[Dict[str, Type[BaseProcessor]]] = None,
        settings=None,
    ):
        self.db = db
        self.settings = settings or default_settings
        self.processors = processors if processors is not None else PROCESSORS
        self._gateway = gateway
        self._media = media

    @property
    def gateway(self):
        if self._gateway is None:
            from studio.services.gemini_image import GeminiImageService
            self._gateway = GeminiImageService()
        return self._gateway

    @property
    def media(self):
        if self._media is None:
            from studio.services.media import MediaStore
            self._media = MediaStore(self.db)
        return self._media

    def claim(self, job_id: str, caller_id: str) -> Job:
        """
        Move an owned job from queued to running.

        Raises:
            AuthError: no caller identity
            NotFoundError: job missing or owned by someone else
            ConflictError: job is already running or finished
        """
        if not caller_id:
            raise AuthError("Authentication required")

        job = self.db.query(Job).filter(Job.id == job_id).first()
        if not job or job.owner_id != caller_id:
            raise NotFoundError("Job not found")

        claimed = (
            self.db.query(Job)
            .filter(Job.id == job_id, Job.owner_id == caller_id, Job.status == JobStatus.QUEUED)
            .update(
                {Job.status: JobStatus.RUNNING, Job.updated_at: datetime.utcnow()},
                synchronize_session=False,
            )
        )
        self.db.commit()

        if claimed == 0:
            self.db.refresh(job)
            logger.warning(f"[Dispatcher] Job {job_id} not claimable (status: {job.status})")
            raise ConflictError(f"Job already {job.status}", {"status": job.status})

        self.db.refresh(job)
        logger.info(f"[Dispatcher] Claimed {job.job_type} job {job_id}")
        return job

    def _write_terminal(self, job_id: str, values: Dict[Any, Any]) -> bool:
        now = datetime.utcnow()
        values.update({Job.updated_at: now, Job.completed_at: now})
        written = (
            self.db.query(Job)
            .filter(Job.id == job_id, Job.status == JobStatus.RUNNING)
            .update(values, synchronize_session=False)
        )
        return written == 1

    def _record_failure(self, job_id: str, error: StudioError) -> ExecutionOutcome:
        self.db.rollback()
        written = self._write_terminal(job_id, {
            Job.status: JobStatus.FAILED,
            Job.error: error.message,
            Job.error_code: error.code,
        })
        self.db.commit()
        if not written:
            logger.warning(f"[Dispatcher] Job {job_id} left running state before failure was recorded")
        logger.error(f"[Dispatcher] Job {job_id} failed ({error.code}): {error.message}")
        return ExecutionOutcome(
            job_id=job_id,
            status=JobStatus.FAILED,
            error=error.message,
            error_code=error.code,
            billable=error.billable,
        )

    async def execute(self, job_id: str, caller_id: str) -> ExecutionOutcome:
        """
        Claim and process one job. Processor failures are recorded on the job
        and returned, never raised; only claim errors propagate.
        """
        job = self.claim(job_id, caller_id)

        processor_cls = self.processors.get(job.job_type)
        if processor_cls is None:
            return self._record_failure(job_id, ValidationError(f"Unknown job type: {job.job_type}"))

        ctx = ProcessorContext(
            db=self.db,
            owner_id=job.owner_id,
            job_id=job.id,
            gateway=self.gateway,
            media=self.media,
            settings=self.settings,
        )

        try:
            result = await processor_cls().run(ctx, job.input)
            if not self._write_terminal(job_id, {Job.status: JobStatus.SUCCEEDED, Job.result: result}):
                raise ConflictError("Job left running state during processing")
            self.db.commit()
        except StudioError as e:
            return self._record_failure(job_id, e)
        except SQLAlchemyError as e:
            logger.error(f"[Dispatcher] Persistence error for job {job_id}: {e}\n{traceback.format_exc()}")
            return self._record_failure(job_id, PersistenceError(f"Failed to save results: {e.__class__.__name__}"))
        except Exception as e:
            logger.error(f"[Dispatcher] Unexpected error for job {job_id}: {e}\n{traceback.format_exc()}")
            return self._record_failure(job_id, StudioError(str(e) or e.__class__.__name__))

        logger.info(f"[Dispatcher] Job {job_id} succeeded")
        return ExecutionOutcome(job_id=job_id, status=JobStatus.SUCCEEDED, result=result)


__all__ = ["JobDispatcher", "ExecutionOutcome", "PROCESSORS"]
