"""
Base Processor Classes
Shared context, input validation, progress tracking and timing logs for job processors.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from rq import get_current_job
from sqlalchemy.orm import Session

from studio.core.config import Settings
from studio.core.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ProcessorContext:
    """Everything a processor may touch while running one job."""
    db: Session
    owner_id: str
    job_id: str
    gateway: Any  # GeminiImageService or a test double with the same generate()
    media: Any  # MediaStore
    settings: Settings


class BaseProcessor(ABC):
    """
    Abstract base class for job processors.

    Subclasses set TASK_NAME and INPUT_MODEL and implement process().
    Processors raise StudioError subclasses; they never write job status.
    """

    TASK_NAME: str = "processor"
    INPUT_MODEL: Type[BaseModel] = BaseModel

    def __init__(self):
        self.start_time: Optional[datetime] = None

    def _update_progress(self, progress: float, message: str = ""):
        """Record progress on the surrounding RQ job, if there is one."""
        job = get_current_job()
        if job:
            job.meta["progress"] = min(max(progress, 0), 1)
            job.meta["progress_message"] = message
            job.meta["updated_at"] = datetime.utcnow().isoformat()
            job.save_meta()

        logger.debug(f"Progress: {progress:.0%} - {message}")

    def _log_start(self, **context):
        self.start_time = datetime.utcnow()
        logger.info(f"[START] {self.TASK_NAME} | Context: {context}")

    def _log_complete(self, result_summary: str = ""):
        duration = (datetime.utcnow() - self.start_time).total_seconds() if self.start_time else 0
        self._update_progress(1.0, "Complete")
        logger.info(f"[COMPLETE] {self.TASK_NAME} | Duration: {duration:.2f}s | {result_summary}")

    def _log_error(self, error: Exception):
        duration = (datetime.utcnow() - self.start_time).total_seconds() if self.start_time else 0
        logger.error(f"[ERROR] {self.TASK_NAME} | Duration: {duration:.2f}s | Error: {error}")

    def parse_input(self, raw_input: Optional[Dict[str, Any]]) -> BaseModel:
        try:
            return self.INPUT_MODEL.model_validate(raw_input or {})
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid input for {self.TASK_NAME}",
                {"errors": e.errors(include_url=False)},
            ) from e

    async def run(self, ctx: ProcessorContext, raw_input: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Validate the job input, then process it with timing logs."""
        self._log_start(job_id=ctx.job_id, owner_id=ctx.owner_id)
        try:
            data = self.parse_input(raw_input)
            result = await self.process(ctx, data)
        except Exception as e:
            self._log_error(e)
            raise
        self._log_complete(f"Job {ctx.job_id}")
        return result

    @abstractmethod
    async def process(self, ctx: ProcessorContext, data: BaseModel) -> Dict[str, Any]:
        """
        Do the work for one job. Must be implemented by subclasses.

        Returns:
            JSON-serializable result payload stored on the job
        """
        pass


__all__ = ["ProcessorContext", "BaseProcessor"]
