"""
Jobs API Routes
Create jobs, trigger their execution and read them back.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from studio.api.deps import get_current_user_id, get_db, get_dispatcher, get_queue
from studio.core.errors import AuthError, ConflictError, NotFoundError
from studio.models.job import Job, JobStatus
from studio.schemas.job import ExecuteRequest, ExecuteResponse, JobCreate, JobResponse, JobType

logger = logging.getLogger(__name__)

router = APIRouter()

NO_STORE = {"Cache-Control": "no-store"}

RECENT_WINDOW = timedelta(seconds=60)
ENTITY_SCAN_LIMIT = 50


def references_entity(value: Any, entity_id: str) -> bool:
    """True if ``entity_id`` appears anywhere in a job input."""
    if isinstance(value, dict):
        return any(references_entity(v, entity_id) for v in value.values())
    if isinstance(value, list):
        return any(references_entity(v, entity_id) for v in value)
    return value == entity_id


def _newest_matching(query, entity_id: Optional[str]) -> Optional[Job]:
    jobs = query.order_by(Job.created_at.desc()).limit(ENTITY_SCAN_LIMIT).all()
    if entity_id is None:
        return jobs[0] if jobs else None
    return next((job for job in jobs if references_entity(job.input, entity_id)), None)


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def create_job(
    request: JobCreate,
    execute: bool = False,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    queue=Depends(get_queue),
):
    """Create a queued job. With ?execute=true its execution is enqueued right away."""
    job = Job(
        id=f"job_{uuid.uuid4().hex[:12]}",
        job_type=request.job_type.value,
        owner_id=user_id,
        input=request.input,
        status=JobStatus.QUEUED,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    logger.info(f"[Jobs] Created {job.job_type} job {job.id} for {user_id}")

    if execute:
        try:
            queue.enqueue_execution(job.id, user_id)
        except RedisError as e:
            # The job stays queued and can still be executed through /execute
            logger.error(f"[Jobs] Could not enqueue job {job.id}: {e}")

    return job


@router.post("/execute", response_model=ExecuteResponse)
async def execute_job(
    request: ExecuteRequest,
    user_id: str = Depends(get_current_user_id),
    dispatcher=Depends(get_dispatcher),
):
    """
    Run a queued job synchronously.

    200 on success; 401/404/409 when the job cannot be claimed; 500 with the
    recorded error, its code and billable flag when processing failed.
    """
    try:
        outcome = await dispatcher.execute(request.job_id, user_id)
    except AuthError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    body = ExecuteResponse(
        success=outcome.success,
        job_id=outcome.job_id,
        status=outcome.status,
        result=outcome.result,
        error=outcome.error,
        error_code=outcome.error_code,
        billable=outcome.billable,
    )
    if not outcome.success:
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body.model_dump())
    return body


@router.get("/active", response_model=Optional[JobResponse])
async def get_active_job(
    response: Response,
    job_type: JobType,
    entity_id: Optional[str] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Newest queued or running job of this type that references the entity."""
    response.headers.update(NO_STORE)
    query = db.query(Job).filter(
        Job.owner_id == user_id,
        Job.job_type == job_type.value,
        Job.status.in_(JobStatus.ACTIVE),
    )
    return _newest_matching(query, entity_id)


@router.get("/recent", response_model=Optional[JobResponse])
async def get_recent_job(
    response: Response,
    job_type: JobType,
    entity_id: Optional[str] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Newest job of this type that finished within the last minute."""
    response.headers.update(NO_STORE)
    query = db.query(Job).filter(
        Job.owner_id == user_id,
        Job.job_type == job_type.value,
        Job.status.in_(JobStatus.TERMINAL),
        Job.updated_at >= datetime.utcnow() - RECENT_WINDOW,
    )
    return _newest_matching(query, entity_id)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: str,
    response: Response,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Get job status and result. Never cached."""
    response.headers.update(NO_STORE)
    job = db.query(Job).filter(Job.id == job_id).first()

    if not job or job.owner_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found"
        )

    return job
