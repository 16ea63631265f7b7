"""
Job Model
Database model for AI generation jobs.
"""

from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, JSON

from studio.core.database import Base


class JobStatus:
    """Job status constants. Transitions only move forward."""
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    TERMINAL = (SUCCEEDED, FAILED)
    ACTIVE = (QUEUED, RUNNING)


class JobType:
    """Job type constants, one per processor."""
    TAG = "tag"
    PRODUCT_SHOT = "product_shot"
    HEADSHOT_GENERATE = "headshot_generate"
    BODY_SHOT_GENERATE = "body_shot_generate"
    OUTFIT_RENDER = "outfit_render"


class Job(Base):
    """AI job record. Created queued, claimed once, finished once."""

    __tablename__ = "ai_jobs"

    id = Column(String, primary_key=True)  # job_xxxx format
    job_type = Column(String, nullable=False, index=True)
    owner_id = Column(String, nullable=False, index=True)

    # Request (shape depends on job_type)
    input = Column(JSON, default=dict)

    status = Column(String, default=JobStatus.QUEUED, nullable=False, index=True)

    # Outcome
    result = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)
    error_code = Column(String, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)
