"""
Job Schemas
Pydantic models for job API requests, responses and per-type job inputs.
"""

from datetime import datetime
from typing import Optional, Dict, Any, List
from enum import Enum
from pydantic import BaseModel, Field, model_validator
from pydantic import ValidationError as PydanticValidationError


class JobStatus(str, Enum):
    """Job status enum."""
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class JobType(str, Enum):
    """Job type enum."""
    TAG = "tag"
    PRODUCT_SHOT = "product_shot"
    HEADSHOT_GENERATE = "headshot_generate"
    BODY_SHOT_GENERATE = "body_shot_generate"
    OUTFIT_RENDER = "outfit_render"


# ---------------------------------------------------------------------------
# Per-type inputs. These are versioned contracts: add optional fields only.
# ---------------------------------------------------------------------------

class TagInput(BaseModel):
    """Input for tag jobs."""
    item_id: str
    image_ids: List[str] = Field(min_length=1)
    category_context: Optional[str] = None


class ProductShotInput(BaseModel):
    """Input for product_shot jobs."""
    image_id: str
    item_id: str


class HeadshotInput(BaseModel):
    """Input for headshot_generate jobs."""
    selfie_image_id: str
    hair_style: Optional[str] = None
    makeup_style: Optional[str] = None


class BodyShotInput(BaseModel):
    """
    Input for body_shot_generate jobs.

    Either a body photo (plus an optional headshot, else the user's current
    one) or a selfie + mirror selfie pair.
    """
    body_photo_image_id: Optional[str] = None
    headshot_image_id: Optional[str] = None
    selfie_image_id: Optional[str] = None
    mirror_selfie_image_id: Optional[str] = None

    @property
    def uses_selfie_pair(self) -> bool:
        return bool(self.selfie_image_id and self.mirror_selfie_image_id)

    @model_validator(mode="after")
    def require_body_reference(self):
        if not self.uses_selfie_pair and not self.body_photo_image_id:
            raise ValueError("body_photo_image_id or a selfie pair is required")
        return self


class SelectedItem(BaseModel):
    item_id: str


class OutfitRenderInput(BaseModel):
    """
    Input for outfit_render jobs.

    Either the selected items or a pre-stacked grid image of them. When
    stacked_image_id is set it replaces the per-item images.
    """
    outfit_id: str
    selected_items: List[SelectedItem] = []
    stacked_image_id: Optional[str] = None
    headshot_image_id: Optional[str] = None
    prompt: Optional[str] = None
    settings: Dict[str, Any] = {}

    @model_validator(mode="after")
    def require_items(self):
        if not self.stacked_image_id and not self.selected_items:
            raise ValueError("stacked_image_id or selected_items is required")
        return self


JOB_INPUT_MODELS = {
    JobType.TAG.value: TagInput,
    JobType.PRODUCT_SHOT.value: ProductShotInput,
    JobType.HEADSHOT_GENERATE.value: HeadshotInput,
    JobType.BODY_SHOT_GENERATE.value: BodyShotInput,
    JobType.OUTFIT_RENDER.value: OutfitRenderInput,
}


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

class JobCreate(BaseModel):
    """Schema for creating a job."""
    job_type: JobType
    input: Dict[str, Any]

    @model_validator(mode="after")
    def validate_input_shape(self):
        try:
            JOB_INPUT_MODELS[self.job_type.value].model_validate(self.input)
        except PydanticValidationError as e:
            raise ValueError(f"invalid input for {self.job_type.value}: {e}") from e
        return self


class JobResponse(BaseModel):
    """Schema for job response."""
    id: str
    job_type: str
    owner_id: str
    input: Dict[str, Any] = {}
    status: str
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ExecuteRequest(BaseModel):
    """Schema for the execution trigger."""
    job_id: str


class ExecuteResponse(BaseModel):
    """Outcome of one execution."""
    success: bool
    job_id: str
    status: str
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    billable: bool = True


class ItemImageLinkResponse(BaseModel):
    """One ordered image of a wardrobe item."""
    item_id: str
    image_id: str
    type: str
    sort_order: int

    class Config:
        from_attributes = True
