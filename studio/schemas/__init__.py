# Pydantic schemas package
from studio.schemas.job import (
    JobStatus, JobType, JobCreate, JobResponse, ExecuteRequest, ExecuteResponse, ItemImageLinkResponse,
    TagInput, ProductShotInput, HeadshotInput, BodyShotInput, OutfitRenderInput, SelectedItem,
    JOB_INPUT_MODELS,
)
from studio.schemas.tagging import TagResult, TagAttribute, TagValue

__all__ = [
    "JobStatus", "JobType", "JobCreate", "JobResponse", "ExecuteRequest", "ExecuteResponse",
    "ItemImageLinkResponse",
    # Job inputs
    "TagInput", "ProductShotInput", "HeadshotInput", "BodyShotInput", "OutfitRenderInput", "SelectedItem",
    "JOB_INPUT_MODELS",
    # Model output
    "TagResult", "TagAttribute", "TagValue",
]
