"""
Tagging Schemas
Strict shape of the JSON object the model returns for a tag job.
"""

from typing import Optional, List
from pydantic import BaseModel, Field


class TagValue(BaseModel):
    value: str = Field(min_length=1)
    confidence: float = Field(ge=0.0, le=1.0)

    class Config:
        extra = "forbid"
        strict = True


class TagAttribute(BaseModel):
    key: str = Field(min_length=1)
    values: List[TagValue]

    class Config:
        extra = "forbid"
        strict = True


class TagResult(BaseModel):
    """Structured output of the tagging prompt."""
    attributes: List[TagAttribute]
    recognized_category: Optional[str] = None
    recognized_subcategory: Optional[str] = None
    suggested_title: Optional[str] = None
    suggested_notes: Optional[str] = None

    class Config:
        extra = "forbid"
        strict = True
