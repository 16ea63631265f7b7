# Database models package
from studio.models.job import Job, JobStatus, JobType
from studio.models.image import Image, ImageSource, ItemImageLink, ImageLinkType
from studio.models.wardrobe import WardrobeItem, WardrobeCategory, WardrobeSubcategory
from studio.models.attribute import AttributeDefinition, AttributeValue, EntityAttribute, AttributeSource
from studio.models.user import UserSettings
from studio.models.outfit import Outfit, OutfitRender

__all__ = [
    "Job",
    "JobStatus",
    "JobType",
    "Image",
    "ImageSource",
    "ItemImageLink",
    "ImageLinkType",
    "WardrobeItem",
    "WardrobeCategory",
    "WardrobeSubcategory",
    "AttributeDefinition",
    "AttributeValue",
    "EntityAttribute",
    "AttributeSource",
    "UserSettings",
    "Outfit",
    "OutfitRender",
]
