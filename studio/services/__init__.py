# Services package - business logic and external integrations
from studio.services.storage import StorageService
from studio.services.media import MediaStore, ImagePayload, detect_mime_type
from studio.services.gemini_image import GeminiImageService, ResponseType, model_input_ceiling
from studio.services.pointers import PointerStore
from studio.services.workflow import Workflow, select_workflow

__all__ = [
    "StorageService",
    "MediaStore",
    "ImagePayload",
    "detect_mime_type",
    "GeminiImageService",
    "ResponseType",
    "model_input_ceiling",
    "PointerStore",
    "Workflow",
    "select_workflow",
]
