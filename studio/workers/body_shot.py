"""
Body Shot Processor
Composites the user's head reference onto a full-body photo.
"""

import logging
from typing import Any, Dict

from studio.core.errors import ValidationError
from studio.schemas.job import BodyShotInput
from studio.services.gemini_image import ResponseType
from studio.services.media import timestamp_ms
from studio.services.pointers import PointerStore
from studio.services.prompts import BODY_COMPOSITE_PROMPT
from studio.workers.base import BaseProcessor, ProcessorContext

logger = logging.getLogger(__name__)


class BodyShotProcessor(BaseProcessor):
    """
    Processor for `body_shot_generate` jobs.

    Two input modes:
    - selfie pair: the selfie is the head reference, the mirror selfie the body
    - body photo: head reference is the explicit headshot, else the current one
    """

    TASK_NAME = "body_shot_generate"
    INPUT_MODEL = BodyShotInput

    async def process(self, ctx: ProcessorContext, data: BodyShotInput) -> Dict[str, Any]:
        pointers = PointerStore(ctx.db, ctx.owner_id)

        if data.uses_selfie_pair:
            head_id, body_id = data.selfie_image_id, data.mirror_selfie_image_id
        else:
            head_id = data.headshot_image_id or pointers.current_headshot_image_id
            body_id = data.body_photo_image_id
        if not head_id:
            raise ValidationError("Missing head reference image")

        self._update_progress(0.1, "Downloading references...")
        head = await ctx.media.download(head_id, ctx.owner_id)
        body = await ctx.media.download(body_id, ctx.owner_id)

        model = pointers.model_preference or ctx.settings.GEMINI_MODEL_BODY_SHOT
        logger.info(f"[BodyShot] Job {ctx.job_id}: head {head_id}, body {body_id}, model {model}")

        self._update_progress(0.3, "Generating body shot...")
        image_bytes = await ctx.gateway.generate(
            BODY_COMPOSITE_PROMPT, [head, body], model=model, response_type=ResponseType.IMAGE
        )

        self._update_progress(0.8, "Saving body shot...")
        path = f"{ctx.owner_id}/ai/body_shots/{timestamp_ms()}.jpg"
        image = await ctx.media.upload(ctx.owner_id, image_bytes, path)
        pointers.set_current_body_shot(image.id)

        return {"image_id": image.id, "storage_key": image.storage_key}
