"""
Headshot Processor
Stylizes a selfie into a studio headshot and makes it the user's current one.
"""

import logging
from typing import Any, Dict

from studio.schemas.job import HeadshotInput
from studio.services.gemini_image import ResponseType
from studio.services.media import timestamp_ms
from studio.services.pointers import PointerStore
from studio.services.prompts import headshot_prompt
from studio.workers.base import BaseProcessor, ProcessorContext

logger = logging.getLogger(__name__)


class HeadshotProcessor(BaseProcessor):
    """Processor for `headshot_generate` jobs."""

    TASK_NAME = "headshot_generate"
    INPUT_MODEL = HeadshotInput

    async def process(self, ctx: ProcessorContext, data: HeadshotInput) -> Dict[str, Any]:
        self._update_progress(0.1, "Downloading selfie...")
        selfie = await ctx.media.download(data.selfie_image_id, ctx.owner_id)

        self._update_progress(0.3, "Generating headshot...")
        image_bytes = await ctx.gateway.generate(
            headshot_prompt(data.hair_style, data.makeup_style),
            [selfie],
            model=ctx.settings.GEMINI_MODEL,
            response_type=ResponseType.IMAGE,
        )

        self._update_progress(0.8, "Saving headshot...")
        path = f"{ctx.owner_id}/ai/headshots/{timestamp_ms()}.jpg"
        image = await ctx.media.upload(ctx.owner_id, image_bytes, path)
        PointerStore(ctx.db, ctx.owner_id).set_current_headshot(image.id)

        return {"image_id": image.id, "storage_key": image.storage_key}
