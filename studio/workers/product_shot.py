"""
Product Shot Processor
Turns one item photo into a square white-background studio shot and puts it
first in the item's image order.
"""

import base64
import logging
from typing import Any, Dict

from studio.core.errors import NotFoundError
from studio.models import ImageLinkType, ItemImageLink, WardrobeItem
from studio.schemas.job import ProductShotInput
from studio.services.gemini_image import ResponseType
from studio.services.media import timestamp_ms
from studio.services.prompts import PRODUCT_SHOT_PROMPT
from studio.workers.base import BaseProcessor, ProcessorContext

logger = logging.getLogger(__name__)


def reindex_item_links(db, item_id: str) -> int:
    """
    Shift every existing link of an item to positions 1..N, keeping their
    relative order. Links without a position go last.

    Two passes, one flushed row at a time, so the (item_id, sort_order)
    unique constraint never sees a duplicate: first every row is parked
    above the current maximum, highest first, then rows are packed down to
    1..N lowest first.
    """
    links = (
        db.query(ItemImageLink)
        .filter(ItemImageLink.item_id == item_id)
        .order_by(ItemImageLink.sort_order.is_(None), ItemImageLink.sort_order, ItemImageLink.id)
        .all()
    )
    top = max((link.sort_order for link in links if link.sort_order is not None), default=0)
    for index in range(len(links) - 1, -1, -1):
        links[index].sort_order = top + index + 1
        db.flush()
    for index, link in enumerate(links):
        link.sort_order = index + 1
        db.flush()
    return len(links)


class ProductShotProcessor(BaseProcessor):
    """Processor for `product_shot` jobs."""

    TASK_NAME = "product_shot"
    INPUT_MODEL = ProductShotInput

    async def process(self, ctx: ProcessorContext, data: ProductShotInput) -> Dict[str, Any]:
        db = ctx.db
        item = db.query(WardrobeItem).filter(WardrobeItem.id == data.item_id).first()
        if not item or item.owner_id != ctx.owner_id:
            raise NotFoundError(f"Wardrobe item not found: {data.item_id}")

        self._update_progress(0.1, "Downloading image...")
        source = await ctx.media.download(data.image_id, ctx.owner_id)

        self._update_progress(0.3, "Generating product shot...")
        image_bytes = await ctx.gateway.generate(
            PRODUCT_SHOT_PROMPT, [source], model=ctx.settings.GEMINI_MODEL, response_type=ResponseType.IMAGE
        )

        self._update_progress(0.7, "Saving product shot...")
        path = f"{ctx.owner_id}/ai/product_shots/{timestamp_ms()}.jpg"
        image = await ctx.media.upload(ctx.owner_id, image_bytes, path)

        shifted = reindex_item_links(db, item.id)
        db.add(ItemImageLink(
            item_id=item.id,
            image_id=image.id,
            type=ImageLinkType.PRODUCT_SHOT,
            sort_order=0,
        ))
        db.flush()

        logger.info(f"[ProductShot] Item {item.id}: new shot {image.id}, shifted {shifted} link(s)")
        return {
            "image_id": image.id,
            "storage_key": image.storage_key,
            "base64_result": base64.b64encode(image_bytes).decode("ascii"),
        }
