"""
Outfit Render Processor
Dresses the user's body shot in the selected wardrobe items.

Workflows:
- direct: one call with body, headshot and every item image
- staged: items are first combined on a ghost mannequin, then the mannequin
  image is rendered onto the body with the pro model
- stacked: a pre-stacked grid image of the items replaces the per-item
  images and goes out in a single call with body and headshot
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from studio.core.errors import NotFoundError, ValidationError
from studio.models import ImageLinkType, ItemImageLink, Outfit, OutfitRender, WardrobeItem
from studio.schemas.job import OutfitRenderInput
from studio.services.gemini_image import ResponseType, model_input_ceiling
from studio.services.media import ImagePayload, timestamp_ms
from studio.services.pointers import PointerStore
from studio.services.prompts import (
    outfit_direct_prompt,
    outfit_final_prompt,
    outfit_mannequin_prompt,
    outfit_stacked_prompt,
)
from studio.services.workflow import Workflow, select_workflow
from studio.workers.base import BaseProcessor, ProcessorContext

logger = logging.getLogger(__name__)

UNORDERED = 999


def best_item_image_id(links: List[ItemImageLink]) -> Optional[str]:
    """Product shot first, then the lowest sort order."""
    if not links:
        return None
    ranked = sorted(
        links,
        key=lambda link: (
            link.type != ImageLinkType.PRODUCT_SHOT,
            link.sort_order if link.sort_order is not None else UNORDERED,
        ),
    )
    return ranked[0].image_id


class OutfitRenderProcessor(BaseProcessor):
    """Processor for `outfit_render` jobs."""

    TASK_NAME = "outfit_render"
    INPUT_MODEL = OutfitRenderInput

    def _resolve_item_image_ids(self, ctx: ProcessorContext, data: OutfitRenderInput) -> List[str]:
        item_ids = [selected.item_id for selected in data.selected_items]
        items = {
            item.id: item
            for item in ctx.db.query(WardrobeItem).filter(WardrobeItem.id.in_(item_ids)).all()
        }

        image_ids = []
        for item_id in item_ids:
            item = items.get(item_id)
            if not item or item.owner_id != ctx.owner_id:
                raise NotFoundError(f"Wardrobe item not found: {item_id}")
            image_id = best_item_image_id(item.image_links)
            if image_id:
                image_ids.append(image_id)
            else:
                logger.warning(f"[OutfitRender] Item {item_id} has no images, skipping")

        if not image_ids:
            raise ValidationError("No valid images found for outfit items")
        return image_ids

    async def process(self, ctx: ProcessorContext, data: OutfitRenderInput) -> Dict[str, Any]:
        db = ctx.db
        outfit = db.query(Outfit).filter(Outfit.id == data.outfit_id).first()
        if not outfit or outfit.owner_id != ctx.owner_id:
            raise NotFoundError(f"Outfit not found: {data.outfit_id}")

        pointers = PointerStore(db, ctx.owner_id)
        body_id = pointers.current_body_shot_image_id
        if not body_id:
            raise ValidationError("Missing body shot")
        head_id = data.headshot_image_id or pointers.current_headshot_image_id
        if not head_id:
            raise ValidationError("Missing headshot")

        preferred_model = pointers.model_preference or ctx.settings.GEMINI_MODEL
        if data.stacked_image_id:
            # One grid image stands in for every item
            item_image_ids = [data.stacked_image_id]
            items_count = data.settings.get("items_count") or len(data.selected_items)
        else:
            item_image_ids = self._resolve_item_image_ids(ctx, data)
            items_count = len(item_image_ids)
        workflow = select_workflow(len(item_image_ids), model_input_ceiling(preferred_model))
        logger.info(
            f"[OutfitRender] Outfit {outfit.id}: {len(item_image_ids)} item image(s), "
            f"model {preferred_model}, workflow {workflow.value}, stacked {bool(data.stacked_image_id)}"
        )

        self._update_progress(0.1, "Downloading images...")
        body = await ctx.media.download(body_id, ctx.owner_id)
        head = await ctx.media.download(head_id, ctx.owner_id)
        items = [await ctx.media.download(image_id, ctx.owner_id) for image_id in item_image_ids]

        mannequin_image_id = None
        if data.stacked_image_id:
            self._update_progress(0.4, "Rendering outfit...")
            final_bytes = await ctx.gateway.generate(
                outfit_stacked_prompt(items_count, data.prompt),
                [body, head, items[0]],
                model=preferred_model,
                response_type=ResponseType.IMAGE,
            )
        elif workflow == Workflow.STAGED:
            self._update_progress(0.3, "Building mannequin composite...")
            mannequin_bytes = await ctx.gateway.generate(
                outfit_mannequin_prompt(len(items), data.prompt),
                items,
                model=preferred_model,
                response_type=ResponseType.IMAGE,
            )
            mannequin = await ctx.media.upload(
                ctx.owner_id,
                mannequin_bytes,
                f"{ctx.owner_id}/ai/outfits/{outfit.id}/mannequin/{timestamp_ms()}.jpg",
            )
            mannequin_image_id = mannequin.id

            self._update_progress(0.6, "Rendering outfit...")
            final_bytes = await ctx.gateway.generate(
                outfit_final_prompt(len(items), data.prompt),
                [body, ImagePayload(mannequin.id, mannequin_bytes, mannequin.mime_type), head],
                model=ctx.settings.GEMINI_MODEL_PRO,
                response_type=ResponseType.IMAGE,
            )
        else:
            self._update_progress(0.4, "Rendering outfit...")
            final_bytes = await ctx.gateway.generate(
                outfit_direct_prompt(len(items), data.prompt),
                [body, head, *items],
                model=preferred_model,
                response_type=ResponseType.IMAGE,
            )

        self._update_progress(0.9, "Saving render...")
        image = await ctx.media.upload(
            ctx.owner_id,
            final_bytes,
            f"{ctx.owner_id}/ai/outfits/{outfit.id}/{timestamp_ms()}.jpg",
        )
        render = OutfitRender(
            id=f"rnd_{uuid.uuid4().hex[:12]}",
            outfit_id=outfit.id,
            image_id=image.id,
            prompt=data.prompt,
            settings={
                **data.settings,
                "items_count": items_count,
                "workflow": workflow.value,
                "used_stacked_image": bool(data.stacked_image_id),
            },
            status="succeeded",
        )
        db.add(render)
        # Last render wins, even when an older job finishes after a newer one
        outfit.cover_image_id = image.id
        db.flush()

        return {
            "renders": [{"image_id": image.id, "storage_key": image.storage_key}],
            "render_id": render.id,
            "items_count": items_count,
            "workflow": workflow.value,
            "mannequin_image_id": mannequin_image_id,
            "used_stacked_image": bool(data.stacked_image_id),
        }
