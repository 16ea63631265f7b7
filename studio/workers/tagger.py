"""
Tag Processor
Extracts structured attributes from a wardrobe item photo and writes them back.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func

from studio.core.errors import NotFoundError, UpstreamMalformed
from studio.models import (
    AttributeDefinition,
    AttributeSource,
    AttributeValue,
    EntityAttribute,
    WardrobeCategory,
    WardrobeItem,
    WardrobeSubcategory,
)
from studio.schemas.job import TagInput
from studio.schemas.tagging import TagResult
from studio.services.gemini_image import ResponseType
from studio.services.prompts import auto_tag_prompt
from studio.workers.base import BaseProcessor, ProcessorContext

logger = logging.getLogger(__name__)

ENTITY_TYPE = "wardrobe_item"

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def decode_tag_result(text: str) -> TagResult:
    """
    Strictly decode the model's JSON. Markdown code fences are stripped;
    anything else that does not match TagResult is UpstreamMalformed.
    """
    cleaned = _FENCE_RE.sub("", text.strip()).strip()
    try:
        return TagResult.model_validate_json(cleaned)
    except PydanticValidationError as e:
        logger.error(f"[Tagger] Could not decode model output: {e.error_count()} error(s)")
        raise UpstreamMalformed(
            "Failed to parse AI JSON response",
            {"errors": e.errors(include_url=False, include_context=False)},
        ) from e


def match_by_name(rows: List[Any], name: Optional[str]):
    """Case-insensitive exact name match. No fuzzy matching."""
    if not name:
        return None
    wanted = name.strip().lower()
    return next((row for row in rows if row.name.lower() == wanted), None)


class TagProcessor(BaseProcessor):
    """Processor for `tag` jobs."""

    TASK_NAME = "tag"
    INPUT_MODEL = TagInput

    async def process(self, ctx: ProcessorContext, data: TagInput) -> Dict[str, Any]:
        db = ctx.db
        item = db.query(WardrobeItem).filter(WardrobeItem.id == data.item_id).first()
        if not item or item.owner_id != ctx.owner_id:
            raise NotFoundError(f"Wardrobe item not found: {data.item_id}")

        self._update_progress(0.1, "Downloading image...")
        image = await ctx.media.download(data.image_ids[0], ctx.owner_id)

        categories = db.query(WardrobeCategory).order_by(WardrobeCategory.sort_order).all()
        subcategories = db.query(WardrobeSubcategory).order_by(WardrobeSubcategory.sort_order).all()
        prompt = auto_tag_prompt(
            [c.name for c in categories],
            [s.name for s in subcategories],
            data.category_context,
        )

        self._update_progress(0.3, "Analyzing item...")
        text = await ctx.gateway.generate(
            prompt, [image], model=ctx.settings.GEMINI_MODEL, response_type=ResponseType.TEXT
        )
        result = decode_tag_result(text)

        self._update_progress(0.7, "Saving attributes...")
        written = self._write_attributes(ctx, item.id, result)
        updates = self._apply_item_updates(ctx, item, result, categories)
        db.flush()

        logger.info(f"[Tagger] Item {item.id}: {written} attribute value(s), updates {sorted(updates)}")
        return {
            "item_id": item.id,
            **result.model_dump(),
            "attributes_written": written,
            "updates_applied": updates,
        }

    def _get_or_create_definition(self, ctx: ProcessorContext, key: str) -> AttributeDefinition:
        definition = ctx.db.query(AttributeDefinition).filter(AttributeDefinition.key == key).first()
        if definition is None:
            definition = AttributeDefinition(key=key, name=key.replace("_", " ").title())
            ctx.db.add(definition)
            ctx.db.flush()
        return definition

    def _get_or_create_value(self, ctx: ProcessorContext, definition_id: int, value: str) -> AttributeValue:
        row = (
            ctx.db.query(AttributeValue)
            .filter(
                AttributeValue.definition_id == definition_id,
                func.lower(AttributeValue.value) == value.lower(),
            )
            .first()
        )
        if row is None:
            row = AttributeValue(definition_id=definition_id, value=value)
            ctx.db.add(row)
            ctx.db.flush()
        return row

    def _write_attributes(self, ctx: ProcessorContext, item_id: str, result: TagResult) -> int:
        written = 0
        for attribute in result.attributes:
            key = attribute.key.strip().lower()
            definition = self._get_or_create_definition(ctx, key)
            for tag in attribute.values:
                value = self._get_or_create_value(ctx, definition.id, tag.value)
                ctx.db.add(EntityAttribute(
                    entity_type=ENTITY_TYPE,
                    entity_id=item_id,
                    definition_id=definition.id,
                    value_id=value.id,
                    raw_value=tag.value,
                    confidence=tag.confidence,
                    source=AttributeSource.AI,
                ))
                written += 1
        return written

    def _apply_item_updates(
        self,
        ctx: ProcessorContext,
        item: WardrobeItem,
        result: TagResult,
        categories: List[WardrobeCategory],
    ) -> Dict[str, Any]:
        updates: Dict[str, Any] = {}

        if result.suggested_title:
            updates["title"] = result.suggested_title
        if result.suggested_notes:
            updates["description"] = result.suggested_notes

        color = next((a for a in result.attributes if a.key.strip().lower() == "color"), None)
        if color and color.values and color.values[0].confidence >= ctx.settings.TAG_MIN_CONFIDENCE:
            updates["color_primary"] = color.values[0].value

        category = match_by_name(categories, result.recognized_category)
        if category:
            updates["category_id"] = category.id
            subcategory = match_by_name(category.subcategories, result.recognized_subcategory)
            updates["subcategory_id"] = subcategory.id if subcategory else None
        elif result.recognized_category:
            logger.info(f"[Tagger] Dropping unmatched category '{result.recognized_category}'")

        for field, value in updates.items():
            setattr(item, field, value)
        return updates
