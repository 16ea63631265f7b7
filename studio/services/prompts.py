"""
Prompt Templates
Instruction text sent to the image model. Image indices referenced here must
match the order processors pass images to the gateway.
"""

from typing import Iterable


DEFAULT_HAIR = "Keep original hair"
DEFAULT_MAKEUP = "Natural look"

DEFAULT_OUTFIT_DETAILS = "No additional details"


def auto_tag_prompt(categories: Iterable[str], subcategories: Iterable[str], category_context: str = None) -> str:
    context_line = f"\nThe owner filed this item under: {category_context}\n" if category_context else ""
    return f"""Analyze this clothing item image and extract detailed attributes in JSON format.
Available Categories: {", ".join(categories)}
Available Subcategories: {", ".join(subcategories)}
{context_line}
IMPORTANT:
1. RECOGNIZE the most appropriate category/subcategory from the lists.
2. Match names EXACTLY.
3. If unsure of subcategory, set "recognized_subcategory" to null.

Extract attributes with confidence (0.0-1.0):
{{
  "attributes": [
    {{"key": "color", "values": [{{"value": "name", "confidence": 0.0}}]}},
    {{"key": "material", "values": [{{"value": "name", "confidence": 0.0}}]}},
    {{"key": "pattern", "values": [{{"value": "type", "confidence": 0.0}}]}},
    {{"key": "style", "values": [{{"value": "descriptor", "confidence": 0.0}}]}},
    {{"key": "formality", "values": [{{"value": "level", "confidence": 0.0}}]}},
    {{"key": "season", "values": [{{"value": "season", "confidence": 0.0}}]}},
    {{"key": "occasion", "values": [{{"value": "type", "confidence": 0.0}}]}}
  ],
  "recognized_category": "Exact string match",
  "recognized_subcategory": "Exact string match or null",
  "suggested_title": "Short descriptive title",
  "suggested_notes": "Brief description"
}}
Return ONLY valid JSON."""


PRODUCT_SHOT_PROMPT = """Transform this clothing item into a professional product photography shot.
REQUIREMENTS:
- ASPECT RATIO: Exactly 1:1 (square).
- Background: Pure white (#FFFFFF) studio.
- Style: Ghost mannequin (3D items) or flat lay (accessories).
- Remove background clutter.
- Maintain EXACT colors and textures."""


def headshot_prompt(hair_style: str = None, makeup_style: str = None) -> str:
    hair = hair_style or DEFAULT_HAIR
    makeup = makeup_style or DEFAULT_MAKEUP
    return f"""Professional studio headshot.
SUBJECT: The person in the image.
CLOTHING: Wearing a simple white ribbed singlet.
MODIFICATIONS: {hair}, {makeup}.
CRITICAL: Maintain EXACT framing, zoom level, and head angle.
STYLE: Photorealistic, soft lighting, light grey/white background."""


BODY_COMPOSITE_PROMPT = """Generate a wide-shot, full-body studio photograph.
REFERENCES:
- Image 0: Facial features (headshot).
- Image 1: Body shape, pose, framing (body shot).

INSTRUCTIONS:
1. Blend Head (Image 0) onto Body (Image 1).
2. Maintain exact framing of Image 1.
3. ANATOMY: Enforce the "8-heads-tall" rule. Avoid a bobblehead effect.
4. Match lighting and skin tone perfectly.
5. Background: Pure white studio."""


def outfit_mannequin_prompt(item_count: int, details: str = None) -> str:
    return f"""Generate a photorealistic image of a fashion outfit on a ghost mannequin.
- Combine all {item_count} items into a cohesive outfit.
- BACKGROUND: Simple grey studio.
- STYLE: Ghost mannequin.
- DETAILS: {details or DEFAULT_OUTFIT_DETAILS}.
- ASPECT RATIO: Vertical Portrait."""


def outfit_direct_prompt(item_count: int, details: str = None) -> str:
    return f"""Fashion Photography. Vertical Portrait (3:4).
REFERENCES:
- Image 0: Body shape, pose, framing.
- Image 1: STRICT Facial Identity.
- Images 2 onward: the {item_count} clothing items to wear.

INSTRUCTIONS:
1. Dress the subject in every provided clothing item.
2. Apply face/hair from Image 1 onto the body in Image 0.
3. Maintain EXACT pose from Image 0.
4. {details or DEFAULT_OUTFIT_DETAILS}
5. PROPORTIONS: 8-heads-tall rule. No large heads."""


def outfit_final_prompt(item_count: int, details: str = None) -> str:
    return f"""Fashion Photography. Vertical Portrait (3:4).
REFERENCES:
- Image 0: Body shape, pose, framing.
- Image 1: The complete outfit ({item_count} items) on a ghost mannequin.
- Image 2: STRICT Facial Identity.

INSTRUCTIONS:
1. Dress the subject in the outfit shown in Image 1.
2. Apply face/hair from Image 2 onto the body in Image 0.
3. Maintain EXACT pose from Image 0.
4. {details or DEFAULT_OUTFIT_DETAILS}
5. PROPORTIONS: 8-heads-tall rule. No large heads."""


def outfit_stacked_prompt(item_count: int, details: str = None) -> str:
    return f"""Fashion Photography. Vertical Portrait (3:4).
REFERENCES:
- Image 0: Body shape, pose, framing.
- Image 1: STRICT Facial Identity.
- Image 2: A grid of {item_count} clothing items on a white background.

INSTRUCTIONS:
1. Dress the subject in ALL {item_count} items from the grid in Image 2.
2. Apply face/hair from Image 1 onto the body in Image 0.
3. Maintain EXACT pose from Image 0.
4. {details or DEFAULT_OUTFIT_DETAILS}
5. PROPORTIONS: 8-heads-tall rule. No large heads."""
