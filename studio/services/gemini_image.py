"""
Gemini Model Gateway
Sends a prompt plus ordered image payloads to a Gemini model and returns
either image bytes or text. Every way a call can go wrong is classified into
one of the upstream errors in studio.core.errors.
Documentation: https://ai.google.dev/gemini-api/docs/image-generation
"""

import logging
from enum import Enum
from typing import Optional, List, Sequence, Union

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from studio.core.config import settings
from studio.core.errors import (
    EmptyResponse,
    TransportError,
    UpstreamMalformed,
    UpstreamRefusal,
    UpstreamSafetyBlock,
)
from studio.services.media import ImagePayload, detect_mime_type

logger = logging.getLogger(__name__)


class ResponseType(str, Enum):
    IMAGE = "IMAGE"
    TEXT = "TEXT"


# Finish reasons that mean the model stopped on policy grounds
SAFETY_FINISH_REASONS = {
    "SAFETY",
    "RECITATION",
    "BLOCKLIST",
    "PROHIBITED_CONTENT",
    "SPII",
    "IMAGE_SAFETY",
    "IMAGE_PROHIBITED_CONTENT",
    "IMAGE_RECITATION",
}

# Anything else that is not a clean stop means the output is unusable
OK_FINISH_REASONS = {"STOP", "FINISH_REASON_UNSPECIFIED"}

HARM_CATEGORIES = [
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
]


def model_input_ceiling(model: Optional[str]) -> int:
    """Maximum number of item images a model accepts in one composition call."""
    normalized = (model or "").lower()
    if "pro" in normalized or "ultra" in normalized:
        return settings.MODEL_INPUT_CEILING_PRO
    return settings.MODEL_INPUT_CEILING_STANDARD


def _enum_name(value) -> Optional[str]:
    """Normalize an SDK enum (or plain string) to its upper-case name."""
    if value is None:
        return None
    raw = getattr(value, "value", value)
    name = str(raw).upper()
    if "." in name:
        name = name.rsplit(".", 1)[-1]
    return name or None


ImageInput = Union[ImagePayload, bytes]


class GeminiImageService:
    """Model gateway for image generation and structured text output using Gemini models."""

    def __init__(self, client=None):
        self.client = client or genai.Client(api_key=settings.GEMINI_API_KEY)
        self.default_model = settings.GEMINI_MODEL or "gemini-2.5-flash-image"

    def _build_contents(self, prompt: str, images: Sequence[ImageInput]) -> list:
        """Prompt first, then the images in the order the prompt refers to them."""
        contents = [types.Part.from_text(text=prompt)]
        for image in images:
            if isinstance(image, ImagePayload):
                data, mime_type = image.data, image.mime_type
            else:
                data, mime_type = image, detect_mime_type(image)
            contents.append(types.Part.from_bytes(data=data, mime_type=mime_type))
        return contents

    def _build_config(self, response_type: ResponseType) -> types.GenerateContentConfig:
        safety_settings = [
            types.SafetySetting(category=category, threshold="BLOCK_ONLY_HIGH")
            for category in HARM_CATEGORIES
        ]
        if response_type == ResponseType.IMAGE:
            return types.GenerateContentConfig(
                temperature=0.4,
                response_modalities=["IMAGE"],
                safety_settings=safety_settings,
            )
        return types.GenerateContentConfig(
            temperature=0.3,
            response_mime_type="application/json",
            safety_settings=safety_settings,
        )

    async def generate(
        self,
        prompt: str,
        images: Optional[List[ImageInput]] = None,
        model: Optional[str] = None,
        response_type: ResponseType = ResponseType.IMAGE,
    ) -> Union[bytes, str]:
        """
        Call the model once and return its output.

        Args:
            prompt: Instruction text. Image indices in the prompt follow the order of ``images``.
            images: Ordered image payloads (ImagePayload or raw bytes)
            model: Model name, defaults to settings.GEMINI_MODEL
            response_type: IMAGE returns bytes, TEXT returns a stripped string

        Raises:
            UpstreamSafetyBlock, UpstreamRefusal, UpstreamMalformed, EmptyResponse, TransportError
        """
        model_to_use = model or self.default_model
        images = images or []
        logger.info(
            f"[Gemini] Calling {model_to_use} ({response_type.value}) with {len(images)} image(s), "
            f"prompt length {len(prompt)}"
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=model_to_use,
                contents=self._build_contents(prompt, images),
                config=self._build_config(response_type),
            )
        except genai_errors.APIError as e:
            logger.error(f"[Gemini] API error from {model_to_use}: {e}")
            raise TransportError(f"Gemini API error: {e}") from e
        except (ConnectionError, TimeoutError, OSError) as e:
            logger.error(f"[Gemini] Transport failure calling {model_to_use}: {e}")
            raise TransportError(f"Gemini transport failure: {e}") from e

        return self.classify(response, response_type)

    def classify(self, response, response_type: ResponseType) -> Union[bytes, str]:
        """
        Turn a raw SDK response into bytes/text or a classified error.

        Rules are evaluated in order: prompt block, finish reason, missing
        candidate, text-only answer to an image request, missing payload.
        """
        feedback = getattr(response, "prompt_feedback", None)
        block_reason = _enum_name(getattr(feedback, "block_reason", None)) if feedback else None
        if block_reason and block_reason != "BLOCKED_REASON_UNSPECIFIED":
            logger.warning(f"[Gemini] Prompt blocked: {block_reason}")
            raise UpstreamSafetyBlock(f"Safety Block: {block_reason}", {"block_reason": block_reason})

        candidates = getattr(response, "candidates", None) or []
        candidate = candidates[0] if candidates else None

        finish_reason = _enum_name(getattr(candidate, "finish_reason", None)) if candidate else None
        if finish_reason and finish_reason not in OK_FINISH_REASONS:
            finish_message = getattr(candidate, "finish_message", None) or ""
            logger.warning(f"[Gemini] Finish reason: {finish_reason} {finish_message}")
            if finish_reason in SAFETY_FINISH_REASONS:
                raise UpstreamSafetyBlock(
                    f"Generation blocked: {finish_reason}",
                    {"finish_reason": finish_reason},
                )
            raise UpstreamMalformed(
                f"Generation stopped: {finish_reason}",
                {"finish_reason": finish_reason},
            )

        if candidate is None:
            raise EmptyResponse("No candidates returned from API")

        content = getattr(candidate, "content", None)
        parts = (getattr(content, "parts", None) or []) if content else []

        if response_type == ResponseType.TEXT:
            text = next((p.text for p in parts if getattr(p, "text", None)), None)
            if not text:
                raise EmptyResponse("No text response from API")
            return text.strip()

        image_part = next((p for p in parts if getattr(p, "inline_data", None) is not None), None)
        if image_part is None:
            text = next((p.text for p in parts if getattr(p, "text", None)), None)
            if text:
                logger.warning(f"[Gemini] Model returned text instead of image: {text[:200]}")
                raise UpstreamRefusal(f'Model Refused: "{text.strip()}"')
            raise UpstreamMalformed("No image data in API response")

        data = getattr(image_part.inline_data, "data", None)
        if not data or not isinstance(data, (bytes, bytearray)):
            raise UpstreamMalformed("Image data structure invalid")

        logger.info(f"[Gemini] [OK] Image generated ({len(data)} bytes)")
        return bytes(data)


__all__ = ["GeminiImageService", "ResponseType", "model_input_ceiling"]
