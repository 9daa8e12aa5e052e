"""
Claude vision integration for meal photo checks and waste estimation.

Three capabilities:
1. Food presence check for uploaded photos
2. Before/after consumption estimate (percent of the plate eaten)
3. Single-photo waste estimate when no before photo is available
"""

import base64
import json
import logging
import re
from pathlib import Path
from typing import Optional

import anthropic
import httpx
from anthropic import AsyncAnthropic
from pydantic import BaseModel, ValidationError

from wastenot.config import settings
from wastenot.exceptions import EstimatorUnavailableError
from wastenot.services.ai_schemas import SingleImageWasteSchema
from wastenot.services.prompts import (
    CONSUMPTION_PROMPT,
    CONSUMPTION_SYSTEM_PROMPT,
    MEAL_VALIDATION_PROMPT,
    MEAL_VALIDATION_SYSTEM_PROMPT,
    SINGLE_IMAGE_WASTE_PROMPT,
    SINGLE_IMAGE_WASTE_SYSTEM_PROMPT,
)


logger = logging.getLogger(__name__)

_PERCENT_PATTERN = re.compile(r"(\d{1,3})\s?%")


def _strip_markdown_json(text: str) -> str:
    """Strip markdown code block wrappers from JSON text."""
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()
    return text


def _parse_percent_eaten(text: str) -> Optional[int]:
    """
    Convert a "NN%" percent-remaining answer into percent eaten.

    Returns:
        clamp(100 - remaining, 0, 100), or None if no percentage is found
    """
    match = _PERCENT_PATTERN.search(text)
    if not match:
        return None
    percent_left = int(match.group(1))
    return max(0, min(100, 100 - percent_left))


class ClaudeService:
    """Vision calls used by the meal lifecycle."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        timeout = httpx.Timeout(
            timeout=settings.anthropic_timeout,
            connect=settings.anthropic_connect_timeout,
        )
        self.client = AsyncAnthropic(
            api_key=api_key if api_key is not None else settings.anthropic_api_key,
            timeout=timeout,
        )
        self.model = model or settings.vision_model

    # =========================================================================
    # FOOD PRESENCE CHECK
    # =========================================================================

    async def validate_meal_image(self, image_path: str) -> bool:
        """
        Quick check: does this image show a plate of food?

        Args:
            image_path: Path to uploaded image file

        Returns:
            True if food detected, False otherwise

        Raises:
            ServiceUnavailableError: AI service temporarily down
            RateLimitError: Too many requests
            ValueError: Invalid request or unreadable image
        """
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=10,
                system=MEAL_VALIDATION_SYSTEM_PROMPT,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            self._image_block(image_path),
                            {"type": "text", "text": MEAL_VALIDATION_PROMPT},
                        ],
                    }
                ],
            )

            answer = self._response_text(response).strip().upper()
            logger.debug("Food check for %s answered %r", image_path, answer)
            return answer.startswith("YES")

        except anthropic.APIConnectionError as e:
            raise ServiceUnavailableError("AI service temporarily unavailable") from e
        except anthropic.RateLimitError as e:
            raise RateLimitError(
                "Too many requests, please try again in 1 minute"
            ) from e
        except anthropic.APIStatusError as e:
            if e.status_code >= 500:
                raise ServiceUnavailableError("AI service error") from e
            raise ValueError(f"Request error: {e.message}") from e
        except anthropic.APIError as e:
            raise ServiceUnavailableError(f"AI service error: {e}") from e
        except OSError as e:
            raise ValueError(f"Image validation failed: {str(e)}") from e

    # =========================================================================
    # WASTE ESTIMATION
    # =========================================================================

    async def estimate_consumption(self, before_path: str, after_path: str) -> int:
        """
        Compare before/after photos of one plate.

        Claude is asked for the percentage of food LEFT; the answer is
        converted to percent eaten as clamp(100 - left, 0, 100).

        Returns:
            Percent eaten (0-100)

        Raises:
            EstimatorUnavailableError: provider failure or unparseable answer
        """
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=20,
                system=CONSUMPTION_SYSTEM_PROMPT,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": CONSUMPTION_PROMPT},
                            self._image_block(before_path),
                            self._image_block(after_path),
                        ],
                    }
                ],
            )
        except (anthropic.APIError, OSError) as e:
            raise EstimatorUnavailableError(f"Consumption estimate failed: {e}") from e

        text = self._response_text(response).strip()
        percent_eaten = _parse_percent_eaten(text)
        if percent_eaten is None:
            raise EstimatorUnavailableError(
                f"Could not extract a percentage from {text!r}"
            )

        logger.info(
            "Consumption estimate for %s: %d%% eaten (raw %r)",
            after_path,
            percent_eaten,
            text,
        )
        return percent_eaten

    async def estimate_waste_single_image(self, image_path: str) -> int:
        """
        Estimate waste from the after photo alone.

        Returns:
            Waste percentage (0-100); 0 when no food is visible

        Raises:
            EstimatorUnavailableError: provider failure or invalid answer
        """
        try:
            validated = await self._call_with_schema(
                messages=[
                    {
                        "role": "user",
                        "content": [
                            self._image_block(image_path),
                            {"type": "text", "text": SINGLE_IMAGE_WASTE_PROMPT},
                        ],
                    }
                ],
                schema_class=SingleImageWasteSchema,
                request_params={
                    "model": self.model,
                    "max_tokens": 100,
                    "system": SINGLE_IMAGE_WASTE_SYSTEM_PROMPT,
                },
            )
        except (anthropic.APIError, OSError, ValueError) as e:
            raise EstimatorUnavailableError(f"Single-image estimate failed: {e}") from e

        if not validated.food_detected:
            logger.info("No food detected in %s", image_path)
            return 0
        return validated.waste_percentage

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    async def _call_with_schema(
        self,
        messages: list[dict],
        schema_class: type[BaseModel],
        request_params: dict,
        prefill: str | None = "{",
    ) -> BaseModel:
        """
        Call Claude and validate the JSON answer against ``schema_class``.

        Raises:
            ValueError: empty answer, malformed JSON or schema mismatch
        """
        call_messages = list(messages)
        if prefill:
            call_messages.append({"role": "assistant", "content": prefill})

        response = await self.client.messages.create(
            messages=call_messages, **request_params
        )

        raw_text = self._response_text(response).strip()
        if not raw_text:
            raise ValueError("No text content in AI response")

        json_str = _strip_markdown_json((prefill or "") + raw_text)
        try:
            return schema_class.model_validate(json.loads(json_str))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(
                "AI response schema validation failed for %s: %s",
                schema_class.__name__,
                e,
            )
            raise ValueError(f"AI response failed schema validation: {e}") from e

    def _image_block(self, image_path: str) -> dict:
        return {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": self._get_media_type(image_path),
                "data": self._load_image_base64(image_path),
            },
        }

    def _response_text(self, response) -> str:
        return "".join(
            block.text for block in response.content if hasattr(block, "text")
        )

    def _load_image_base64(self, image_path: str) -> str:
        """Load image file and encode as base64."""
        with open(image_path, "rb") as f:
            return base64.standard_b64encode(f.read()).decode("utf-8")

    def _get_media_type(self, image_path: str) -> str:
        """Determine media type from file extension."""
        suffix = Path(image_path).suffix.lower()
        media_types = {
            ".jpg": "image/jpeg",
            ".jpeg": "image/jpeg",
            ".png": "image/png",
            ".gif": "image/gif",
            ".webp": "image/webp",
        }
        return media_types.get(suffix, "image/jpeg")


# =============================================================================
# CUSTOM EXCEPTIONS
# =============================================================================


class ServiceUnavailableError(Exception):
    """AI service is temporarily unavailable."""

    pass


class RateLimitError(Exception):
    """Rate limit exceeded."""

    pass
