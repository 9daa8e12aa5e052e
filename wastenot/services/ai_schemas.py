"""
Pydantic models for validating structured JSON responses from Claude.

Used by ClaudeService._call_with_schema() in ai_service.py.
"""

from pydantic import BaseModel, Field


# --- Single-image waste estimate (estimate_waste_single_image) ---


class SingleImageWasteSchema(BaseModel):
    food_detected: bool
    waste_percentage: int = Field(default=0, ge=0, le=100)
