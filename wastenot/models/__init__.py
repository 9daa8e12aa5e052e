"""
Domain models for WasteNot.

Entities are pydantic models held by the in-memory store; the store only
ever hands out copies.
"""

from wastenot.models.user import User, UserCreate, UserPublic
from wastenot.models.meal import Meal, MealCreate, MealState, MealStatus, MealType
from wastenot.models.badge import Badge, BadgeCreate, BadgeLevel, BadgeType
from wastenot.models.activity import (
    Activity,
    ActivityCreate,
    ActivityParticipant,
    ActivityParticipantCreate,
)

__all__ = [
    "User",
    "UserCreate",
    "UserPublic",
    "Meal",
    "MealCreate",
    "MealState",
    "MealStatus",
    "MealType",
    "Badge",
    "BadgeCreate",
    "BadgeLevel",
    "BadgeType",
    "Activity",
    "ActivityCreate",
    "ActivityParticipant",
    "ActivityParticipantCreate",
]
