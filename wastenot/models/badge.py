from datetime import datetime
import enum

from pydantic import BaseModel, Field


class BadgeLevel(str, enum.Enum):
    """Badge tier, ordered bronze < silver < gold."""

    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"


class BadgeType(str, enum.Enum):
    STREAK = "streak"
    SUSTAINABILITY = "sustainability"
    RECYCLING = "recycling"
    ZERO_WASTE = "zeroWaste"


class BadgeCreate(BaseModel):
    user_id: int
    type: BadgeType
    level: BadgeLevel
    count: int = Field(default=1, ge=1)
    earned_at: datetime


class Badge(BadgeCreate):
    """Append-only record of one award event."""

    id: int
