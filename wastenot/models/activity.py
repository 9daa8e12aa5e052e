from datetime import datetime

from pydantic import BaseModel, Field


class ActivityCreate(BaseModel):
    title: str
    description: str
    type: str  # garden, recycling, cleanup, workshop
    date: datetime
    points: int = Field(ge=0)
    location: str


class Activity(ActivityCreate):
    """Sustainability event users can register for."""

    id: int
    participants_count: int = Field(default=0, ge=0)


class ActivityParticipantCreate(BaseModel):
    activity_id: int
    user_id: int
    registered: bool = True
    attended: bool = False


class ActivityParticipant(ActivityParticipantCreate):
    id: int
