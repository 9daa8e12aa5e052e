from datetime import datetime
from typing import Any, Dict, Optional
import enum

from pydantic import BaseModel, Field

from wastenot.config import settings
from wastenot.exceptions import MealAlreadyCompletedError, MissingPreconditionError


class MealType(str, enum.Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"


class MealStatus(str, enum.Enum):
    """Persisted status. Only ever moves pending -> completed."""

    PENDING = "pending"
    COMPLETED = "completed"


class MealState(str, enum.Enum):
    """Lifecycle state, derived from status and which photos are set."""

    PENDING = "pending"
    HAS_BEFORE = "has_before"
    COMPLETED = "completed"


class MealCreate(BaseModel):
    user_id: int
    type: MealType
    date: datetime
    day: int = Field(ge=1, le=settings.tracking_days)
    status: MealStatus = MealStatus.PENDING


class Meal(BaseModel):
    """
    A tracked meal slot (one per day and meal type).

    Transition methods validate the current state and return the field
    changes to persist; they never mutate the instance.
    """

    id: int
    user_id: int
    type: MealType
    date: datetime
    day: int = Field(ge=1, le=settings.tracking_days)
    before_photo_url: Optional[str] = None
    after_photo_url: Optional[str] = None
    status: MealStatus = MealStatus.PENDING
    waste_percentage: Optional[int] = Field(default=None, ge=0, le=100)
    points_earned: int = Field(default=0, ge=0)

    @property
    def state(self) -> MealState:
        if self.status == MealStatus.COMPLETED:
            return MealState.COMPLETED
        if self.before_photo_url:
            return MealState.HAS_BEFORE
        return MealState.PENDING

    @property
    def is_completed(self) -> bool:
        return self.state == MealState.COMPLETED

    def check_can_attach_before_photo(self) -> None:
        if self.is_completed:
            raise MealAlreadyCompletedError(self.id)

    def check_can_complete(self) -> None:
        """Raise unless the meal is waiting for its after photo."""
        if self.is_completed:
            raise MealAlreadyCompletedError(self.id)
        if self.state == MealState.PENDING:
            raise MissingPreconditionError(
                "Before photo must be uploaded first", details={"meal_id": self.id}
            )

    def attach_before_photo(self, photo_url: str) -> Dict[str, Any]:
        self.check_can_attach_before_photo()
        return {"before_photo_url": photo_url}

    def complete(
        self, after_photo_url: str, waste_percentage: int, points_earned: int
    ) -> Dict[str, Any]:
        self.check_can_complete()
        return {
            "after_photo_url": after_photo_url,
            "status": MealStatus.COMPLETED,
            "waste_percentage": waste_percentage,
            "points_earned": points_earned,
        }
