"""
In-memory entity store.

Authoritative state for users, meals, badges, activities and activity
participants. Every read returns a copy, so callers can only change state
through the store's methods. All methods take a single re-entrant lock,
which makes uniqueness checks atomic with inserts and counter updates atomic
with their reads.

Data is lost on process restart.
"""

import itertools
import threading
from typing import Dict, List, Optional

from wastenot.exceptions import DuplicateKeyError, NotFoundError
from wastenot.models import (
    Activity,
    ActivityCreate,
    ActivityParticipant,
    ActivityParticipantCreate,
    Badge,
    BadgeCreate,
    Meal,
    MealCreate,
    MealStatus,
    User,
    UserCreate,
)


class InMemoryStore:
    """Dictionary-backed store with sequential integer ids per entity type."""

    def __init__(self) -> None:
        self._lock = threading.RLock()

        self._users: Dict[int, User] = {}
        self._meals: Dict[int, Meal] = {}
        self._badges: Dict[int, Badge] = {}
        self._activities: Dict[int, Activity] = {}
        self._participants: Dict[int, ActivityParticipant] = {}

        self._user_ids = itertools.count(1)
        self._meal_ids = itertools.count(1)
        self._badge_ids = itertools.count(1)
        self._activity_ids = itertools.count(1)
        self._participant_ids = itertools.count(1)

    # =========================================================================
    # USERS
    # =========================================================================

    def get_user(self, user_id: int) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            return user.model_copy() if user else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Case-insensitive lookup."""
        with self._lock:
            user = self._find_user("username", username)
            return user.model_copy() if user else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Case-insensitive lookup."""
        with self._lock:
            user = self._find_user("email", email)
            return user.model_copy() if user else None

    def create_user(self, data: UserCreate) -> User:
        """
        Insert a user with zero points and streak.

        Raises:
            DuplicateKeyError: username or email already taken (any case)
        """
        with self._lock:
            if self._find_user("username", data.username):
                raise DuplicateKeyError("Username already exists", field="username")
            if self._find_user("email", data.email):
                raise DuplicateKeyError("Email already exists", field="email")

            user = User(id=next(self._user_ids), points=0, streak=0, **data.model_dump())
            self._users[user.id] = user
            return user.model_copy()

    def update_user_points(self, user_id: int, delta: int) -> User:
        """Add ``delta`` to the user's points."""
        with self._lock:
            user = self._require_user(user_id)
            updated = user.model_copy(update={"points": user.points + delta})
            self._users[user_id] = updated
            return updated.model_copy()

    def update_user_streak(self, user_id: int, streak: int) -> User:
        """Replace the user's streak (absolute value, not a delta)."""
        with self._lock:
            user = self._require_user(user_id)
            updated = user.model_copy(update={"streak": streak})
            self._users[user_id] = updated
            return updated.model_copy()

    def update_user_avatar(self, user_id: int, avatar_url: Optional[str]) -> User:
        with self._lock:
            user = self._require_user(user_id)
            updated = user.model_copy(update={"avatar_url": avatar_url})
            self._users[user_id] = updated
            return updated.model_copy()

    def _find_user(self, field: str, value: str) -> Optional[User]:
        needle = value.lower()
        for user in self._users.values():
            if getattr(user, field).lower() == needle:
                return user
        return None

    def _require_user(self, user_id: int) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    # =========================================================================
    # MEALS
    # =========================================================================

    def get_meal(self, meal_id: int) -> Optional[Meal]:
        with self._lock:
            meal = self._meals.get(meal_id)
            return meal.model_copy() if meal else None

    def get_meals_by_user(self, user_id: int) -> List[Meal]:
        with self._lock:
            return [m.model_copy() for m in self._meals.values() if m.user_id == user_id]

    def get_meals_by_user_and_day(self, user_id: int, day: int) -> List[Meal]:
        with self._lock:
            return [
                m.model_copy()
                for m in self._meals.values()
                if m.user_id == user_id and m.day == day
            ]

    def count_completed_meals(self, user_id: int) -> int:
        with self._lock:
            return sum(
                1
                for m in self._meals.values()
                if m.user_id == user_id and m.status == MealStatus.COMPLETED
            )

    def create_meal(self, data: MealCreate) -> Meal:
        with self._lock:
            meal = Meal(id=next(self._meal_ids), points_earned=0, **data.model_dump())
            self._meals[meal.id] = meal
            return meal.model_copy()

    def update_meal(self, meal_id: int, **changes) -> Meal:
        """
        Merge ``changes`` into the stored meal.

        The merged record is re-validated, so out-of-range values are
        rejected before anything is written.
        """
        with self._lock:
            meal = self._meals.get(meal_id)
            if meal is None:
                raise NotFoundError("Meal", meal_id)
            updated = Meal.model_validate({**meal.model_dump(), **changes})
            self._meals[meal_id] = updated
            return updated.model_copy()

    # =========================================================================
    # BADGES
    # =========================================================================

    def create_badge(self, data: BadgeCreate) -> Badge:
        """Append a badge. Duplicate type/level rows are allowed."""
        with self._lock:
            badge = Badge(id=next(self._badge_ids), **data.model_dump())
            self._badges[badge.id] = badge
            return badge.model_copy()

    def get_badges_by_user(self, user_id: int) -> List[Badge]:
        with self._lock:
            return [b.model_copy() for b in self._badges.values() if b.user_id == user_id]

    # =========================================================================
    # ACTIVITIES
    # =========================================================================

    def create_activity(self, data: ActivityCreate) -> Activity:
        with self._lock:
            activity = Activity(
                id=next(self._activity_ids), participants_count=0, **data.model_dump()
            )
            self._activities[activity.id] = activity
            return activity.model_copy()

    def get_activities(self) -> List[Activity]:
        with self._lock:
            return [a.model_copy() for a in self._activities.values()]

    def get_activity(self, activity_id: int) -> Optional[Activity]:
        with self._lock:
            activity = self._activities.get(activity_id)
            return activity.model_copy() if activity else None

    def update_activity_participants(self, activity_id: int, delta: int) -> Activity:
        """Add ``delta`` to the activity's participant count."""
        with self._lock:
            activity = self._activities.get(activity_id)
            if activity is None:
                raise NotFoundError("Activity", activity_id)
            updated = activity.model_copy(
                update={"participants_count": activity.participants_count + delta}
            )
            self._activities[activity_id] = updated
            return updated.model_copy()

    def get_activity_participants(self, activity_id: int) -> List[ActivityParticipant]:
        with self._lock:
            return [
                p.model_copy()
                for p in self._participants.values()
                if p.activity_id == activity_id
            ]

    def get_participant_by_user_and_activity(
        self, user_id: int, activity_id: int
    ) -> Optional[ActivityParticipant]:
        with self._lock:
            participant = self._find_participant(user_id, activity_id)
            return participant.model_copy() if participant else None

    def add_participant(self, data: ActivityParticipantCreate) -> ActivityParticipant:
        """
        Register a participant and bump the activity's participant count.

        Raises:
            NotFoundError: activity does not exist
            DuplicateKeyError: user already registered for the activity
        """
        with self._lock:
            if data.activity_id not in self._activities:
                raise NotFoundError("Activity", data.activity_id)
            if self._find_participant(data.user_id, data.activity_id):
                raise DuplicateKeyError(
                    "User already registered for this activity", field="activity_id"
                )

            participant = ActivityParticipant(
                id=next(self._participant_ids), **data.model_dump()
            )
            self._participants[participant.id] = participant
            self.update_activity_participants(data.activity_id, 1)
            return participant.model_copy()

    def mark_participant_attended(self, participant_id: int) -> ActivityParticipant:
        with self._lock:
            participant = self._participants.get(participant_id)
            if participant is None:
                raise NotFoundError("Participant", participant_id)
            updated = participant.model_copy(update={"attended": True})
            self._participants[participant_id] = updated
            return updated.model_copy()

    def _find_participant(
        self, user_id: int, activity_id: int
    ) -> Optional[ActivityParticipant]:
        for participant in self._participants.values():
            if participant.user_id == user_id and participant.activity_id == activity_id:
                return participant
        return None
