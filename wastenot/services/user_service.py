"""Registration, login and profile operations."""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import bcrypt

from wastenot.config import settings
from wastenot.exceptions import NotFoundError
from wastenot.models import Badge, MealCreate, MealStatus, MealType, User, UserCreate
from wastenot.services.store import InMemoryStore

logger = logging.getLogger(__name__)

DEFAULT_MEAL_TYPES = (MealType.BREAKFAST, MealType.LUNCH, MealType.DINNER)


class UserService:
    """User accounts and the tracking plan created with them."""

    def __init__(self, store: InMemoryStore, tracking_days: int = settings.tracking_days):
        self.store = store
        self.tracking_days = tracking_days

    def _hash_password(self, password: str) -> str:
        """Hash a password using bcrypt."""
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    def _verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash."""
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )

    def create_user_with_default_meals(
        self,
        username: str,
        email: str,
        name: str,
        password: str,
        start: Optional[datetime] = None,
    ) -> User:
        """
        Register a user and create their pending meals.

        One meal per type (breakfast, lunch, dinner) for each tracking day;
        day N is dated ``start + (N - 1)`` days.

        Raises:
            DuplicateKeyError: username or email already registered
        """
        user = self.store.create_user(
            UserCreate(
                username=username,
                email=email,
                name=name,
                password_hash=self._hash_password(password),
            )
        )

        start = start or datetime.now(timezone.utc)
        for day in range(1, self.tracking_days + 1):
            meal_date = start + timedelta(days=day - 1)
            for meal_type in DEFAULT_MEAL_TYPES:
                self.store.create_meal(
                    MealCreate(
                        user_id=user.id,
                        type=meal_type,
                        date=meal_date,
                        day=day,
                        status=MealStatus.PENDING,
                    )
                )

        logger.info(
            "Registered user %s (%s) with %d pending meals",
            user.id,
            user.username,
            self.tracking_days * len(DEFAULT_MEAL_TYPES),
        )
        return user

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the user if the credentials match, None otherwise."""
        user = self.store.get_user_by_username(username)
        if not user or not self._verify_password(password, user.password_hash):
            return None
        return user

    def get_user(self, user_id: int) -> User:
        user = self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def update_avatar(self, user_id: int, avatar_url: Optional[str]) -> User:
        return self.store.update_user_avatar(user_id, avatar_url)

    def get_badges(self, user_id: int) -> List[Badge]:
        """Badges in the order they were earned."""
        self.get_user(user_id)
        return sorted(self.store.get_badges_by_user(user_id), key=lambda b: b.id)
