"""Meal lifecycle: photo submission, waste scoring and completion rewards."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Protocol

from wastenot.exceptions import InvalidImageError, NotFoundError
from wastenot.models import Meal
from wastenot.services.ai_service import RateLimitError, ServiceUnavailableError
from wastenot.services.file_service import FileService
from wastenot.services.reward_engine import RewardEngine, points_for_waste
from wastenot.services.store import InMemoryStore
from wastenot.services.waste_resolver import WasteResolver

logger = logging.getLogger(__name__)

NOT_FOOD_MESSAGE = (
    "This doesn't appear to be a photo of a plate of food. "
    "Please take a photo of your meal."
)


class FoodDetector(Protocol):
    async def validate_meal_image(self, image_path: str) -> bool: ...


class KeyedLocks:
    """
    One asyncio.Lock per key, kept only while some task holds or awaits it.

    Entries are dropped when the last holder releases, so locks for unknown
    or finished meals do not accumulate.
    """

    def __init__(self) -> None:
        self._locks: Dict[int, asyncio.Lock] = {}
        self._holders: Dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: int) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                del self._locks[key]


class MealService:
    """
    Drives meals through pending -> has-before -> completed.

    Submissions for the same meal are serialized, so a meal can only be
    completed (and rewarded) once. Any rejected submission deletes the
    uploaded photo and leaves the store untouched.
    """

    def __init__(
        self,
        store: InMemoryStore,
        file_service: FileService,
        food_detector: FoodDetector,
        resolver: WasteResolver,
        reward_engine: RewardEngine,
    ):
        self.store = store
        self.file_service = file_service
        self.food_detector = food_detector
        self.resolver = resolver
        self.reward_engine = reward_engine
        self._meal_locks = KeyedLocks()
        self._user_locks = KeyedLocks()

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_meal(self, meal_id: int) -> Meal:
        meal = self.store.get_meal(meal_id)
        if meal is None:
            raise NotFoundError("Meal", meal_id)
        return meal

    def get_user_meals(self, user_id: int) -> List[Meal]:
        """All meals of a user, ordered by day then id."""
        self._require_user(user_id)
        return sorted(self.store.get_meals_by_user(user_id), key=lambda m: (m.day, m.id))

    def get_meals_for_day(self, user_id: int, day: int) -> List[Meal]:
        self._require_user(user_id)
        return sorted(
            self.store.get_meals_by_user_and_day(user_id, day), key=lambda m: m.id
        )

    def _require_user(self, user_id: int) -> None:
        if self.store.get_user(user_id) is None:
            raise NotFoundError("User", user_id)

    def check_before_photo_allowed(self, meal_id: int) -> None:
        """Fail fast, before an upload is stored, if the meal cannot take a before photo."""
        self.get_meal(meal_id).check_can_attach_before_photo()

    def check_after_photo_allowed(self, meal_id: int) -> None:
        """Fail fast, before an upload is stored, if the meal cannot be completed."""
        self.get_meal(meal_id).check_can_complete()

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    async def submit_before_photo(self, meal_id: int, photo_url: str) -> Meal:
        """
        Attach the before photo to a meal that is not yet completed.

        A previously attached before photo is replaced and deleted.

        Raises:
            NotFoundError: meal does not exist
            MealAlreadyCompletedError: meal is already completed
            InvalidImageError: photo does not show a plate of food
        """
        async with self._meal_locks.hold(meal_id):
            try:
                meal = self.get_meal(meal_id)
                meal.check_can_attach_before_photo()
                await self._check_contains_food(photo_url)
            except BaseException:
                self.file_service.delete_file(photo_url)
                raise

            previous_url = meal.before_photo_url
            updated = self.store.update_meal(
                meal_id, **meal.attach_before_photo(photo_url)
            )

        if previous_url and previous_url != photo_url:
            self.file_service.delete_file(previous_url)

        logger.info("Meal %s: before photo stored at %s", meal_id, photo_url)
        return updated

    async def submit_after_photo(
        self,
        meal_id: int,
        photo_url: str,
        user_supplied_percentage: Optional[int] = None,
    ) -> Meal:
        """
        Complete a meal: resolve waste, award points, update streak and badges.

        Args:
            meal_id: Meal to complete
            photo_url: Stored after photo
            user_supplied_percentage: Waste entered by the user, overrides
                the vision estimate

        Returns:
            The completed meal

        Raises:
            NotFoundError: meal does not exist
            MealAlreadyCompletedError: meal is already completed
            MissingPreconditionError: no before photo yet
            InvalidImageError: photo does not show a plate of food
        """
        async with self._meal_locks.hold(meal_id):
            try:
                meal = self.get_meal(meal_id)
                meal.check_can_complete()
                await self._check_contains_food(photo_url)
            except BaseException:
                self.file_service.delete_file(photo_url)
                raise

            waste = await self.resolver.resolve(
                meal.before_photo_url, photo_url, user_supplied_percentage
            )
            points = points_for_waste(waste)

            # No await between persisting the meal and the streak recount
            async with self._user_locks.hold(meal.user_id):
                updated = self.store.update_meal(
                    meal_id, **meal.complete(photo_url, waste, points)
                )
                outcome = self.reward_engine.apply_completion(meal.user_id, points)

        logger.info(
            "Meal %s completed: waste=%d%% points=%d user=%s total=%d streak=%d",
            meal_id,
            waste,
            points,
            meal.user_id,
            outcome.user.points,
            outcome.user.streak,
        )
        return updated

    async def _check_contains_food(self, photo_url: str) -> None:
        """
        Raise InvalidImageError unless the photo shows food.

        Vision provider errors count as "not food".
        """
        image_path = str(self.file_service.path_for(photo_url))
        try:
            is_food = await self.food_detector.validate_meal_image(image_path)
        except (ServiceUnavailableError, RateLimitError, ValueError) as e:
            logger.warning("Food check failed for %s: %s", photo_url, e)
            is_food = False

        if not is_food:
            logger.info("Rejected photo %s: no food detected", photo_url)
            raise InvalidImageError(NOT_FOOD_MESSAGE)
