"""
Unit tests for MealService.

Tests the meal lifecycle:
- Before photo submission and replacement
- Completion with waste, points, streak and badges
- Rejected submissions leave the store untouched
- Queries ordered by day
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from wastenot.exceptions import (
    InvalidImageError,
    MealAlreadyCompletedError,
    MissingPreconditionError,
    NotFoundError,
)
from wastenot.models import BadgeLevel, MealState, MealStatus, User
from wastenot.services.ai_service import ClaudeService, ServiceUnavailableError
from wastenot.services.meal_service import NOT_FOOD_MESSAGE, KeyedLocks
from tests.factories import make_image_bytes, make_noise_image_bytes, store_photo


def _first_meal(meal_service, user: User):
    return meal_service.get_user_meals(user.id)[0]


async def _complete(meal_service, file_service, meal_id, waste=None):
    before = store_photo(file_service, make_noise_image_bytes(), ".png")
    await meal_service.submit_before_photo(meal_id, before)
    after = store_photo(file_service, make_image_bytes())
    return await meal_service.submit_after_photo(meal_id, after, waste)


class TestQueries:
    """Tests for meal queries."""

    def test_user_meals_ordered_by_day(self, meal_service, test_user):
        meals = meal_service.get_user_meals(test_user.id)

        assert len(meals) == 15
        assert [m.day for m in meals] == sorted(m.day for m in meals)

    def test_meals_for_day(self, meal_service, test_user):
        meals = meal_service.get_meals_for_day(test_user.id, 2)

        assert len(meals) == 3
        assert {m.type.value for m in meals} == {"breakfast", "lunch", "dinner"}

    def test_meals_for_day_outside_plan_is_empty(self, meal_service, test_user):
        assert meal_service.get_meals_for_day(test_user.id, 9) == []

    def test_unknown_user_raises(self, meal_service):
        with pytest.raises(NotFoundError):
            meal_service.get_user_meals(999)

    def test_unknown_meal_raises(self, meal_service):
        with pytest.raises(NotFoundError):
            meal_service.get_meal(999)


class TestBeforePhoto:
    """Tests for submit_before_photo."""

    @pytest.mark.asyncio
    async def test_before_photo_attached(self, meal_service, file_service, test_user):
        meal = _first_meal(meal_service, test_user)
        url = store_photo(file_service)

        updated = await meal_service.submit_before_photo(meal.id, url)

        assert updated.before_photo_url == url
        assert updated.state == MealState.HAS_BEFORE
        assert updated.status == MealStatus.PENDING

    @pytest.mark.asyncio
    async def test_replacing_before_photo_deletes_old_file(
        self, meal_service, file_service, test_user
    ):
        meal = _first_meal(meal_service, test_user)
        first = store_photo(file_service)
        second = store_photo(file_service)

        await meal_service.submit_before_photo(meal.id, first)
        updated = await meal_service.submit_before_photo(meal.id, second)

        assert updated.before_photo_url == second
        assert not file_service.exists(first)
        assert file_service.exists(second)

    @pytest.mark.asyncio
    async def test_non_food_photo_rejected_and_deleted(
        self, meal_service, file_service, mock_claude_service, test_user
    ):
        meal = _first_meal(meal_service, test_user)
        url = store_photo(file_service)
        mock_claude_service.set_validate_meal_image_response(False)

        with pytest.raises(InvalidImageError) as exc_info:
            await meal_service.submit_before_photo(meal.id, url)

        assert exc_info.value.message == NOT_FOOD_MESSAGE
        assert not file_service.exists(url)
        assert meal_service.get_meal(meal.id).before_photo_url is None

    @pytest.mark.asyncio
    async def test_food_check_outage_counts_as_not_food(
        self, meal_service, file_service, mock_claude_service, test_user
    ):
        meal = _first_meal(meal_service, test_user)
        url = store_photo(file_service)
        mock_claude_service.set_error(
            ServiceUnavailableError("down"), method="validate_meal_image"
        )

        with pytest.raises(InvalidImageError):
            await meal_service.submit_before_photo(meal.id, url)

    @pytest.mark.asyncio
    async def test_malformed_provider_response_counts_as_not_food(
        self, meal_service, file_service, test_user
    ):
        """A real ClaudeService whose client returns an unparseable response."""
        claude = ClaudeService(api_key="test-key", model="test-model")
        claude.client = MagicMock()
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        claude.client.messages.create = AsyncMock(
            side_effect=anthropic.APIResponseValidationError(
                response=httpx.Response(200, request=request), body=None
            )
        )
        meal_service.food_detector = claude
        meal = _first_meal(meal_service, test_user)
        url = store_photo(file_service)

        with pytest.raises(InvalidImageError):
            await meal_service.submit_before_photo(meal.id, url)

        assert not file_service.exists(url)
        assert meal_service.get_meal(meal.id).before_photo_url is None

    @pytest.mark.asyncio
    async def test_unexpected_error_still_deletes_upload(
        self, meal_service, file_service, mock_claude_service, test_user
    ):
        meal = _first_meal(meal_service, test_user)
        url = store_photo(file_service)
        mock_claude_service.set_error(RuntimeError("boom"), method="validate_meal_image")

        with pytest.raises(RuntimeError):
            await meal_service.submit_before_photo(meal.id, url)

        assert not file_service.exists(url)

    @pytest.mark.asyncio
    async def test_unknown_meal_deletes_upload(self, meal_service, file_service):
        url = store_photo(file_service)

        with pytest.raises(NotFoundError):
            await meal_service.submit_before_photo(999, url)

        assert not file_service.exists(url)

    @pytest.mark.asyncio
    async def test_completed_meal_rejects_before_photo(
        self, meal_service, file_service, test_user
    ):
        meal = _first_meal(meal_service, test_user)
        completed = await _complete(meal_service, file_service, meal.id)
        url = store_photo(file_service)

        with pytest.raises(MealAlreadyCompletedError):
            await meal_service.submit_before_photo(meal.id, url)

        assert meal_service.get_meal(meal.id).before_photo_url == completed.before_photo_url
        assert not file_service.exists(url)


class TestAfterPhoto:
    """Tests for submit_after_photo."""

    @pytest.mark.asyncio
    async def test_completion_awards_points(
        self, meal_service, file_service, mock_claude_service, user_service, test_user
    ):
        meal = _first_meal(meal_service, test_user)
        mock_claude_service.set_estimate_consumption_response(20)

        completed = await _complete(meal_service, file_service, meal.id)

        assert completed.status == MealStatus.COMPLETED
        assert completed.waste_percentage == 20
        assert completed.points_earned == 100
        assert completed.after_photo_url is not None

        user = user_service.get_user(test_user.id)
        assert user.points == 100
        assert user.streak == 1

    @pytest.mark.asyncio
    async def test_user_supplied_waste_overrides_estimate(
        self, meal_service, file_service, mock_claude_service, user_service, test_user
    ):
        meal = _first_meal(meal_service, test_user)

        completed = await _complete(meal_service, file_service, meal.id, waste=5)

        assert completed.waste_percentage == 5
        assert completed.points_earned == 150
        assert mock_claude_service.call_count("estimate_consumption") == 0

        user = user_service.get_user(test_user.id)
        assert (user.points, user.streak) == (150, 1)

    @pytest.mark.asyncio
    async def test_estimator_failure_uses_fallback(
        self, meal_service, file_service, mock_claude_service, test_user
    ):
        meal = _first_meal(meal_service, test_user)
        mock_claude_service.set_error(
            ServiceUnavailableError("down"), method="estimate_consumption"
        )

        completed = await _complete(meal_service, file_service, meal.id)

        assert completed.waste_percentage == 5
        assert completed.points_earned == 150

    @pytest.mark.asyncio
    async def test_missing_before_photo_rejected_without_changes(
        self, meal_service, file_service, user_service, test_user
    ):
        meal = _first_meal(meal_service, test_user)
        url = store_photo(file_service)

        with pytest.raises(MissingPreconditionError) as exc_info:
            await meal_service.submit_after_photo(meal.id, url)

        assert not isinstance(exc_info.value, MealAlreadyCompletedError)
        assert exc_info.value.message == "Before photo must be uploaded first"
        assert not file_service.exists(url)

        unchanged = meal_service.get_meal(meal.id)
        assert unchanged.status == MealStatus.PENDING
        assert unchanged.after_photo_url is None
        assert user_service.get_user(test_user.id).points == 0

    @pytest.mark.asyncio
    async def test_recompletion_rejected(
        self, meal_service, file_service, user_service, test_user
    ):
        meal = _first_meal(meal_service, test_user)
        completed = await _complete(meal_service, file_service, meal.id)
        points_after_first = user_service.get_user(test_user.id).points
        url = store_photo(file_service)

        with pytest.raises(MealAlreadyCompletedError):
            await meal_service.submit_after_photo(meal.id, url, 0)

        assert meal_service.get_meal(meal.id) == completed
        assert user_service.get_user(test_user.id).points == points_after_first
        assert not file_service.exists(url)

    @pytest.mark.asyncio
    async def test_non_food_after_photo_rejected(
        self, meal_service, file_service, mock_claude_service, test_user
    ):
        meal = _first_meal(meal_service, test_user)
        await meal_service.submit_before_photo(meal.id, store_photo(file_service))
        mock_claude_service.set_validate_meal_image_response(False)
        url = store_photo(file_service)

        with pytest.raises(InvalidImageError):
            await meal_service.submit_after_photo(meal.id, url)

        assert meal_service.get_meal(meal.id).state == MealState.HAS_BEFORE


class TestStreaksAndBadges:
    """End-to-end reward flow across many completions."""

    @pytest.mark.asyncio
    async def test_ten_completions_earn_bronze_badge(
        self, meal_service, file_service, user_service, test_user
    ):
        meals = meal_service.get_user_meals(test_user.id)[:10]

        for meal in meals:
            await _complete(meal_service, file_service, meal.id, waste=0)

        user = user_service.get_user(test_user.id)
        assert user.streak == 10
        assert user.points == 1500

        badges = user_service.get_badges(test_user.id)
        assert len(badges) == 1
        assert badges[0].level == BadgeLevel.BRONZE
        assert badges[0].count == 10

    @pytest.mark.asyncio
    async def test_no_badge_before_tenth_completion(
        self, meal_service, file_service, user_service, test_user
    ):
        for meal in meal_service.get_user_meals(test_user.id)[:9]:
            await _complete(meal_service, file_service, meal.id, waste=60)

        assert user_service.get_user(test_user.id).streak == 9
        assert user_service.get_badges(test_user.id) == []


class TestFailFastChecks:
    """Checks the API runs before an upload is stored."""

    def test_before_photo_allowed_on_pending_meal(self, meal_service, test_user):
        meal = _first_meal(meal_service, test_user)

        meal_service.check_before_photo_allowed(meal.id)

    def test_before_photo_check_unknown_meal(self, meal_service):
        with pytest.raises(NotFoundError):
            meal_service.check_before_photo_allowed(999)

    def test_after_photo_check_requires_before_photo(self, meal_service, test_user):
        meal = _first_meal(meal_service, test_user)

        with pytest.raises(MissingPreconditionError):
            meal_service.check_after_photo_allowed(meal.id)

    @pytest.mark.asyncio
    async def test_checks_reject_completed_meal(
        self, meal_service, file_service, test_user
    ):
        meal = _first_meal(meal_service, test_user)
        await _complete(meal_service, file_service, meal.id, waste=0)

        with pytest.raises(MealAlreadyCompletedError):
            meal_service.check_before_photo_allowed(meal.id)
        with pytest.raises(MealAlreadyCompletedError):
            meal_service.check_after_photo_allowed(meal.id)


class TestLockBookkeeping:
    """Per-meal and per-user locks are released once nobody holds them."""

    @pytest.mark.asyncio
    async def test_unknown_meal_leaves_no_lock(self, meal_service, file_service):
        for meal_id in range(1000, 1010):
            with pytest.raises(NotFoundError):
                await meal_service.submit_before_photo(meal_id, store_photo(file_service))

        assert len(meal_service._meal_locks) == 0

    @pytest.mark.asyncio
    async def test_completions_leave_no_locks(
        self, meal_service, file_service, test_user
    ):
        for meal in meal_service.get_user_meals(test_user.id)[:3]:
            await _complete(meal_service, file_service, meal.id, waste=10)

        assert len(meal_service._meal_locks) == 0
        assert len(meal_service._user_locks) == 0


class TestKeyedLocks:
    @pytest.mark.asyncio
    async def test_waiters_share_one_lock(self):
        locks = KeyedLocks()
        order = []

        async def worker(name):
            async with locks.hold(1):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert order == ["a-in", "a-out", "b-in", "b-out"]
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_entry_dropped_after_error(self):
        locks = KeyedLocks()

        with pytest.raises(ValueError):
            async with locks.hold(7):
                raise ValueError("boom")

        assert len(locks) == 0
