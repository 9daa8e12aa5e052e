"""User profile, meal plan and badge endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Path

from wastenot.api.schemas import AvatarUpdateRequest
from wastenot.dependencies import get_meal_service, get_user_service
from wastenot.models import Badge, Meal, UserPublic
from wastenot.services.meal_service import MealService
from wastenot.services.user_service import UserService

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/{user_id}", response_model=UserPublic)
async def get_user(
    user_id: int, user_service: UserService = Depends(get_user_service)
):
    return user_service.get_user(user_id).to_public()


@router.put("/{user_id}/avatar", response_model=UserPublic)
async def update_avatar(
    user_id: int,
    payload: AvatarUpdateRequest,
    user_service: UserService = Depends(get_user_service),
):
    return user_service.update_avatar(user_id, payload.avatar_url).to_public()


@router.get("/{user_id}/meals", response_model=List[Meal])
async def get_user_meals(
    user_id: int, meal_service: MealService = Depends(get_meal_service)
):
    return meal_service.get_user_meals(user_id)


@router.get("/{user_id}/meals/day/{day}", response_model=List[Meal])
async def get_meals_for_day(
    user_id: int,
    day: int = Path(ge=1),
    meal_service: MealService = Depends(get_meal_service),
):
    return meal_service.get_meals_for_day(user_id, day)


@router.get("/{user_id}/badges", response_model=List[Badge])
async def get_badges(
    user_id: int, user_service: UserService = Depends(get_user_service)
):
    return user_service.get_badges(user_id)
