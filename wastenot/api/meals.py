"""API endpoints for meal photo submission."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from wastenot.dependencies import get_file_service, get_meal_service
from wastenot.models import Meal
from wastenot.services.file_service import FileService
from wastenot.services.meal_service import MealService

router = APIRouter(prefix="/api/meals", tags=["meals"])


@router.get("/{meal_id}", response_model=Meal)
async def get_meal(
    meal_id: int, meal_service: MealService = Depends(get_meal_service)
):
    return meal_service.get_meal(meal_id)


@router.post("/{meal_id}/before-photo", response_model=Meal)
async def upload_before_photo(
    meal_id: int,
    photo: UploadFile = File(...),
    meal_service: MealService = Depends(get_meal_service),
    file_service: FileService = Depends(get_file_service),
):
    """
    Store the before photo for a meal.

    Returns 400 if the photo is not an image of food, 404 for an unknown
    meal and 409 if the meal is already completed. The meal checks run
    before the upload is validated or stored.
    """
    meal_service.check_before_photo_allowed(meal_id)
    photo_url = await file_service.save_meal_photo(photo)
    return await meal_service.submit_before_photo(meal_id, photo_url)


@router.post("/{meal_id}/after-photo", response_model=Meal)
async def upload_after_photo(
    meal_id: int,
    photo: UploadFile = File(...),
    waste_percentage: Optional[int] = Form(None),
    meal_service: MealService = Depends(get_meal_service),
    file_service: FileService = Depends(get_file_service),
):
    """
    Complete a meal with its after photo.

    ``waste_percentage`` overrides the vision estimate when given.
    Returns 400 if no before photo was uploaded yet or the photo is not food.
    """
    meal_service.check_after_photo_allowed(meal_id)
    photo_url = await file_service.save_meal_photo(photo)
    return await meal_service.submit_after_photo(
        meal_id, photo_url, user_supplied_percentage=waste_percentage
    )
