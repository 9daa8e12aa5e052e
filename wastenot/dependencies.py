"""
Service wiring and FastAPI dependencies.

All services share one InMemoryStore, built once per application by
``build_services`` and stored on ``app.state.services``.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from wastenot.config import settings
from wastenot.services.activity_service import ActivityService, seed_activities
from wastenot.services.ai_service import ClaudeService
from wastenot.services.file_service import FileService
from wastenot.services.meal_service import MealService
from wastenot.services.reward_engine import RewardEngine
from wastenot.services.store import InMemoryStore
from wastenot.services.user_service import UserService
from wastenot.services.waste_resolver import WasteResolver


@dataclass
class Services:
    store: InMemoryStore
    file_service: FileService
    vision: object
    meal_service: MealService
    user_service: UserService
    activity_service: ActivityService


def build_services(
    vision=None,
    store: Optional[InMemoryStore] = None,
    upload_dir: Optional[str] = None,
    seed: Optional[bool] = None,
) -> Services:
    """
    Construct the service graph.

    Args:
        vision: Object providing validate_meal_image, estimate_consumption and
            estimate_waste_single_image (defaults to ClaudeService)
        store: Existing store to reuse (defaults to a fresh one)
        upload_dir: Photo directory (defaults to settings.upload_dir)
        seed: Seed default activities (defaults to settings.seed_activities)
    """
    store = store or InMemoryStore()
    vision = vision or ClaudeService()
    file_service = FileService(
        upload_dir=upload_dir or settings.upload_dir,
        max_bytes=settings.max_upload_bytes,
    )

    if settings.seed_activities if seed is None else seed:
        seed_activities(store)

    meal_service = MealService(
        store=store,
        file_service=file_service,
        food_detector=vision,
        resolver=WasteResolver(estimator=vision, file_service=file_service),
        reward_engine=RewardEngine(store),
    )

    return Services(
        store=store,
        file_service=file_service,
        vision=vision,
        meal_service=meal_service,
        user_service=UserService(store),
        activity_service=ActivityService(store),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_meal_service(request: Request) -> MealService:
    return get_services(request).meal_service


def get_user_service(request: Request) -> UserService:
    return get_services(request).user_service


def get_activity_service(request: Request) -> ActivityService:
    return get_services(request).activity_service


def get_file_service(request: Request) -> FileService:
    return get_services(request).file_service
