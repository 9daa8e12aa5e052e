"""Sustainability activity endpoints."""

from typing import List

from fastapi import APIRouter, Depends, status

from wastenot.api.schemas import JoinActivityRequest
from wastenot.dependencies import get_activity_service
from wastenot.models import Activity, ActivityParticipant
from wastenot.services.activity_service import ActivityService

router = APIRouter(prefix="/api/activities", tags=["activities"])


@router.get("", response_model=List[Activity])
async def list_activities(
    activity_service: ActivityService = Depends(get_activity_service),
):
    return activity_service.list_activities()


@router.post(
    "/{activity_id}/join",
    response_model=ActivityParticipant,
    status_code=status.HTTP_201_CREATED,
)
async def join_activity(
    activity_id: int,
    payload: JoinActivityRequest,
    activity_service: ActivityService = Depends(get_activity_service),
):
    """Register a user; 409 if they are already registered."""
    return activity_service.join_activity(payload.user_id, activity_id)


@router.post("/participants/{participant_id}/attend", response_model=ActivityParticipant)
async def mark_attended(
    participant_id: int,
    activity_service: ActivityService = Depends(get_activity_service),
):
    return activity_service.mark_attended(participant_id)
