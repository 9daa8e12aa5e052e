"""Sustainability activities users can sign up for."""

import logging
from datetime import datetime
from typing import List

from wastenot.exceptions import NotFoundError
from wastenot.models import (
    Activity,
    ActivityCreate,
    ActivityParticipant,
    ActivityParticipantCreate,
)
from wastenot.services.store import InMemoryStore

logger = logging.getLogger(__name__)

DEFAULT_ACTIVITIES = [
    ActivityCreate(
        title="Campus Garden Cleanup",
        description="Join us to clean up and plant new flowers in the campus garden.",
        type="garden",
        date=datetime(2023, 10, 14, 10, 0),
        points=200,
        location="Main Campus Garden",
    ),
    ActivityCreate(
        title="Recycling Workshop",
        description="Learn how to properly sort and recycle different materials.",
        type="recycling",
        date=datetime(2023, 10, 17, 14, 0),
        points=150,
        location="Student Union Building, Room 201",
    ),
]


def seed_activities(store: InMemoryStore) -> int:
    """Insert the default activities. Returns the number created."""
    for activity in DEFAULT_ACTIVITIES:
        store.create_activity(activity)
    logger.info("Seeded %d activities", len(DEFAULT_ACTIVITIES))
    return len(DEFAULT_ACTIVITIES)


class ActivityService:
    def __init__(self, store: InMemoryStore):
        self.store = store

    def list_activities(self) -> List[Activity]:
        return sorted(self.store.get_activities(), key=lambda a: a.date)

    def join_activity(self, user_id: int, activity_id: int) -> ActivityParticipant:
        """
        Register a user for an activity.

        Raises:
            NotFoundError: user or activity does not exist
            DuplicateKeyError: user already registered
        """
        if self.store.get_user(user_id) is None:
            raise NotFoundError("User", user_id)
        if self.store.get_activity(activity_id) is None:
            raise NotFoundError("Activity", activity_id)

        participant = self.store.add_participant(
            ActivityParticipantCreate(
                activity_id=activity_id, user_id=user_id, registered=True, attended=False
            )
        )
        logger.info("User %s joined activity %s", user_id, activity_id)
        return participant

    def mark_attended(self, participant_id: int) -> ActivityParticipant:
        return self.store.mark_participant_attended(participant_id)
