"""
Points, streak and badge rules applied when a meal is completed.

Points tiers (inclusive upper bounds):
    0-10% waste   -> 150
    11-30% waste  -> 100
    31-50% waste  -> 50
    51-100% waste -> 25

The streak is the user's lifetime number of completed meals, recomputed from
meal history on every completion. A streak badge is issued whenever the
streak lands on a multiple of 10.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from wastenot.models import Badge, BadgeCreate, BadgeLevel, BadgeType, User
from wastenot.services.store import InMemoryStore

logger = logging.getLogger(__name__)

POINTS_TIERS = (
    (10, 150),
    (30, 100),
    (50, 50),
    (100, 25),
)

BADGE_MILESTONE_INTERVAL = 10
SILVER_STREAK = 25
GOLD_STREAK = 50


def points_for_waste(waste_percentage: int) -> int:
    """Points awarded for a meal with the given waste percentage."""
    if not 0 <= waste_percentage <= 100:
        raise ValueError(f"Waste percentage out of range: {waste_percentage}")
    for upper_bound, points in POINTS_TIERS:
        if waste_percentage <= upper_bound:
            return points
    raise AssertionError("unreachable")


def badge_level_for_streak(streak: int) -> BadgeLevel:
    if streak >= GOLD_STREAK:
        return BadgeLevel.GOLD
    if streak >= SILVER_STREAK:
        return BadgeLevel.SILVER
    return BadgeLevel.BRONZE


def is_badge_milestone(streak: int) -> bool:
    return streak >= BADGE_MILESTONE_INTERVAL and streak % BADGE_MILESTONE_INTERVAL == 0


@dataclass
class RewardOutcome:
    """What a single completion changed for the user."""

    points_awarded: int
    user: User
    badge: Optional[Badge] = None


class RewardEngine:
    """Applies the completion rewards through the store."""

    def __init__(self, store: InMemoryStore):
        self.store = store

    def apply_completion(self, user_id: int, points_earned: int) -> RewardOutcome:
        """
        Credit points, recompute the streak and issue a milestone badge.

        Must run after the meal has been persisted as completed, so the
        recomputed streak includes it.
        """
        self.store.update_user_points(user_id, points_earned)

        streak = self.store.count_completed_meals(user_id)
        user = self.store.update_user_streak(user_id, streak)

        badge = None
        if is_badge_milestone(streak):
            badge = self.store.create_badge(
                BadgeCreate(
                    user_id=user_id,
                    type=BadgeType.STREAK,
                    level=badge_level_for_streak(streak),
                    count=streak,
                    earned_at=datetime.now(timezone.utc),
                )
            )
            logger.info(
                "User %s earned a %s streak badge at %d completed meals",
                user_id,
                badge.level.value,
                streak,
            )

        return RewardOutcome(points_awarded=points_earned, user=user, badge=badge)
