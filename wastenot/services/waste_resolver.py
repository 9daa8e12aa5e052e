"""
Waste percentage resolution for completed meals.

Order of precedence:
1. A percentage supplied by the user (clamped to 0-100)
2. A before/after consumption estimate, capped when the two photos look
   like the same image submitted twice
3. A single-photo estimate of the after photo
Estimator failures resolve to the fallback default instead of blocking
meal completion.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol

from wastenot.config import settings
from wastenot.exceptions import EstimatorUnavailableError
from wastenot.services.ai_service import RateLimitError, ServiceUnavailableError
from wastenot.services.file_service import FileService

logger = logging.getLogger(__name__)


class WasteEstimator(Protocol):
    """Vision capability consumed by the resolver (ClaudeService or a mock)."""

    async def estimate_consumption(self, before_path: str, after_path: str) -> int: ...

    async def estimate_waste_single_image(self, image_path: str) -> int: ...


@dataclass(frozen=True)
class EstimateResult:
    """Outcome of one estimator call: the value, or the fallback and why."""

    value: int
    fallback: bool = False
    reason: Optional[str] = None


def clamp_percentage(value: int) -> int:
    return max(0, min(100, int(value)))


def photos_look_identical(before_size: int, after_size: int, threshold: float) -> bool:
    """
    True when the after photo's byte size is within ``threshold`` (relative to
    the before photo) of the before photo's size.
    """
    if before_size <= 0:
        return False
    return abs(after_size - before_size) / before_size < threshold


class WasteResolver:
    """Decides the final waste percentage for a meal."""

    def __init__(
        self,
        estimator: WasteEstimator,
        file_service: FileService,
        fallback_percentage: int = settings.waste_fallback_percentage,
        duplicate_threshold: float = settings.duplicate_photo_threshold,
        duplicate_cap: int = settings.duplicate_photo_cap,
        estimator_timeout: float = settings.estimator_timeout,
    ):
        self.estimator = estimator
        self.file_service = file_service
        self.fallback_percentage = fallback_percentage
        self.duplicate_threshold = duplicate_threshold
        self.duplicate_cap = duplicate_cap
        self.estimator_timeout = estimator_timeout

    async def resolve(
        self,
        before_photo_url: Optional[str],
        after_photo_url: str,
        user_supplied_percentage: Optional[int] = None,
    ) -> int:
        """
        Resolve the waste percentage for a meal being completed.

        Args:
            before_photo_url: Stored before photo (may be missing from storage)
            after_photo_url: Stored after photo
            user_supplied_percentage: Value entered by the user, if any

        Returns:
            Waste percentage in [0, 100]; never raises
        """
        try:
            return await self._resolve(
                before_photo_url, after_photo_url, user_supplied_percentage
            )
        except Exception:
            logger.exception(
                "Waste resolution failed for %s, using fallback", after_photo_url
            )
            if user_supplied_percentage is not None:
                return clamp_percentage(user_supplied_percentage)
            return self.fallback_percentage

    async def _resolve(
        self,
        before_photo_url: Optional[str],
        after_photo_url: str,
        user_supplied_percentage: Optional[int],
    ) -> int:
        if user_supplied_percentage is not None:
            waste = clamp_percentage(user_supplied_percentage)
            if waste != user_supplied_percentage:
                logger.info(
                    "Clamped user-supplied waste %s to %d", user_supplied_percentage, waste
                )
            return waste

        after_path = str(self.file_service.path_for(after_photo_url))

        if self.file_service.exists(before_photo_url):
            before_path = str(self.file_service.path_for(before_photo_url))
            result = await self._estimate(
                lambda: self.estimator.estimate_consumption(before_path, after_path)
            )
            waste = clamp_percentage(result.value)

            before_size = self.file_service.size_of(before_photo_url)
            after_size = self.file_service.size_of(after_photo_url)
            if photos_look_identical(before_size, after_size, self.duplicate_threshold):
                logger.info(
                    "Before/after photos differ by less than %.0f%% (%d vs %d bytes), "
                    "capping waste at %d",
                    self.duplicate_threshold * 100,
                    before_size,
                    after_size,
                    self.duplicate_cap,
                )
                waste = min(waste, self.duplicate_cap)
            return waste

        logger.warning(
            "Before photo %s not in storage, estimating from after photo only",
            before_photo_url,
        )
        result = await self._estimate(
            lambda: self.estimator.estimate_waste_single_image(after_path)
        )
        return clamp_percentage(result.value)

    async def _estimate(self, call: Callable[[], Awaitable[int]]) -> EstimateResult:
        """
        Run one estimator call with a timeout.

        Provider errors, timeouts and unparseable answers become an
        EstimateResult carrying the fallback percentage.
        """
        try:
            value = await asyncio.wait_for(call(), timeout=self.estimator_timeout)
            return EstimateResult(value=value)
        except asyncio.TimeoutError:
            reason = f"timed out after {self.estimator_timeout}s"
        except (EstimatorUnavailableError, ServiceUnavailableError, RateLimitError) as e:
            reason = str(e)

        logger.warning(
            "Waste estimator unavailable (%s), using fallback %d%%",
            reason,
            self.fallback_percentage,
        )
        return EstimateResult(
            value=self.fallback_percentage, fallback=True, reason=reason
        )
