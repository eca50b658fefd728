"""
Provider desirability scoring for automatic job assignment.
"""

import logging
import math
from enum import Enum
from typing import Callable, Dict, Optional, Protocol

from .exceptions import ValidationError
from .models import GeoPoint, JobRequest, ProviderSnapshot

logger = logging.getLogger(__name__)


EARTH_RADIUS_KM = 6371.0
DEFAULT_FALLBACK_DISTANCE_KM = 5.0


class AssignmentStrategy(str, Enum):
    """Scoring formula selected for a batch run."""
    DISTANCE = "distance"
    WORKLOAD = "workload"
    RATING = "rating"
    BALANCED = "balanced"

    @classmethod
    def parse(cls, value: "str | AssignmentStrategy | None") -> "AssignmentStrategy":
        """
        Resolve a caller-supplied strategy name, defaulting to balanced.

        Raises:
            ValidationError: If the name is not a known strategy
        """
        if value is None or value == "":
            return cls.BALANCED
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            known = ", ".join(s.value for s in cls)
            raise ValidationError(
                f"Unknown assignment strategy: {value!r}. Expected one of: {known}"
            ) from None


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two coordinates in kilometres."""
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat))
        * math.sin(d_lng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


class DistanceFunction(Protocol):
    """Anything that can tell how far a provider is from a job."""

    def __call__(self, provider: ProviderSnapshot, job: JobRequest) -> float:
        """Return the distance in kilometres."""


class GeoDistance:
    """
    Haversine distance between provider and job locations.

    When either side has no coordinates the fixed ``fallback_km`` is used
    instead, so a provider without a known position still gets scored.
    """

    def __init__(self, fallback_km: float = DEFAULT_FALLBACK_DISTANCE_KM):
        self.fallback_km = fallback_km

    def __call__(self, provider: ProviderSnapshot, job: JobRequest) -> float:
        if provider.location is None or job.location is None:
            logger.debug(
                "No coordinates for provider %s / job %s, using %.1f km",
                provider.id, job.id, self.fallback_km
            )
            return self.fallback_km
        return haversine_km(provider.location, job.location)


def _distance_score(provider: ProviderSnapshot, distance_km: float) -> float:
    return 1000 - distance_km * 10


def _workload_score(provider: ProviderSnapshot, distance_km: float) -> float:
    return 1000 - provider.current_load * 100


def _rating_score(provider: ProviderSnapshot, distance_km: float) -> float:
    return provider.effective_rating * 200


def _balanced_score(provider: ProviderSnapshot, distance_km: float) -> float:
    # Each factor is capped before weighting so one outlier cannot dominate
    distance_part = (100 - min(distance_km, 50)) * 4
    workload_part = (10 - min(provider.current_load, 10)) * 30
    rating_part = provider.effective_rating * 30
    return distance_part + workload_part + rating_part


_FORMULAS: Dict[AssignmentStrategy, Callable[[ProviderSnapshot, float], float]] = {
    AssignmentStrategy.DISTANCE: _distance_score,
    AssignmentStrategy.WORKLOAD: _workload_score,
    AssignmentStrategy.RATING: _rating_score,
    AssignmentStrategy.BALANCED: _balanced_score,
}


class AssignmentScorer:
    """
    Scores (provider, job) pairs under one strategy.

    Pure: neither the provider nor the job is modified. A provider whose
    service radius is smaller than the distance to the job always scores 0,
    whatever the strategy says.
    """

    def __init__(
        self,
        strategy: AssignmentStrategy = AssignmentStrategy.BALANCED,
        distance_fn: Optional[DistanceFunction] = None
    ):
        self.strategy = AssignmentStrategy.parse(strategy)
        self.distance_fn = distance_fn or GeoDistance()

    def distance_km(self, provider: ProviderSnapshot, job: JobRequest) -> float:
        return self.distance_fn(provider, job)

    def score(self, provider: ProviderSnapshot, distance_km: float) -> float:
        """Score a provider that is ``distance_km`` away from the job."""
        if self.is_out_of_range(provider, distance_km):
            return 0.0
        return float(_FORMULAS[self.strategy](provider, distance_km))

    @staticmethod
    def is_out_of_range(provider: ProviderSnapshot, distance_km: float) -> bool:
        radius = provider.service_radius_km
        return radius is not None and distance_km > radius
