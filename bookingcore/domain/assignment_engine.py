"""
Greedy batch planner that pairs unassigned jobs with providers.

This module only decides who should take which job. Persisting the
result, flipping provider status and notifying people is done by the
service layer afterwards.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from .conflict_detector import ConflictDetector, group_by_provider
from .models import (
    Assignment,
    AssignmentPlan,
    BookingSnapshot,
    JobRequest,
    ProviderSnapshot,
)
from .scoring import AssignmentScorer

logger = logging.getLogger(__name__)


class AutoAssignmentEngine:
    """
    Assigns each job to the highest-scoring provider still free in the batch.

    Algorithm:
    1. Narrow jobs to the requested ids and providers to available ones
    2. Sort jobs by scheduled start so the most urgent are served first
    3. For each job score every unclaimed provider and keep the best
    4. Accept the best provider only if its score is positive, then claim it

    A provider takes at most one job per batch. Jobs with no positively
    scored provider are reported as unassigned and can be retried on the
    next run.
    """

    def __init__(
        self,
        scorer: AssignmentScorer,
        conflict_detector: Optional[ConflictDetector] = None
    ):
        self.scorer = scorer
        self.conflict_detector = conflict_detector or ConflictDetector()

    def plan(
        self,
        jobs: Sequence[JobRequest],
        providers: Sequence[ProviderSnapshot],
        job_ids: Optional[Iterable[str]] = None,
        bookings: Optional[Iterable[BookingSnapshot]] = None
    ) -> AssignmentPlan:
        """
        Build the assignment set for one batch.

        Args:
            jobs: Unassigned jobs
            providers: Provider pool; non-available providers are ignored
            job_ids: Optional subset of job ids to consider
            bookings: Existing bookings; when given, providers already booked
                over a job's interval are skipped for that job

        Returns:
            AssignmentPlan with the pairings and the jobs left unassigned
        """
        selected = self._select_jobs(jobs, job_ids)
        pool = [p for p in providers if p.is_available]

        if not selected or not pool:
            logger.info(
                "Nothing to assign (%d jobs, %d available providers)",
                len(selected), len(pool)
            )
            return AssignmentPlan(unassigned_job_ids=[job.id for job in selected])

        booking_list = list(bookings) if bookings is not None else None
        claimed: Set[str] = set()
        plan = AssignmentPlan()

        for job in sorted(selected, key=self._urgency_key):
            blocked = self._blocked_providers(job, booking_list)
            best = self._best_candidate(job, pool, claimed | blocked)

            if best is None:
                plan.unassigned_job_ids.append(job.id)
                continue

            provider, score, distance = best
            plan.assignments.append(
                Assignment(
                    job_id=job.id,
                    provider_id=provider.id,
                    score=score,
                    distance_km=distance,
                )
            )
            claimed.add(provider.id)
            logger.debug(
                "Job %s -> provider %s (score %.1f, %.2f km)",
                job.id, provider.id, score, distance
            )

        logger.info(
            "Planned %d of %d jobs using %s strategy",
            len(plan.assignments), len(selected), self.scorer.strategy.value
        )
        return plan

    def _best_candidate(
        self,
        job: JobRequest,
        pool: Sequence[ProviderSnapshot],
        excluded: Set[str]
    ) -> Optional[Tuple[ProviderSnapshot, float, float]]:
        """Highest-scoring eligible provider, first one wins on ties."""
        best: Optional[Tuple[ProviderSnapshot, float, float]] = None

        for provider in pool:
            if provider.id in excluded:
                continue

            distance = self.scorer.distance_km(provider, job)
            score = self.scorer.score(provider, distance)

            if best is None or score > best[1]:
                best = (provider, score, distance)

        if best is None or best[1] <= 0:
            return None

        return best

    def _blocked_providers(
        self,
        job: JobRequest,
        bookings: Optional[List[BookingSnapshot]]
    ) -> Set[str]:
        if not bookings:
            return set()

        busy = group_by_provider(bookings, job.date)
        return {
            provider_id for provider_id, provider_bookings in busy.items()
            if self.conflict_detector.has_conflict(
                provider_bookings, job.interval, exclude_booking_id=job.id
            )
        }

    @staticmethod
    def _select_jobs(
        jobs: Sequence[JobRequest],
        job_ids: Optional[Iterable[str]]
    ) -> List[JobRequest]:
        if job_ids is None:
            return list(jobs)

        wanted = set(job_ids)
        if not wanted:
            return list(jobs)

        return [job for job in jobs if job.id in wanted]

    @staticmethod
    def _urgency_key(job: JobRequest):
        return (job.scheduled_at, job.id)
