"""
Entitlement-gated analysis runner.

Wraps every call to the analysis service:
- refuses when the entitlement store says no (quota / expiry), without calling out
- refuses a second submission of an artifact that is still in flight
- consumes exactly one review on success; never on failure, timeout or cancellation
"""

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Set

from kareersakhi.core.config import settings
from kareersakhi.core.errors import AnalysisUnavailableError
from kareersakhi.core.logging import log_event
from kareersakhi.features.analysis.service import AnalysisService
from kareersakhi.features.entitlements.store import EntitlementStore
from kareersakhi.features.intake.validator import UploadedArtifact
from kareersakhi.models.analysis import CoverLetterContext, InterviewPrepContext, JobMatchContext


logger = logging.getLogger("kareersakhi")

UPGRADE_MESSAGE = "You have used all available reviews. Upgrade your plan to continue."


class AnalysisStatus(str, Enum):
    COMPLETED = "completed"
    GATED = "gated"
    IN_FLIGHT = "in_flight"
    FAILED = "failed"


@dataclass(frozen=True)
class AnalysisOutcome:
    status: AnalysisStatus
    result: Optional[Any] = None
    message: Optional[str] = None
    retryable: bool = False

    @property
    def ok(self) -> bool:
        return self.status == AnalysisStatus.COMPLETED


def artifact_key(artifact: UploadedArtifact) -> str:
    digest = hashlib.sha256(artifact.content).hexdigest()
    return f"{artifact.name}:{artifact.byte_size}:{digest}"


class AnalysisGate:
    def __init__(
        self,
        store: EntitlementStore,
        service: AnalysisService,
        timeout: Optional[float] = None,
    ):
        self.store = store
        self.service = service
        self.timeout = timeout if timeout is not None else settings.ANALYSIS_TIMEOUT_SECONDS
        self._in_flight: Set[str] = set()

    def is_in_flight(self, artifact: UploadedArtifact) -> bool:
        return artifact_key(artifact) in self._in_flight

    async def submit(
        self,
        artifact: UploadedArtifact,
        operation: str,
        call: Callable[[], Awaitable[Any]],
    ) -> AnalysisOutcome:
        """
        Run `call` under entitlement gating.

        Cancellation of the awaiting task propagates to the caller and leaves
        the entitlement state untouched.
        """
        if not self.store.can_perform_analysis():
            log_event("info", "analysis.gated", event_type=operation, error_code="quota_exceeded")
            return AnalysisOutcome(AnalysisStatus.GATED, message=UPGRADE_MESSAGE)

        key = artifact_key(artifact)
        if key in self._in_flight:
            log_event("info", "analysis.duplicate_submission", event_type=operation, extra={"artifact": artifact.name})
            return AnalysisOutcome(AnalysisStatus.IN_FLIGHT, message="This file is already being analyzed")

        self._in_flight.add(key)
        try:
            try:
                result = await asyncio.wait_for(call(), timeout=self.timeout)
            except asyncio.TimeoutError:
                log_event("warning", "analysis.timeout", event_type=operation, error_code="analysis_timeout",
                          extra={"timeout_s": self.timeout})
                return AnalysisOutcome(
                    AnalysisStatus.FAILED,
                    message="Analysis took too long. Please try again.",
                    retryable=True,
                )
            except AnalysisUnavailableError as e:
                log_event("warning", "analysis.unavailable", event_type=operation, error_code=e.code,
                          extra={"error": e.message})
                return AnalysisOutcome(
                    AnalysisStatus.FAILED,
                    message="Analysis is currently unavailable. Please try again.",
                    retryable=True,
                )
            except Exception:
                logger.error("analysis.failed", exc_info=True, extra={"event_type": operation})
                return AnalysisOutcome(
                    AnalysisStatus.FAILED,
                    message="Analysis is currently unavailable. Please try again.",
                    retryable=True,
                )

            self.store.decrement_reviews()
            log_event("info", "analysis.completed", event_type=operation, extra={"artifact": artifact.name})
            return AnalysisOutcome(AnalysisStatus.COMPLETED, result=result)
        finally:
            self._in_flight.discard(key)

    async def score_resume(self, artifact: UploadedArtifact) -> AnalysisOutcome:
        return await self.submit(artifact, "resume_score", lambda: self.service.score_resume(artifact))

    async def match_job(self, artifact: UploadedArtifact, context: JobMatchContext) -> AnalysisOutcome:
        return await self.submit(artifact, "job_match", lambda: self.service.match_job(artifact, context))

    async def generate_cover_letter(self, artifact: UploadedArtifact, context: CoverLetterContext) -> AnalysisOutcome:
        return await self.submit(
            artifact, "cover_letter", lambda: self.service.generate_cover_letter(artifact, context)
        )

    async def generate_interview_questions(
        self, artifact: UploadedArtifact, context: InterviewPrepContext
    ) -> AnalysisOutcome:
        return await self.submit(
            artifact, "interview_questions", lambda: self.service.generate_interview_questions(artifact, context)
        )
