"""
Tests for entitlement-gated analysis.

The quota is consumed only when the analysis service returns a result.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from kareersakhi.core.errors import AnalysisUnavailableError
from kareersakhi.features.analysis.gate import AnalysisGate, AnalysisStatus, UPGRADE_MESSAGE
from kareersakhi.features.intake.validator import UploadedArtifact
from kareersakhi.models.analysis import CoverLetterContext, InterviewPrepContext, JobMatchContext
from kareersakhi.models.entitlement import SubscriptionTier


RESUME = UploadedArtifact.from_bytes("resume.pdf", b"%PDF-1.4 sample resume")


@pytest.mark.asyncio
async def test_free_user_single_review_then_gated(store, fake_service):
    gate = AnalysisGate(store, fake_service, timeout=1)

    first = await gate.score_resume(RESUME)
    assert first.status == AnalysisStatus.COMPLETED
    assert first.result.overall == 78
    assert store.state.reviews_remaining == 0

    second = await gate.score_resume(RESUME)
    assert second.status == AnalysisStatus.GATED
    assert second.message == UPGRADE_MESSAGE
    assert fake_service.calls == ["score_resume"]


@pytest.mark.asyncio
async def test_service_failure_does_not_consume_review(store, make_service):
    service = make_service(error=AnalysisUnavailableError("engine down"))
    gate = AnalysisGate(store, service, timeout=1)

    outcome = await gate.score_resume(RESUME)

    assert outcome.status == AnalysisStatus.FAILED
    assert outcome.retryable is True
    assert store.state.reviews_remaining == 1


@pytest.mark.asyncio
async def test_unexpected_error_does_not_consume_review(store, make_service):
    gate = AnalysisGate(store, make_service(error=RuntimeError("boom")), timeout=1)

    outcome = await gate.score_resume(RESUME)

    assert outcome.status == AnalysisStatus.FAILED
    assert store.state.reviews_remaining == 1


@pytest.mark.asyncio
async def test_timeout_does_not_consume_review(store, make_service):
    gate = AnalysisGate(store, make_service(delay=0.5), timeout=0.01)

    outcome = await gate.score_resume(RESUME)

    assert outcome.status == AnalysisStatus.FAILED
    assert "too long" in outcome.message
    assert store.state.reviews_remaining == 1
    assert gate.is_in_flight(RESUME) is False


@pytest.mark.asyncio
async def test_cancellation_does_not_consume_review(store, make_service):
    gate = AnalysisGate(store, make_service(delay=1), timeout=5)

    task = asyncio.create_task(gate.score_resume(RESUME))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert store.state.reviews_remaining == 1
    assert gate.is_in_flight(RESUME) is False


@pytest.mark.asyncio
async def test_duplicate_submission_refused_while_in_flight(store, make_service):
    service = make_service(delay=0.05)
    gate = AnalysisGate(store, service, timeout=1)

    task = asyncio.create_task(gate.score_resume(RESUME))
    await asyncio.sleep(0.01)
    duplicate = await gate.score_resume(RESUME)
    first = await task

    assert duplicate.status == AnalysisStatus.IN_FLIGHT
    assert first.status == AnalysisStatus.COMPLETED
    assert service.calls == ["score_resume"]
    assert store.state.reviews_remaining == 0


@pytest.mark.asyncio
async def test_paid_tier_not_blocked_by_quota(store, fake_service):
    store.set_tier(SubscriptionTier.PREMIUM)
    gate = AnalysisGate(store, fake_service, timeout=1)

    await gate.score_resume(RESUME)
    outcome = await gate.score_resume(RESUME)

    assert outcome.status == AnalysisStatus.COMPLETED
    assert store.state.reviews_remaining == 0


@pytest.mark.asyncio
async def test_expired_professional_is_gated(store, fake_service):
    store.set_tier(SubscriptionTier.PROFESSIONAL)
    store.set_expiry_date(datetime.now(timezone.utc) - timedelta(days=1))
    gate = AnalysisGate(store, fake_service, timeout=1)

    outcome = await gate.score_resume(RESUME)

    assert outcome.status == AnalysisStatus.GATED
    assert fake_service.calls == []


@pytest.mark.asyncio
async def test_match_job_consumes_review(store, fake_service):
    gate = AnalysisGate(store, fake_service, timeout=1)

    outcome = await gate.match_job(RESUME, JobMatchContext(job_description="Senior React developer"))

    assert outcome.ok
    assert outcome.result.missing_keywords == ["docker", "kubernetes"]
    assert store.state.reviews_remaining == 0


@pytest.mark.asyncio
async def test_generation_operations_are_gated_too(store, fake_service):
    gate = AnalysisGate(store, fake_service, timeout=1)

    letter = await gate.generate_cover_letter(RESUME, CoverLetterContext(job_title="Engineer", company="Acme"))
    assert letter.ok
    assert "Acme" in letter.result.cover_letter

    questions = await gate.generate_interview_questions(RESUME, InterviewPrepContext(job_title="Engineer"))
    assert questions.status == AnalysisStatus.GATED
