"""
Analysis API routes.

All routes run intake validation first, then the entitlement-gated analysis:
- POST /api/analysis/resume
- POST /api/analysis/match
- POST /api/analysis/cover-letter
- POST /api/analysis/interview-questions

Errors:
    400/413: upload rejected by intake
    403: quota exhausted or subscription expired (upgrade required)
    409: same file already being analyzed
    503: analysis service failed or timed out (retryable)
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import ValidationError as PydanticValidationError

from kareersakhi.api.deps import accepted_upload, get_constraints, get_gate, get_store
from kareersakhi.api.entitlements import entitlement_response
from kareersakhi.core.errors import (
    AnalysisUnavailableError,
    ConflictError,
    QuotaExceededError,
    ValidationError,
)
from kareersakhi.features.analysis.gate import AnalysisGate, AnalysisOutcome, AnalysisStatus
from kareersakhi.features.entitlements.store import EntitlementStore
from kareersakhi.features.intake.validator import IntakeConstraints
from kareersakhi.features.scoring.projection import project_match_result, project_score_result
from kareersakhi.models.analysis import CoverLetterContext, InterviewPrepContext, JobMatchContext


router = APIRouter(prefix="/api/analysis", tags=["analysis"])


def _unwrap(outcome: AnalysisOutcome) -> Any:
    if outcome.status == AnalysisStatus.COMPLETED:
        return outcome.result
    if outcome.status == AnalysisStatus.GATED:
        raise QuotaExceededError(outcome.message, details={"upgrade_url": "/pricing"})
    if outcome.status == AnalysisStatus.IN_FLIGHT:
        raise ConflictError(outcome.message, code="analysis_in_flight")
    raise AnalysisUnavailableError(outcome.message, details={"retryable": outcome.retryable})


def _context(model, **fields):
    try:
        return model(**fields)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid request fields",
            details={"errors": [err["msg"] for err in e.errors()]},
        )


def _response(result, store: EntitlementStore, projection: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body = {
        "result": result.model_dump(mode="json", by_alias=True),
        "entitlements": entitlement_response(store.state).model_dump(mode="json"),
    }
    if projection is not None:
        body["projection"] = projection
    return body


@router.post("/resume")
async def analyze_resume(
    file: UploadFile = File(...),
    constraints: IntakeConstraints = Depends(get_constraints),
    gate: AnalysisGate = Depends(get_gate),
    store: EntitlementStore = Depends(get_store),
):
    artifact = await accepted_upload(file, constraints)
    result = _unwrap(await gate.score_resume(artifact))
    return _response(result, store, project_score_result(result))


@router.post("/match")
async def match_job_description(
    file: UploadFile = File(...),
    job_description: str = Form(...),
    constraints: IntakeConstraints = Depends(get_constraints),
    gate: AnalysisGate = Depends(get_gate),
    store: EntitlementStore = Depends(get_store),
):
    context = _context(JobMatchContext, job_description=job_description)
    artifact = await accepted_upload(file, constraints)
    result = _unwrap(await gate.match_job(artifact, context))
    return _response(result, store, project_match_result(result))


@router.post("/cover-letter")
async def generate_cover_letter(
    file: UploadFile = File(...),
    job_title: str = Form(...),
    company: str = Form(...),
    recruiter_name: str = Form(""),
    company_details: str = Form(""),
    key_points: str = Form(""),
    tone: str = Form("professional"),
    constraints: IntakeConstraints = Depends(get_constraints),
    gate: AnalysisGate = Depends(get_gate),
    store: EntitlementStore = Depends(get_store),
):
    context = _context(
        CoverLetterContext,
        job_title=job_title,
        company=company,
        recruiter_name=recruiter_name,
        company_details=company_details,
        key_points=key_points,
        tone=tone,
    )
    artifact = await accepted_upload(file, constraints)
    result = _unwrap(await gate.generate_cover_letter(artifact, context))
    return _response(result, store)


@router.post("/interview-questions")
async def generate_interview_questions(
    file: UploadFile = File(...),
    job_title: str = Form(...),
    industry: str = Form(""),
    experience_level: str = Form("mid"),
    specific_skills: str = Form(""),
    constraints: IntakeConstraints = Depends(get_constraints),
    gate: AnalysisGate = Depends(get_gate),
    store: EntitlementStore = Depends(get_store),
):
    context = _context(
        InterviewPrepContext,
        job_title=job_title,
        industry=industry,
        experience_level=experience_level,
        specific_skills=specific_skills,
    )
    artifact = await accepted_upload(file, constraints)
    result = _unwrap(await gate.generate_interview_questions(artifact, context))
    return _response(result, store)
