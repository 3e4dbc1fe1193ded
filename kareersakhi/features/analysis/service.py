"""
Analysis service contract.

The scoring / matching / generation engines live outside this service. The
core only depends on this protocol; `HttpAnalysisService` is the production
client.
"""
from typing import Optional, Protocol

import httpx

from kareersakhi.core.config import settings
from kareersakhi.core.errors import AnalysisUnavailableError
from kareersakhi.features.intake.validator import UploadedArtifact
from kareersakhi.models.analysis import (
    CoverLetterContext,
    CoverLetterResult,
    InterviewPrepContext,
    InterviewQuestionsResult,
    JobMatchContext,
    MatchResult,
    ScoreResult,
)


class AnalysisService(Protocol):
    async def score_resume(self, artifact: UploadedArtifact) -> ScoreResult:
        ...

    async def match_job(self, artifact: UploadedArtifact, context: JobMatchContext) -> MatchResult:
        ...

    async def generate_cover_letter(self, artifact: UploadedArtifact, context: CoverLetterContext) -> CoverLetterResult:
        ...

    async def generate_interview_questions(
        self, artifact: UploadedArtifact, context: InterviewPrepContext
    ) -> InterviewQuestionsResult:
        ...


class HttpAnalysisService:
    """Posts the résumé to the analysis engine and parses the result schemas."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.ANALYSIS_SERVICE_URL or "").rstrip("/")
        self.token = token or settings.ANALYSIS_SERVICE_TOKEN
        self._client = client

    async def _post(self, path: str, artifact: UploadedArtifact, fields: Optional[dict] = None) -> dict:
        if not self.base_url and self._client is None:
            raise AnalysisUnavailableError("Analysis service is not configured")

        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        files = {
            "file": (artifact.name, artifact.content, artifact.content_type or "application/octet-stream"),
        }
        try:
            if self._client is not None:
                resp = await self._client.post(path, files=files, data=fields or {}, headers=headers)
            else:
                async with httpx.AsyncClient(base_url=self.base_url) as client:
                    resp = await client.post(path, files=files, data=fields or {}, headers=headers)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPError as e:
            raise AnalysisUnavailableError(f"Analysis service request failed: {e}")
        except ValueError as e:
            raise AnalysisUnavailableError(f"Analysis service returned invalid JSON: {e}")

    async def score_resume(self, artifact: UploadedArtifact) -> ScoreResult:
        data = await self._post("/resume/score", artifact)
        return _parse(ScoreResult, data)

    async def match_job(self, artifact: UploadedArtifact, context: JobMatchContext) -> MatchResult:
        data = await self._post("/resume/match", artifact, context.model_dump(by_alias=True))
        return _parse(MatchResult, data)

    async def generate_cover_letter(self, artifact: UploadedArtifact, context: CoverLetterContext) -> CoverLetterResult:
        data = await self._post("/cover-letter", artifact, context.model_dump(by_alias=True))
        return _parse(CoverLetterResult, data)

    async def generate_interview_questions(
        self, artifact: UploadedArtifact, context: InterviewPrepContext
    ) -> InterviewQuestionsResult:
        data = await self._post("/interview-questions", artifact, context.model_dump(by_alias=True))
        return _parse(InterviewQuestionsResult, data)


def _parse(model, data):
    try:
        return model.model_validate(data)
    except ValueError as e:
        raise AnalysisUnavailableError(f"Analysis service returned an invalid {model.__name__}: {e}")
