# kareersakhi/conftest.py
import asyncio
import os

import pytest

# In-memory SQLite shared through a single connection (see core.database.init_engine)
os.environ.setdefault("TEST_DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "test")

from kareersakhi.features.entitlements.storage import InMemoryStorage  # noqa: E402
from kareersakhi.features.entitlements.store import EntitlementStore  # noqa: E402
from kareersakhi.models.analysis import (  # noqa: E402
    CoverLetterResult,
    InterviewQuestion,
    InterviewQuestionsResult,
    MatchResult,
    ScoreResult,
)


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    """Create all database tables once per test session."""
    from kareersakhi.core.database import create_all_tables
    create_all_tables()
    yield


@pytest.fixture(scope="function")
def reset_db():
    """Drop and recreate tables so each test starts from an empty ledger."""
    from kareersakhi.core.database import reset_database
    reset_database()
    yield


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def store(storage):
    return EntitlementStore(storage)


SAMPLE_SCORE = {
    "overall": 78,
    "sections": {"keywords": 85, "formatting": 90, "skills": 70, "experience": 65},
    "feedback": [
        {"type": "success", "section": "Formatting", "message": "Clean, ATS-friendly format."},
        {"type": "warning", "section": "Skills", "message": "Add more technical skills."},
        {"type": "error", "section": "Experience", "message": "Focus on achievements."},
    ],
}

SAMPLE_MATCH = {
    "overallMatch": 72,
    "keywordMatch": 75,
    "skillsMatch": 68,
    "experienceMatch": 80,
    "missingKeywords": ["docker", "kubernetes"],
    "missingSkills": ["AWS"],
    "matchedKeywords": ["React", "TypeScript"],
}


class FakeAnalysisService:
    """Records calls; optional delay / error to exercise timeout and failure paths."""

    def __init__(self, delay: float = 0, error: Exception = None, score: dict = None):
        self.delay = delay
        self.error = error
        self.score = score or SAMPLE_SCORE
        self.calls = []

    async def _run(self, name, result):
        self.calls.append(name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return result

    async def score_resume(self, artifact):
        return await self._run("score_resume", ScoreResult.model_validate(self.score))

    async def match_job(self, artifact, context):
        return await self._run("match_job", MatchResult.model_validate(SAMPLE_MATCH))

    async def generate_cover_letter(self, artifact, context):
        letter = f"Dear {context.recruiter_name or 'Hiring Manager'},\n\nI am applying for {context.job_title} at {context.company}."
        return await self._run("generate_cover_letter", CoverLetterResult(cover_letter=letter))

    async def generate_interview_questions(self, artifact, context):
        questions = [InterviewQuestion(id=1, question=f"Why {context.job_title}?", category="General")]
        return await self._run("generate_interview_questions", InterviewQuestionsResult(questions=questions))


@pytest.fixture
def fake_service():
    return FakeAnalysisService()


@pytest.fixture
def make_service():
    return FakeAnalysisService
