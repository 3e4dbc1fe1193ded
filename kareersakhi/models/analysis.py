"""
Analysis result schemas exchanged with the external analysis service.

Scores are carried exactly as the service returned them; clamping to
[0, 100] happens in score projection before anything is displayed.
"""

from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class FeedbackSeverity(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class _Wire(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def _dedupe(values: List[str]) -> List[str]:
    seen = set()
    out = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


class FeedbackItem(_Wire):
    severity: FeedbackSeverity = Field(validation_alias=AliasChoices("severity", "type"))
    section: str
    message: str


class ScoreResult(_Wire):
    overall: float
    sections: Dict[str, float] = Field(default_factory=dict)
    feedback: List[FeedbackItem] = Field(default_factory=list)


class MatchResult(_Wire):
    overall_match: float
    keyword_match: float
    skills_match: float
    experience_match: float
    missing_keywords: List[str] = Field(default_factory=list)
    missing_skills: List[str] = Field(default_factory=list)
    matched_keywords: List[str] = Field(default_factory=list)

    @field_validator("missing_keywords", "missing_skills", "matched_keywords")
    @classmethod
    def as_set(cls, v: List[str]) -> List[str]:
        return _dedupe(v)


class CoverLetterResult(_Wire):
    cover_letter: str


class InterviewQuestion(_Wire):
    id: int
    question: str
    category: str
    suggested_answer: Optional[str] = None


class InterviewQuestionsResult(_Wire):
    questions: List[InterviewQuestion] = Field(default_factory=list)


# Request contexts

class JobMatchContext(_Wire):
    job_description: str = Field(min_length=1)

    @field_validator("job_description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("job_description must not be blank")
        return v


class CoverLetterContext(_Wire):
    job_title: str = Field(min_length=1)
    company: str = Field(min_length=1)
    recruiter_name: str = ""
    company_details: str = ""
    key_points: str = ""
    tone: Literal["professional", "conversational", "enthusiastic"] = "professional"


class InterviewPrepContext(_Wire):
    job_title: str = Field(min_length=1)
    industry: str = ""
    experience_level: Literal["entry", "mid", "senior"] = "mid"
    specific_skills: str = ""
