# vlog_portal/schemas/submission.py
from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator

from vlog_portal.core.config import settings


def check_class_label(value: str) -> str:
    if value not in settings.CLASS_OPTIONS:
        raise ValueError(
            f"class_label must be one of {', '.join(settings.CLASS_OPTIONS)}"
        )
    return value


class SubmissionForm(BaseModel):
    """学生填写的表单: identifying info + the YouTube link."""
    student_name: str = Field(min_length=1, max_length=100)
    class_label: str
    roll_number: str = Field(min_length=1, max_length=20)
    video_url: str = Field(min_length=1)

    model_config = {"str_strip_whitespace": True}

    @field_validator("class_label")
    @classmethod
    def _known_class(cls, value: str) -> str:
        return check_class_label(value)


class NewSubmission(BaseModel):
    """A complete submission minus the id the repository assigns."""
    student_name: str
    class_label: str
    roll_number: str
    video_url: str
    video_id: str
    video_title: str
    status: str = "valid"
    submitted_at: datetime
    ai_feedback: str | None = None
    score: float | None = None
    teacher_feedback: str | None = None


class SubmissionRecord(NewSubmission):
    id: str

    model_config = {"from_attributes": True}

    @field_validator("submitted_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # SQLite drops tzinfo; every timestamp is written in UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def is_graded(self) -> bool:
        return self.score is not None

    def to_document(self) -> Dict[str, Any]:
        """JSON form with absent optional fields omitted rather than null."""
        return self.model_dump(mode="json", exclude_none=True)


class GradeUpdate(BaseModel):
    score: float = Field(ge=0, le=100)
    teacher_feedback: str = ""


class StudentDataUpdate(BaseModel):
    student_name: str = Field(min_length=1, max_length=100)
    class_label: str
    roll_number: str = Field(min_length=1, max_length=20)

    model_config = {"str_strip_whitespace": True}

    @field_validator("class_label")
    @classmethod
    def _known_class(cls, value: str) -> str:
        return check_class_label(value)


class SubmissionAccepted(BaseModel):
    """Success card shown to the student after the pipeline completes."""
    id: str
    student_name: str
    video_title: str
    ai_feedback: str
    completed_at: datetime
    stages: List[str]


class RosterPage(BaseModel):
    total: int
    classes: List[str]
    submissions: List[SubmissionRecord]


class RankingStatsPublic(BaseModel):
    avg: float
    max: float
    min: float


class RankingPublic(BaseModel):
    class_label: str
    stats: RankingStatsPublic
    ranked: List[SubmissionRecord]


class DeleteAllResult(BaseModel):
    deleted: int
