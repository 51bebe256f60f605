# vlog_portal/services/export_service.py
import csv
import io
from datetime import date, datetime
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from vlog_portal.core.config import settings
from vlog_portal.schemas.submission import SubmissionRecord

CSV_HEADERS = [
    "Student Name",
    "Class",
    "Roll Number",
    "Video Title",
    "YouTube Link",
    "Submitted At",
    "AI Feedback",
    "Score",
    "Teacher Note",
]


def format_timestamp(value: datetime, tz_name: Optional[str] = None) -> str:
    tz = ZoneInfo(tz_name or settings.EXPORT_TIMEZONE)
    return value.astimezone(tz).strftime(settings.EXPORT_DATETIME_FORMAT)


def _format_score(score: Optional[float]) -> str:
    if score is None:
        return ""
    return f"{score:g}"


def build_csv(records: Iterable[SubmissionRecord], *, tz_name: Optional[str] = None) -> str:
    """
    One row per submission. All fields are quoted; embedded quotes are
    doubled by the csv writer.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for sub in records:
        writer.writerow([
            sub.student_name,
            sub.class_label,
            sub.roll_number,
            sub.video_title,
            sub.video_url,
            format_timestamp(sub.submitted_at, tz_name),
            sub.ai_feedback or "",
            _format_score(sub.score),
            sub.teacher_feedback or "",
        ])
    return buffer.getvalue()


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"vlog_submissions_{today.isoformat()}.csv"
