# vlog_portal/services/roster.py
"""
Roster and ranking views.

Pure functions over an in-memory snapshot; nothing here touches storage.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Literal

from vlog_portal.schemas.submission import SubmissionRecord

ALL_CLASSES = "all"

SortOption = Literal["newest", "oldest", "name_asc"]


@dataclass(frozen=True)
class RankingStats:
    avg: float = 0.0
    max: float = 0.0
    min: float = 0.0


@dataclass(frozen=True)
class Ranking:
    class_label: str
    entries: List[SubmissionRecord] = field(default_factory=list)
    stats: RankingStats = RankingStats()


def _matches_search(record: SubmissionRecord, term: str) -> bool:
    return (
        term in record.student_name.lower()
        or term in record.class_label.lower()
        or term in record.roll_number.lower()
        or term in record.video_title.lower()
    )


def _matches_class(record: SubmissionRecord, class_label: str) -> bool:
    return class_label == ALL_CLASSES or record.class_label.strip() == class_label


def filter_and_sort(
    records: Iterable[SubmissionRecord],
    *,
    search: str = "",
    class_label: str = ALL_CLASSES,
    sort_by: SortOption = "newest",
) -> List[SubmissionRecord]:
    """
    Search text (name, class, roll number, title; case-insensitive)
    AND class filter, then sort.
    """
    term = search.strip().lower()
    result = [
        r for r in records
        if _matches_search(r, term) and _matches_class(r, class_label)
    ]

    if sort_by == "newest":
        result.sort(key=lambda r: r.submitted_at, reverse=True)
    elif sort_by == "oldest":
        result.sort(key=lambda r: r.submitted_at)
    elif sort_by == "name_asc":
        result.sort(key=lambda r: r.student_name.casefold())
    else:
        raise ValueError(f"unknown sort option: {sort_by}")
    return result


def unique_classes(records: Iterable[SubmissionRecord]) -> List[str]:
    """Distinct non-empty class labels present in the data, sorted."""
    return sorted({r.class_label.strip() for r in records if r.class_label.strip()})


def rank(
    records: Iterable[SubmissionRecord],
    *,
    class_label: str = ALL_CLASSES,
) -> Ranking:
    """
    Graded submissions only, highest score first. Equal scores go to
    whoever submitted earlier.
    """
    graded = [
        r for r in records
        if r.score is not None and _matches_class(r, class_label)
    ]
    graded.sort(key=lambda r: (-r.score, r.submitted_at))

    if not graded:
        return Ranking(class_label=class_label)

    scores = [r.score for r in graded]
    stats = RankingStats(
        avg=round(sum(scores) / len(scores), 1),
        max=max(scores),
        min=min(scores),
    )
    return Ranking(class_label=class_label, entries=graded, stats=stats)
