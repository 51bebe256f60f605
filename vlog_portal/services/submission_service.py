# vlog_portal/services/submission_service.py
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from vlog_portal.core.exceptions import BatchLimitExceededError
from vlog_portal.models.submission import Submission


def create_submission(db: Session, *, values: Dict[str, Any]) -> Submission:
    """
    新增一条提交. `values` holds only the fields that are present; the id is
    assigned here and nowhere else.
    """
    submission = Submission(id=uuid.uuid4().hex, **values)

    db.add(submission)
    db.commit()
    db.refresh(submission)
    return submission


def get_submission(db: Session, submission_id: str) -> Optional[Submission]:
    return db.get(Submission, submission_id)


def list_submissions(db: Session) -> List[Submission]:
    """
    全部提交, newest first
    """
    return (
        db.query(Submission)
        .order_by(Submission.submitted_at.desc(), Submission.id.asc())
        .all()
    )


def _apply_partial_update(
    db: Session,
    submission_id: str,
    update_data: Dict[str, Any],
) -> Optional[Submission]:
    db_obj = get_submission(db, submission_id)
    if db_obj is None:
        return None

    for field, value in update_data.items():
        setattr(db_obj, field, value)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def update_grade(
    db: Session,
    *,
    submission_id: str,
    score: float,
    teacher_feedback: str,
) -> Optional[Submission]:
    """
    老师评分: only score and teacher_feedback change
    """
    return _apply_partial_update(
        db,
        submission_id,
        {"score": score, "teacher_feedback": teacher_feedback},
    )


def update_student_data(
    db: Session,
    *,
    submission_id: str,
    student_name: str,
    class_label: str,
    roll_number: str,
) -> Optional[Submission]:
    """
    Correct the identifying info; grading fields are left alone.
    """
    return _apply_partial_update(
        db,
        submission_id,
        {
            "student_name": student_name,
            "class_label": class_label,
            "roll_number": roll_number,
        },
    )


def delete_submission(db: Session, *, submission_id: str) -> bool:
    db_obj = get_submission(db, submission_id)
    if db_obj is None:
        return False
    db.delete(db_obj)
    db.commit()
    return True


def delete_all_submissions(db: Session, *, batch_limit: int) -> int:
    """
    Delete every submission in one transaction. Returns how many were removed.

    An empty table issues no DELETE at all. More rows than `batch_limit`
    is refused up front so the batch never commits partially.
    """
    ids = [row.id for row in db.query(Submission.id).all()]
    if not ids:
        return 0
    if len(ids) > batch_limit:
        raise BatchLimitExceededError(
            f"{len(ids)} submissions exceed the bulk delete limit of {batch_limit}; "
            "delete some records individually first"
        )

    try:
        db.query(Submission).filter(Submission.id.in_(ids)).delete(
            synchronize_session=False
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return len(ids)
