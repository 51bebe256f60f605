# vlog_portal/services/submission_repository.py
"""
Submission Repository

Sole writer of submission state. Wraps the SQL functions in
submission_service with:
  - access rules (public insert, teacher-only everything else)
  - wall-clock deadlines on writes
  - realtime push: every committed change sends the full ordered snapshot
    to each live subscriber
"""

import asyncio
import itertools
import logging
import math
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from vlog_portal.core.config import settings
from vlog_portal.core.exceptions import (
    InvalidIdentifierError,
    InvalidScoreError,
    PermissionDeniedError,
    RepositoryError,
    SubmissionNotFoundError,
    WriteTimeoutError,
)
from vlog_portal.core.security import TEACHER_ROLE
from vlog_portal.core.timeouts import race
from vlog_portal.models.user import User
from vlog_portal.schemas.submission import NewSubmission, SubmissionRecord
from vlog_portal.schemas.user import UserPublic
from vlog_portal.services import submission_service
from vlog_portal.services.subscription import Subscription

logger = logging.getLogger(__name__)

Actor = Union[User, UserPublic]
SnapshotListener = Callable[[List[SubmissionRecord]], None]
ErrorListener = Callable[[RepositoryError], None]

T = TypeVar("T")


def drop_absent(values: Dict[str, Any]) -> Dict[str, Any]:
    """Remove keys whose value is None so they are omitted, not written as null."""
    return {key: value for key, value in values.items() if value is not None}


def validate_score(score: Any) -> float:
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise InvalidScoreError("Score must be a number between 0 and 100")
    if not math.isfinite(score) or not 0 <= score <= 100:
        raise InvalidScoreError("Score must be between 0 and 100")
    return float(score)


def _changed(result: Any) -> bool:
    """Whether a write function reports that it touched a row."""
    if isinstance(result, bool):
        return result
    if isinstance(result, int):
        return result > 0
    return result is not None


class SubmissionRepository:
    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        write_timeout: Optional[float] = None,
        batch_limit: Optional[int] = None,
        public_submissions: Optional[bool] = None,
    ):
        self._session_factory = session_factory
        self.write_timeout = (
            settings.WRITE_TIMEOUT_SECONDS if write_timeout is None else write_timeout
        )
        self.batch_limit = (
            settings.DELETE_ALL_BATCH_LIMIT if batch_limit is None else batch_limit
        )
        self.public_submissions = (
            settings.PUBLIC_SUBMISSIONS_ENABLED
            if public_submissions is None
            else public_submissions
        )

        self._listeners: Dict[int, Tuple[SnapshotListener, Optional[ErrorListener]]] = {}
        self._listeners_lock = threading.Lock()
        # held from snapshot load through delivery so listeners never see an older
        # snapshot after a newer one
        self._publish_lock = threading.RLock()
        self._keys = itertools.count(1)

    # ------------------------------------------------------------------
    # access rules
    # ------------------------------------------------------------------

    @staticmethod
    def _require_teacher(actor: Optional[Actor], action: str) -> None:
        if actor is None or getattr(actor, "role", None) != TEACHER_ROLE:
            raise PermissionDeniedError(
                f"Permission denied: only a signed-in teacher may {action}. "
                "Sign in with a teacher account and try again."
            )

    def _require_insert_allowed(self, actor: Optional[Actor]) -> None:
        if self.public_submissions:
            return
        if actor is not None and getattr(actor, "role", None) == TEACHER_ROLE:
            return
        raise PermissionDeniedError(
            "Permission denied: public submissions are closed. Ask the administrator "
            "to set PUBLIC_SUBMISSIONS_ENABLED=true or submit from a teacher account."
        )

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def _load_snapshot(self) -> List[SubmissionRecord]:
        with self._session_factory() as db:
            rows = submission_service.list_submissions(db)
            return [SubmissionRecord.model_validate(row) for row in rows]

    def fetch_all(self, actor: Optional[Actor]) -> List[SubmissionRecord]:
        """One-shot read of the current snapshot, newest first."""
        self._require_teacher(actor, "read submissions")
        try:
            return self._load_snapshot()
        except SQLAlchemyError as exc:
            logger.error(f"Loading submissions failed: {exc}")
            raise RepositoryError("Could not load submissions") from exc

    def subscribe(
        self,
        actor: Optional[Actor],
        on_snapshot: SnapshotListener,
        on_error: Optional[ErrorListener] = None,
    ) -> Subscription:
        """
        Register a realtime listener.

        The listener receives the full snapshot right away and again after
        every committed change until the returned Subscription is cancelled.
        An unauthorized actor gets PermissionDeniedError through `on_error`
        and an inert subscription.
        """
        try:
            self._require_teacher(actor, "read submissions")
        except PermissionDeniedError as exc:
            logger.warning("Rejected submissions subscription: %s", exc)
            if on_error is not None:
                on_error(exc)
            return Subscription()

        key = next(self._keys)
        with self._publish_lock:
            with self._listeners_lock:
                self._listeners[key] = (on_snapshot, on_error)
            subscription = Subscription(lambda: self._remove_listener(key))
            logger.info("Submissions subscriber %s registered", key)

            try:
                snapshot = self._load_snapshot()
            except SQLAlchemyError as exc:
                logger.error(f"Initial snapshot for subscriber {key} failed: {exc}")
                if on_error is not None:
                    on_error(RepositoryError("Could not load submissions"))
                return subscription

            on_snapshot(snapshot)
        return subscription

    def _remove_listener(self, key: int) -> None:
        with self._listeners_lock:
            self._listeners.pop(key, None)
        logger.info("Submissions subscriber %s cancelled", key)

    @property
    def subscriber_count(self) -> int:
        with self._listeners_lock:
            return len(self._listeners)

    def _publish(self) -> None:
        with self._publish_lock:
            with self._listeners_lock:
                listeners = list(self._listeners.values())
            if not listeners:
                return

            try:
                snapshot = self._load_snapshot()
            except SQLAlchemyError as exc:
                logger.error(f"Snapshot push failed: {exc}")
                for _, on_error in listeners:
                    if on_error is not None:
                        on_error(RepositoryError("Could not load submissions"))
                return

            for on_snapshot, _ in listeners:
                try:
                    on_snapshot(snapshot)
                except Exception:
                    # one broken listener must not starve the others
                    logger.exception("Submissions listener raised")

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    async def _run_write(self, action: str, fn: Callable[..., T], *args: Any) -> T:
        """
        Run a blocking write in a worker thread, raced against write_timeout.

        A write that loses the race may still commit later; its result is
        ignored here and subscribers see it through the next push.
        """
        try:
            return await race(asyncio.to_thread(fn, *args), self.write_timeout)
        except asyncio.TimeoutError:
            logger.error(f"Submission {action} timed out after {self.write_timeout}s")
            raise WriteTimeoutError(
                f"Database connection timed out ({self.write_timeout:g}s) during {action}. "
                "Check your internet connection and try again."
            ) from None

    def _write(self, action: str, fn: Callable[[Session], T]) -> T:
        with self._session_factory() as db:
            try:
                result = fn(db)
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error(f"Submission {action} failed: {exc}")
                raise RepositoryError(f"Could not {action} the submission") from exc
        if _changed(result):
            self._publish()
        return result

    async def insert(self, actor: Optional[Actor], new: NewSubmission) -> SubmissionRecord:
        self._require_insert_allowed(actor)
        values = drop_absent(new.model_dump())

        def _insert(db: Session) -> SubmissionRecord:
            row = submission_service.create_submission(db, values=values)
            return SubmissionRecord.model_validate(row)

        record = await self._run_write("insert", self._write, "insert", _insert)
        logger.info(
            "Stored submission %s (%s, %s)", record.id, record.student_name, record.class_label
        )
        return record

    async def update_grade(
        self,
        actor: Optional[Actor],
        submission_id: str,
        score: float,
        teacher_feedback: str = "",
    ) -> SubmissionRecord:
        self._require_teacher(actor, "grade submissions")
        score = validate_score(score)

        def _grade(db: Session) -> Optional[SubmissionRecord]:
            row = submission_service.update_grade(
                db,
                submission_id=submission_id,
                score=score,
                teacher_feedback=teacher_feedback,
            )
            return SubmissionRecord.model_validate(row) if row is not None else None

        record = await self._run_write("grade", self._write, "grade", _grade)
        if record is None:
            raise SubmissionNotFoundError(f"Submission {submission_id} not found")
        return record

    async def update_student_data(
        self,
        actor: Optional[Actor],
        submission_id: str,
        student_name: str,
        class_label: str,
        roll_number: str,
    ) -> SubmissionRecord:
        self._require_teacher(actor, "edit student data")

        def _edit(db: Session) -> Optional[SubmissionRecord]:
            row = submission_service.update_student_data(
                db,
                submission_id=submission_id,
                student_name=student_name,
                class_label=class_label,
                roll_number=roll_number,
            )
            return SubmissionRecord.model_validate(row) if row is not None else None

        record = await self._run_write("update", self._write, "update", _edit)
        if record is None:
            raise SubmissionNotFoundError(f"Submission {submission_id} not found")
        return record

    async def delete(self, actor: Optional[Actor], submission_id: str) -> None:
        if not submission_id or not submission_id.strip():
            raise InvalidIdentifierError("Invalid submission id")
        self._require_teacher(actor, "delete submissions")

        def _delete(db: Session) -> bool:
            return submission_service.delete_submission(db, submission_id=submission_id)

        deleted = await self._run_write("delete", self._write, "delete", _delete)
        if not deleted:
            raise SubmissionNotFoundError(f"Submission {submission_id} not found")
        logger.info("Deleted submission %s", submission_id)

    async def delete_all(self, actor: Optional[Actor]) -> int:
        """All-or-nothing bulk delete. Returns the number of removed records."""
        self._require_teacher(actor, "delete submissions")

        def _delete_all(db: Session) -> int:
            return submission_service.delete_all_submissions(
                db, batch_limit=self.batch_limit
            )

        # bounded by the batch ceiling, not by the write deadline
        deleted = await asyncio.to_thread(self._write, "delete all", _delete_all)
        logger.info("Bulk delete removed %s submissions", deleted)
        return deleted
