# vlog_portal/services/intake_pipeline.py
"""
Intake Pipeline

Drives one student submission through

    idle -> extracting -> resolving_metadata -> generating_feedback
         -> persisting -> complete

with `error` reachable from extracting (bad URL) and persisting (store
failure). Title lookup and feedback generation are best-effort and never
move the pipeline to `error`.
"""

import itertools
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

from vlog_portal.core.exceptions import (
    IllegalTransitionError,
    InvalidVideoUrlError,
    RepositoryError,
)
from vlog_portal.schemas.submission import NewSubmission, SubmissionForm, SubmissionRecord
from vlog_portal.services.best_effort import BestEffort
from vlog_portal.services.feedback_service import generate_encouraging_feedback
from vlog_portal.services.submission_repository import Actor, SubmissionRepository
from vlog_portal.services.subscription import Subscription
from vlog_portal.services.youtube_service import (
    VideoDetails,
    extract_video_id,
    get_video_details,
)

logger = logging.getLogger(__name__)

UNTITLED_VIDEO = "Untitled Video"
PROMPT_TITLE_FALLBACK = "Vlog"

INVALID_URL_MESSAGE = (
    "Invalid YouTube URL. Please use the full link "
    "(for example youtube.com/watch?v=...)."
)


class IntakeStage(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    RESOLVING_METADATA = "resolving_metadata"
    GENERATING_FEEDBACK = "generating_feedback"
    PERSISTING = "persisting"
    COMPLETE = "complete"
    ERROR = "error"


_TRANSITIONS: Dict[IntakeStage, frozenset] = {
    IntakeStage.IDLE: frozenset({IntakeStage.EXTRACTING}),
    IntakeStage.EXTRACTING: frozenset({IntakeStage.RESOLVING_METADATA, IntakeStage.ERROR}),
    IntakeStage.RESOLVING_METADATA: frozenset({IntakeStage.GENERATING_FEEDBACK}),
    IntakeStage.GENERATING_FEEDBACK: frozenset({IntakeStage.PERSISTING}),
    IntakeStage.PERSISTING: frozenset({IntakeStage.COMPLETE, IntakeStage.ERROR}),
    IntakeStage.COMPLETE: frozenset({IntakeStage.IDLE}),
    IntakeStage.ERROR: frozenset({IntakeStage.IDLE}),
}


@dataclass(frozen=True)
class SuccessSummary:
    submission_id: str
    student_name: str
    video_title: str
    ai_feedback: str
    completed_at: datetime


StageListener = Callable[[IntakeStage], None]
DetailsFetcher = Callable[[str], Awaitable[BestEffort[VideoDetails]]]
FeedbackGenerator = Callable[[str, str, str], Awaitable[BestEffort[str]]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IntakePipeline:
    def __init__(
        self,
        repository: SubmissionRepository,
        *,
        actor: Optional[Actor] = None,
        fetch_details: DetailsFetcher = get_video_details,
        generate_feedback: FeedbackGenerator = generate_encouraging_feedback,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.actor = actor
        self._fetch_details = fetch_details
        self._generate_feedback = generate_feedback
        self._clock = clock

        self.stage = IntakeStage.IDLE
        self._listeners: Dict[int, StageListener] = {}
        self._keys = itertools.count(1)
        self._clear_staged()

    def _clear_staged(self) -> None:
        self.form: Optional[SubmissionForm] = None
        self.video_id: Optional[str] = None
        self.video_details: Optional[BestEffort[VideoDetails]] = None
        self.feedback: Optional[BestEffort[str]] = None
        self.record: Optional[SubmissionRecord] = None
        self.summary: Optional[SuccessSummary] = None
        self.error: Optional[Exception] = None

    # ------------------------------------------------------------------

    def on_stage_change(self, listener: StageListener) -> Subscription:
        key = next(self._keys)
        self._listeners[key] = listener
        return Subscription(lambda: self._listeners.pop(key, None))

    def _advance(self, stage: IntakeStage) -> None:
        if stage not in _TRANSITIONS[self.stage]:
            raise IllegalTransitionError(
                f"cannot move from {self.stage.value} to {stage.value}"
            )
        self.stage = stage
        for listener in list(self._listeners.values()):
            listener(stage)

    def _fail(self, exc: Exception) -> None:
        self.error = exc
        self._advance(IntakeStage.ERROR)

    @property
    def is_processing(self) -> bool:
        return self.stage not in (IntakeStage.IDLE, IntakeStage.COMPLETE, IntakeStage.ERROR)

    # ------------------------------------------------------------------

    async def submit(self, form: SubmissionForm) -> SuccessSummary:
        """
        Run the whole intake. Only legal from `idle`.

        Raises InvalidVideoUrlError or a RepositoryError subclass after
        moving to `error`; the form stays on `self.form` for resubmission.
        """
        if self.stage is not IntakeStage.IDLE:
            raise IllegalTransitionError(
                f"cannot submit while the pipeline is {self.stage.value}"
            )
        self.form = form
        self._advance(IntakeStage.EXTRACTING)

        # 1. extract id: the only hard gate
        video_id = extract_video_id(form.video_url)
        if video_id is None:
            logger.info("Rejected submission from %s: bad URL %r", form.student_name, form.video_url)
            error = InvalidVideoUrlError(INVALID_URL_MESSAGE)
            self._fail(error)
            raise error
        self.video_id = video_id

        # 2. title lookup (best effort)
        self._advance(IntakeStage.RESOLVING_METADATA)
        self.video_details = await self._fetch_details(video_id)
        resolved_title = self.video_details.value.title

        # 3. encouragement message (best effort)
        self._advance(IntakeStage.GENERATING_FEEDBACK)
        self.feedback = await self._generate_feedback(
            form.student_name,
            resolved_title or PROMPT_TITLE_FALLBACK,
            form.class_label,
        )

        # 4. persist
        self._advance(IntakeStage.PERSISTING)
        new = NewSubmission(
            student_name=form.student_name,
            class_label=form.class_label,
            roll_number=form.roll_number,
            video_url=form.video_url,
            video_id=video_id,
            video_title=resolved_title or UNTITLED_VIDEO,
            submitted_at=self._clock(),
            ai_feedback=self.feedback.value,
        )
        try:
            self.record = await self.repository.insert(self.actor, new)
        except RepositoryError as exc:
            logger.error(f"Submission from {form.student_name} not saved: {exc}")
            self._fail(exc)
            raise

        self.summary = SuccessSummary(
            submission_id=self.record.id,
            student_name=self.record.student_name,
            video_title=self.record.video_title,
            ai_feedback=self.feedback.value,
            completed_at=self._clock(),
        )
        self._advance(IntakeStage.COMPLETE)
        return self.summary

    def reset(self) -> None:
        """complete/error -> idle, dropping everything staged."""
        self._advance(IntakeStage.IDLE)
        self._clear_staged()
