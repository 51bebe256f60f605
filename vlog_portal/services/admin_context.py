# vlog_portal/services/admin_context.py
import logging
from typing import Any, Callable, Dict, List, Optional

from vlog_portal.core.exceptions import PermissionDeniedError, RepositoryError
from vlog_portal.schemas.submission import SubmissionRecord
from vlog_portal.schemas.user import UserPublic
from vlog_portal.services.auth_gateway import AuthGateway
from vlog_portal.services.roster import ALL_CLASSES, Ranking, filter_and_sort, rank
from vlog_portal.services.submission_repository import SubmissionRepository
from vlog_portal.services.subscription import Subscription

logger = logging.getLogger(__name__)

ContextEvent = Dict[str, Any]


class AdminContext:
    """
    Per-session state of the teacher dashboard.

    start() follows the auth gateway: on sign-in it subscribes to the
    realtime submission feed, on sign-out (or a permission error on the
    feed) it cancels the feed and clears the cached snapshot. close()
    tears everything down and may be called more than once.

    Every state change is also reported to `on_event` as a JSON-ready dict
    ({"type": "auth" | "snapshot" | "error" | "cleared", ...}).
    """

    def __init__(
        self,
        gateway: AuthGateway,
        repository: SubmissionRepository,
        *,
        on_event: Optional[Callable[[ContextEvent], None]] = None,
    ):
        self.gateway = gateway
        self.repository = repository
        self._on_event = on_event

        self.user: Optional[UserPublic] = None
        self.submissions: List[SubmissionRecord] = []
        self.last_error: Optional[RepositoryError] = None
        self._auth_subscription: Optional[Subscription] = None
        self._data_subscription: Optional[Subscription] = None

    def start(self) -> None:
        if self._auth_subscription is None:
            self._auth_subscription = self.gateway.on_auth_state_changed(self._handle_auth)

    def close(self) -> None:
        if self._auth_subscription is not None:
            self._auth_subscription.cancel()
        self._cancel_feed()
        self.submissions = []

    # ------------------------------------------------------------------

    def _emit(self, event: ContextEvent) -> None:
        if self._on_event is not None:
            self._on_event(event)

    def _cancel_feed(self) -> None:
        if self._data_subscription is not None:
            self._data_subscription.cancel()
            self._data_subscription = None

    def _clear(self) -> None:
        self.submissions = []
        self._emit({"type": "cleared"})

    def _handle_auth(self, user: Optional[UserPublic]) -> None:
        self.user = user
        self._emit({
            "type": "auth",
            "user": user.model_dump(mode="json") if user else None,
        })
        self._cancel_feed()
        if user is None:
            # signed out: nothing sensitive may linger
            self._clear()
            return
        self.last_error = None
        self._data_subscription = self.repository.subscribe(
            user, self._handle_snapshot, self._handle_error
        )

    def _handle_snapshot(self, records: List[SubmissionRecord]) -> None:
        self.submissions = records
        self._emit({
            "type": "snapshot",
            "submissions": [r.to_document() for r in records],
        })

    def _handle_error(self, exc: RepositoryError) -> None:
        self.last_error = exc
        logger.warning("Submission feed error: %s", exc)
        self._emit({
            "type": "error",
            "category": "permission" if isinstance(exc, PermissionDeniedError) else "read",
            "message": str(exc),
        })
        if isinstance(exc, PermissionDeniedError):
            self._clear()

    # ------------------------------------------------------------------
    # derived views over the cached snapshot

    def roster(self, **filters: Any) -> List[SubmissionRecord]:
        return filter_and_sort(self.submissions, **filters)

    def rankings(self, class_label: str = ALL_CLASSES) -> Ranking:
        return rank(self.submissions, class_label=class_label)
