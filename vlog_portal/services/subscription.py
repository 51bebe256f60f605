# vlog_portal/services/subscription.py
import threading
from typing import Callable, Optional


class Subscription:
    """
    Handle returned by every listener registration.

    cancel() is idempotent and safe to call from any thread. A Subscription
    built without a cancel callback is inert (already cancelled).
    """

    def __init__(self, on_cancel: Optional[Callable[[], None]] = None):
        self._on_cancel = on_cancel
        self._lock = threading.Lock()
        self._cancelled = on_cancel is None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            on_cancel, self._on_cancel = self._on_cancel, None
        on_cancel()
