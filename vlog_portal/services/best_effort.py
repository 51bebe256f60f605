# vlog_portal/services/best_effort.py
from dataclasses import dataclass
from typing import Generic, Literal, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class BestEffort(Generic[T]):
    """
    Result of an external call that is allowed to fail.

    `value` is always usable: either what the service returned ("ok") or
    the substituted default ("degraded"). Callers branch on `ok` only for
    logging/telemetry, never to decide whether to continue.
    """
    status: Literal["ok", "degraded"]
    value: T
    reason: Optional[str] = None

    @classmethod
    def success(cls, value: T) -> "BestEffort[T]":
        return cls(status="ok", value=value)

    @classmethod
    def fallback(cls, value: T, reason: str) -> "BestEffort[T]":
        return cls(status="degraded", value=value, reason=reason)

    @property
    def ok(self) -> bool:
        return self.status == "ok"
