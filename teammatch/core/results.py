from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypeVar

from teammatch.core.errors import EngineError

T = TypeVar("T")


@dataclass
class OperationResult(Generic[T]):
    """
    Explicit success/failure outcome of an engine operation.

    `notices` carries non-blocking information (e.g. DuplicateMembershipWarning)
    that callers may show but must not treat as failure.
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[EngineError] = None
    notices: List[Warning] = field(default_factory=list)

    @classmethod
    def success(cls, value: Any = None, notices: Optional[List[Warning]] = None) -> "OperationResult":
        return cls(ok=True, value=value, notices=list(notices or []))

    @classmethod
    def failure(cls, error: EngineError) -> "OperationResult":
        return cls(ok=False, error=error)

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error else None

    def notice_messages(self) -> List[str]:
        return [str(n) for n in self.notices]
