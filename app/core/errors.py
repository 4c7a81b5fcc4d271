from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from fastapi import HTTPException

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiError:
    """
    Structured failure returned (not raised) by every pipeline stage.
    The HTTP layer turns it into an HTTPException at the very end.
    """
    code: str
    message: str
    status: int
    extra: dict[str, Any] = field(default_factory=dict)

    def as_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.extra}

    def to_http(self) -> HTTPException:
        return HTTPException(status_code=self.status, detail=self.as_detail())


def fail(code: str, message: str, status: int = 400, **extra: Any) -> ApiError:
    """Build an ApiError and log it with its context."""
    level = logging.ERROR if status >= 500 else logging.WARNING
    log.log(level, "request rejected: code=%s status=%d message=%s context=%s", code, status, message, extra)
    return ApiError(code=code, message=message, status=status, extra=dict(extra))
