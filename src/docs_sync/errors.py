"""Error taxonomy for the docs sync pipeline.

Every error carries a short machine-readable code so the API layer can map
it to a status code and a JSON body without inspecting message text.

- NotFoundError: a requested tag or branch does not exist
- UpstreamError: GitHub or Slack failed (HTTP error, timeout, bad response)
- ValidationError: malformed webhook payload or unusable stage output
"""

from __future__ import annotations

from typing import Any


class DocsSyncError(Exception):
    """Base error with a structured code."""

    code = "docs_sync_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "detail": self.message}


class NotFoundError(DocsSyncError):
    code = "not_found"


class UpstreamError(DocsSyncError):
    """A failure reported by (or while talking to) an external service.

    Attributes:
        status_code: HTTP status of the failed response, if there was one
    """

    code = "upstream_error"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        if self.status_code is not None:
            d["upstream_status"] = self.status_code
        return d


class ValidationError(DocsSyncError):
    code = "validation_error"
