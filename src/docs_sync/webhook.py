"""GitHub webhook parsing and signature verification.

Only `release` events with action `published` start the pipeline. Every
other delivery is ignored (not an error). The payload is an arbitrary JSON
body, so each nested field is presence-checked before use.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Any

from docs_sync.errors import ValidationError
from docs_sync.schemas import ReleaseEvent

SIGNATURE_PREFIX = "sha256="


def is_release_published(event: str | None, payload: Any) -> bool:
    """True if this delivery should trigger the pipeline."""
    return (
        event == "release"
        and isinstance(payload, dict)
        and payload.get("action") == "published"
    )


def _get_dict(data: dict, key: str) -> dict:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def parse_release_event(payload: dict) -> ReleaseEvent:
    """Pull owner, repo, tag and release body out of a release payload.

    Raises:
        ValidationError: If repository.full_name or release.tag_name is
            missing or malformed
    """
    repository = _get_dict(payload, "repository")
    release = _get_dict(payload, "release")

    full_name = repository.get("full_name")
    if not isinstance(full_name, str) or full_name.count("/") != 1:
        raise ValidationError(
            f"repository.full_name must look like 'owner/repo', got {full_name!r}"
        )
    owner, repo = full_name.split("/")
    if not owner or not repo:
        raise ValidationError(
            f"repository.full_name must look like 'owner/repo', got {full_name!r}"
        )

    tag_name = release.get("tag_name")
    if not isinstance(tag_name, str) or not tag_name:
        raise ValidationError("release.tag_name is required")

    body = release.get("body")
    return ReleaseEvent(
        owner=owner,
        repo=repo,
        tag_name=tag_name,
        release_body=body if isinstance(body, str) else "",
    )


def verify_signature(secret: str, body: bytes, signature_header: str | None) -> bool:
    """Check X-Hub-Signature-256 against the shared webhook secret."""
    if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
        return False
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature_header[len(SIGNATURE_PREFIX):])
