"""Tests for the webhook API.

The pipeline is replaced with an AsyncMock on app.state, so these tests
cover routing, filtering, payload parsing and error mapping only.

Run with: pytest tests/test_api.py -v
"""

from __future__ import annotations

import hashlib
import hmac
import json
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from docs_sync.config import DocsSyncConfig
from docs_sync.errors import NotFoundError, UpstreamError, ValidationError
from docs_sync.main import app
from docs_sync.schemas import PipelineInput, PipelineResult

client = TestClient(app)

RELEASE_PAYLOAD = {
    "action": "published",
    "repository": {"full_name": "myorg/api"},
    "release": {"tag_name": "v2.0.0", "body": "Adds sync"},
}

RESULT = PipelineResult(
    pr_url="https://github.com/myorg/api/pull/3",
    pr_number=3,
    pr_created=True,
    branch_name="docs/update-dex-api-docs-v2.0.0",
    commit_sha="abc123",
    previous_tag="v1.9.0",
    files_committed=2,
)


@pytest.fixture
def pipeline():
    mock_pipeline = AsyncMock()
    mock_pipeline.run.return_value = RESULT
    app.state.config = DocsSyncConfig(base_branch="main", notify_channel="#release-docs")
    app.state.pipeline = mock_pipeline
    yield mock_pipeline
    del app.state.config
    del app.state.pipeline


def _post(payload, event: str = "release", headers: dict | None = None):
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    return client.post(
        "/webhooks/github",
        content=body,
        headers={"X-GitHub-Event": event, "Content-Type": "application/json", **(headers or {})},
    )


def test_health_check():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestWebhookFiltering:
    """Only published releases reach the pipeline."""

    def test_push_event_is_ignored(self, pipeline: AsyncMock) -> None:
        response = _post({"ref": "refs/heads/main"}, event="push")
        assert response.status_code == 200
        assert response.json() == {"status": "ignored"}
        pipeline.run.assert_not_called()

    def test_release_created_is_ignored(self, pipeline: AsyncMock) -> None:
        response = _post({**RELEASE_PAYLOAD, "action": "created"})
        assert response.json() == {"status": "ignored"}
        pipeline.run.assert_not_called()

    def test_non_json_body_is_ignored(self, pipeline: AsyncMock) -> None:
        response = _post(b"not json")
        assert response.status_code == 200
        assert response.json() == {"status": "ignored"}
        pipeline.run.assert_not_called()


class TestWebhookRun:
    """Published releases run the pipeline."""

    def test_published_release_runs_pipeline(self, pipeline: AsyncMock) -> None:
        response = _post(RELEASE_PAYLOAD)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["result"]["pr_url"] == RESULT.pr_url

        (params,) = pipeline.run.call_args.args
        assert params == PipelineInput(
            owner="myorg",
            repo="api",
            tag_name="v2.0.0",
            base_branch="main",
            branch_prefix="docs/update-",
            notify_channel="#release-docs",
        )

    def test_missing_tag_is_ignored(self, pipeline: AsyncMock) -> None:
        payload = {**RELEASE_PAYLOAD, "release": {"body": "notes"}}
        response = _post(payload)
        assert response.status_code == 200
        assert response.json() == {"status": "ignored"}
        pipeline.run.assert_not_called()

    def test_malformed_repository_is_ignored(self, pipeline: AsyncMock) -> None:
        payload = {**RELEASE_PAYLOAD, "repository": {"full_name": "no-slash"}}
        response = _post(payload)
        assert response.status_code == 200
        assert response.json() == {"status": "ignored"}
        pipeline.run.assert_not_called()

    def test_published_release_without_repository_is_ignored(
        self, pipeline: AsyncMock
    ) -> None:
        response = _post({"action": "published", "release": {}})
        assert response.status_code == 200
        assert response.json() == {"status": "ignored"}
        pipeline.run.assert_not_called()

    def test_empty_draft_is_validation_error(self, pipeline: AsyncMock) -> None:
        pipeline.run.side_effect = ValidationError("no files to commit")
        response = _post(RELEASE_PAYLOAD)
        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_not_found_maps_to_404(self, pipeline: AsyncMock) -> None:
        pipeline.run.side_effect = NotFoundError("release v2.0.0 not found")
        response = _post(RELEASE_PAYLOAD)
        assert response.status_code == 404
        assert response.json() == {
            "error": "not_found",
            "detail": "release v2.0.0 not found",
        }

    def test_upstream_error_maps_to_502(self, pipeline: AsyncMock) -> None:
        pipeline.run.side_effect = UpstreamError("GitHub down", status_code=503)
        response = _post(RELEASE_PAYLOAD)
        assert response.status_code == 502
        assert response.json()["upstream_status"] == 503


class TestWebhookSignature:
    """X-Hub-Signature-256 checks when a secret is configured."""

    @pytest.fixture(autouse=True)
    def secret(self, pipeline: AsyncMock):
        app.state.config = app.state.config.model_copy(update={"webhook_secret": "s3cret"})

    def test_missing_signature_rejected(self, pipeline: AsyncMock) -> None:
        response = _post(RELEASE_PAYLOAD)
        assert response.status_code == 401
        pipeline.run.assert_not_called()

    def test_valid_signature_accepted(self, pipeline: AsyncMock) -> None:
        body = json.dumps(RELEASE_PAYLOAD).encode()
        signature = hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()
        response = _post(body, headers={"X-Hub-Signature-256": f"sha256={signature}"})
        assert response.status_code == 200
        pipeline.run.assert_awaited_once()
