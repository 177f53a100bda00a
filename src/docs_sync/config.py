"""Runtime configuration for the docs sync pipeline.

Settings are resolved in three layers, later layers winning:
1. Defaults declared on DocsSyncConfig
2. An optional YAML file (path argument or DOCS_SYNC_CONFIG env var)
3. Environment variables (DOCS_BASE_BRANCH, GITHUB_TOKEN, ...)

Example YAML:

    base_branch: develop
    branch_prefix: docs/auto-
    notify_channel: "#release-docs"
    draft_max_attempts: 5
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

# Environment variable -> config field
ENV_VARS: dict[str, str] = {
    "DOCS_BASE_BRANCH": "base_branch",
    "DOCS_BRANCH_PREFIX": "branch_prefix",
    "SLACK_CHANNEL": "notify_channel",
    "GITHUB_TOKEN": "github_token",
    "GITHUB_API_URL": "github_api_url",
    "SLACK_BOT_TOKEN": "slack_bot_token",
    "GITHUB_WEBHOOK_SECRET": "webhook_secret",
    "OPENAI_API_KEY": "openai_api_key",
    "DOCS_LLM_MODEL": "openai_model",
    "DOCS_HTTP_TIMEOUT": "request_timeout",
    "DOCS_DRAFT_MAX_ATTEMPTS": "draft_max_attempts",
}


class DocsSyncConfig(BaseModel):
    """All settings the pipeline, clients and API read.

    Attributes:
        base_branch: Branch docs PRs target and new docs branches start from
        branch_prefix: Prefix for generated docs branch names
        notify_channel: Slack channel for "PR opened" messages
        github_token: Token used for the GitHub REST API
        github_api_url: GitHub API base URL (override for GHES)
        slack_bot_token: Slack bot token; notifications are skipped if unset
        webhook_secret: Shared secret for X-Hub-Signature-256 verification
        openai_api_key: OpenAI key for the drafting stage
        openai_model: Model used to draft documentation
        request_timeout: Per-request timeout (seconds) for external calls
        draft_max_attempts: Attempts for the drafting stage before giving up
    """

    base_branch: str = "main"
    branch_prefix: str = "docs/update-"
    notify_channel: str = "#docs"
    github_token: str | None = None
    github_api_url: str = "https://api.github.com"
    slack_bot_token: str | None = None
    webhook_secret: str | None = None
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    request_timeout: float = Field(30.0, gt=0)
    draft_max_attempts: int = Field(3, ge=1)


def load_config(
    path: str | Path | None = None,
    environ: dict[str, str] | None = None,
) -> DocsSyncConfig:
    """Load configuration from YAML (optional) and the environment.

    Args:
        path: Path to a YAML file. Falls back to DOCS_SYNC_CONFIG; a path
              that doesn't exist is treated as "no file".
        environ: Environment mapping (defaults to os.environ)

    Returns:
        A validated DocsSyncConfig

    Raises:
        ValueError: If the YAML is invalid or a value fails validation.
    """
    env = os.environ if environ is None else environ
    path = path or env.get("DOCS_SYNC_CONFIG")

    raw: dict = {}
    if path and Path(path).exists():
        try:
            raw = yaml.safe_load(Path(path).read_text()) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ValueError(f"Config file {path} must contain a mapping")

    for var, field in ENV_VARS.items():
        value = env.get(var)
        if value:
            raw[field] = value

    try:
        return DocsSyncConfig.model_validate(raw)
    except Exception as exc:
        raise ValueError(f"Invalid docs sync config: {exc}") from exc
