"""Pydantic models defining the data that flows through the docs sync pipeline.

These schemas are the single source of truth for what each stage consumes
and produces. They are used for:
- Mapping GitHub REST responses into typed objects
- Validating the drafting stage's (LLM) output
- Request/response bodies in the webhook API
- Test fixture typing

Key design decisions:
- Release context is computed fresh per run and never persisted
- File proposals always carry a full file body, never a patch
- Pull request identity is the head branch name; title/body are not compared
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

# ---------------------------------------------------------------------------
# Release Context
# ---------------------------------------------------------------------------


class Release(BaseModel):
    """A GitHub release as returned by the releases listing.

    Attributes:
        tag_name: The tag the release points at (e.g., "v0.20.2")
        body: Release notes text
        published_at: When the release was published; None for drafts
    """

    tag_name: str = Field(..., min_length=1, description="Release tag")
    body: str = Field("", description="Release notes")
    published_at: datetime | None = Field(
        None, description="Publication timestamp (None if unpublished)"
    )

    @field_validator("body", mode="before")
    @classmethod
    def _none_body_is_empty(cls, value: object) -> object:
        return "" if value is None else value

    @property
    def is_published(self) -> bool:
        return self.published_at is not None


class DiffFile(BaseModel):
    """A single file changed between two release tags.

    Attributes:
        path: File path relative to repo root
        status: added, modified, removed, renamed, copied, changed or unchanged
        additions: Number of lines added
        deletions: Number of lines deleted
        changes: Total lines changed
        patch: Unified diff for the file; absent for binary or very large files
    """

    path: str = Field(..., description="File path relative to repo root")
    status: str = Field("modified", description="Change status reported by GitHub")
    additions: int = Field(0, ge=0, description="Lines added")
    deletions: int = Field(0, ge=0, description="Lines deleted")
    changes: int = Field(0, ge=0, description="Total lines changed")
    patch: str | None = Field(None, description="Diff content (may be truncated)")


class ReleaseContext(BaseModel):
    """What changed in a release, relative to the previous published release.

    Attributes:
        current_tag: The release being documented
        previous_tag: The preceding published release, if any
        release_notes: Body text of the current release
        diff_files: Files changed between previous_tag and current_tag
    """

    current_tag: str = Field(..., min_length=1)
    previous_tag: str | None = None
    release_notes: str = ""
    diff_files: list[DiffFile] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_diff_requires_previous(self) -> "ReleaseContext":
        """A diff only exists when there is something to diff against."""
        if self.previous_tag is None and self.diff_files:
            raise ValueError(
                "diff_files must be empty when there is no previous release"
            )
        return self


# ---------------------------------------------------------------------------
# Drafting Stage Output
# ---------------------------------------------------------------------------


class FileProposal(BaseModel):
    """A proposed documentation file: repo-relative path plus full content."""

    path: str = Field(..., min_length=1, description="Repo-relative file path")
    content: str = Field(..., description="Full file content (utf-8)")

    @field_validator("path")
    @classmethod
    def check_relative_path(cls, value: str) -> str:
        if value.startswith("/"):
            raise ValueError(f"path must be repo-relative, got {value!r}")
        return value


class DocsDraft(BaseModel):
    """Output of the drafting stage.

    Attributes:
        files: Full-file documentation proposals
        pr_title: Title for the pull request (also used as commit message)
        pr_body: Pull request description
    """

    files: list[FileProposal] = Field(default_factory=list)
    pr_title: str = Field(..., min_length=1)
    pr_body: str = ""

    @field_validator("pr_body", mode="before")
    @classmethod
    def _none_body_is_empty(cls, value: object) -> object:
        return "" if value is None else value


# ---------------------------------------------------------------------------
# Git Host Results
# ---------------------------------------------------------------------------


class CommitResult(BaseModel):
    """The commit published to a docs branch."""

    commit_sha: str
    tree_sha: str
    parent_sha: str
    branch_name: str


class PullRequest(BaseModel):
    """A pull request for a docs branch.

    Attributes:
        number: PR number
        url: HTML URL of the PR
        head_branch: Source branch (identity key together with the repo)
        base_branch: Target branch
        title: Title as it currently stands on GitHub
        created: True if this run opened the PR, False if it was reused
    """

    number: int = Field(..., gt=0)
    url: str
    head_branch: str
    base_branch: str
    title: str = ""
    created: bool = False


# ---------------------------------------------------------------------------
# Pipeline Input / Output
# ---------------------------------------------------------------------------


class ReleaseEvent(BaseModel):
    """The fields the pipeline needs from a `release: published` webhook."""

    owner: str = Field(..., min_length=1)
    repo: str = Field(..., min_length=1)
    tag_name: str = Field(..., min_length=1)
    release_body: str = ""


class PipelineInput(BaseModel):
    """Everything a single pipeline run needs."""

    owner: str = Field(..., min_length=1)
    repo: str = Field(..., min_length=1)
    tag_name: str = Field(..., min_length=1)
    base_branch: str = "main"
    branch_prefix: str = "docs/update-"
    notify_channel: str = "#docs"


class PipelineResult(BaseModel):
    """Outcome of a successful pipeline run. Always carries exactly one PR."""

    pr_url: str
    pr_number: int
    pr_created: bool
    branch_name: str
    commit_sha: str
    previous_tag: str | None = None
    files_committed: int = 0


class NotificationMessage(BaseModel):
    """A chat message sent at the end of a run."""

    channel: str
    text: str
