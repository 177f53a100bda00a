"""Idempotent pull request opening, keyed on the head branch."""

from __future__ import annotations

from docs_sync.github import GitHubAPIProtocol
from docs_sync.logging_config import get_logger
from docs_sync.schemas import PullRequest

logger = get_logger(__name__)


class PullRequestIdempotencyManager:
    """Returns the open PR for a branch, creating one only if none exists.

    Identity is (repo, head branch). An existing PR is returned untouched:
    its title and body are never rewritten, even if this run would have
    produced different ones.
    """

    def __init__(self, github: GitHubAPIProtocol) -> None:
        self._github = github

    async def open_or_reuse(
        self,
        owner: str,
        repo: str,
        base_branch: str,
        head_branch: str,
        title: str,
        body: str = "",
    ) -> PullRequest:
        existing = await self._github.list_open_pulls(owner, repo, head_branch)
        if existing:
            pr = existing[0]
            # TODO: decide whether reruns should refresh title/body; see DESIGN.md
            logger.info(
                "pull_request_reused",
                repo=f"{owner}/{repo}",
                number=pr.number,
                head=head_branch,
                title_matches=pr.title == title,
            )
            return pr.model_copy(update={"created": False})

        pr = await self._github.create_pull(
            owner, repo, head_branch, base_branch, title, body
        )
        logger.info(
            "pull_request_created",
            repo=f"{owner}/{repo}",
            number=pr.number,
            head=head_branch,
            base=base_branch,
        )
        return pr
