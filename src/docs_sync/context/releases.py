"""Release context resolver.

Works out what a release changed relative to the release published
immediately before it:

1. List every release of the repository
2. Order the published ones by publication time (stable, so releases
   published at the same instant keep GitHub's listing order)
3. Pick the release just before the target tag
4. Compare previous...current and collect the changed files

A release with no published predecessor (the first release, or a tag that
is itself unpublished) gets no diff at all.
"""

from __future__ import annotations

from docs_sync.errors import NotFoundError
from docs_sync.github import GitHubAPIProtocol
from docs_sync.logging_config import get_logger
from docs_sync.schemas import Release, ReleaseContext

logger = get_logger(__name__)


def find_previous_release(releases: list[Release], tag_name: str) -> Release | None:
    """Return the published release immediately preceding tag_name.

    Args:
        releases: Releases in the host's listing order
        tag_name: The tag to look up

    Returns:
        The previous published release, or None if tag_name is unpublished
        or is the earliest published release
    """
    published = sorted(
        (r for r in releases if r.is_published),
        key=lambda r: r.published_at,
    )
    for idx, release in enumerate(published):
        if release.tag_name == tag_name:
            return published[idx - 1] if idx > 0 else None
    return None


class ReleaseContextResolver:
    """Builds a ReleaseContext for a tag from the GitHub API.

    Usage:
        resolver = ReleaseContextResolver(github)
        context = await resolver.fetch_context("myorg", "api", "v1.4.0")
    """

    def __init__(self, github: GitHubAPIProtocol) -> None:
        self._github = github

    async def fetch_context(self, owner: str, repo: str, tag_name: str) -> ReleaseContext:
        """Resolve the previous release and the file-level diff for tag_name.

        Raises:
            NotFoundError: If no release exists for tag_name
            UpstreamError: If any GitHub call fails
        """
        releases = await self._github.list_releases(owner, repo)

        current = next((r for r in releases if r.tag_name == tag_name), None)
        if current is None:
            raise NotFoundError(f"release {tag_name} not found")

        previous = find_previous_release(releases, tag_name)
        diff_files = []
        if previous is not None:
            diff_files = await self._github.compare(
                owner, repo, previous.tag_name, tag_name
            )

        logger.info(
            "release_context_resolved",
            repo=f"{owner}/{repo}",
            tag=tag_name,
            previous_tag=previous.tag_name if previous else None,
            releases_seen=len(releases),
            files_changed=len(diff_files),
        )

        return ReleaseContext(
            current_tag=tag_name,
            previous_tag=previous.tag_name if previous else None,
            release_notes=current.body or "",
            diff_files=diff_files,
        )
