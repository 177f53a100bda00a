"""Publishes a set of file proposals as a single commit on a branch.

Uses GitHub's Git Data API rather than the contents API, so a multi-file
change lands as one commit:

1. Resolve the base branch head
2. Create the docs branch at that head if it doesn't exist yet
3. Read the docs branch's *current* head and tree
4. Upload one blob per file (concurrently; the first failure cancels the rest)
5. Build a tree on top of the current tree with exactly those blobs
6. Commit it with the current head as the only parent
7. Force-move the branch to the new commit

Because step 3 reads the docs branch and not the base branch, rerunning
against an existing branch stacks a new commit on top of the previous
proposal instead of resetting it. Files from earlier runs that the new
proposal doesn't mention are kept.

The branch ref is not locked. Two runs against the same branch race on
step 7 and the last writer wins; callers keep branch names unique per
release to avoid that.
"""

from __future__ import annotations

import asyncio

from docs_sync.errors import ValidationError
from docs_sync.github import REGULAR_FILE_MODE, GitHubAPIProtocol
from docs_sync.logging_config import get_logger
from docs_sync.schemas import CommitResult, FileProposal

logger = get_logger(__name__)


class GitCommitSynchronizer:
    """Advances a branch by one commit containing the given files.

    Usage:
        sync = GitCommitSynchronizer(github)
        result = await sync.commit_files(
            "myorg", "api", "main", "docs/update-v1.4.0",
            [FileProposal(path="docs/cli.md", content="# CLI\\n...")],
            message="docs: update for v1.4.0",
        )
    """

    def __init__(self, github: GitHubAPIProtocol) -> None:
        self._github = github

    async def commit_files(
        self,
        owner: str,
        repo: str,
        base_branch: str,
        branch_name: str,
        files: list[FileProposal],
        message: str,
    ) -> CommitResult:
        """Commit files onto branch_name, creating the branch from base_branch if needed.

        Args:
            owner: Repository owner
            repo: Repository name
            base_branch: Branch a new docs branch starts from
            branch_name: Docs branch to advance
            files: Full-content file proposals; paths not listed are untouched
            message: Commit message

        Returns:
            The new commit, its tree, and the parent it was built on

        Raises:
            ValidationError: If files is empty
            NotFoundError: If base_branch does not exist
            UpstreamError: If any blob, tree, commit or ref call fails. Nothing
                is rolled back; the branch keeps pointing at its previous commit
                unless the final ref update already went through.
        """
        if not files:
            raise ValidationError("no files to commit")

        repo_full = f"{owner}/{repo}"

        base_sha = await self._github.get_branch_sha(owner, repo, base_branch)

        created = await self._github.create_branch(owner, repo, branch_name, base_sha)
        if created:
            logger.info("branch_created", repo=repo_full, branch=branch_name, sha=base_sha)
        else:
            logger.info("branch_already_exists", repo=repo_full, branch=branch_name)

        head_sha = await self._github.get_branch_sha(owner, repo, branch_name)
        base_tree_sha = await self._github.get_commit_tree_sha(owner, repo, head_sha)

        # the first failed upload cancels the rest; no tree is built from partial blobs
        try:
            async with asyncio.TaskGroup() as tg:
                tasks = [
                    tg.create_task(self._github.create_blob(owner, repo, f.content))
                    for f in files
                ]
        except ExceptionGroup as eg:
            logger.warning(
                "blob_upload_failed",
                repo=repo_full,
                branch=branch_name,
                failures=len(eg.exceptions),
            )
            raise eg.exceptions[0] from None
        blob_shas = [task.result() for task in tasks]

        entries = [
            {"path": f.path, "mode": REGULAR_FILE_MODE, "type": "blob", "sha": sha}
            for f, sha in zip(files, blob_shas)
        ]
        tree_sha = await self._github.create_tree(owner, repo, base_tree_sha, entries)

        commit_sha = await self._github.create_commit(
            owner, repo, message, tree_sha, [head_sha]
        )
        await self._github.update_branch(owner, repo, branch_name, commit_sha, force=True)

        logger.info(
            "commit_created",
            repo=repo_full,
            branch=branch_name,
            sha=commit_sha,
            parent=head_sha,
            files=len(files),
        )

        return CommitResult(
            commit_sha=commit_sha,
            tree_sha=tree_sha,
            parent_sha=head_sha,
            branch_name=branch_name,
        )
