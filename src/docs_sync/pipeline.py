"""Pipeline orchestrator: release tag in, documentation pull request out.

This module ties together all the components:
- Release context resolution (context/releases.py)
- Documentation drafting (drafting.py, llm.py)
- Commit publishing (git/sync.py)
- Idempotent PR opening (git/pulls.py)
- Notification (notify.py)

The pipeline follows this flow, each stage feeding the next:
1. Resolve what changed since the previous release
2. Draft documentation proposals for those changes
3. Commit the proposals to a deterministic docs branch
4. Open a PR for the branch, or reuse the open one
5. Notify the team channel

A failure in any stage stops the run: nothing after it happens and the
error is re-raised. Git state already published (a branch, a commit) is
left in place.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from docs_sync.config import DocsSyncConfig, load_config
from docs_sync.context.releases import ReleaseContextResolver
from docs_sync.drafting import DocsDrafterProtocol, LLMDocsDrafter, StaticDocsDrafter
from docs_sync.git.pulls import PullRequestIdempotencyManager
from docs_sync.git.sync import GitCommitSynchronizer
from docs_sync.github import GitHubAPIProtocol, GitHubClient
from docs_sync.llm import LLMConfig
from docs_sync.logging_config import get_logger, setup_logging
from docs_sync.notify import NotifierProtocol, SlackNotifier
from docs_sync.schemas import PipelineInput, PipelineResult, PullRequest

logger = get_logger(__name__)


def build_branch_name(prefix: str, repo: str, tag_name: str) -> str:
    """Deterministic docs branch name, so reruns for a tag reuse the branch."""
    safe_repo = repo.replace("/", "-")
    safe_tag = tag_name.replace("/", "-")
    return f"{prefix}dex-{safe_repo}-docs-{safe_tag}"


def build_notification_text(repo: str, tag_name: str, pr: PullRequest) -> str:
    verb = "opened" if pr.created else "reused"
    return f"Docs PR {verb} for {repo} {tag_name}: {pr.url}"


class DocsSyncPipeline:
    """Runs one release through every stage.

    Usage:
        pipeline = DocsSyncPipeline(github=GitHubClient(), drafter=StaticDocsDrafter())
        result = await pipeline.run(PipelineInput(owner="myorg", repo="api", tag_name="v1.4.0"))
    """

    def __init__(
        self,
        github: GitHubAPIProtocol,
        drafter: DocsDrafterProtocol,
        notifier: NotifierProtocol | None = None,
    ) -> None:
        """Initialize the pipeline with its collaborators.

        Args:
            github: GitHub API client shared by the resolver, synchronizer and PR manager
            drafter: Drafting stage implementation
            notifier: Notification stage; None skips notifications
        """
        self.resolver = ReleaseContextResolver(github)
        self.synchronizer = GitCommitSynchronizer(github)
        self.pulls = PullRequestIdempotencyManager(github)
        self.drafter = drafter
        self.notifier = notifier

    async def run(self, params: PipelineInput) -> PipelineResult:
        """Run the full pipeline for one release.

        Raises:
            NotFoundError: If the release tag or base branch doesn't exist
            UpstreamError: If GitHub or Slack fails
            ValidationError: If the drafting stage proposes no files
            ValueError: If the drafting stage keeps returning invalid output
        """
        repo_full = f"{params.owner}/{params.repo}"
        branch_name = build_branch_name(params.branch_prefix, params.repo, params.tag_name)
        logger.info(
            "pipeline_started",
            repo=repo_full,
            tag=params.tag_name,
            branch=branch_name,
        )

        try:
            context = await self.resolver.fetch_context(
                params.owner, params.repo, params.tag_name
            )
            draft = await self.drafter.draft(context, params.owner, params.repo)
            commit = await self.synchronizer.commit_files(
                params.owner,
                params.repo,
                params.base_branch,
                branch_name,
                draft.files,
                message=draft.pr_title,
            )
            pr = await self.pulls.open_or_reuse(
                params.owner,
                params.repo,
                params.base_branch,
                branch_name,
                draft.pr_title,
                draft.pr_body,
            )
            if self.notifier is not None:
                await self.notifier.notify(
                    params.notify_channel,
                    build_notification_text(repo_full, params.tag_name, pr),
                )
            else:
                logger.info("notification_skipped", repo=repo_full)
        except Exception as e:
            logger.error(
                "pipeline_failed",
                repo=repo_full,
                tag=params.tag_name,
                branch=branch_name,
                error=str(e),
                exc_info=True,
            )
            raise

        result = PipelineResult(
            pr_url=pr.url,
            pr_number=pr.number,
            pr_created=pr.created,
            branch_name=branch_name,
            commit_sha=commit.commit_sha,
            previous_tag=context.previous_tag,
            files_committed=len(draft.files),
        )
        logger.info(
            "pipeline_complete",
            repo=repo_full,
            tag=params.tag_name,
            pr_number=pr.number,
            pr_created=pr.created,
        )
        return result


def build_pipeline(
    config: DocsSyncConfig,
    github: GitHubAPIProtocol | None = None,
    static_draft: bool = False,
    notify: bool = True,
) -> DocsSyncPipeline:
    """Wire a pipeline from configuration.

    Falls back to the static drafter when no OpenAI key is configured and
    skips notifications when no Slack token is configured.
    """
    github = github or GitHubClient(
        token=config.github_token,
        base_url=config.github_api_url,
        timeout=config.request_timeout,
    )

    drafter: DocsDrafterProtocol
    if static_draft or not config.openai_api_key:
        drafter = StaticDocsDrafter()
    else:
        drafter = LLMDocsDrafter(
            LLMConfig(
                model=config.openai_model,
                api_key=config.openai_api_key,
                max_attempts=config.draft_max_attempts,
            )
        )

    notifier = None
    if notify and config.slack_bot_token:
        notifier = SlackNotifier(token=config.slack_bot_token, timeout=config.request_timeout)

    return DocsSyncPipeline(github=github, drafter=drafter, notifier=notifier)


def pipeline_input_from_config(
    config: DocsSyncConfig, owner: str, repo: str, tag_name: str
) -> PipelineInput:
    return PipelineInput(
        owner=owner,
        repo=repo,
        tag_name=tag_name,
        base_branch=config.base_branch,
        branch_prefix=config.branch_prefix,
        notify_channel=config.notify_channel,
    )


# ---------------------------------------------------------------------------
# CLI Entry Point
# ---------------------------------------------------------------------------


async def _run_cli(args: argparse.Namespace, config: DocsSyncConfig) -> PipelineResult:
    owner, repo = args.repo.split("/", 1)
    github = GitHubClient(
        token=config.github_token,
        base_url=config.github_api_url,
        timeout=config.request_timeout,
    )
    async with github:
        pipeline = build_pipeline(
            config, github=github, static_draft=args.dry_draft, notify=not args.no_notify
        )
        return await pipeline.run(pipeline_input_from_config(config, owner, repo, args.tag))


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Usage:
        docs-sync --repo myorg/api --tag v1.4.0
        docs-sync --repo myorg/api --tag v1.4.0 --dry-draft --no-notify
    """
    parser = argparse.ArgumentParser(description="Open a docs PR for a GitHub release")
    parser.add_argument("--repo", required=True, help='Repository as "owner/name"')
    parser.add_argument("--tag", required=True, help="Release tag (e.g. v1.4.0)")
    parser.add_argument("--base", help="Base branch (default: from config)")
    parser.add_argument("--channel", help="Notification channel (default: from config)")
    parser.add_argument("--config", help="Path to a YAML config file")
    parser.add_argument(
        "--dry-draft",
        action="store_true",
        help="Use the static drafter instead of the LLM",
    )
    parser.add_argument("--no-notify", action="store_true", help="Skip notifications")
    args = parser.parse_args(argv)

    if "/" not in args.repo:
        parser.error('--repo must look like "owner/name"')

    setup_logging()
    config = load_config(args.config)
    overrides = {}
    if args.base:
        overrides["base_branch"] = args.base
    if args.channel:
        overrides["notify_channel"] = args.channel
    if overrides:
        config = config.model_copy(update=overrides)

    try:
        result = asyncio.run(_run_cli(args, config))
    except Exception as e:
        print(f"docs-sync failed: {e}", file=sys.stderr)
        return 1

    print(result.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
