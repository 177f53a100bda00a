"""Drafting stage: turns a ReleaseContext into documentation proposals.

The pipeline only depends on DocsDrafterProtocol, so the LLM-backed
drafter can be replaced by the static one in tests and dry runs.
"""

from __future__ import annotations

from typing import Protocol

from docs_sync.llm import LLMClient, LLMConfig
from docs_sync.logging_config import get_logger
from docs_sync.prompts.draft_docs import (
    PROPOSALS_DIR,
    build_system_prompt,
    build_user_prompt,
    format_changed_files,
)
from docs_sync.schemas import DocsDraft, FileProposal, ReleaseContext

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Protocol (Interface)
# ---------------------------------------------------------------------------


class DocsDrafterProtocol(Protocol):
    """Anything that can draft documentation proposals for a release."""

    async def draft(self, context: ReleaseContext, owner: str, repo: str) -> DocsDraft:
        ...


# ---------------------------------------------------------------------------
# LLM Implementation
# ---------------------------------------------------------------------------


class LLMDocsDrafter:
    """Drafts documentation with an OpenAI model.

    Usage:
        drafter = LLMDocsDrafter(LLMConfig(model="gpt-4o-mini"))
        draft = await drafter.draft(context, "myorg", "api")
    """

    def __init__(
        self,
        llm_config: LLMConfig | None = None,
        llm: LLMClient | None = None,
    ) -> None:
        self.llm = llm or LLMClient(config=llm_config)

    async def draft(self, context: ReleaseContext, owner: str, repo: str) -> DocsDraft:
        system_prompt = build_system_prompt()
        user_prompt = build_user_prompt(context, f"{owner}/{repo}")
        draft = await self.llm.draft_docs(system_prompt, user_prompt)
        logger.info(
            "docs_drafted",
            repo=f"{owner}/{repo}",
            tag=context.current_tag,
            files=len(draft.files),
        )
        return draft


# ---------------------------------------------------------------------------
# Static Implementation
# ---------------------------------------------------------------------------


class StaticDocsDrafter:
    """Deterministic drafter: one release summary page per tag.

    Used for dry runs, tests, and deployments without an OpenAI key.
    """

    async def draft(self, context: ReleaseContext, owner: str, repo: str) -> DocsDraft:
        safe_tag = context.current_tag.replace("/", "-")
        since = f" (since {context.previous_tag})" if context.previous_tag else ""
        content = (
            f"# {repo} {context.current_tag}\n\n"
            f"## Release notes\n\n{context.release_notes or '_No release notes._'}\n\n"
            f"## Changed files{since}\n\n{format_changed_files(context)}\n"
        )
        return DocsDraft(
            files=[
                FileProposal(
                    path=f"{PROPOSALS_DIR}/releases/{safe_tag}.md",
                    content=content,
                )
            ],
            pr_title=f"docs: release notes for {context.current_tag}",
            pr_body=(
                f"Documentation proposal for {owner}/{repo} {context.current_tag}"
                f"{since}. {len(context.diff_files)} files changed."
            ),
        )
