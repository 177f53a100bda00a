"""Prompt templates for the documentation drafting stage.

The drafter receives a release context (tags, release notes, changed files)
and must return complete markdown files plus PR metadata as JSON.

Prompt engineering principles applied here:
1. Clear persona and scope (docs writer for this release only)
2. Explicit output format with JSON schema
3. Guardrails: full file bodies, no patches, predictable placement

The prompts are designed for OpenAI's JSON mode, so the LLM is told to
respond ONLY with a JSON object matching DocsDraft.
"""

from __future__ import annotations

import json

from docs_sync.schemas import DocsDraft, ReleaseContext

# Changed files listed in the prompt; the rest are summarized as a count
MAX_PROMPT_FILES = 200

PROPOSALS_DIR = ".doc-proposals"

# ---------------------------------------------------------------------------
# System Prompt
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = """You analyze GitHub releases (release notes and code diffs) and propose
documentation updates.

## Requirements
- Output complete, ready-to-commit markdown files for each proposal.
- Prefer creating files under "{proposals_dir}/" mirroring the intended docs paths.
- Do NOT include Git patches or partial snippets; produce full file bodies.
- Keep changes scoped to the features actually changed in this release.
- Reference accurate names of APIs, functions, and paths.
- If an existing file needs updates, produce the full updated file content.
- If unsure where to place a doc, propose it under "{proposals_dir}/misc/".

## Output Format
You MUST respond with valid JSON matching this exact schema:
{schema}
"""

# ---------------------------------------------------------------------------
# User Prompt
# ---------------------------------------------------------------------------

USER_PROMPT_TEMPLATE = """You are provided a GitHub release context for {repo}.

Current Tag: {current_tag}
Previous Tag: {previous_tag}

Release Notes:

{release_notes}

Changed Files:
{changed_files}

Task: Propose complete markdown file updates that reflect the changes for this release.
Only include files relevant to this release. Use "pr_title" for a short pull request
title and "pr_body" to explain which docs changed and why.
"""


def build_system_prompt() -> str:
    """Build the system prompt with the DocsDraft JSON schema embedded."""
    schema = json.dumps(DocsDraft.model_json_schema(), indent=2)
    return SYSTEM_PROMPT.format(schema=schema, proposals_dir=PROPOSALS_DIR)


def format_changed_files(context: ReleaseContext) -> str:
    """One line per changed file: `- path (status) +a/-d (n changes)`."""
    if not context.diff_files:
        return "(no file-level diff available)"

    lines = [
        f"- {f.path} ({f.status}) +{f.additions}/-{f.deletions} ({f.changes} changes)"
        for f in context.diff_files[:MAX_PROMPT_FILES]
    ]
    remaining = len(context.diff_files) - MAX_PROMPT_FILES
    if remaining > 0:
        lines.append(f"... and {remaining} more files")
    return "\n".join(lines)


def build_user_prompt(context: ReleaseContext, repo: str) -> str:
    """Format the release context into the user prompt."""
    return USER_PROMPT_TEMPLATE.format(
        repo=repo,
        current_tag=context.current_tag,
        previous_tag=context.previous_tag or "none",
        release_notes=context.release_notes or "(no release notes)",
        changed_files=format_changed_files(context),
    )
