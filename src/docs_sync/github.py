"""GitHub REST API client used by every stage that touches the Git host.

Covers the three groups of endpoints the pipeline needs:
- Releases and compare (release context)
- Git data: refs, commits, blobs, trees (publishing a commit to a branch)
- Pulls: listing open PRs by head branch, creating a PR

Design notes:
- Uses httpx for async HTTP requests with a bounded per-request timeout
- Can be used as an async context manager to share one connection pool
  across a pipeline run; outside a context each call opens its own client
- Every HTTP or transport failure is raised as UpstreamError, so callers
  never see httpx exceptions
- Uses a Protocol so the core components don't depend on this class

GitHub API docs: https://docs.github.com/en/rest
"""

from __future__ import annotations

import base64
import os
from types import TracebackType
from typing import Any, Protocol

import httpx

from docs_sync.errors import NotFoundError, UpstreamError
from docs_sync.schemas import DiffFile, PullRequest, Release

RELEASES_PAGE_SIZE = 100
COMPARE_PAGE_SIZE = 250
REGULAR_FILE_MODE = "100644"

# ---------------------------------------------------------------------------
# Protocol (Interface)
# ---------------------------------------------------------------------------


class GitHubAPIProtocol(Protocol):
    """The GitHub operations the resolver, synchronizer and PR manager use."""

    async def list_releases(self, owner: str, repo: str) -> list[Release]: ...

    async def compare(
        self, owner: str, repo: str, base: str, head: str
    ) -> list[DiffFile]: ...

    async def get_branch_sha(self, owner: str, repo: str, branch: str) -> str: ...

    async def create_branch(
        self, owner: str, repo: str, branch: str, sha: str
    ) -> bool: ...

    async def get_commit_tree_sha(
        self, owner: str, repo: str, commit_sha: str
    ) -> str: ...

    async def create_blob(self, owner: str, repo: str, content: str) -> str: ...

    async def create_tree(
        self, owner: str, repo: str, base_tree: str, entries: list[dict[str, str]]
    ) -> str: ...

    async def create_commit(
        self, owner: str, repo: str, message: str, tree: str, parents: list[str]
    ) -> str: ...

    async def update_branch(
        self, owner: str, repo: str, branch: str, sha: str, force: bool = True
    ) -> None: ...

    async def list_open_pulls(
        self, owner: str, repo: str, head_branch: str
    ) -> list[PullRequest]: ...

    async def create_pull(
        self,
        owner: str,
        repo: str,
        head_branch: str,
        base_branch: str,
        title: str,
        body: str,
    ) -> PullRequest: ...


# ---------------------------------------------------------------------------
# Concrete Implementation
# ---------------------------------------------------------------------------


class GitHubClient:
    """Real GitHub API client using httpx.

    Usage:
        async with GitHubClient(token="ghp_...") as gh:
            releases = await gh.list_releases("myorg", "api")
    """

    BASE_URL = "https://api.github.com"

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            token: GitHub token. Falls back to GITHUB_TOKEN if not provided.
            base_url: API root, for GitHub Enterprise. Defaults to api.github.com
            timeout: Per-request timeout in seconds
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self._token = token or os.environ.get("GITHUB_TOKEN", "")
        self._base_url = (base_url or self.BASE_URL).rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            self._headers["Authorization"] = f"Bearer {self._token}"
        self._http: httpx.AsyncClient | None = None

    def _new_http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def __aenter__(self) -> GitHubClient:
        self._http = self._new_http_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    # -- transport -----------------------------------------------------------

    async def _send(
        self,
        method: str,
        url: str,
        *,
        allow_status: tuple[int, ...] = (),
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request, translating failures into UpstreamError.

        Responses whose status is in allow_status are returned as-is so the
        caller can interpret them (e.g. 404 on a ref lookup, 422 on a ref
        that already exists).
        """
        try:
            if self._http is not None:
                resp = await self._http.request(method, url, **kwargs)
            else:
                async with self._new_http_client() as client:
                    resp = await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"GitHub {method} {url} failed: {exc}") from exc

        if resp.status_code in allow_status or resp.is_success:
            return resp
        raise UpstreamError(
            f"GitHub {method} {url} failed with {resp.status_code}: "
            f"{_error_message(resp)}",
            status_code=resp.status_code,
        )

    async def _paginate(
        self, url: str, params: dict[str, Any] | None = None
    ) -> list[dict]:
        """Follow GitHub's Link: rel="next" headers and collect every item."""
        all_items: list[dict] = []
        next_url: str | None = url
        next_params = params

        while next_url:
            resp = await self._send("GET", next_url, params=next_params)
            all_items.extend(resp.json())
            next_url = self._parse_next_link(resp.headers.get("link", ""))
            # The next link already carries the query string
            next_params = None

        return all_items

    @staticmethod
    def _parse_next_link(link_header: str) -> str | None:
        """Extract the 'next' URL from a GitHub Link header."""
        if not link_header:
            return None
        for part in link_header.split(","):
            if 'rel="next"' in part:
                return part.split(";")[0].strip().strip("<>")
        return None

    # -- releases ------------------------------------------------------------

    async def list_releases(self, owner: str, repo: str) -> list[Release]:
        """List every release in the repository, across all pages."""
        items = await self._paginate(
            f"/repos/{owner}/{repo}/releases",
            params={"per_page": RELEASES_PAGE_SIZE},
        )
        return [
            Release(
                tag_name=r["tag_name"],
                body=r.get("body") or "",
                published_at=r.get("published_at"),
            )
            for r in items
        ]

    async def compare(
        self, owner: str, repo: str, base: str, head: str
    ) -> list[DiffFile]:
        """Files changed between base and head (base...head).

        Only the first page is fetched; releases touching more than
        COMPARE_PAGE_SIZE files yield a truncated list.
        """
        resp = await self._send(
            "GET",
            f"/repos/{owner}/{repo}/compare/{base}...{head}",
            params={"per_page": COMPARE_PAGE_SIZE},
        )
        files = resp.json().get("files") or []
        return [
            DiffFile(
                path=f["filename"],
                status=f.get("status") or "modified",
                additions=f.get("additions") or 0,
                deletions=f.get("deletions") or 0,
                changes=f.get("changes") or 0,
                patch=f.get("patch"),
            )
            for f in files[:COMPARE_PAGE_SIZE]
        ]

    # -- git data ------------------------------------------------------------

    async def get_branch_sha(self, owner: str, repo: str, branch: str) -> str:
        """Head commit SHA of a branch.

        Raises:
            NotFoundError: If the branch does not exist
        """
        resp = await self._send(
            "GET",
            f"/repos/{owner}/{repo}/git/ref/heads/{branch}",
            allow_status=(404,),
        )
        if resp.status_code == 404:
            raise NotFoundError(f"branch {branch} not found")
        return resp.json()["object"]["sha"]

    async def create_branch(
        self, owner: str, repo: str, branch: str, sha: str
    ) -> bool:
        """Create refs/heads/<branch> at sha.

        Returns:
            True if the branch was created, False if it already existed
        """
        resp = await self._send(
            "POST",
            f"/repos/{owner}/{repo}/git/refs",
            json={"ref": f"refs/heads/{branch}", "sha": sha},
            allow_status=(422,),
        )
        if resp.status_code == 422:
            message = _error_message(resp)
            if "already exists" in message:
                return False
            raise UpstreamError(
                f"Creating branch {branch} failed with 422: {message}",
                status_code=422,
            )
        return True

    async def get_commit_tree_sha(
        self, owner: str, repo: str, commit_sha: str
    ) -> str:
        resp = await self._send(
            "GET", f"/repos/{owner}/{repo}/git/commits/{commit_sha}"
        )
        return resp.json()["tree"]["sha"]

    async def create_blob(self, owner: str, repo: str, content: str) -> str:
        """Upload file content (utf-8, sent base64-encoded) and return its SHA."""
        encoded = base64.b64encode(content.encode("utf-8")).decode("ascii")
        resp = await self._send(
            "POST",
            f"/repos/{owner}/{repo}/git/blobs",
            json={"content": encoded, "encoding": "base64"},
        )
        return resp.json()["sha"]

    async def create_tree(
        self, owner: str, repo: str, base_tree: str, entries: list[dict[str, str]]
    ) -> str:
        """Layer entries onto base_tree; paths not listed are inherited."""
        resp = await self._send(
            "POST",
            f"/repos/{owner}/{repo}/git/trees",
            json={"base_tree": base_tree, "tree": entries},
        )
        return resp.json()["sha"]

    async def create_commit(
        self, owner: str, repo: str, message: str, tree: str, parents: list[str]
    ) -> str:
        resp = await self._send(
            "POST",
            f"/repos/{owner}/{repo}/git/commits",
            json={"message": message, "tree": tree, "parents": parents},
        )
        return resp.json()["sha"]

    async def update_branch(
        self, owner: str, repo: str, branch: str, sha: str, force: bool = True
    ) -> None:
        await self._send(
            "PATCH",
            f"/repos/{owner}/{repo}/git/refs/heads/{branch}",
            json={"sha": sha, "force": force},
        )

    # -- pulls ---------------------------------------------------------------

    async def list_open_pulls(
        self, owner: str, repo: str, head_branch: str
    ) -> list[PullRequest]:
        resp = await self._send(
            "GET",
            f"/repos/{owner}/{repo}/pulls",
            params={"state": "open", "head": f"{owner}:{head_branch}"},
        )
        return [_to_pull_request(p) for p in resp.json()]

    async def create_pull(
        self,
        owner: str,
        repo: str,
        head_branch: str,
        base_branch: str,
        title: str,
        body: str,
    ) -> PullRequest:
        resp = await self._send(
            "POST",
            f"/repos/{owner}/{repo}/pulls",
            json={
                "title": title,
                "head": head_branch,
                "base": base_branch,
                "body": body,
            },
        )
        return _to_pull_request(resp.json(), created=True)


def _to_pull_request(data: dict, created: bool = False) -> PullRequest:
    return PullRequest(
        number=data["number"],
        url=data["html_url"],
        head_branch=data["head"]["ref"],
        base_branch=data["base"]["ref"],
        title=data.get("title") or "",
        created=created,
    )


def _error_message(resp: httpx.Response) -> str:
    """Best-effort extraction of GitHub's error message from a response."""
    try:
        data = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(data, dict):
        message = str(data.get("message", ""))
        details = [
            str(e.get("message", "")) for e in data.get("errors") or []
            if isinstance(e, dict)
        ]
        return "; ".join(m for m in [message, *details] if m)
    return resp.text[:200]
