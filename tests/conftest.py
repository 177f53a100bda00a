"""Shared fixtures: an in-memory GitHub served through httpx.MockTransport.

FakeGitHub implements just enough of the REST surface (releases, compare,
git data, pulls) for the real GitHubClient to run against it, so tests
exercise request building, pagination and error mapping end to end.
"""

from __future__ import annotations

import base64
import hashlib
import json
import re
from typing import Any

import httpx
import pytest

from docs_sync.github import GitHubClient

OWNER = "myorg"
REPO = "api"


def _sha(*parts: Any) -> str:
    return hashlib.sha1(repr(parts).encode("utf-8")).hexdigest()


class FakeGitHub:
    """In-memory stand-in for one GitHub repository.

    Attributes:
        releases: Release dicts in listing order (tag_name, body, published_at)
        compares: (base, head) -> list of file dicts returned by compare
        refs: branch name -> commit sha
        commits: commit sha -> {"tree", "parents", "message"}
        trees: tree sha -> {path: blob sha}
        blobs: blob sha -> decoded content
        pulls: PR dicts as GitHub returns them
        failures: operation name -> HTTP status to return instead of succeeding
        requests: every request received, as (method, path)
    """

    def __init__(self, owner: str = OWNER, repo: str = REPO) -> None:
        self.owner = owner
        self.repo = repo
        self.releases: list[dict] = []
        self.compares: dict[tuple[str, str], list[dict]] = {}
        self.blobs: dict[str, str] = {}
        self.trees: dict[str, dict[str, str]] = {}
        self.commits: dict[str, dict] = {}
        readme = self._store_blob("# api\n")
        root_tree = self._store_tree({"README.md": readme})
        root_commit = self._store_commit(root_tree, [], "initial commit")
        self.refs: dict[str, str] = {"main": root_commit}
        self.pulls: list[dict] = []
        self.failures: dict[str, int] = {}
        self.requests: list[tuple[str, str]] = []
        self.page_size_cap = 100

    # -- state helpers -------------------------------------------------------

    def _store_blob(self, content: str) -> str:
        sha = _sha("blob", content)
        self.blobs[sha] = content
        return sha

    def _store_tree(self, entries: dict[str, str]) -> str:
        sha = _sha("tree", sorted(entries.items()))
        self.trees[sha] = dict(entries)
        return sha

    def _store_commit(self, tree: str, parents: list[str], message: str) -> str:
        sha = _sha("commit", tree, tuple(parents), message, len(self.commits))
        self.commits[sha] = {"tree": tree, "parents": parents, "message": message}
        return sha

    def files_on(self, branch: str) -> dict[str, str]:
        """Path -> content of the tree at the head of branch."""
        tree = self.trees[self.commits[self.refs[branch]]["tree"]]
        return {path: self.blobs[sha] for path, sha in tree.items()}

    def add_release(self, tag: str, published_at: str | None, body: str = "") -> None:
        self.releases.append({"tag_name": tag, "body": body, "published_at": published_at})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    # -- request handling ----------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))
        prefix = f"/repos/{self.owner}/{self.repo}"
        if not path.startswith(prefix):
            return _json(404, {"message": "Not Found"})
        path = path[len(prefix):]
        body = json.loads(request.content) if request.content else {}

        routes = [
            ("GET", r"/releases", "list_releases"),
            ("GET", r"/compare/(.+?)\.\.\.(.+)", "compare"),
            ("GET", r"/git/ref/heads/(.+)", "get_ref"),
            ("POST", r"/git/refs", "create_ref"),
            ("PATCH", r"/git/refs/heads/(.+)", "update_ref"),
            ("GET", r"/git/commits/(\w+)", "get_commit"),
            ("POST", r"/git/blobs", "create_blob"),
            ("POST", r"/git/trees", "create_tree"),
            ("POST", r"/git/commits", "create_commit"),
            ("GET", r"/pulls", "list_pulls"),
            ("POST", r"/pulls", "create_pull"),
        ]
        for method, pattern, name in routes:
            match = re.fullmatch(pattern, path)
            if request.method == method and match:
                if name in self.failures:
                    return _json(self.failures[name], {"message": f"{name} failed"})
                return getattr(self, f"_{name}")(request, body, *match.groups())
        return _json(404, {"message": "Not Found"})

    def _list_releases(self, request: httpx.Request, body: dict) -> httpx.Response:
        per_page = min(int(request.url.params.get("per_page", 30)), self.page_size_cap)
        page = int(request.url.params.get("page", 1))
        start = (page - 1) * per_page
        items = self.releases[start:start + per_page]
        headers = {}
        if start + per_page < len(self.releases):
            next_url = request.url.copy_merge_params({"page": page + 1, "per_page": per_page})
            headers["link"] = f'<{next_url}>; rel="next", <{next_url}>; rel="last"'
        return httpx.Response(200, json=items, headers=headers)

    def _compare(self, request: httpx.Request, body: dict, base: str, head: str) -> httpx.Response:
        per_page = int(request.url.params.get("per_page", 250))
        files = self.compares.get((base, head), [])
        return _json(200, {"status": "ahead", "files": files[:per_page]})

    def _get_ref(self, request: httpx.Request, body: dict, branch: str) -> httpx.Response:
        if branch not in self.refs:
            return _json(404, {"message": "Not Found"})
        return _json(200, {
            "ref": f"refs/heads/{branch}",
            "object": {"sha": self.refs[branch], "type": "commit"},
        })

    def _create_ref(self, request: httpx.Request, body: dict) -> httpx.Response:
        branch = body["ref"].removeprefix("refs/heads/")
        if branch in self.refs:
            return _json(422, {"message": "Reference already exists"})
        self.refs[branch] = body["sha"]
        return _json(201, {"ref": body["ref"], "object": {"sha": body["sha"]}})

    def _update_ref(self, request: httpx.Request, body: dict, branch: str) -> httpx.Response:
        if branch not in self.refs:
            return _json(422, {"message": "Reference does not exist"})
        self.refs[branch] = body["sha"]
        return _json(200, {"object": {"sha": body["sha"]}})

    def _get_commit(self, request: httpx.Request, body: dict, sha: str) -> httpx.Response:
        commit = self.commits.get(sha)
        if commit is None:
            return _json(404, {"message": "Not Found"})
        return _json(200, {"sha": sha, "tree": {"sha": commit["tree"]}})

    def _create_blob(self, request: httpx.Request, body: dict) -> httpx.Response:
        assert body["encoding"] == "base64"
        content = base64.b64decode(body["content"]).decode("utf-8")
        return _json(201, {"sha": self._store_blob(content)})

    def _create_tree(self, request: httpx.Request, body: dict) -> httpx.Response:
        entries = dict(self.trees[body["base_tree"]])
        for entry in body["tree"]:
            assert entry["mode"] == "100644"
            assert entry["type"] == "blob"
            entries[entry["path"]] = entry["sha"]
        return _json(201, {"sha": self._store_tree(entries)})

    def _create_commit(self, request: httpx.Request, body: dict) -> httpx.Response:
        sha = self._store_commit(body["tree"], body["parents"], body["message"])
        return _json(201, {"sha": sha})

    def _list_pulls(self, request: httpx.Request, body: dict) -> httpx.Response:
        head = request.url.params.get("head", "")
        state = request.url.params.get("state", "open")
        items = [
            p for p in self.pulls
            if p["state"] == state and f"{self.owner}:{p['head']['ref']}" == head
        ]
        return _json(200, items)

    def _create_pull(self, request: httpx.Request, body: dict) -> httpx.Response:
        number = len(self.pulls) + 1
        pr = {
            "number": number,
            "html_url": f"https://github.com/{self.owner}/{self.repo}/pull/{number}",
            "state": "open",
            "title": body["title"],
            "body": body.get("body"),
            "head": {"ref": body["head"]},
            "base": {"ref": body["base"]},
        }
        self.pulls.append(pr)
        return _json(201, pr)


def _json(status: int, data: Any) -> httpx.Response:
    return httpx.Response(status, json=data)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def github_client(fake_github: FakeGitHub) -> GitHubClient:
    return GitHubClient(token="test-token", transport=fake_github.transport)
