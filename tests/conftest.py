"""Shared fixtures: a temporary history store, a fake GitHub and a fake chat model."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from langchain_core.messages import AIMessage

from reviewstream.github import GitHubFileFetcher
from reviewstream.store import HistoryStore

REVIEW_JSON = '{"summary": {"totalFiles": 3, "overallQuality": "good"}}'

WIDGET_FILES = {
    "src/index.ts": "export const widget = () => 42;\n",
    "src/util.py": "def add(a, b):\n    return a + b\n",
    "README.md": "# Widgets\n",
}


def github_transport(
    files,
    *,
    repo="acme/widgets",
    branch="main",
    sha="abc123",
    extra_tree=(),
    unavailable=(),
    calls=None,
):
    """MockTransport standing in for the GitHub API and raw content host.

    Args:
        files: Mapping of path to content served by the raw host.
        extra_tree: Additional tree entries (dicts) listed but not served.
        unavailable: Paths listed in the tree whose content request fails.
        calls: Optional list that receives every requested URL.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(str(request.url))
        path = request.url.path
        if request.url.host == "api.github.com":
            if path == f"/repos/{repo}/branches/{branch}":
                return httpx.Response(200, json={"name": branch, "commit": {"sha": sha}})
            if path == f"/repos/{repo}/git/trees/{sha}":
                tree = [{"path": p, "type": "blob"} for p in files]
                tree += [{"path": p, "type": "blob"} for p in unavailable]
                tree += list(extra_tree)
                return httpx.Response(200, json={"sha": sha, "tree": tree})
            return httpx.Response(404, json={"message": "Not Found"})

        prefix = f"/{repo}/{branch}/"
        relative = path[len(prefix):] if path.startswith(prefix) else None
        if relative in files:
            return httpx.Response(200, text=files[relative])
        return httpx.Response(404, text="404: Not Found")

    return httpx.MockTransport(handler)


def make_fetcher(files, **kwargs) -> GitHubFileFetcher:
    client = httpx.AsyncClient(transport=github_transport(files, **kwargs))
    return GitHubFileFetcher(token="test-token", client=client)


def make_llm(content: str = REVIEW_JSON):
    """Chat model double whose ainvoke returns ``content``."""
    llm = MagicMock()
    llm.ainvoke = AsyncMock(return_value=AIMessage(content=content))
    return llm


@pytest.fixture
def store(tmp_path):
    history = HistoryStore(tmp_path / "history.db")
    yield history
    history.close()


@pytest.fixture
def llm():
    return make_llm()
