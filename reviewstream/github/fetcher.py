"""Incremental branch file fetching from the GitHub REST API."""

import logging
import posixpath
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional, Union

import httpx

from reviewstream.errors import BranchNotFoundError

logger = logging.getLogger(__name__)

CODE_EXTENSIONS = (
    ".py", ".js", ".ts", ".tsx", ".java", ".cpp", ".c", ".h",
    ".html", ".css", ".json", ".md",
)

LOCKFILE_NAMES = {
    "package-lock.json",
    "npm-shrinkwrap.json",
    "composer.lock",
    "yarn.lock",
    "pnpm-lock.yaml",
    "poetry.lock",
    "Pipfile.lock",
}

UNAVAILABLE_PLACEHOLDER = "[Not available]"

# Narrate at least every PROGRESS_EVERY files while fetching.
PROGRESS_EVERY = 5


@dataclass
class FetchNarration:
    """A human-readable progress line emitted while fetching."""

    message: str


@dataclass
class FileBatch:
    """The final item of a fetch: the branch tip and its reviewable files."""

    commit_sha: str
    files: List[dict] = field(default_factory=list)


FetchEvent = Union[FetchNarration, FileBatch]


def is_code_file(path: str) -> bool:
    """Return True if the path has a reviewable extension and is not a lockfile."""
    if posixpath.basename(path) in LOCKFILE_NAMES:
        return False
    return path.endswith(CODE_EXTENSIONS)


class GitHubFileFetcher:
    """Fetch the reviewable files of a branch, narrating progress as it goes.

    The underlying ``httpx.AsyncClient`` can be injected; a fetcher that
    creates its own client closes it in :meth:`aclose`.
    """

    def __init__(
        self,
        token: str = "",
        api_url: str = "https://api.github.com",
        raw_url: str = "https://raw.githubusercontent.com",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.raw_url = raw_url.rstrip("/")
        self._headers = {"Accept": "application/vnd.github+json"}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=None)

    async def resolve_branch(self, repo_full_name: str, branch: str) -> str:
        """Resolve a branch to its tip commit sha.

        Raises:
            BranchNotFoundError: If the API does not return the branch.
        """
        url = f"{self.api_url}/repos/{repo_full_name}/branches/{branch}"
        resp = await self._client.get(url, headers=self._headers)
        if resp.status_code != 200:
            logger.error(f"GitHub returned {resp.status_code} for {url}")
            raise BranchNotFoundError(repo_full_name, branch)
        return resp.json()["commit"]["sha"]

    async def list_code_files(self, repo_full_name: str, sha: str) -> List[str]:
        """List the reviewable blob paths of the tree at ``sha``, in tree order."""
        url = f"{self.api_url}/repos/{repo_full_name}/git/trees/{sha}"
        resp = await self._client.get(url, headers=self._headers, params={"recursive": "1"})
        resp.raise_for_status()
        tree = resp.json().get("tree", [])
        return [
            item["path"]
            for item in tree
            if item.get("type") == "blob" and is_code_file(item.get("path", ""))
        ]

    async def fetch_content(self, repo_full_name: str, branch: str, path: str) -> str:
        """Fetch raw file content, or the placeholder if it cannot be fetched."""
        url = f"{self.raw_url}/{repo_full_name}/{branch}/{path}"
        headers = {k: v for k, v in self._headers.items() if k == "Authorization"}
        try:
            resp = await self._client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Could not fetch {path}: {e}")
            return UNAVAILABLE_PLACEHOLDER
        if resp.status_code != 200:
            logger.warning(f"GitHub returned {resp.status_code} for {path}")
            return UNAVAILABLE_PLACEHOLDER
        return resp.text

    async def fetch_files(self, repo_full_name: str, branch: str) -> AsyncIterator[FetchEvent]:
        """Yield narration for each step, then a single :class:`FileBatch`.

        Args:
            repo_full_name: ``owner/repo``.
            branch: Branch name to review.

        Raises:
            BranchNotFoundError: If the branch does not exist.
            httpx.HTTPStatusError: If the tree listing fails.
        """
        yield FetchNarration("Getting branch SHA...")
        sha = await self.resolve_branch(repo_full_name, branch)

        yield FetchNarration("Getting file tree...")
        paths = await self.list_code_files(repo_full_name, sha)
        total = len(paths)

        yield FetchNarration(f"Found {total} code files. Fetching...")
        files: List[dict] = []
        for i, path in enumerate(paths):
            if i % PROGRESS_EVERY == 0 or i == total - 1:
                yield FetchNarration(f"Fetching file {i + 1}/{total}...")
            content = await self.fetch_content(repo_full_name, branch, path)
            if content.strip():
                files.append({"filename": path, "content": content, "encoding": "text"})

        logger.info(f"Fetched {len(files)} files from {repo_full_name}@{branch} ({sha[:7]})")
        yield FetchNarration(f"Fetched {len(files)} files.")
        yield FileBatch(commit_sha=sha, files=files)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
