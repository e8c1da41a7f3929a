"""Repository name helpers."""

import re

_REPO_RE = re.compile(r"^([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+)$")


def parse_repo_full_name(repo: str) -> tuple[str, str]:
    """Split an ``owner/repo`` string into its parts.

    Args:
        repo: Repository in ``owner/repo`` form. A trailing ``.git`` is dropped.

    Returns:
        Tuple of (owner, repo).

    Raises:
        ValueError: If the string is not ``owner/repo``.
    """
    value = repo.strip()
    if value.endswith(".git"):
        value = value[: -len(".git")]
    match = _REPO_RE.match(value)
    if not match:
        raise ValueError(f"Invalid repository, expected owner/repo: {repo}")
    return match.group(1), match.group(2)
