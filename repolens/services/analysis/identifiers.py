"""Parsing of user-supplied repository identifiers."""

import re

from repolens.services.analysis.errors import InvalidRepoIdentifier
from repolens.services.analysis.types import RepoIdentifier

# Owner and repository names: letters, digits, '-', '_' and '.'
_NAME = r"[\w.-]+"

# https://github.com/owner/repo, github.com/owner/repo/tree/main, www.github.com/...
_URL_PATTERN = re.compile(
    rf"^(?:[a-z][a-z0-9+.-]*://)?(?:www\.)?github\.com/({_NAME})/({_NAME})(?:[/?#].*)?$",
    re.IGNORECASE,
)
_SLUG_PATTERN = re.compile(rf"^({_NAME})/({_NAME})$")


def _strip_suffixes(text: str) -> str:
    text = text.strip().rstrip("/")
    if text.lower().endswith(".git"):
        text = text[:-4].rstrip("/")
    return text


def parse_repo_identifier(text: str | None) -> RepoIdentifier:
    """
    Normalize a repository URL or slug into a RepoIdentifier.

    Accepts `owner/repo` or any `github.com/owner/repo` form, with or without a
    scheme, trailing slash or `.git` suffix. Parsing a normalized identifier's
    `full_name` again yields the same identifier.

    Raises:
        InvalidRepoIdentifier: Input is empty or has neither accepted shape
    """
    if not text or not text.strip():
        raise InvalidRepoIdentifier("Repository URL is required")

    cleaned = _strip_suffixes(text)
    match = _URL_PATTERN.match(cleaned) or _SLUG_PATTERN.match(cleaned)
    if not match:
        raise InvalidRepoIdentifier()

    owner, name = match.group(1), _strip_suffixes(match.group(2))
    if not owner or not name or owner in (".", "..") or name in (".", ".."):
        raise InvalidRepoIdentifier()

    return RepoIdentifier(owner=owner, name=name)
