"""CI platform and repository detection.

Owner and repository name are resolved, in order, from:

1. ``GITHUB_REPOSITORY`` (``owner/repo``), set by GitHub Actions.
2. ``CIRCLE_PROJECT_USERNAME`` / ``CIRCLE_PROJECT_REPONAME`` on CircleCI.
3. The ``origin`` remote URL of the working copy.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping

logger = logging.getLogger(__name__)

_REMOTE_RE = re.compile(r"github\.com[:/]([^/]+)/([^/.]+)")


class CIPlatform(str, Enum):
    """CI platforms with repository metadata in the environment."""

    GITHUB_ACTIONS = "github_actions"
    CIRCLECI = "circleci"
    LOCAL = "local"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RepositorySlug:
    """Owner/name pair plus where it was found."""

    owner: str
    name: str
    source: str = "config"

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"


def detect_ci_platform(environ: Mapping[str, str] | None = None) -> CIPlatform:
    """Detect the current CI platform.

    Returns:
        The detected CI platform, ``LOCAL`` when none matches.
    """
    env = os.environ if environ is None else environ

    if env.get("GITHUB_ACTIONS") == "true":
        return CIPlatform.GITHUB_ACTIONS

    if env.get("CIRCLECI") == "true" or env.get("CIRCLE_PROJECT_REPONAME"):
        return CIPlatform.CIRCLECI

    return CIPlatform.LOCAL


def parse_remote_url(url: str) -> RepositorySlug | None:
    """Extract owner and name from a GitHub remote URL.

    Example:
        >>> parse_remote_url("git@github.com:octo/widgets.git")
        RepositorySlug(owner='octo', name='widgets', source='remote')
    """
    match = _REMOTE_RE.search(url)
    if not match:
        return None
    return RepositorySlug(match.group(1), match.group(2), source="remote")


def read_origin_url(path: str | Path = ".", program: str = "git") -> str | None:
    """Return the URL of the ``origin`` remote, or None if there is none."""
    try:
        proc = subprocess.run(
            [program, "remote", "get-url", "origin"],
            cwd=str(path),
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.debug("Could not run %s to read the origin remote: %s", program, e)
        return None
    if proc.returncode != 0:
        return None
    return proc.stdout.strip() or None


def _from_github(env: Mapping[str, str]) -> RepositorySlug | None:
    slug = env.get("GITHUB_REPOSITORY", "")
    owner, _, name = slug.partition("/")
    if owner and name:
        return RepositorySlug(owner, name, source="github_actions")
    return None


def _from_circleci(env: Mapping[str, str]) -> RepositorySlug | None:
    owner = env.get("CIRCLE_PROJECT_USERNAME")
    name = env.get("CIRCLE_PROJECT_REPONAME")
    if owner and name:
        return RepositorySlug(owner, name, source="circleci")
    return None


def detect_repository(
    environ: Mapping[str, str] | None = None,
    remote_url: str | None = None,
) -> RepositorySlug | None:
    """Detect the repository being verified.

    Args:
        environ: Environment to read (defaults to ``os.environ``).
        remote_url: URL of the ``origin`` remote, if known.

    Returns:
        The first match, or None.
    """
    env = os.environ if environ is None else environ

    for detector in (_from_github, _from_circleci):
        slug = detector(env)
        if slug is not None:
            logger.debug("Repository detected from %s", slug.source)
            return slug

    if remote_url:
        slug = parse_remote_url(remote_url)
        if slug is not None:
            logger.debug("Repository detected from the origin remote")
            return slug

    return None
