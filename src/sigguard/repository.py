"""Version-control repository object model.

:class:`GitRepository` answers the handful of questions the commit range
extractor needs by running the ``git`` binary: reference lookup, object
type checks, merge-base, a hidden-range topological walk and commit reads.
"""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

from sigguard.errors import GitCommandError

logger = logging.getLogger(__name__)

# Full SHA-1 or SHA-256 object ids
OBJECT_ID_RE = re.compile(r"^(?:[0-9a-f]{40}|[0-9a-f]{64})$", re.IGNORECASE)
PSEUDO_REF_RE = re.compile(r"^(?:[A-Z_]*_)?HEAD$")

_FIELD_SEP = "\x00"
_COMMIT_FORMAT = "%H%x00%P%x00%an%x00%ae%x00%B"


@dataclass(frozen=True)
class CommitObject:
    """The parts of a commit object the extractor reads."""

    sha: str
    parents: tuple[str, ...]
    author_name: str
    author_email: str
    message: str

    @property
    def summary(self) -> str:
        """First line of the commit message."""
        lines = self.message.strip().splitlines()
        return lines[0].strip() if lines else ""

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1


@runtime_checkable
class Repository(Protocol):
    """Read-only repository operations used by commit range extraction."""

    @property
    def workdir(self) -> Path:
        ...

    def lookup_reference(self, name: str) -> str | None:
        """Return the commit id a fully named reference points at, or None."""
        ...

    def is_commit(self, oid: str) -> bool:
        ...

    def merge_base(self, a: str, b: str) -> str | None:
        ...

    def walk(self, head: str, hide: Sequence[str]) -> list[str]:
        """Commits reachable from ``head`` but not from ``hide``, newest first."""
        ...

    def read_commit(self, oid: str) -> CommitObject:
        ...


def is_direct_reference_name(name: str) -> bool:
    """Whether ``name`` is a full reference name (``HEAD`` or ``refs/...``)."""
    return name.startswith("refs/") or bool(PSEUDO_REF_RE.match(name))


class GitRepository:
    """Repository backed by the ``git`` command line.

    Example:
        >>> repo = GitRepository(".")
        >>> head = repo.lookup_reference("HEAD")
        >>> repo.read_commit(head).summary
    """

    def __init__(self, path: str | Path = ".", program: str = "git") -> None:
        self._path = Path(path).resolve()
        self._program = program

    @property
    def workdir(self) -> Path:
        return self._path

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(
                [self._program, *args],
                cwd=str(self._path),
                text=True,
                capture_output=True,
                check=False,
            )
        except OSError as e:
            raise GitCommandError(args, None, str(e)) from e

    def _run_checked(self, args: list[str]) -> str:
        proc = self._run(args)
        if proc.returncode != 0:
            raise GitCommandError(args, proc.returncode, proc.stderr.strip())
        return proc.stdout

    def lookup_reference(self, name: str) -> str | None:
        if not is_direct_reference_name(name):
            return None
        proc = self._run(["rev-parse", "--verify", "--quiet", f"{name}^{{commit}}"])
        if proc.returncode != 0:
            return None
        return proc.stdout.strip() or None

    def is_commit(self, oid: str) -> bool:
        proc = self._run(["cat-file", "-t", oid])
        return proc.returncode == 0 and proc.stdout.strip() == "commit"

    def merge_base(self, a: str, b: str) -> str | None:
        proc = self._run(["merge-base", a, b])
        if proc.returncode != 0:
            logger.debug("git merge-base exited with %d", proc.returncode)
            return None
        return proc.stdout.strip() or None

    def walk(self, head: str, hide: Sequence[str]) -> list[str]:
        args = ["rev-list", "--topo-order", head, *(f"^{oid}" for oid in hide)]
        return [line for line in self._run_checked(args).splitlines() if line]

    def read_commit(self, oid: str) -> CommitObject:
        output = self._run_checked(
            ["show", "-s", "--no-show-signature", f"--format={_COMMIT_FORMAT}", oid]
        )
        sha, parents, name, email, message = output.split(_FIELD_SEP, 4)
        return CommitObject(
            sha=sha.strip(),
            parents=tuple(parents.split()),
            author_name=name,
            author_email=email,
            message=message,
        )
