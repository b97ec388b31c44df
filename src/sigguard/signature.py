"""Per-commit signature introspection.

Signature metadata is read with::

    git show -s --format=%G?|%GK|%GS <sha>

which prints ``<status-code>|<key-id>|<signer-name>``. The key id is the one
of the key that actually signed, which for most setups is a signing subkey.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from sigguard.errors import SignatureIntrospectionError
from sigguard.types import SignatureStatus

logger = logging.getLogger(__name__)

SIGNATURE_FORMAT = "%G?|%GK|%GS"


@dataclass(frozen=True)
class SignatureInfo:
    """Signature metadata of one commit."""

    status: SignatureStatus = SignatureStatus.NONE
    key_id: str | None = None
    signer: str | None = None


UNSIGNED = SignatureInfo()


def parse_signature_line(line: str) -> SignatureInfo:
    """Parse ``<status>|<key-id>|<signer>`` output.

    Fewer than three fields means the output is unusable and the commit is
    treated as unsigned. Empty segments become ``None``.

    Example:
        >>> parse_signature_line("G|4AEE18F83AFDEB23|Jane Doe")
        SignatureInfo(status=<SignatureStatus.GOOD: 'G'>, key_id='4AEE18F83AFDEB23', signer='Jane Doe')
    """
    parts = line.strip().split("|", 2)
    if len(parts) < 3:
        return UNSIGNED
    status, key_id, signer = parts
    return SignatureInfo(
        status=SignatureStatus.from_code(status),
        key_id=key_id or None,
        signer=signer or None,
    )


@runtime_checkable
class SignaturePort(Protocol):
    """Reads the signature metadata of a commit."""

    def read_signature(self, sha: str) -> SignatureInfo:
        ...


class GitSignatureReader:
    """Signature introspection through the ``git`` binary.

    The command is run in ``workdir`` so git uses that repository and the
    caller's gpg keyring. Output is parsed leniently; only a failure to start
    the process is an error.
    """

    def __init__(self, workdir: str | Path = ".", program: str = "git") -> None:
        self._workdir = Path(workdir)
        self._program = program

    def read_signature(self, sha: str) -> SignatureInfo:
        cmd = [self._program, "show", "-s", f"--format={SIGNATURE_FORMAT}", sha]
        try:
            proc = subprocess.run(
                cmd,
                cwd=str(self._workdir),
                capture_output=True,
                check=False,
            )
        except OSError as e:
            raise SignatureIntrospectionError(sha, str(e)) from e

        if proc.returncode != 0:
            logger.debug(
                "Signature introspection for %s exited with %d", sha[:8], proc.returncode
            )
        output = proc.stdout.decode("utf-8", errors="replace")
        # git may print gpg diagnostics before the formatted line
        lines = [line for line in output.splitlines() if line.strip()]
        return parse_signature_line(lines[-1] if lines else "")


@dataclass
class InMemorySignatureReader:
    """Signature fake keyed by commit sha; unknown commits are unsigned."""

    signatures: dict[str, SignatureInfo] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    def read_signature(self, sha: str) -> SignatureInfo:
        self.calls.append(sha)
        return self.signatures.get(sha, UNSIGNED)
