"""Core data model for commit signature verification.

All types here are created, consumed and discarded within a single
verification run. They are frozen so a result can never be altered after
the verifier produced it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from sigguard.types import SignatureStatus

SHORT_SHA_LENGTH = 8


@dataclass(frozen=True)
class CommitInfo:
    """A single commit to be verified.

    Attributes:
        sha: Full hex object id.
        author_email: Author email exactly as recorded in the commit.
        author_name: Author display name.
        subject: First line of the commit message.
        signature_status: Status reported by signature introspection.
        key_id: ID of the key that made the signature, if any.
        signer: Signer display name, if any.
    """

    sha: str
    author_email: str
    author_name: str
    subject: str
    signature_status: SignatureStatus = SignatureStatus.NONE
    key_id: str | None = None
    signer: str | None = None

    @property
    def short_sha(self) -> str:
        return self.sha[:SHORT_SHA_LENGTH]


class ReasonKind(str, Enum):
    """Closed set of verification outcomes."""

    TRUSTED_VERIFIED = "trusted_verified"
    EXTERNAL_UNSIGNED = "external_unsigned"
    EXTERNAL_SIGNED = "external_signed"
    IMPERSONATION_ATTEMPT = "impersonation_attempt"
    KEY_MISMATCH = "key_mismatch"
    BAD_SIGNATURE = "bad_signature"


_DISPLAY_MESSAGES = {
    ReasonKind.TRUSTED_VERIFIED: "Trusted identity (signed, verified)",
    ReasonKind.EXTERNAL_UNSIGNED: "External contributor (unsigned, allowed)",
    ReasonKind.EXTERNAL_SIGNED: "External contributor (signed)",
    ReasonKind.IMPERSONATION_ATTEMPT: "Impersonation attempt: trusted identity unsigned",
    ReasonKind.KEY_MISMATCH: "Key mismatch: signed with unapproved key",
    ReasonKind.BAD_SIGNATURE: "Bad signature",
}


@dataclass(frozen=True)
class VerificationReason:
    """Why a commit passed or failed.

    Only KEY_MISMATCH carries ``expected`` and ``actual``. Neither is part of
    ``display_message``, which is safe to print in public CI logs.
    """

    kind: ReasonKind
    expected: tuple[str, ...] = ()
    actual: str | None = None

    @classmethod
    def key_mismatch(cls, expected: Iterable[str], actual: str | None) -> "VerificationReason":
        return cls(ReasonKind.KEY_MISMATCH, expected=tuple(expected), actual=actual)

    @property
    def display_message(self) -> str:
        return _DISPLAY_MESSAGES[self.kind]

    @property
    def is_external(self) -> bool:
        return self.kind in (ReasonKind.EXTERNAL_SIGNED, ReasonKind.EXTERNAL_UNSIGNED)

    def __str__(self) -> str:
        return self.display_message


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of verifying one commit."""

    commit: CommitInfo
    passed: bool
    reason: VerificationReason

    def to_dict(self) -> dict[str, Any]:
        """Privacy-safe dictionary (no email, name or key material)."""
        return {
            "sha": self.commit.sha,
            "short_sha": self.commit.short_sha,
            "subject": self.commit.subject,
            "passed": self.passed,
            "reason": self.reason.kind.value,
            "message": self.reason.display_message,
        }


@dataclass(frozen=True)
class VerificationSummary:
    """Counters folded from a list of results.

    Build with :meth:`from_results`; the counters are never set directly.
    """

    commits_checked: int = 0
    trusted_verified: int = 0
    external_contributors: int = 0
    failures: int = 0

    @classmethod
    def from_results(cls, results: Iterable[VerificationResult]) -> "VerificationSummary":
        checked = trusted = external = failures = 0
        for result in results:
            checked += 1
            if result.reason.kind is ReasonKind.TRUSTED_VERIFIED:
                trusted += 1
            elif result.reason.is_external:
                external += 1
            if not result.passed:
                failures += 1
        return cls(
            commits_checked=checked,
            trusted_verified=trusted,
            external_contributors=external,
            failures=failures,
        )

    @property
    def passed(self) -> bool:
        return self.failures == 0

    def to_dict(self) -> dict[str, int]:
        return {
            "commits_checked": self.commits_checked,
            "trusted_verified": self.trusted_verified,
            "external_contributors": self.external_contributors,
            "failures": self.failures,
        }
