"""Signature verification decision table.

Trusted identities (emails present in the trust map) must sign with one of
their approved keys. External contributors may commit unsigned.

+-----------+-------------------------+----------------------------------+
| identity  | signature status        | outcome                          |
+===========+=========================+==================================+
| trusted   | GOOD / UNKNOWN, key ok  | TRUSTED_VERIFIED (pass)          |
| trusted   | GOOD / UNKNOWN, key bad | KEY_MISMATCH (fail)              |
| trusted   | GOOD / UNKNOWN, no key  | IMPERSONATION_ATTEMPT (fail)     |
| trusted   | BAD / X / Y / REVOKED   | BAD_SIGNATURE (fail)             |
| trusted   | NONE                    | IMPERSONATION_ATTEMPT (fail)     |
| external  | GOOD / UNKNOWN          | EXTERNAL_SIGNED (pass)           |
| external  | anything else           | EXTERNAL_UNSIGNED (pass)         |
+-----------+-------------------------+----------------------------------+

Every function here is pure.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from sigguard.models import (
    CommitInfo,
    ReasonKind,
    VerificationReason,
    VerificationResult,
    VerificationSummary,
)
from sigguard.types import TrustMap


def is_key_approved(key_id: str, allowed: Sequence[str]) -> bool:
    """Whether ``key_id`` matches any approved id.

    Matching is substring containment in either direction, so a long key id
    matches its 16-character short form and the reverse.
    """
    return any(key_id in approved or approved in key_id for approved in allowed if approved)


def verify_commit(commit: CommitInfo, trust_map: TrustMap) -> VerificationResult:
    """Apply the decision table to one commit."""
    allowed = trust_map.get(commit.author_email)
    status = commit.signature_status

    if allowed is None:
        if status.is_valid:
            return VerificationResult(commit, True, VerificationReason(ReasonKind.EXTERNAL_SIGNED))
        return VerificationResult(commit, True, VerificationReason(ReasonKind.EXTERNAL_UNSIGNED))

    if status.is_valid:
        if not commit.key_id:
            return VerificationResult(
                commit, False, VerificationReason(ReasonKind.IMPERSONATION_ATTEMPT)
            )
        if is_key_approved(commit.key_id, allowed):
            return VerificationResult(commit, True, VerificationReason(ReasonKind.TRUSTED_VERIFIED))
        return VerificationResult(
            commit, False, VerificationReason.key_mismatch(allowed, commit.key_id)
        )

    if status.is_broken:
        return VerificationResult(commit, False, VerificationReason(ReasonKind.BAD_SIGNATURE))

    return VerificationResult(commit, False, VerificationReason(ReasonKind.IMPERSONATION_ATTEMPT))


def verify_commits(
    commits: Iterable[CommitInfo],
    trust_map: TrustMap,
) -> tuple[list[VerificationResult], VerificationSummary]:
    """Verify every commit, preserving order, and fold the summary."""
    results = [verify_commit(commit, trust_map) for commit in commits]
    return results, VerificationSummary.from_results(results)
