"""Commit range extraction.

The range checked is ``merge-base(base, head)..head`` rather than
``base..head``, so a base branch that moved on after the fork point does not
pull unrelated commits into the check. Merge commits are skipped: they are
authored by the forge at merge time, not by a contributor.
"""

from __future__ import annotations

import logging

from sigguard.errors import MergeBaseError, ReferenceResolutionError
from sigguard.models import CommitInfo
from sigguard.repository import OBJECT_ID_RE, CommitObject, Repository
from sigguard.signature import GitSignatureReader, SignaturePort

logger = logging.getLogger(__name__)

REFERENCE_PREFIXES = ("refs/heads/", "refs/remotes/", "refs/tags/")


def resolve_reference(repo: Repository, ref: str) -> str:
    """Resolve ``ref`` to a commit id.

    Tried in order: the name as a full reference, the name as a raw object
    id that names a commit, then the name under ``refs/heads/``,
    ``refs/remotes/`` and ``refs/tags/``. The first match wins.

    Raises:
        ReferenceResolutionError: If nothing matches.
    """
    oid = repo.lookup_reference(ref)
    if oid:
        return oid

    if OBJECT_ID_RE.match(ref) and repo.is_commit(ref):
        return ref.lower()

    for prefix in REFERENCE_PREFIXES:
        oid = repo.lookup_reference(f"{prefix}{ref}")
        if oid:
            return oid

    raise ReferenceResolutionError(ref)


class CommitRangeExtractor:
    """Produces the :class:`CommitInfo` list for a revision range."""

    def __init__(self, repo: Repository, signatures: SignaturePort) -> None:
        self._repo = repo
        self._signatures = signatures

    def extract(self, base_ref: str, head_ref: str) -> list[CommitInfo]:
        """Commits in ``merge-base..head``, newest first, merges excluded.

        Raises:
            ReferenceResolutionError: If either reference cannot be resolved.
            MergeBaseError: If the two commits share no history.
            SignatureIntrospectionError: If introspection cannot be run.
        """
        logger.info("Extracting commits from %s..%s", base_ref, head_ref)
        base_oid = resolve_reference(self._repo, base_ref)
        head_oid = resolve_reference(self._repo, head_ref)
        logger.debug("Base %s, head %s", base_oid[:8], head_oid[:8])

        merge_base = self._repo.merge_base(base_oid, head_oid)
        if not merge_base:
            raise MergeBaseError(base_oid, head_oid)
        logger.debug("Merge base %s", merge_base[:8])

        commits: list[CommitInfo] = []
        for oid in self._repo.walk(head_oid, [merge_base]):
            obj = self._repo.read_commit(oid)
            if obj.is_merge:
                logger.debug("Skipping merge commit %s", oid[:8])
                continue
            commits.append(self._commit_info(obj))

        logger.info("Extracted %d commit(s) for verification", len(commits))
        return commits

    def _commit_info(self, obj: CommitObject) -> CommitInfo:
        signature = self._signatures.read_signature(obj.sha)
        return CommitInfo(
            sha=obj.sha,
            author_email=obj.author_email,
            author_name=obj.author_name,
            subject=obj.summary,
            signature_status=signature.status,
            key_id=signature.key_id,
            signer=signature.signer,
        )


def extract_commits(
    repo: Repository,
    base_ref: str,
    head_ref: str,
    signatures: SignaturePort | None = None,
) -> list[CommitInfo]:
    """Extract the commits to verify between ``base_ref`` and ``head_ref``.

    Signature metadata comes from ``git`` run in the repository's working
    directory unless another :class:`SignaturePort` is given.
    """
    reader = signatures or GitSignatureReader(repo.workdir)
    return CommitRangeExtractor(repo, reader).extract(base_ref, head_ref)
