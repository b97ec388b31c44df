"""One verification run, end to end.

    trust list (provider + keyring) -> commit range (repository + git)
        -> decision table (pure) -> VerificationRun

Components that are not passed in are built from :class:`Settings`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from sigguard.commits import CommitRangeExtractor
from sigguard.config import Settings
from sigguard.errors import ConfigurationError
from sigguard.github import GitHubClient, IdentityProvider
from sigguard.keyring import GpgKeyring, KeyringPort
from sigguard.models import VerificationResult, VerificationSummary
from sigguard.report import VerificationReport
from sigguard.repository import GitRepository, Repository
from sigguard.signature import GitSignatureReader, SignaturePort
from sigguard.trust import TrustListFetcher
from sigguard.verifier import verify_commits

logger = logging.getLogger(__name__)


class RunOutcome(str, Enum):
    """Terminal state of a run."""

    PASSED = "passed"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class VerificationRun:
    """Results of one run plus its outcome."""

    results: list[VerificationResult] = field(default_factory=list)
    summary: VerificationSummary = field(default_factory=VerificationSummary)
    base_ref: str = "origin/main"
    head_ref: str = "HEAD"

    @property
    def outcome(self) -> RunOutcome:
        return RunOutcome.PASSED if self.summary.passed else RunOutcome.FAILED

    def exit_code(self, fail_on_unsigned: bool = True) -> int:
        """Process exit status for this run.

        A failed run exits 1, unless ``fail_on_unsigned`` is off, in which
        case the failure is demoted to a warning and the exit status is 0.
        """
        if self.outcome is RunOutcome.PASSED:
            return 0
        if fail_on_unsigned:
            return 1
        logger.warning(
            "%d commit(s) failed signature verification; not failing because "
            "fail_on_unsigned is off",
            self.summary.failures,
        )
        return 0

    def report(self) -> VerificationReport:
        return VerificationReport(
            results=list(self.results),
            summary=self.summary,
            base_ref=self.base_ref,
            head_ref=self.head_ref,
        )


def run_verification(
    settings: Settings,
    *,
    client: IdentityProvider | None = None,
    keyring: KeyringPort | None = None,
    repository: Repository | None = None,
    signatures: SignaturePort | None = None,
) -> VerificationRun:
    """Build the trust list, extract the range and verify every commit.

    Raises:
        ConfigurationError: If owner/name are unset or credentials are missing.
        ProviderError: If the collaborator list cannot be fetched.
        RepositoryError: If the range cannot be computed.
        SignatureIntrospectionError: If introspection cannot be run.
    """
    if not (settings.repo_owner and settings.repo_name):
        raise ConfigurationError("Repository owner and name must be set")

    if client is None:
        client = GitHubClient(
            settings.token, api_url=settings.api_url, timeout=settings.http_timeout
        )
    if keyring is None:
        keyring = GpgKeyring(
            settings.gpg_program,
            homedir=settings.gpg_homedir,
            http_timeout=settings.http_timeout,
        )
    if repository is None:
        repository = GitRepository(settings.repo_path, settings.git_program)
    if signatures is None:
        signatures = GitSignatureReader(repository.workdir, settings.git_program)

    logger.info("Verifying commit signatures for %s", settings.slug)
    logger.debug("Fetch depth %d (informational)", settings.fetch_depth)

    trust_map = TrustListFetcher(client, keyring).fetch(settings.repo_owner, settings.repo_name)
    commits = CommitRangeExtractor(repository, signatures).extract(
        settings.base_ref, settings.head_ref
    )
    results, summary = verify_commits(commits, trust_map)

    run = VerificationRun(
        results=results,
        summary=summary,
        base_ref=settings.base_ref,
        head_ref=settings.head_ref,
    )
    logger.info(
        "Checked %d commit(s): %d failure(s), outcome %s",
        summary.commits_checked,
        summary.failures,
        run.outcome,
    )
    return run
