"""sigguard - Commit signature verification for pull-request pipelines."""

from sigguard.commits import CommitRangeExtractor, extract_commits, resolve_reference
from sigguard.config import Settings, load_settings, resolve_repository
from sigguard.errors import (
    ConfigurationError,
    CredentialsError,
    KeyringError,
    ProviderError,
    RepositoryError,
    SigguardError,
    SignatureIntrospectionError,
)
from sigguard.github import GitHubClient
from sigguard.keyring import GpgKeyring, InMemoryKeyring
from sigguard.models import (
    CommitInfo,
    ReasonKind,
    VerificationReason,
    VerificationResult,
    VerificationSummary,
)
from sigguard.pipeline import RunOutcome, VerificationRun, run_verification
from sigguard.report import VerificationReport
from sigguard.repository import GitRepository
from sigguard.signature import GitSignatureReader, InMemorySignatureReader
from sigguard.trust import GITHUB, PlatformIdentity, TrustListFetcher, fetch_trust_list
from sigguard.types import SignatureStatus, TrustMap
from sigguard.verifier import verify_commit, verify_commits

# Version: Single source of truth from pyproject.toml
try:
    from importlib.metadata import version, PackageNotFoundError

    __version__ = version("sigguard")
except PackageNotFoundError:
    # Package not installed (development mode)
    __version__ = "0.0.0.dev"

__all__ = [
    # Core API
    "fetch_trust_list",
    "extract_commits",
    "verify_commit",
    "verify_commits",
    "run_verification",
    "resolve_reference",
    # Components
    "TrustListFetcher",
    "CommitRangeExtractor",
    "GitHubClient",
    "GitRepository",
    "GitSignatureReader",
    "InMemorySignatureReader",
    "GpgKeyring",
    "InMemoryKeyring",
    "PlatformIdentity",
    "GITHUB",
    # Data model
    "TrustMap",
    "SignatureStatus",
    "CommitInfo",
    "ReasonKind",
    "VerificationReason",
    "VerificationResult",
    "VerificationSummary",
    "VerificationReport",
    "VerificationRun",
    "RunOutcome",
    # Configuration
    "Settings",
    "load_settings",
    "resolve_repository",
    # Errors
    "SigguardError",
    "ConfigurationError",
    "CredentialsError",
    "ProviderError",
    "RepositoryError",
    "SignatureIntrospectionError",
    "KeyringError",
    "__version__",
]
