"""Exception hierarchy for sigguard.

Policy failures (an impersonation attempt, a key mismatch) are never raised;
they are ordinary :class:`~sigguard.models.VerificationResult` values. The
exceptions below are for conditions that stop a run or that a component
recovers from locally.
"""

from __future__ import annotations

from typing import Sequence


class SigguardError(Exception):
    """Base exception for sigguard errors."""

    pass


# =============================================================================
# Configuration
# =============================================================================


class ConfigurationError(SigguardError):
    """Raised when settings are missing or cannot be loaded."""

    pass


class CredentialsError(ConfigurationError):
    """Raised when no API token is available for the identity provider."""

    def __init__(self, variable: str = "GITHUB_TOKEN") -> None:
        self.variable = variable
        super().__init__(f"No identity provider credentials found (set {variable})")


# =============================================================================
# Identity provider
# =============================================================================


class ProviderError(SigguardError):
    """Raised when a request to the identity provider fails."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        url: str | None = None,
    ) -> None:
        self.status = status
        self.url = url
        msg = message
        if status is not None:
            msg = f"HTTP {status}: {message}"
        super().__init__(msg)


# =============================================================================
# Repository
# =============================================================================


class RepositoryError(SigguardError):
    """Base class for version-control repository failures."""

    pass


class ReferenceResolutionError(RepositoryError):
    """Raised when a revision cannot be resolved to a commit."""

    def __init__(self, ref: str) -> None:
        self.ref = ref
        super().__init__(f"Could not resolve reference: {ref}")


class MergeBaseError(RepositoryError):
    """Raised when two commits have no computable merge base."""

    def __init__(self, base: str, head: str) -> None:
        self.base = base
        self.head = head
        super().__init__(f"Failed to find merge base of {base[:8]} and {head[:8]}")


class GitCommandError(RepositoryError):
    """Raised when a git invocation exits non-zero or cannot be spawned."""

    def __init__(self, args: Sequence[str], returncode: int | None, stderr: str = "") -> None:
        self.args_ = list(args)
        self.returncode = returncode
        self.stderr = stderr
        if returncode is None:
            msg = f"git {' '.join(self.args_)} could not be started: {stderr}"
        else:
            msg = f"git {' '.join(self.args_)} failed ({returncode}): {stderr}"
        super().__init__(msg)


class SignatureIntrospectionError(SigguardError):
    """Raised when the signature introspection command cannot be run."""

    def __init__(self, sha: str, reason: str) -> None:
        self.sha = sha
        self.reason = reason
        super().__init__(f"Failed to read signature of {sha[:8]}: {reason}")


# =============================================================================
# Keyring
# =============================================================================


class KeyringError(SigguardError):
    """Base class for keyring failures. Always recovered by callers."""

    pass


class KeyImportError(KeyringError):
    """Raised when key material cannot be imported."""

    pass


class KeyFetchError(KeyringError):
    """Raised when a published key cannot be downloaded."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch key from {url}: {reason}")
