"""Local verification keyring.

The keyring receives the public keys of trusted collaborators so that the
signature introspection step can check their signatures. Two implementations
are provided:

- :class:`GpgKeyring` shells out to ``gpg --batch --import``.
- :class:`InMemoryKeyring` records imports for deterministic tests.

Failures raise :class:`~sigguard.errors.KeyringError` subclasses; callers in
the trust pipeline log them and carry on.
"""

from __future__ import annotations

import http.client
import logging
import subprocess
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Protocol, Sequence, runtime_checkable

from sigguard.errors import KeyFetchError, KeyImportError

logger = logging.getLogger(__name__)


# =============================================================================
# Protocol
# =============================================================================


@runtime_checkable
class KeyringPort(Protocol):
    """Imports public key material and fetches published keys."""

    def import_key(self, armored: str) -> None:
        """Import ASCII-armored public key material.

        Raises:
            KeyImportError: If the keyring rejects the material.
        """
        ...

    def fetch_key(self, url: str) -> str:
        """Download ASCII-armored key material from an HTTPS URL.

        Raises:
            KeyFetchError: If the URL is not HTTPS or the download fails.
        """
        ...


def _require_https(url: str) -> None:
    if urllib.parse.urlparse(url).scheme != "https":
        raise KeyFetchError(url, "only https URLs are allowed")


# =============================================================================
# GnuPG implementation
# =============================================================================


class GpgKeyring:
    """Keyring backed by the ``gpg`` binary.

    Example:
        >>> keyring = GpgKeyring(homedir="/tmp/ci-gnupg")
        >>> keyring.import_key(armored)
    """

    def __init__(
        self,
        program: str = "gpg",
        *,
        homedir: str | None = None,
        http_timeout: float | None = None,
    ) -> None:
        self._program = program
        self._homedir = homedir
        self._http_timeout = http_timeout

    def _command(self) -> list[str]:
        cmd = [self._program, "--batch"]
        if self._homedir:
            cmd.extend(["--homedir", self._homedir])
        cmd.append("--import")
        return cmd

    def import_key(self, armored: str) -> None:
        cmd = self._command()
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise KeyImportError(f"could not start {self._program}: {e}") from e

        try:
            _, stderr = proc.communicate(armored.encode("utf-8"))
        except (OSError, ValueError) as e:
            proc.kill()
            proc.wait()
            raise KeyImportError(f"{self._program} import failed: {e}") from e

        if proc.returncode != 0:
            # gpg diagnostics name the key's user ids; keep them out of the message
            logger.debug("%s wrote %d byte(s) to stderr", self._program, len(stderr))
            raise KeyImportError(f"{self._program} exited with {proc.returncode}")
        logger.debug("Imported key material into gpg keyring")

    def fetch_key(self, url: str) -> str:
        _require_https(url)
        request = urllib.request.Request(url, headers={"User-Agent": "sigguard"})
        try:
            if self._http_timeout is None:
                response_cm = urllib.request.urlopen(request)
            else:
                response_cm = urllib.request.urlopen(request, timeout=self._http_timeout)
            with response_cm as response:
                return response.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            raise KeyFetchError(url, f"HTTP {e.code}") from e
        except urllib.error.URLError as e:
            raise KeyFetchError(url, f"network error: {e.reason}") from e
        except (OSError, http.client.HTTPException) as e:
            raise KeyFetchError(url, f"read failed: {e!r}") from e
        except UnicodeDecodeError as e:
            raise KeyFetchError(url, "response is not UTF-8 text") from e


# =============================================================================
# In-memory implementation
# =============================================================================


@dataclass
class InMemoryKeyring:
    """Keyring fake that records imports instead of touching gpg.

    Attributes:
        published: URL -> armored key returned by :meth:`fetch_key`.
        reject: Armored blocks that :meth:`import_key` refuses.
        imported: Blocks successfully imported, in call order.
    """

    published: dict[str, str] = field(default_factory=dict)
    reject: Sequence[str] = ()
    imported: list[str] = field(default_factory=list)
    fetched: list[str] = field(default_factory=list)

    def import_key(self, armored: str) -> None:
        if armored in self.reject:
            raise KeyImportError("key rejected by keyring")
        self.imported.append(armored)

    def fetch_key(self, url: str) -> str:
        _require_https(url)
        self.fetched.append(url)
        try:
            return self.published[url]
        except KeyError:
            raise KeyFetchError(url, "HTTP 404") from None
