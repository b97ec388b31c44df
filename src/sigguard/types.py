"""Type definitions for sigguard."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List

# Identity email (case as provided) -> approved key IDs. Duplicates allowed.
TrustMap = Dict[str, List[str]]


class SignatureStatus(str, Enum):
    """Signature verification status as reported by ``git show --format=%G?``."""

    GOOD = "G"
    BAD = "B"
    UNKNOWN = "U"
    EXPIRED = "X"
    EXPIRED_KEY = "Y"
    REVOKED = "R"
    NONE = "N"

    @classmethod
    def from_code(cls, code: str) -> "SignatureStatus":
        """Map a single-character status code to a status.

        Unrecognized codes (``E`` included) and the empty string map to NONE.
        """
        try:
            return cls(code.strip())
        except ValueError:
            return cls.NONE

    @property
    def is_valid(self) -> bool:
        """Whether the signature itself checked out (validity of key aside)."""
        return self in (SignatureStatus.GOOD, SignatureStatus.UNKNOWN)

    @property
    def is_broken(self) -> bool:
        """Whether a signature is present but bad, expired or revoked."""
        return self in (
            SignatureStatus.BAD,
            SignatureStatus.EXPIRED,
            SignatureStatus.EXPIRED_KEY,
            SignatureStatus.REVOKED,
        )
