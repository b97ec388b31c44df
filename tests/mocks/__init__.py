"""Mock implementations of the sigguard ports.

These mocks match the Protocol definitions so that the trust list and the
commit range extractor can be tested without network access or git.
"""

from tests.mocks.identity_mocks import (
    MockIdentityProvider,
    make_collaborator,
    make_key,
)
from tests.mocks.repository_mocks import MockRepository

__all__ = [
    # Identity provider
    "MockIdentityProvider",
    "make_collaborator",
    "make_key",
    # Repository
    "MockRepository",
]
