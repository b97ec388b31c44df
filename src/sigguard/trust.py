"""Trust list construction.

Builds the :data:`~sigguard.types.TrustMap` of identities that must sign
their commits: every collaborator with push or admin permission, mapped
through each verified key email and the platform's noreply aliases to the
key ids they may sign with.

Privacy: only aggregate counts are logged at INFO, never logins or emails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sigguard.errors import KeyringError, ProviderError
from sigguard.github import Collaborator, GpgKey, IdentityProvider
from sigguard.keyring import GpgKeyring, KeyringPort
from sigguard.types import TrustMap

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlatformIdentity:
    """Hosting-platform identity conventions.

    Attributes:
        noreply_domain: Domain of the synthetic per-user noreply addresses.
        merge_signer_email: Identity the platform commits under itself.
        merge_signer_key_id: Key id of the platform's own signing key.
        merge_signer_key_url: Where the platform publishes that key.
    """

    noreply_domain: str
    merge_signer_email: str
    merge_signer_key_id: str
    merge_signer_key_url: str

    def noreply_aliases(self, collaborator: Collaborator) -> list[str]:
        return [
            f"{collaborator.login}@{self.noreply_domain}",
            f"{collaborator.id}+{collaborator.login}@{self.noreply_domain}",
        ]


GITHUB = PlatformIdentity(
    noreply_domain="users.noreply.github.com",
    merge_signer_email="noreply@github.com",
    merge_signer_key_id="B5690EEEBB952194",
    merge_signer_key_url="https://github.com/web-flow.gpg",
)


def add_trust(trust_map: TrustMap, email: str, key_ids: list[str]) -> None:
    """Append ``key_ids`` to the entry for ``email`` (no deduplication)."""
    trust_map.setdefault(email, []).extend(key_ids)


class TrustListFetcher:
    """Builds a trust map from the identity provider.

    Collaborators are processed one at a time. Key fetch and key import
    failures only affect the collaborator or key concerned; a failure to
    list collaborators propagates.

    Example:
        >>> fetcher = TrustListFetcher(GitHubClient(token), GpgKeyring())
        >>> trust_map = fetcher.fetch("owner", "repo")
    """

    def __init__(
        self,
        client: IdentityProvider,
        keyring: KeyringPort,
        platform: PlatformIdentity = GITHUB,
    ) -> None:
        self._client = client
        self._keyring = keyring
        self._platform = platform

    def fetch(self, owner: str, repo: str) -> TrustMap:
        logger.info("Fetching trusted collaborators")
        collaborators = self._client.list_collaborators(owner, repo)
        trusted = [c for c in collaborators if c.permissions.can_write]
        logger.info("Found %d collaborator(s) with write access", len(trusted))

        trust_map: TrustMap = {}
        total_keys = 0
        skipped = 0
        for collaborator in trusted:
            try:
                keys = self._client.list_gpg_keys_for_user(collaborator.login)
            except ProviderError as e:
                logger.warning("Skipping a collaborator whose GPG keys could not be fetched: %s", e)
                skipped += 1
                continue

            if not keys:
                logger.debug("Collaborator has no GPG keys")
                continue

            for key in keys:
                total_keys += 1
                self._add_key(trust_map, collaborator, key)

        logger.info("Processed %d GPG key(s)", total_keys)
        if skipped:
            logger.info("Skipped %d collaborator(s)", skipped)

        self._add_platform_signer(trust_map)
        logger.info("Built trust map with %d identity mapping(s)", len(trust_map))
        return trust_map

    def _add_key(self, trust_map: TrustMap, collaborator: Collaborator, key: GpgKey) -> None:
        # introspection reports the signing subkey, so subkeys are trusted too
        key_ids = key.candidate_key_ids
        for email in key.verified_emails:
            add_trust(trust_map, email, key_ids)
        for alias in self._platform.noreply_aliases(collaborator):
            add_trust(trust_map, alias, key_ids)

        if key.raw_key:
            try:
                self._keyring.import_key(key.raw_key)
            except KeyringError as e:
                logger.warning("Failed to import a collaborator key: %s", e)

    def _add_platform_signer(self, trust_map: TrustMap) -> None:
        platform = self._platform
        add_trust(trust_map, platform.merge_signer_email, [platform.merge_signer_key_id])
        try:
            armored = self._keyring.fetch_key(platform.merge_signer_key_url)
            self._keyring.import_key(armored)
        except KeyringError as e:
            logger.warning("Could not import the platform signing key: %s", e)
        else:
            logger.debug("Imported the platform signing key")


def fetch_trust_list(
    identity_client: IdentityProvider,
    owner: str,
    repo: str,
    keyring: KeyringPort | None = None,
    platform: PlatformIdentity = GITHUB,
) -> TrustMap:
    """Build the trust map for ``owner/repo``.

    Args:
        identity_client: Collaborator and key source.
        owner: Repository owner.
        repo: Repository name.
        keyring: Keyring receiving the public keys (``gpg`` when omitted).
        platform: Hosting platform conventions.

    Returns:
        Mapping of identity email to approved key ids.

    Raises:
        ProviderError: If the collaborator list cannot be fetched.
    """
    fetcher = TrustListFetcher(identity_client, keyring or GpgKeyring(), platform)
    return fetcher.fetch(owner, repo)
