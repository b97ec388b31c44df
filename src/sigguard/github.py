"""GitHub identity provider client.

Only the two endpoints the trust list needs are implemented:

- ``GET /repos/{owner}/{repo}/collaborators``
- ``GET /users/{username}/gpg_keys``

Both are paginated with ``per_page=100`` and the ``Link: rel="next"``
header is followed until exhausted.
"""

from __future__ import annotations

import http.client
import json
import logging
import re
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from sigguard.errors import CredentialsError, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"
PAGE_SIZE = 100

_NEXT_LINK_RE = re.compile(r'<([^>]+)>\s*;\s*rel="next"')


# =============================================================================
# Response types
# =============================================================================


@dataclass(frozen=True)
class Permissions:
    """Repository permission flags of a collaborator."""

    push: bool = False
    admin: bool = False

    @property
    def can_write(self) -> bool:
        return self.push or self.admin


@dataclass(frozen=True)
class Collaborator:
    """A repository collaborator.

    Attributes:
        login: Account name.
        id: Numeric account id (used for the ``id+login`` noreply alias).
        permissions: Permission flags, all False when the API omits them.
    """

    login: str
    id: int
    permissions: Permissions = field(default_factory=Permissions)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Collaborator":
        perms = data.get("permissions") or {}
        return cls(
            login=data["login"],
            id=int(data["id"]),
            permissions=Permissions(
                push=bool(perms.get("push", False)),
                admin=bool(perms.get("admin", False)),
            ),
        )


@dataclass(frozen=True)
class GpgEmail:
    email: str
    verified: bool = False


@dataclass(frozen=True)
class GpgKey:
    """A public GPG key registered with an account.

    Attributes:
        key_id: Primary key id.
        subkey_ids: Subkey ids as returned (may contain empty strings).
        emails: Email addresses attached to the key.
        raw_key: ASCII-armored public key, when the API provides it.
    """

    key_id: str
    subkey_ids: tuple[str, ...] = ()
    emails: tuple[GpgEmail, ...] = ()
    raw_key: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GpgKey":
        return cls(
            key_id=data.get("key_id") or "",
            subkey_ids=tuple(
                sub.get("key_id") or "" for sub in data.get("subkeys") or []
            ),
            emails=tuple(
                GpgEmail(email=item["email"], verified=bool(item.get("verified", False)))
                for item in data.get("emails") or []
                if item.get("email")
            ),
            raw_key=data.get("raw_key") or None,
        )

    @property
    def candidate_key_ids(self) -> list[str]:
        """Primary id plus every non-empty subkey id."""
        ids = [self.key_id] if self.key_id else []
        ids.extend(sub for sub in self.subkey_ids if sub)
        return ids

    @property
    def verified_emails(self) -> list[str]:
        return [item.email for item in self.emails if item.verified]


# =============================================================================
# Protocol
# =============================================================================


@runtime_checkable
class IdentityProvider(Protocol):
    """Source of collaborators and their public keys."""

    def list_collaborators(self, owner: str, repo: str) -> list[Collaborator]:
        ...

    def list_gpg_keys_for_user(self, login: str) -> list[GpgKey]:
        ...


# =============================================================================
# REST client
# =============================================================================


class GitHubClient:
    """Minimal GitHub REST client.

    Example:
        >>> client = GitHubClient(token=os.environ["GITHUB_TOKEN"])
        >>> [c.login for c in client.list_collaborators("octo", "repo")]
    """

    def __init__(
        self,
        token: str | None,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float | None = None,
    ) -> None:
        if not token:
            raise CredentialsError()
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": "sigguard",
        }

    def _request(self, url: str) -> tuple[Any, str | None]:
        """GET one page. Returns the decoded body and the next page URL."""
        request = urllib.request.Request(url, headers=self._headers())
        try:
            if self._timeout is None:
                response_cm = urllib.request.urlopen(request)
            else:
                response_cm = urllib.request.urlopen(request, timeout=self._timeout)
            with response_cm as response:
                body = json.loads(response.read().decode("utf-8") or "null")
                link = response.headers.get("Link")
        except urllib.error.HTTPError as e:
            error_body = ""
            try:
                error_body = e.read().decode("utf-8", errors="replace")
            except OSError:
                pass
            message = error_body or str(e.reason)
            try:
                message = json.loads(error_body).get("message", message)
            except (ValueError, AttributeError):
                pass
            raise ProviderError(message, status=e.code, url=url) from e
        except urllib.error.URLError as e:
            raise ProviderError(f"Network error: {e.reason}", url=url) from e
        except (OSError, http.client.HTTPException) as e:
            raise ProviderError(f"Network error: {e!r}", url=url) from e
        except ValueError as e:
            raise ProviderError(f"Invalid response: {e}", url=url) from e

        next_url = None
        if link:
            match = _NEXT_LINK_RE.search(link)
            if match:
                next_url = match.group(1)
        return body, next_url

    def _get_paginated(self, path: str) -> list[dict[str, Any]]:
        url: str | None = f"{self._api_url}{path}?per_page={PAGE_SIZE}"
        items: list[dict[str, Any]] = []
        while url:
            body, url = self._request(url)
            if not isinstance(body, list):
                raise ProviderError(f"Expected a JSON list from {path}")
            items.extend(body)
        return items

    def list_collaborators(self, owner: str, repo: str) -> list[Collaborator]:
        path = (
            f"/repos/{urllib.parse.quote(owner, safe='')}"
            f"/{urllib.parse.quote(repo, safe='')}/collaborators"
        )
        return [Collaborator.from_dict(item) for item in self._get_paginated(path)]

    def list_gpg_keys_for_user(self, login: str) -> list[GpgKey]:
        path = f"/users/{urllib.parse.quote(login, safe='')}/gpg_keys"
        return [GpgKey.from_dict(item) for item in self._get_paginated(path)]
