"""Tests for the GitHub REST client, against a local HTTP server."""

from __future__ import annotations

import http.client
import io
import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

import pytest

from sigguard.errors import CredentialsError, ProviderError
from sigguard.github import Collaborator, GitHubClient, GpgKey, IdentityProvider
from sigguard.keyring import InMemoryKeyring
from sigguard.trust import TrustListFetcher

ALICE_KEY = {
    "key_id": "4AEE18F83AFDEB23",
    "subkeys": [{"key_id": "B1C2D3E4F5A6B7C8"}, {"key_id": None}],
    "emails": [
        {"email": "alice@example.com", "verified": True},
        {"email": "alice@old.example", "verified": False},
    ],
    "raw_key": "-----BEGIN PGP PUBLIC KEY BLOCK-----",
}


class _Handler(BaseHTTPRequestHandler):
    requests: list[dict] = []

    def log_message(self, format, *args):  # noqa: A002
        pass

    def _send(self, status: int, body, headers: dict[str, str] | None = None) -> None:
        payload = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        for key, value in (headers or {}).items():
            self.send_header(key, value)
        self.end_headers()
        self.wfile.write(payload)

    def do_GET(self):  # noqa: N802
        self.requests.append({"path": self.path, "headers": self.headers})
        url = urlsplit(self.path)
        base = f"http://{self.server.server_address[0]}:{self.server.server_address[1]}"

        if url.path == "/repos/octo/widgets/collaborators":
            if "page=2" in url.query:
                self._send(200, [{"login": "bob", "id": 2, "permissions": {"push": False}}])
            else:
                next_url = f"{base}/repos/octo/widgets/collaborators?per_page=100&page=2"
                self._send(
                    200,
                    [{"login": "alice", "id": 1, "permissions": {"push": True, "admin": False}}],
                    {"Link": f'<{next_url}>; rel="next", <{next_url}>; rel="last"'},
                )
        elif url.path == "/repos/octo/private/collaborators":
            self._send(401, {"message": "Bad credentials"})
        elif url.path == "/users/alice/gpg_keys":
            self._send(200, [ALICE_KEY])
        elif url.path == "/users/ghost/gpg_keys":
            self._send(404, {"message": "Not Found"})
        elif url.path == "/users/garbled/gpg_keys":
            self._send(200, b"<html>not json</html>")
        elif url.path == "/users/object/gpg_keys":
            self._send(200, {"unexpected": True})
        else:
            self._send(500, b"boom")


@pytest.fixture
def api_url():
    _Handler.requests = []
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


@pytest.fixture
def client(api_url) -> GitHubClient:
    return GitHubClient("test-token", api_url=api_url, timeout=10)


# =============================================================================
# Response Type Tests
# =============================================================================


class TestResponseTypes:
    def test_collaborator_from_dict(self):
        collaborator = Collaborator.from_dict(
            {"login": "alice", "id": 1, "permissions": {"push": True, "admin": False}}
        )
        assert collaborator.login == "alice"
        assert collaborator.id == 1
        assert collaborator.permissions.can_write

    def test_collaborator_missing_permissions(self):
        collaborator = Collaborator.from_dict({"login": "x", "id": "5"})
        assert collaborator.id == 5
        assert not collaborator.permissions.can_write

    def test_gpg_key_from_dict(self):
        key = GpgKey.from_dict(ALICE_KEY)
        assert key.candidate_key_ids == ["4AEE18F83AFDEB23", "B1C2D3E4F5A6B7C8"]
        assert key.verified_emails == ["alice@example.com"]
        assert key.raw_key.startswith("-----BEGIN")

    def test_gpg_key_sparse(self):
        key = GpgKey.from_dict({"key_id": None, "subkeys": None, "emails": None})
        assert key.candidate_key_ids == []
        assert key.verified_emails == []
        assert key.raw_key is None


# =============================================================================
# Client Tests
# =============================================================================


class TestGitHubClient:
    def test_requires_token(self):
        with pytest.raises(CredentialsError):
            GitHubClient("")
        with pytest.raises(CredentialsError):
            GitHubClient(None)

    def test_satisfies_protocol(self, client):
        assert isinstance(client, IdentityProvider)

    def test_headers(self, client):
        client.list_gpg_keys_for_user("alice")
        headers = _Handler.requests[0]["headers"]

        assert headers["Accept"] == "application/vnd.github+json"
        assert headers["Authorization"] == "Bearer test-token"
        assert headers["X-GitHub-Api-Version"] == "2022-11-28"
        assert headers["User-Agent"] == "sigguard"

    def test_collaborators_follow_pagination(self, client):
        collaborators = client.list_collaborators("octo", "widgets")

        assert [c.login for c in collaborators] == ["alice", "bob"]
        assert collaborators[0].permissions.push
        assert not collaborators[1].permissions.can_write
        paths = [r["path"] for r in _Handler.requests]
        assert paths == [
            "/repos/octo/widgets/collaborators?per_page=100",
            "/repos/octo/widgets/collaborators?per_page=100&page=2",
        ]

    def test_gpg_keys(self, client):
        keys = client.list_gpg_keys_for_user("alice")
        assert len(keys) == 1
        assert keys[0].key_id == "4AEE18F83AFDEB23"

    def test_error_message_from_body(self, client):
        with pytest.raises(ProviderError) as exc_info:
            client.list_collaborators("octo", "private")
        assert exc_info.value.status == 401
        assert str(exc_info.value) == "HTTP 401: Bad credentials"

    def test_not_found(self, client):
        with pytest.raises(ProviderError) as exc_info:
            client.list_gpg_keys_for_user("ghost")
        assert exc_info.value.status == 404

    def test_invalid_json(self, client):
        with pytest.raises(ProviderError) as exc_info:
            client.list_gpg_keys_for_user("garbled")
        assert "Invalid response" in str(exc_info.value)

    def test_non_list_body(self, client):
        with pytest.raises(ProviderError) as exc_info:
            client.list_gpg_keys_for_user("object")
        assert "Expected a JSON list" in str(exc_info.value)

    def test_server_error_without_json(self, client):
        with pytest.raises(ProviderError) as exc_info:
            client.list_gpg_keys_for_user("other")
        assert exc_info.value.status == 500
        assert "boom" in str(exc_info.value)

    def test_path_segments_are_quoted(self, client):
        with pytest.raises(ProviderError):
            client.list_gpg_keys_for_user("a/b")
        assert _Handler.requests[0]["path"] == "/users/a%2Fb/gpg_keys?per_page=100"

    def test_network_error(self):
        client = GitHubClient("t", api_url="http://127.0.0.1:1", timeout=2)
        with pytest.raises(ProviderError) as exc_info:
            client.list_gpg_keys_for_user("alice")
        assert exc_info.value.status is None
        assert "Network error" in str(exc_info.value)


# =============================================================================
# Interrupted Response Tests
# =============================================================================


class _InterruptedResponse(io.BytesIO):
    """Response whose body read fails after the status line arrived."""

    def __init__(self, error: BaseException) -> None:
        super().__init__()
        self.headers: dict[str, str] = {}
        self._error = error

    def read(self, *args):
        raise self._error


class TestInterruptedResponses:
    @pytest.mark.parametrize(
        "error",
        [
            TimeoutError("The read operation timed out"),
            ConnectionResetError("Connection reset by peer"),
            http.client.IncompleteRead(b"[{", 512),
        ],
    )
    def test_read_failure_is_provider_error(self, monkeypatch, error):
        monkeypatch.setattr(
            "urllib.request.urlopen", lambda request, **kwargs: _InterruptedResponse(error)
        )
        client = GitHubClient("t", api_url="https://api.example", timeout=1.0)

        with pytest.raises(ProviderError) as exc_info:
            client.list_gpg_keys_for_user("alice")
        assert exc_info.value.status is None
        assert exc_info.value.url == "https://api.example/users/alice/gpg_keys?per_page=100"

    def test_one_collaborator_read_failure_is_skipped(self, monkeypatch):
        collaborators = [
            {"login": "alice", "id": 1, "permissions": {"push": True}},
            {"login": "bob", "id": 2, "permissions": {"push": True}},
        ]

        def fake_urlopen(request, **kwargs):
            url = request.full_url
            if "/collaborators" in url:
                response = io.BytesIO(json.dumps(collaborators).encode("utf-8"))
                response.headers = {}
                return response
            if "/users/bob/" in url:
                return _InterruptedResponse(ConnectionResetError("reset"))
            response = io.BytesIO(json.dumps([ALICE_KEY]).encode("utf-8"))
            response.headers = {}
            return response

        monkeypatch.setattr("urllib.request.urlopen", fake_urlopen)
        client = GitHubClient("t", api_url="https://api.example")

        trust_map = TrustListFetcher(client, InMemoryKeyring()).fetch("octo", "widgets")

        assert trust_map["alice@example.com"] == ["4AEE18F83AFDEB23", "B1C2D3E4F5A6B7C8"]
        assert "2+bob@users.noreply.github.com" not in trust_map
