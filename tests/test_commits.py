"""Tests for commit range extraction."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from sigguard.commits import CommitRangeExtractor, extract_commits, resolve_reference
from sigguard.errors import GitCommandError, MergeBaseError, ReferenceResolutionError
from sigguard.repository import CommitObject, GitRepository, is_direct_reference_name
from sigguard.signature import InMemorySignatureReader, SignatureInfo
from sigguard.types import SignatureStatus
from tests.mocks import MockRepository


@pytest.fixture
def linear_repo() -> tuple[MockRepository, list[str]]:
    """c1 <- c2 <- c3, HEAD and main at c3."""
    repo = MockRepository()
    c1 = repo.commit("initial")
    c2 = repo.commit("second\n\nbody text", [c1], author_email="bob@example.com", author_name="Bob")
    c3 = repo.commit("third", [c2])
    repo.set_ref("HEAD", c3)
    repo.set_ref("refs/heads/main", c3)
    return repo, [c1, c2, c3]


# =============================================================================
# Reference Resolution Tests
# =============================================================================


class TestResolveReference:
    def test_direct_reference(self, linear_repo):
        repo, (_, _, c3) = linear_repo
        assert resolve_reference(repo, "HEAD") == c3

    def test_branch_name(self, linear_repo):
        repo, (_, _, c3) = linear_repo
        assert resolve_reference(repo, "main") == c3

    def test_remote_branch(self, linear_repo):
        repo, (c1, _, _) = linear_repo
        repo.set_ref("refs/remotes/origin/main", c1)
        assert resolve_reference(repo, "origin/main") == c1

    def test_tag(self, linear_repo):
        repo, (_, c2, _) = linear_repo
        repo.set_ref("refs/tags/v1.0.0", c2)
        assert resolve_reference(repo, "v1.0.0") == c2

    def test_raw_object_id(self, linear_repo):
        repo, (c1, _, _) = linear_repo
        assert resolve_reference(repo, c1) == c1
        assert resolve_reference(repo, c1.upper()) == c1

    def test_branch_wins_over_tag(self, linear_repo):
        repo, (c1, c2, _) = linear_repo
        repo.set_ref("refs/heads/release", c1)
        repo.set_ref("refs/tags/release", c2)
        assert resolve_reference(repo, "release") == c1

    def test_unknown_reference(self, linear_repo):
        repo, _ = linear_repo
        with pytest.raises(ReferenceResolutionError) as exc_info:
            resolve_reference(repo, "does-not-exist")
        assert exc_info.value.ref == "does-not-exist"
        assert "does-not-exist" in str(exc_info.value)

    def test_unknown_object_id(self, linear_repo):
        repo, _ = linear_repo
        with pytest.raises(ReferenceResolutionError):
            resolve_reference(repo, "f" * 40)


class TestDirectReferenceNames:
    @pytest.mark.parametrize("name", ["HEAD", "FETCH_HEAD", "ORIG_HEAD", "refs/heads/main"])
    def test_direct(self, name):
        assert is_direct_reference_name(name)

    @pytest.mark.parametrize("name", ["main", "origin/main", "head", "v1.0", "XHEAD", "_HEAD_"])
    def test_not_direct(self, name):
        assert not is_direct_reference_name(name)

    def test_short_branch_name_not_looked_up_directly(self, linear_repo):
        repo, (c1, _, _) = linear_repo
        repo.set_ref("main", c1)
        assert repo.lookup_reference("main") is None
        assert repo.lookup_reference("HEAD") is not None


# =============================================================================
# Range Extraction Tests (in-memory graph)
# =============================================================================


class TestCommitRangeExtractor:
    def test_linear_range_newest_first(self, linear_repo):
        """Commits after the merge base, newest first."""
        repo, (c1, c2, c3) = linear_repo
        commits = extract_commits(repo, c1, "HEAD", InMemorySignatureReader())
        assert [c.sha for c in commits] == [c3, c2]

    def test_commit_fields(self, linear_repo):
        repo, (c1, c2, _) = linear_repo
        signatures = InMemorySignatureReader(
            {c2: SignatureInfo(SignatureStatus.GOOD, "4AEE18F83AFDEB23", "Bob")}
        )
        commits = extract_commits(repo, c1, "HEAD", signatures)

        second = commits[1]
        assert second.subject == "second"
        assert second.author_email == "bob@example.com"
        assert second.author_name == "Bob"
        assert second.signature_status is SignatureStatus.GOOD
        assert second.key_id == "4AEE18F83AFDEB23"
        assert second.signer == "Bob"

        third = commits[0]
        assert third.signature_status is SignatureStatus.NONE
        assert third.key_id is None

    def test_empty_range(self, linear_repo):
        repo, _ = linear_repo
        signatures = InMemorySignatureReader()
        assert extract_commits(repo, "main", "HEAD", signatures) == []
        assert signatures.calls == []

    def test_merge_commits_excluded(self):
        repo = MockRepository()
        c1 = repo.commit("initial")
        f1 = repo.commit("feature work", [c1])
        m1 = repo.commit("main work", [c1])
        merge = repo.commit("Merge branch 'feature'", [m1, f1])
        repo.set_ref("HEAD", merge)

        signatures = InMemorySignatureReader()
        commits = extract_commits(repo, c1, "HEAD", signatures)

        assert {c.sha for c in commits} == {f1, m1}
        assert merge not in signatures.calls

    def test_range_starts_at_merge_base(self):
        """A base branch that moved on contributes no commits."""
        repo = MockRepository()
        c1 = repo.commit("initial")
        main2 = repo.commit("main moved on", [c1])
        f1 = repo.commit("feature one", [c1])
        f2 = repo.commit("feature two", [f1])
        repo.set_ref("refs/heads/main", main2)
        repo.set_ref("refs/heads/feature", f2)

        commits = extract_commits(repo, "main", "feature", InMemorySignatureReader())
        assert [c.sha for c in commits] == [f2, f1]

    def test_unrelated_histories(self):
        repo = MockRepository()
        a = repo.commit("root a")
        b = repo.commit("root b")
        repo.set_ref("refs/heads/a", a)
        repo.set_ref("refs/heads/b", b)

        with pytest.raises(MergeBaseError):
            CommitRangeExtractor(repo, InMemorySignatureReader()).extract("a", "b")

    def test_unresolvable_head(self, linear_repo):
        repo, (c1, _, _) = linear_repo
        with pytest.raises(ReferenceResolutionError):
            extract_commits(repo, c1, "nope", InMemorySignatureReader())


class TestCommitObject:
    def test_summary_is_first_line(self):
        obj = CommitObject("a" * 40, (), "n", "e", "\nSubject line  \n\nBody\n")
        assert obj.summary == "Subject line"

    def test_empty_message(self):
        assert CommitObject("a" * 40, (), "n", "e", "").summary == ""

    def test_is_merge(self):
        assert CommitObject("a" * 40, ("b", "c"), "n", "e", "m").is_merge
        assert not CommitObject("a" * 40, ("b",), "n", "e", "m").is_merge


# =============================================================================
# Real git Tests
# =============================================================================


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


class GitFixture:
    """Builds a throwaway repository with the git binary."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._git("init", "-q")
        self._git("checkout", "-q", "-b", "main")

    def _git(self, *args: str, email: str = "dev@example.com", name: str = "Dev") -> str:
        proc = subprocess.run(
            [
                "git",
                "-c", f"user.name={name}",
                "-c", f"user.email={email}",
                "-c", "commit.gpgsign=false",
                *args,
            ],
            cwd=self.path,
            capture_output=True,
            text=True,
            check=True,
        )
        return proc.stdout.strip()

    def commit(self, message: str, **author: str) -> str:
        self._git("commit", "-q", "--allow-empty", "-m", message, **author)
        return self._git("rev-parse", "HEAD")

    def run(self, *args: str) -> str:
        return self._git(*args)


@pytest.fixture
def git_repo(tmp_path, monkeypatch) -> GitFixture:
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    repo_dir = tmp_path / "repo"
    repo_dir.mkdir()
    return GitFixture(repo_dir)


@requires_git
class TestGitRepository:
    def test_linear_range(self, git_repo):
        """extract_commits(repo, c1, "HEAD") == [c3, c2]."""
        c1 = git_repo.commit("initial")
        c2 = git_repo.commit("second", email="bob@example.com", name="Bob")
        c3 = git_repo.commit("third")

        commits = extract_commits(GitRepository(git_repo.path), c1, "HEAD")

        assert [c.sha for c in commits] == [c3, c2]
        assert commits[1].subject == "second"
        assert commits[1].author_email == "bob@example.com"
        assert commits[1].author_name == "Bob"
        assert commits[0].signature_status is SignatureStatus.NONE
        assert commits[0].key_id is None

    def test_merge_excluded(self, git_repo):
        c1 = git_repo.commit("initial")
        git_repo.run("checkout", "-q", "-b", "feature")
        f1 = git_repo.commit("feature work")
        git_repo.run("checkout", "-q", "main")
        m1 = git_repo.commit("main work")
        git_repo.run("merge", "-q", "--no-ff", "--no-edit", "feature")

        commits = extract_commits(GitRepository(git_repo.path), c1, "HEAD")

        assert {c.sha for c in commits} == {f1, m1}

    def test_branch_and_tag_resolution(self, git_repo):
        c1 = git_repo.commit("initial")
        git_repo.run("tag", "-a", "v1", "-m", "release")
        c2 = git_repo.commit("second")
        repo = GitRepository(git_repo.path)

        assert resolve_reference(repo, "main") == c2
        assert resolve_reference(repo, "v1") == c1
        assert resolve_reference(repo, c1) == c1
        assert extract_commits(repo, "v1", "main")[0].sha == c2

    def test_head_resolves(self, git_repo):
        git_repo.commit("initial")
        c2 = git_repo.commit("second")
        repo = GitRepository(git_repo.path)

        assert repo.lookup_reference("HEAD") == c2
        assert resolve_reference(repo, "HEAD") == c2

    def test_unknown_reference(self, git_repo):
        git_repo.commit("initial")
        with pytest.raises(ReferenceResolutionError):
            resolve_reference(GitRepository(git_repo.path), "missing-branch")

    def test_read_commit(self, git_repo):
        git_repo.commit("initial")
        sha = git_repo.commit("Subject here\n\nLonger body", email="c@example.com", name="C D")

        obj = GitRepository(git_repo.path).read_commit(sha)

        assert obj.sha == sha
        assert obj.summary == "Subject here"
        assert obj.author_email == "c@example.com"
        assert obj.author_name == "C D"
        assert len(obj.parents) == 1

    def test_walk_failure_raises(self, git_repo):
        git_repo.commit("initial")
        with pytest.raises(GitCommandError) as exc_info:
            GitRepository(git_repo.path).walk("f" * 40, [])
        assert exc_info.value.returncode not in (None, 0)

    def test_missing_git_binary(self, tmp_path):
        repo = GitRepository(tmp_path, program=str(tmp_path / "no-such-git"))
        with pytest.raises(GitCommandError) as exc_info:
            repo.walk("HEAD", [])
        assert exc_info.value.returncode is None
