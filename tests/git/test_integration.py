"""End-to-end tests against a real git binary in a temporary repository."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from vcsflow.files.writer import FileWriteService
from vcsflow.git.models import ConflictResult
from vcsflow.git.runner import CommandRunner
from vcsflow.git.service import GitService

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def _git(repo: Path, *args: str) -> str:
    return subprocess.run(
        ["git", *args], cwd=repo, check=True, capture_output=True, text=True
    ).stdout.strip()


@pytest.fixture
def repo(tmp_path):
    path = tmp_path / "repo"
    path.mkdir()
    _git(path, "init", "-q", "-b", "main")
    _git(path, "config", "user.name", "Test User")
    _git(path, "config", "user.email", "test@example.com")
    _git(path, "config", "commit.gpgsign", "false")
    (path / "app.txt").write_text("line one\n")
    _git(path, "add", "app.txt")
    _git(path, "commit", "-q", "-m", "initial")
    return path


@pytest.fixture
def service(tmp_path):
    return GitService(
        CommandRunner(timeout=30),
        writer=FileWriteService(tmp_path / "backups"),
    )


@pytest.fixture
def conflicted_repo(repo):
    """Repo with diverging edits to app.txt on main and feature."""
    _git(repo, "checkout", "-q", "-b", "feature")
    (repo / "app.txt").write_text("feature line\n")
    _git(repo, "commit", "-q", "-am", "feature change")
    _git(repo, "checkout", "-q", "main")
    (repo / "app.txt").write_text("main line\n")
    _git(repo, "commit", "-q", "-am", "main change")
    return repo


def _diverge(repo: Path, rel_path: str) -> None:
    """Commit conflicting edits to rel_path on main and on a feature branch."""
    target = repo / rel_path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text("base\n", encoding="utf-8")
    _git(repo, "add", "--", rel_path)
    _git(repo, "commit", "-q", "-m", "add file")
    _git(repo, "checkout", "-q", "-b", "feature")
    target.write_text("feature\n", encoding="utf-8")
    _git(repo, "commit", "-q", "-am", "feature change")
    _git(repo, "checkout", "-q", "main")
    target.write_text("main\n", encoding="utf-8")
    _git(repo, "commit", "-q", "-am", "main change")


class TestWorkflow:
    async def test_clean_status(self, service, repo):
        result = await service.status(repo_path=repo)
        assert result.success is True
        assert result.status.branch == "main"
        assert result.status.is_clean is True
        assert result.status.raw_status

    async def test_add_and_commit(self, service, repo):
        (repo / "new.txt").write_text("hello\n")

        added = await service.add(["new.txt"], repo_path=repo)
        assert added.success is True
        assert added.staged_files == ["new.txt"]

        committed = await service.commit("add new file", repo_path=repo)
        assert committed.success is True
        assert committed.commit_hash == _git(repo, "rev-parse", "HEAD")
        assert committed.commit_hash.startswith(committed.short_hash)

        log = await service.log(repo_path=repo, max_count=1)
        assert log.commits[0].message == "add new file"
        assert log.commits[0].email == "test@example.com"

    async def test_branch_and_checkout(self, service, repo):
        created = await service.branch(repo_path=repo, new_branch="topic")
        assert created.success is True

        switched = await service.checkout("topic", repo_path=repo)
        assert switched.current_branch == "topic"

        listing = await service.branch(repo_path=repo)
        assert listing.current_branch == "topic"
        assert {b.name for b in listing.branches} == {"main", "topic"}


class TestConflicts:
    async def test_merge_conflict_then_abort(self, service, conflicted_repo):
        result = await service.merge(
            "feature", repo_path=conflicted_repo, abort_on_conflict=True
        )
        assert isinstance(result, ConflictResult)
        assert result.aborted is True
        assert result.conflicted_files == ["app.txt"]

        status = await service.status(repo_path=conflicted_repo)
        assert status.status.is_clean is True

    async def test_resolve_and_continue(self, service, conflicted_repo):
        merged = await service.merge("feature", repo_path=conflicted_repo)
        assert merged.has_conflicts is True

        details = await service.get_conflicts(repo_path=conflicted_repo)
        section = details.conflicts[0].sections[0]
        assert section.ours == "main line"
        assert section.theirs == "feature line"

        refused = await service.continue_merge(repo_path=conflicted_repo)
        assert isinstance(refused, ConflictResult)
        assert refused.success is False

        resolved = await service.resolve_conflict(
            "app.txt",
            "manual",
            repo_path=conflicted_repo,
            resolved_content="main line\nfeature line\n",
        )
        assert resolved.success is True

        finished = await service.continue_merge(repo_path=conflicted_repo)
        assert finished.success is True
        assert (conflicted_repo / "app.txt").read_text() == "main line\nfeature line\n"
        assert (await service.status(repo_path=conflicted_repo)).status.is_clean

    async def test_resolve_theirs(self, service, conflicted_repo):
        await service.merge("feature", repo_path=conflicted_repo)
        resolved = await service.resolve_conflict(
            "app.txt", "theirs", repo_path=conflicted_repo
        )
        assert resolved.success is True
        assert (conflicted_repo / "app.txt").read_text() == "feature line\n"


class TestStashAndRemotes:
    async def test_stash_list(self, service, repo):
        (repo / "app.txt").write_text("dirty\n")
        pushed = await service.stash(repo_path=repo, message="wip work")
        assert pushed.success is True

        listing = await service.stash(repo_path=repo, operation="list")
        assert len(listing.stashes) == 1
        assert listing.stashes[0].ref == "stash@{0}"
        assert listing.stashes[0].branch == "main"
        assert listing.stashes[0].message == "wip work"

    async def test_remote_add_and_list(self, service, repo, tmp_path):
        url = str(tmp_path / "upstream.git")
        added = await service.remote(repo_path=repo, add_name="upstream", add_url=url)
        assert added.success is True

        listing = await service.remote(repo_path=repo)
        assert [(r.name, r.direction) for r in listing.remotes] == [
            ("upstream", "fetch"),
            ("upstream", "push"),
        ]


class TestConflictPaths:
    async def test_non_ascii_file_name(self, service, repo):
        _diverge(repo, "café.txt")
        merged = await service.merge("feature", repo_path=repo)
        assert merged.conflicted_files == ["café.txt"]

        status = await service.status(repo_path=repo)
        assert status.status.conflicted == ["café.txt"]

        details = await service.get_conflicts(repo_path=repo)
        assert details.conflicted_files == ["café.txt"]
        assert details.conflicts[0].sections[0].theirs == "feature"

        resolved = await service.resolve_conflict("café.txt", "ours", repo_path=repo)
        assert resolved.success is True
        assert (repo / "café.txt").read_text(encoding="utf-8") == "main\n"

    async def test_conflicts_from_subdirectory(self, service, repo):
        _diverge(repo, "sub/x.txt")
        await service.merge("feature", repo_path=repo)
        sub = repo / "sub"

        status = await service.status(repo_path=sub)
        assert status.status.conflicted == ["sub/x.txt"]

        details = await service.get_conflicts(repo_path=sub)
        assert details.conflicted_files == ["sub/x.txt"]
        assert len(details.conflicts) == 1
        assert details.conflicts[0].sections[0].ours == "main"

        resolved = await service.resolve_conflict("sub/x.txt", "theirs", repo_path=sub)
        assert resolved.success is True
        assert (sub / "x.txt").read_text(encoding="utf-8") == "feature\n"
        assert (await service.get_conflicts(repo_path=sub)).has_conflicts is False
