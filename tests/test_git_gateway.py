"""Tests for the git subprocess gateway against a real temporary repository."""

import subprocess

import pytest
from conftest import requires_git

from diffgate.core.errors import ExternalCommandError
from diffgate.services.git_gateway import GitCommandGateway


@pytest.fixture
def git_gateway(git_repo):
    return GitCommandGateway(git_repo, timeout=30)


@pytest.mark.asyncio
async def test_clean_repo_has_empty_diffs(git_gateway):
    assert await git_gateway.diff_unstaged() == ""
    assert await git_gateway.diff_staged() == ""


@pytest.mark.asyncio
async def test_stage_and_unstage_move_file_between_diffs(git_gateway, git_repo):
    (git_repo / "a.txt").write_text("one\nmore\n")

    unstaged = await git_gateway.diff_unstaged()
    assert "diff --git a/a.txt b/a.txt" in unstaged
    assert "+more" in unstaged
    assert "\x1b[" not in unstaged

    await git_gateway.stage("a.txt")
    assert await git_gateway.diff_unstaged() == ""
    assert "diff --git a/a.txt b/a.txt" in await git_gateway.diff_staged()

    await git_gateway.unstage("a.txt")
    assert await git_gateway.diff_staged() == ""
    assert "+more" in await git_gateway.diff_unstaged()


@pytest.mark.asyncio
async def test_commit_and_recent_subjects(git_gateway, git_repo):
    (git_repo / "b.txt").write_text("two\nthree\n")
    await git_gateway.stage("b.txt")
    await git_gateway.commit("Update b")

    assert await git_gateway.diff_staged() == ""
    assert await git_gateway.recent_commit_subjects(10) == ["Update b", "Initial commit"]
    assert await git_gateway.recent_commit_subjects(1) == ["Update b"]


@pytest.mark.asyncio
async def test_stash_clears_working_tree(git_gateway, git_repo):
    (git_repo / "a.txt").write_text("changed\n")
    await git_gateway.stash()

    assert await git_gateway.diff_unstaged() == ""
    assert (git_repo / "a.txt").read_text() == "one\n"


@pytest.mark.asyncio
async def test_failed_command_carries_exit_code_and_stderr(git_gateway):
    with pytest.raises(ExternalCommandError) as exc_info:
        await git_gateway.stage("does-not-exist.txt")

    err = exc_info.value
    assert err.exit_code not in (None, 0)
    assert err.stderr
    assert err.command[:2] == ["git", "add"]
    assert err.status_code == 500


@pytest.mark.asyncio
async def test_push_without_remote_fails(git_gateway):
    with pytest.raises(ExternalCommandError):
        await git_gateway.push()


@requires_git
@pytest.mark.asyncio
async def test_recent_subjects_empty_without_history(tmp_path):
    subprocess.run(["git", "init", "-q"], cwd=tmp_path, check=True)
    gateway = GitCommandGateway(tmp_path)

    assert await gateway.recent_commit_subjects() == []


@pytest.mark.asyncio
async def test_missing_binary_is_external_command_error(tmp_path):
    gateway = GitCommandGateway(tmp_path, git_binary="diffgate-no-such-git")

    with pytest.raises(ExternalCommandError) as exc_info:
        await gateway.diff_unstaged()
    assert "not found" in exc_info.value.message
