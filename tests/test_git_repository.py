"""Tests for the pygit2 wrapper."""

import os

import pygit2
import pytest

from conftest import checkout_new_branch, make_git_repo
from pgbranch.errors import GitError
from pgbranch.git.repository import HOOK_MARKER, HOOK_NAMES, GitRepository


def test_discover_outside_repository(project_dir):
    assert GitRepository.discover(project_dir) is None


def test_discover_from_subdirectory(git_project, project_dir):
    nested = project_dir / "src"
    nested.mkdir()
    repo = GitRepository.discover(nested)
    assert repo is not None
    assert repo.current_branch() == "main"


def test_open_invalid_path_raises(project_dir):
    with pytest.raises(GitError):
        GitRepository(project_dir / "missing")


def test_current_branch_follows_checkout(git_project, project_dir):
    checkout_new_branch(git_project, "feature/login")
    assert GitRepository(project_dir).current_branch() == "feature/login"


def test_detached_head_has_no_branch(git_project, project_dir):
    git_project.set_head(git_project.head.target)
    assert GitRepository(project_dir).current_branch() is None


def test_unborn_branch_is_reported(project_dir):
    pygit2.init_repository(str(project_dir), initial_head="trunk")
    assert GitRepository(project_dir).current_branch() == "trunk"


def test_detect_main_branch_prefers_main(git_project, project_dir):
    checkout_new_branch(git_project, "feature/x")
    assert GitRepository(project_dir).detect_main_branch() == "main"


def test_detect_main_branch_falls_back_to_master_then_current(tmp_path):
    master_dir = tmp_path / "master_repo"
    master_dir.mkdir()
    master_repo = make_git_repo(master_dir, branch="master")
    checkout_new_branch(master_repo, "feature/x")
    assert GitRepository(master_dir).detect_main_branch() == "master"

    trunk_dir = tmp_path / "trunk_repo"
    trunk_dir.mkdir()
    make_git_repo(trunk_dir, branch="trunk")
    assert GitRepository(trunk_dir).detect_main_branch() == "trunk"


def test_detect_main_branch_uses_origin_head(git_project, project_dir):
    commit = git_project.head.target
    git_project.references.create("refs/remotes/origin/develop", commit)
    git_project.references.create("refs/remotes/origin/HEAD", "refs/remotes/origin/develop")
    assert GitRepository(project_dir).detect_main_branch() == "develop"


def test_branch_exists(git_project, project_dir):
    repo = GitRepository(project_dir)
    assert repo.branch_exists("main")
    assert not repo.branch_exists("nope")


def test_install_and_uninstall_hooks(git_project, project_dir):
    repo = GitRepository(project_dir)
    assert not repo.hooks_installed()

    installed = repo.install_hooks()

    assert [hook.name for hook in installed] == list(HOOK_NAMES)
    for hook in installed:
        assert HOOK_MARKER in hook.read_text()
        assert "pgbranch git-hook" in hook.read_text()
        assert os.access(hook, os.X_OK)
    assert repo.hooks_installed()

    removed = repo.uninstall_hooks()
    assert len(removed) == 2
    assert not repo.hooks_installed()


def test_uninstall_leaves_foreign_hooks(git_project, project_dir):
    repo = GitRepository(project_dir)
    repo.hooks_dir.mkdir(parents=True, exist_ok=True)
    foreign = repo.hooks_dir / "post-checkout"
    foreign.write_text("#!/bin/sh\necho mine\n", encoding="utf-8")

    assert repo.uninstall_hooks() == []
    assert foreign.exists()
    assert not GitRepository.is_pgbranch_hook(foreign)
