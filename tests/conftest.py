"""Shared fixtures: isolated environment, config files, throwaway Git repos."""

import os
from pathlib import Path

import pygit2
import pytest
import yaml

from pgbranch.errors import DatabaseError


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Strip PGBRANCH_*/PGPASSWORD variables and point the state file at tmp_path."""
    for key in list(os.environ):
        if key.startswith("PGBRANCH_") or key.startswith("PGPASSWORD"):
            monkeypatch.delenv(key, raising=False)
    state_file = tmp_path / "state" / "local_state.yml"
    monkeypatch.setattr("pgbranch.repositories.state_repo.STATE_FILE", state_file)
    return state_file


@pytest.fixture
def project_dir(tmp_path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    return path


def write_yaml(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def make_git_repo(path: Path, branch: str = "main") -> pygit2.Repository:
    """Create a repository with one empty commit on `branch`."""
    repo = pygit2.init_repository(str(path), initial_head=branch)
    signature = pygit2.Signature("Test", "test@example.com")
    tree = repo.TreeBuilder().write()
    repo.create_commit("HEAD", signature, signature, "initial", tree, [])
    return repo


def checkout_new_branch(repo: pygit2.Repository, branch: str) -> None:
    commit = repo.head.peel(pygit2.Commit)
    repo.branches.local.create(branch, commit)
    repo.set_head(f"refs/heads/{branch}")


@pytest.fixture
def git_project(project_dir) -> pygit2.Repository:
    return make_git_repo(project_dir)


class FakeDatabaseRepository:
    """In-memory stand-in for DatabaseRepository, newest database first."""

    def __init__(self, existing=(), fail: bool = False):
        self.databases = list(existing)
        self.fail = fail
        self.created = []
        self.dropped = []

    def _check(self):
        if self.fail:
            raise DatabaseError("connection refused")

    def database_exists(self, db_name: str) -> bool:
        self._check()
        return db_name in self.databases

    def list_branch_databases(self) -> list:
        self._check()
        return list(self.databases)

    def can_create_databases(self) -> bool:
        self._check()
        return True

    def create_database_branch(self, branch_name: str) -> bool:
        self._check()
        if branch_name in self.databases:
            return False
        self.databases.insert(0, branch_name)
        self.created.append(branch_name)
        return True

    def drop_database_branch(self, branch_name: str) -> bool:
        self._check()
        if branch_name not in self.databases:
            return False
        self.databases.remove(branch_name)
        self.dropped.append(branch_name)
        return True

    def cleanup_old_branches(self, max_count: int) -> list:
        self._check()
        dropped = self.databases[max_count:]
        self.databases = self.databases[:max_count]
        self.dropped.extend(dropped)
        return dropped


@pytest.fixture
def fake_db():
    return FakeDatabaseRepository()
