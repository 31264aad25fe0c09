"""Pytest fixtures for arbor tests"""
import tempfile
from pathlib import Path
from typing import Callable, List, Optional

import pytest
import git

from arbor.config.project import ProjectConfig, save_project
from arbor.scaffold.commander import CommandResult
from arbor.services.git.operations import GitOperations
from arbor.ui import console


@pytest.fixture(autouse=True)
def git_identity(monkeypatch, tmp_path_factory):
    """Give git an identity and keep tests away from the real config dirs."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path_factory.mktemp("xdg")))
    console.set_quiet(False)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository for testing."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    # Initialize repository
    repo = git.Repo.init(repo_path)

    # Configure git user for commits
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    # Create initial commit on main branch
    test_file = repo_path / "README.md"
    test_file.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    # Rename master to main if needed
    repo.git.branch('-M', 'main')

    yield repo

    # Cleanup
    repo.close()


def commit_file(repo: git.Repo, name: str, content: str, message: str) -> None:
    path = Path(repo.working_dir) / name
    path.write_text(content)
    repo.index.add([name])
    repo.index.commit(message)


@pytest.fixture
def git_repo_with_branches(git_repo):
    """Create a Git repository with merged, unmerged and empty branches."""
    repo = git_repo

    # Branch with its own, unmerged commit
    repo.git.checkout('-b', 'feature/unmerged')
    commit_file(repo, "unmerged.txt", "Unmerged content\n", "Unmerged work")

    # Branch merged back into main with a merge commit
    repo.git.checkout('main')
    repo.git.checkout('-b', 'feature/merged')
    commit_file(repo, "merged.txt", "Merged content\n", "Feature to merge")
    repo.git.checkout('main')
    repo.git.merge('feature/merged', '--no-ff', '-m', 'Merge feature/merged')

    # Branch with no commits of its own
    repo.git.branch('feature/fresh')

    yield repo


@pytest.fixture
def legacy_project(temp_dir, git_repo):
    """A legacy project: ``.bare`` cloned from ``git_repo`` plus a main worktree."""
    project = temp_dir / "project"
    bare = project / ".bare"
    ops = GitOperations()

    ops.clone_bare(git_repo.working_dir, str(bare))
    ops.configure_fetch_refspec(str(bare), git_repo.working_dir)
    ops.create_worktree(str(bare), str(project / "main"), "main")
    save_project(project, ProjectConfig(default_branch="main"))

    return project


@pytest.fixture
def xdg_config(temp_dir, monkeypatch):
    """Point XDG_CONFIG_HOME at a temp dir; returns the arbor config dir."""
    xdg = temp_dir / "xdg"
    xdg.mkdir()
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
    return xdg / "arbor"


class RecordingCommander:
    """Commander double that records calls and replays canned results."""

    def __init__(self, responder: Optional[Callable[[List[str]], CommandResult]] = None):
        self.calls: List[dict] = []
        self.responder = responder

    def run(self, args, cwd=None, env=None, cancel_event=None, timeout=None):
        self.calls.append({"args": list(args), "cwd": cwd, "env": dict(env or {})})
        if self.responder is not None:
            return self.responder(list(args))
        return CommandResult(output="", returncode=0)

    @property
    def commands(self) -> List[List[str]]:
        return [call["args"] for call in self.calls]


@pytest.fixture
def fake_commander():
    """A RecordingCommander that succeeds with empty output."""
    return RecordingCommander()


@pytest.fixture
def commander_factory():
    """Build RecordingCommanders with a custom responder."""
    return RecordingCommander
