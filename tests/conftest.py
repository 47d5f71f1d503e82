"""
Shared pytest fixtures for Fixture Mirror tests.

Provides local bare git remotes (served through file:// URLs) so the mirror
pipeline can be exercised end to end without network access.
"""

import os
import subprocess
from pathlib import Path
from typing import Dict, Optional

import pytest

from fixture_mirror.config import MirrorConfig
from fixture_mirror.mirror import RepositoryDescriptor


def run_git(args, cwd: Path) -> str:
    """Run a git command for test setup with a fixed identity."""
    env = os.environ.copy()
    env.update(
        {
            "GIT_AUTHOR_NAME": "Fixture Tests",
            "GIT_AUTHOR_EMAIL": "tests@example.com",
            "GIT_COMMITTER_NAME": "Fixture Tests",
            "GIT_COMMITTER_EMAIL": "tests@example.com",
        }
    )
    result = subprocess.run(
        ["git"] + list(args),
        cwd=str(cwd),
        capture_output=True,
        text=True,
        env=env,
        check=True,
    )
    return result.stdout.strip()


class RemoteRepository:
    """A bare repository plus a scratch clone used to push commits to it."""

    def __init__(self, remotes_root: Path, owner: str, name: str):
        self.bare_path = remotes_root / owner / f"{name}.git"
        self.work_path = remotes_root / "_work" / owner / name
        self.bare_path.mkdir(parents=True)
        self.work_path.mkdir(parents=True)

        run_git(["init", "--bare", "--quiet"], self.bare_path)
        run_git(["symbolic-ref", "HEAD", "refs/heads/master"], self.bare_path)
        run_git(["init", "--quiet"], self.work_path)
        run_git(["symbolic-ref", "HEAD", "refs/heads/master"], self.work_path)
        run_git(["remote", "add", "origin", str(self.bare_path)], self.work_path)

    def commit(
        self,
        files: Dict[str, Optional[str]],
        branch: str = "master",
        message: str = "Update fixtures",
    ) -> str:
        """Write (or delete, with None) files, commit and push to `branch`."""
        for relative_path, content in files.items():
            target = self.work_path / relative_path
            if content is None:
                if target.exists():
                    target.unlink()
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")

        run_git(["add", "--all"], self.work_path)
        run_git(
            ["-c", "commit.gpgsign=false", "commit", "--quiet", "--allow-empty", "-m", message],
            self.work_path,
        )
        run_git(["push", "--quiet", "origin", f"HEAD:refs/heads/{branch}"], self.work_path)
        return run_git(["rev-parse", "HEAD"], self.work_path)

    def create_branch(self, branch: str, files: Dict[str, Optional[str]]) -> str:
        run_git(["checkout", "--quiet", "-B", branch], self.work_path)
        commit = self.commit(files, branch=branch)
        run_git(["checkout", "--quiet", "master"], self.work_path)
        return commit

    def delete_branch(self, branch: str) -> None:
        run_git(["branch", "-D", branch], self.bare_path)


@pytest.fixture
def remotes_root(tmp_path: Path) -> Path:
    root = tmp_path / "remotes"
    root.mkdir()
    return root


@pytest.fixture
def remote_factory(remotes_root: Path):
    """Factory creating bare remotes reachable as `<remotes_root>/<owner>/<name>.git`."""

    def _create(owner: str = "acme", name: str = "widgets") -> RemoteRepository:
        return RemoteRepository(remotes_root, owner, name)

    return _create


@pytest.fixture
def mirror_root(tmp_path: Path) -> Path:
    return tmp_path / "mirrors"


@pytest.fixture
def mirror_config(mirror_root: Path, remotes_root: Path) -> MirrorConfig:
    return MirrorConfig(
        mirror_root=mirror_root,
        provider_urls={"github": remotes_root.as_uri()},
    )


@pytest.fixture
def widgets_descriptor() -> RepositoryDescriptor:
    return RepositoryDescriptor(
        provider="github", owner="acme", name="widgets", fixture_folder="tests"
    )
