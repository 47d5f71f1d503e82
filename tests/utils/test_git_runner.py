"""Tests for the git command runner."""

import subprocess
from unittest.mock import patch

import pytest

from fixture_mirror.utils.git_runner import (
    describe_git_failure,
    get_git_environment,
    run_git_command,
)


class TestGitEnvironment:
    def test_marks_directory_as_safe(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GIT_CONFIG_COUNT", raising=False)

        env = get_git_environment(tmp_path)

        assert env["GIT_CONFIG_COUNT"] == "1"
        assert env["GIT_CONFIG_KEY_0"] == "safe.directory"
        assert env["GIT_CONFIG_VALUE_0"] == str(tmp_path.resolve())
        assert env["GIT_TERMINAL_PROMPT"] == "0"

    def test_forces_untranslated_messages(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LANG", "de_DE.UTF-8")
        monkeypatch.setenv("LC_ALL", "de_DE.UTF-8")
        monkeypatch.setenv("LANGUAGE", "de")

        env = get_git_environment(tmp_path)

        assert env["LC_ALL"] == "C"
        assert env["LANGUAGE"] == "C"

    def test_inherited_config_entries_are_kept(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GIT_CONFIG_COUNT", "2")
        monkeypatch.setenv("GIT_CONFIG_KEY_0", "http.proxy")
        monkeypatch.setenv("GIT_CONFIG_VALUE_0", "http://proxy:3128")
        monkeypatch.setenv("GIT_CONFIG_KEY_1", "core.autocrlf")
        monkeypatch.setenv("GIT_CONFIG_VALUE_1", "false")

        env = get_git_environment(tmp_path)

        assert env["GIT_CONFIG_COUNT"] == "3"
        assert env["GIT_CONFIG_KEY_0"] == "safe.directory"
        assert (env["GIT_CONFIG_KEY_1"], env["GIT_CONFIG_VALUE_1"]) == (
            "http.proxy",
            "http://proxy:3128",
        )
        assert (env["GIT_CONFIG_KEY_2"], env["GIT_CONFIG_VALUE_2"]) == (
            "core.autocrlf",
            "false",
        )


class TestRunGitCommand:
    def test_rejects_non_git_commands(self, tmp_path):
        with pytest.raises(ValueError):
            run_git_command(["ls"], tmp_path)

    def test_passes_environment_and_timeout(self, tmp_path):
        with patch("fixture_mirror.utils.git_runner.subprocess.run") as run:
            run_git_command(["git", "status"], tmp_path, timeout=5)

        kwargs = run.call_args.kwargs
        assert kwargs["cwd"] == tmp_path
        assert kwargs["timeout"] == 5
        assert kwargs["capture_output"] is True
        assert kwargs["env"]["GIT_CONFIG_KEY_0"] == "safe.directory"

    def test_failure_propagates(self, tmp_path):
        error = subprocess.CalledProcessError(128, ["git", "fetch"], stderr="fatal")

        with patch("fixture_mirror.utils.git_runner.subprocess.run", side_effect=error):
            with pytest.raises(subprocess.CalledProcessError):
                run_git_command(["git", "fetch"], tmp_path)


class TestDescribeGitFailure:
    def test_prefers_stderr(self):
        error = subprocess.CalledProcessError(
            128, ["git", "fetch"], stderr="fatal: could not read from remote\n"
        )

        assert describe_git_failure(error) == "fatal: could not read from remote"

    def test_falls_back_to_exit_status(self):
        error = subprocess.CalledProcessError(1, ["git", "rev-parse"], stderr="")

        assert describe_git_failure(error) == "git exited with status 1"

    def test_timeout(self):
        error = subprocess.TimeoutExpired(["git", "clone"], 30)

        assert describe_git_failure(error) == "git command timed out after 30s"
