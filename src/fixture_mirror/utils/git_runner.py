"""
Centralized Git command runner with dubious ownership handling.

Mirrors are usually created by a service account while the server may run
as a different user, so every git invocation marks its working directory as
a safe.directory before running.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional


logger = logging.getLogger(__name__)


def get_git_environment(project_dir: Path) -> Dict[str, str]:
    """
    Get environment variables for git commands to handle dubious ownership.

    Args:
        project_dir: Path the git command runs in

    Returns:
        Dictionary of environment variables for git commands
    """
    env = os.environ.copy()

    # Shift caller-provided GIT_CONFIG_* entries up by one to free index 0
    try:
        inherited = int(os.environ.get("GIT_CONFIG_COUNT", "0"))
    except ValueError:
        inherited = 0
    for idx in range(inherited):
        key = os.environ.get(f"GIT_CONFIG_KEY_{idx}")
        if key is None:
            continue
        env[f"GIT_CONFIG_KEY_{idx + 1}"] = key
        env[f"GIT_CONFIG_VALUE_{idx + 1}"] = os.environ.get(
            f"GIT_CONFIG_VALUE_{idx}", ""
        )

    env["GIT_CONFIG_KEY_0"] = "safe.directory"
    env["GIT_CONFIG_VALUE_0"] = str(Path(project_dir).resolve())
    env["GIT_CONFIG_COUNT"] = str(inherited + 1)

    # Never block on a credential prompt inside the server
    env["GIT_TERMINAL_PROMPT"] = "0"

    # Untranslated messages; callers match on git's stderr
    env["LC_ALL"] = "C"
    env["LANGUAGE"] = "C"

    return env


def run_git_command(
    cmd: List[str],
    cwd: Path,
    check: bool = True,
    timeout: Optional[float] = None,
) -> subprocess.CompletedProcess:
    """
    Run a git command with proper environment handling for dubious ownership.

    Args:
        cmd: Git command as a list (e.g., ["git", "status"])
        cwd: Working directory for the command
        check: Whether to raise CalledProcessError on non-zero exit
        timeout: Optional timeout in seconds

    Returns:
        CompletedProcess instance with the command result

    Raises:
        subprocess.CalledProcessError: If check=True and command fails
        subprocess.TimeoutExpired: If timeout is exceeded
    """
    if not cmd or cmd[0] != "git":
        raise ValueError("Command must start with 'git'")

    logger.debug(f"Running {' '.join(cmd)} in {cwd}")

    try:
        return subprocess.run(
            cmd,
            cwd=cwd,
            check=check,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=get_git_environment(cwd),
        )
    except subprocess.CalledProcessError as e:
        logger.debug(
            f"Git command failed ({e.returncode}): {' '.join(cmd)} in {cwd}: "
            f"{(e.stderr or '').strip()}"
        )
        raise
    except subprocess.TimeoutExpired:
        logger.warning(f"Git command timed out after {timeout}s: {' '.join(cmd)}")
        raise


def describe_git_failure(error: BaseException) -> str:
    """Return the most useful one-line description of a failed git command."""
    if isinstance(error, subprocess.CalledProcessError):
        stderr = (error.stderr or "").strip()
        if stderr:
            return stderr
        return f"git exited with status {error.returncode}"
    if isinstance(error, subprocess.TimeoutExpired):
        return f"git command timed out after {error.timeout}s"
    return str(error)
