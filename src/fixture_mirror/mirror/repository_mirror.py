"""
Repository Mirror - clone-or-open, fetch and checkout of a local working copy.

The working copy of a repository lives in `<mirror_root>/content`. The
first sync clones it; later syncs find the clone already present and open
it instead, so callers never need to know which run they are on.

The working tree has no transactional guarantee: if a stage fails, the tree
is left as git left it and the error is surfaced to the caller.
"""

import asyncio
import logging
import re
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from ..utils.git_runner import describe_git_failure, run_git_command
from .errors import SyncError
from .models import CONTENT_DIR_NAME, MirrorHandle, RepositoryDescriptor
from .path_provisioner import PathProvisioner


logger = logging.getLogger(__name__)

DEFAULT_REFERENCE = "origin/master"
DEFAULT_PROVIDER_URLS = {"github": "https://github.com"}

_EXISTING_CLONE_PATTERN = re.compile(r"exists and is not an empty directory")


class RepositoryMirror:
    """
    Owns the git state transitions of mirrored working copies.

    Stages are exposed individually (clone_or_open, fetch, resolve_reference,
    checkout) and chained by sync().
    """

    def __init__(
        self,
        provisioner: PathProvisioner,
        provider_urls: Optional[Dict[str, str]] = None,
        default_reference: str = DEFAULT_REFERENCE,
        git_timeout: Optional[float] = None,
    ):
        """
        Initialize the repository mirror.

        Args:
            provisioner: Provisioner for the mirror directory hierarchy
            provider_urls: Base clone URL per provider name
            default_reference: Reference tracked when a descriptor has no override
            git_timeout: Optional timeout applied to each git command
        """
        self.provisioner = provisioner
        self.provider_urls = dict(provider_urls or DEFAULT_PROVIDER_URLS)
        self.default_reference = default_reference
        self.git_timeout = git_timeout

    def remote_url(self, descriptor: RepositoryDescriptor) -> str:
        """Build the clone URL of a descriptor."""
        base_url = self.provider_urls.get(descriptor.provider)
        if base_url is None:
            raise SyncError(
                f"Unknown repository provider: {descriptor.provider}",
                stage="clone",
            )
        return f"{base_url.rstrip('/')}/{descriptor.owner}/{descriptor.name}.git"

    async def sync(self, descriptor: RepositoryDescriptor) -> MirrorHandle:
        """
        Bring the working copy of a descriptor to the head of its reference.

        Args:
            descriptor: Repository to synchronize

        Returns:
            Handle on the synchronized working copy

        Raises:
            ProvisioningError: If the mirror hierarchy cannot be created
            SyncError: If clone, fetch, resolution or checkout fails
        """
        root_path = await self.provisioner.ensure_hierarchy(descriptor)
        handle = await self.clone_or_open(descriptor, root_path)
        await self.fetch(handle)
        commit = await self.resolve_reference(handle)
        await self.checkout(handle, commit)
        return handle

    async def clone_or_open(
        self, descriptor: RepositoryDescriptor, root_path: Path
    ) -> MirrorHandle:
        """
        Clone the remote into `root_path/content`, or open an existing clone.

        Raises:
            SyncError: If the clone fails for any reason other than an
                existing non-empty destination, or if that destination is
                not a git working copy
        """
        content_path = root_path / CONTENT_DIR_NAME
        handle = MirrorHandle(
            descriptor=descriptor, root_path=root_path, content_path=content_path
        )
        url = self.remote_url(descriptor)

        try:
            await self._run(["git", "clone", url, CONTENT_DIR_NAME], cwd=root_path)
            handle.cloned = True
            logger.info(f"Cloned {url} into {content_path}")
            return handle
        except subprocess.CalledProcessError as e:
            if not _EXISTING_CLONE_PATTERN.search(e.stderr or ""):
                raise self._sync_error("clone", f"Failed to clone {url}", content_path, e)
        except subprocess.TimeoutExpired as e:
            raise self._sync_error("clone", f"Failed to clone {url}", content_path, e)

        await self._open(handle)
        logger.debug(f"Opened existing working copy {content_path}")
        return handle

    async def fetch(self, handle: MirrorHandle) -> None:
        """
        Fetch `origin`, pruning remote-tracking refs deleted upstream.

        Raises:
            SyncError: If the fetch fails (network, auth, missing remote)
        """
        try:
            await self._run(
                ["git", "fetch", "--prune", "origin"], cwd=handle.content_path
            )
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
            raise self._sync_error(
                "fetch",
                f"Failed to fetch origin for {handle.descriptor.key}",
                handle.content_path,
                e,
            )
        logger.debug(f"Fetched origin for {handle.descriptor.key}")

    async def resolve_reference(self, handle: MirrorHandle) -> str:
        """
        Resolve the tracked reference to a commit id.

        Returns:
            The full commit id the reference points to

        Raises:
            SyncError: If the reference does not exist (renamed or deleted)
        """
        reference = handle.descriptor.reference_override or self.default_reference
        handle.reference = reference
        try:
            result = await self._run(
                ["git", "rev-parse", "--verify", "--quiet", f"{reference}^{{commit}}"],
                cwd=handle.content_path,
            )
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
            raise self._sync_error(
                "resolve",
                f"Not able to resolve reference \"{reference}\"",
                handle.content_path,
                e,
            )
        commit = result.stdout.strip()
        logger.debug(f"Resolved {reference} to {commit}")
        return commit

    async def checkout(self, handle: MirrorHandle, commit: str) -> None:
        """
        Check out a commit, discarding any local modification.

        Raises:
            SyncError: If the checkout fails
        """
        try:
            await self._run(
                ["git", "checkout", "--force", "--detach", commit],
                cwd=handle.content_path,
            )
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
            raise self._sync_error(
                "checkout",
                f"Failed to check out {handle.reference or commit}",
                handle.content_path,
                e,
            )
        handle.commit = commit
        logger.info(
            f"Checked out {handle.reference} ({commit[:12]}) for {handle.descriptor.key}"
        )

    async def _open(self, handle: MirrorHandle) -> None:
        # The existing directory must be the top level of its own working copy,
        # not a plain folder nested inside some other repository.
        try:
            result = await self._run(
                ["git", "rev-parse", "--show-toplevel"], cwd=handle.content_path
            )
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
            raise self._sync_error(
                "open",
                f"Existing directory is not a git repository: {handle.content_path}",
                handle.content_path,
                e,
            )

        toplevel = Path(result.stdout.strip()).resolve()
        if toplevel != handle.content_path.resolve():
            raise SyncError(
                f"Existing directory is not a git repository: {handle.content_path}",
                stage="open",
                path=handle.content_path,
            )

    async def _run(self, cmd: List[str], cwd: Path) -> subprocess.CompletedProcess:
        return await asyncio.to_thread(
            run_git_command, cmd, cwd, True, self.git_timeout
        )

    @staticmethod
    def _sync_error(
        stage: str, message: str, path: Path, error: BaseException
    ) -> SyncError:
        details = describe_git_failure(error)
        logger.error(f"{message}: {details}")
        return SyncError(message, stage=stage, path=path, cause=error, details=details)
