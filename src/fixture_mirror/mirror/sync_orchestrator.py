"""
Sync Orchestrator - end-to-end refresh of mirrored repositories.

Orchestrates the complete refresh cycle:
1. Mirror hierarchy provisioning
2. Clone-or-open, fetch, reference resolution and checkout
3. Fixture extraction and atomic snapshot publication

Refreshes of one repository are serialized; later callers queue behind the
refresh in flight. Refreshes of different repositories run independently.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, AsyncIterator, Dict, Optional

from .errors import MirrorError, NotFoundError
from .fixture_extractor import FixtureExtractor
from .models import SNAPSHOT_FILE_NAME, RefreshResult, RepositoryDescriptor
from .path_provisioner import PathProvisioner
from .registry import RepositoryRegistry
from .repository_mirror import RepositoryMirror

if TYPE_CHECKING:
    from ..config import MirrorConfig


logger = logging.getLogger(__name__)

SNAPSHOT_CHUNK_SIZE = 64 * 1024


class SyncOrchestrator:
    """Caller-facing entry point of the synchronization pipeline."""

    def __init__(
        self,
        provisioner: PathProvisioner,
        mirror: RepositoryMirror,
        extractor: FixtureExtractor,
        registry: Optional[RepositoryRegistry] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            provisioner: Provisioner for mirror directories
            mirror: Git working copy manager
            extractor: Fixture snapshot extractor
            registry: Lookup of tracked repositories (needed for refresh_key)
        """
        self.provisioner = provisioner
        self.mirror = mirror
        self.extractor = extractor
        self.registry = registry
        self._refresh_locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @classmethod
    def from_config(
        cls, config: "MirrorConfig", registry: Optional[RepositoryRegistry] = None
    ) -> "SyncOrchestrator":
        """Build the full pipeline from configuration."""
        provisioner = PathProvisioner(config.mirror_root)
        mirror = RepositoryMirror(
            provisioner,
            provider_urls=config.provider_urls,
            default_reference=config.default_reference,
            git_timeout=config.git_timeout_seconds,
        )
        extractor = FixtureExtractor(default_folder=config.default_fixture_folder)
        return cls(provisioner, mirror, extractor, registry=registry)

    def _acquire_lock(self, descriptor: RepositoryDescriptor) -> asyncio.Lock:
        lock = self._refresh_locks.get(descriptor.key)
        if lock is None:
            lock = asyncio.Lock()
            self._refresh_locks[descriptor.key] = lock
        self._lock_users[descriptor.key] = self._lock_users.get(descriptor.key, 0) + 1
        return lock

    def _release_lock(self, descriptor: RepositoryDescriptor) -> None:
        # Drop idle locks so the table only holds keys with refreshes in flight
        remaining = self._lock_users[descriptor.key] - 1
        if remaining:
            self._lock_users[descriptor.key] = remaining
        else:
            del self._lock_users[descriptor.key]
            del self._refresh_locks[descriptor.key]

    def is_refreshing(self, descriptor: RepositoryDescriptor) -> bool:
        """Check whether a refresh of this repository is in flight."""
        lock = self._refresh_locks.get(descriptor.key)
        return lock is not None and lock.locked()

    async def refresh(self, descriptor: RepositoryDescriptor) -> RefreshResult:
        """
        Synchronize a repository and republish its fixture snapshot.

        Args:
            descriptor: Repository to refresh

        Returns:
            Wall-clock duration and the refreshed descriptor

        Raises:
            MirrorError: The first stage failure, unchanged
        """
        lock = self._acquire_lock(descriptor)
        try:
            if lock.locked():
                logger.info(f"Refresh already in flight for {descriptor.key}, queuing")

            async with lock:
                start = time.monotonic()
                logger.info(f"Starting refresh for {descriptor.key}")
                try:
                    await self.provisioner.ensure_hierarchy(descriptor)
                    handle = await self.mirror.sync(descriptor)
                    await self.extractor.extract(
                        handle.content_path, descriptor.fixture_folder
                    )
                except MirrorError as e:
                    logger.error(f"Refresh failed for {descriptor.key}: {e}")
                    raise

                duration_ms = int(round((time.monotonic() - start) * 1000))
                logger.info(f"Refresh complete for {descriptor.key} in {duration_ms}ms")
                return RefreshResult(duration_ms=duration_ms, descriptor=descriptor)
        finally:
            self._release_lock(descriptor)

    async def refresh_key(self, provider: str, owner: str, name: str) -> RefreshResult:
        """
        Refresh a tracked repository by its `provider/owner/name` identity.

        Raises:
            NotFoundError: If the repository is not in the registry
        """
        return await self.refresh(self.lookup(provider, owner, name))

    def lookup(self, provider: str, owner: str, name: str) -> RepositoryDescriptor:
        """Resolve a tracked repository through the injected registry."""
        if self.registry is None:
            raise NotFoundError(f"Repository {provider}/{owner}/{name} is not tracked")
        return self.registry.lookup(provider, owner, name)

    async def read_snapshot(self, descriptor: RepositoryDescriptor) -> AsyncIterator[bytes]:
        """
        Stream the current snapshot of a repository.

        Never triggers a sync. The file is opened on the first read and held
        until the stream ends; snapshots are replaced by atomic rename, so a
        stream always reads one complete document even if a refresh lands
        while it is being consumed.

        Raises:
            NotFoundError: If no snapshot was ever produced
        """
        root_path = await self.provisioner.ensure_hierarchy(descriptor)
        snapshot_path = root_path / SNAPSHOT_FILE_NAME
        if not await asyncio.to_thread(snapshot_path.is_file):
            raise NotFoundError(
                f"No snapshot available for {descriptor.key}, refresh it first",
                path=snapshot_path,
            )
        return self._stream(snapshot_path)

    @staticmethod
    async def _stream(snapshot_path: Path) -> AsyncIterator[bytes]:
        with open(snapshot_path, "rb") as snapshot_file:
            while True:
                chunk = await asyncio.to_thread(snapshot_file.read, SNAPSHOT_CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
