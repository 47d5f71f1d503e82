"""
Repository synchronization pipeline.

Keeps a local mirror of each tracked remote repository and republishes its
fixture folder as a single JSON snapshot on every refresh.
"""

from .errors import (
    ExtractionError,
    MirrorError,
    NotFoundError,
    ProvisioningError,
    SyncError,
)
from .fixture_extractor import FixtureExtractor
from .models import FixtureRecord, MirrorHandle, RefreshResult, RepositoryDescriptor
from .path_provisioner import PathProvisioner
from .registry import RepositoryRegistry
from .repository_mirror import RepositoryMirror
from .sync_orchestrator import SyncOrchestrator

__all__ = [
    "ExtractionError",
    "FixtureExtractor",
    "FixtureRecord",
    "MirrorError",
    "MirrorHandle",
    "NotFoundError",
    "PathProvisioner",
    "ProvisioningError",
    "RefreshResult",
    "RepositoryDescriptor",
    "RepositoryMirror",
    "RepositoryRegistry",
    "SyncError",
    "SyncOrchestrator",
]
