"""
Path Provisioner - creates the on-disk directory chain of a mirror.

Each mirror lives at `<mirror_root>/<provider>/<owner>/<name>`. Levels are
created one at a time so an existing level is never an error.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Union

from .errors import ProvisioningError
from .models import RepositoryDescriptor


logger = logging.getLogger(__name__)


class PathProvisioner:
    """Guarantees the directory hierarchy of a mirror exists."""

    def __init__(self, mirror_root: Union[str, Path]):
        self.mirror_root = Path(mirror_root)

    def hierarchy_path(self, descriptor: RepositoryDescriptor) -> Path:
        """Return the mirror root of a descriptor without touching the disk."""
        return self.mirror_root / descriptor.provider / descriptor.owner / descriptor.name

    async def ensure_directory(self, path: Union[str, Path]) -> Path:
        """
        Create a single directory, tolerating one that already exists.

        Args:
            path: Directory to create (its parent must exist)

        Returns:
            The directory path

        Raises:
            ProvisioningError: If creation fails for any other reason
        """
        return await asyncio.to_thread(self._make_directory, Path(path))

    async def ensure_hierarchy(self, descriptor: RepositoryDescriptor) -> Path:
        """
        Walk `root/provider/owner/name`, creating each missing level in order.

        Args:
            descriptor: Repository whose mirror hierarchy is needed

        Returns:
            Path to the mirror root of the repository

        Raises:
            ProvisioningError: On the first level that cannot be created
        """
        path = await self.ensure_directory(self.mirror_root)
        for segment in (descriptor.provider, descriptor.owner, descriptor.name):
            path = await self.ensure_directory(path / segment)
        return path

    @staticmethod
    def _make_directory(path: Path) -> Path:
        try:
            os.mkdir(path)
            logger.debug(f"Created directory {path}")
        except FileExistsError:
            if not path.is_dir():
                raise ProvisioningError(
                    f"Path exists but is not a directory: {path}", path=path
                )
        except OSError as e:
            raise ProvisioningError(
                f"Failed to create directory {path}: {e.strerror or e}",
                path=path,
                cause=e,
            ) from e
        return path
