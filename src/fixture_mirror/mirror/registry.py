"""
Repository Registry - read-only list of tracked repositories.

The registry is loaded once from a YAML list and injected into its
consumers. Entries look like:

    - id: github/acme/widgets
      reference: origin/develop   # optional
      folder: fixtures            # optional
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml  # type: ignore
from pydantic import ValidationError

from .errors import NotFoundError
from .models import RepositoryDescriptor


logger = logging.getLogger(__name__)


class RepositoryRegistry:
    """Lookup of tracked repositories by `provider/owner/name`."""

    def __init__(self, entries: Optional[Iterable[Dict[str, Any]]] = None):
        """
        Initialize the registry from in-memory entries.

        Args:
            entries: Mappings with an `id` and optional `reference`/`folder`

        Raises:
            ValueError: If an entry is malformed
        """
        self._descriptors: Dict[str, RepositoryDescriptor] = {}
        for entry in entries or []:
            descriptor = self._parse_entry(entry)
            self._descriptors[descriptor.key] = descriptor

    @classmethod
    def from_file(cls, registry_path: Union[str, Path]) -> "RepositoryRegistry":
        """
        Load the registry from a YAML file.

        A missing file yields an empty registry.

        Raises:
            ValueError: If the file cannot be parsed
        """
        registry_path = Path(registry_path)
        if not registry_path.exists():
            logger.warning(f"Repository registry not found at {registry_path}")
            return cls()

        try:
            with open(registry_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ValueError(f"Failed to load registry from {registry_path}: {e}")

        if data is None:
            data = []
        if not isinstance(data, list):
            raise ValueError(
                f"Registry {registry_path} must contain a list of repositories"
            )

        registry = cls(data)
        logger.info(f"Loaded repository registry with {len(registry)} repos")
        return registry

    @staticmethod
    def _parse_entry(entry: Any) -> RepositoryDescriptor:
        if not isinstance(entry, dict) or not isinstance(entry.get("id"), str):
            raise ValueError(f"Registry entry must have a string 'id': {entry!r}")

        parts = entry["id"].split("/")
        if len(parts) != 3:
            raise ValueError(
                f"Registry id must be 'provider/owner/name', got: {entry['id']!r}"
            )

        try:
            return RepositoryDescriptor(
                provider=parts[0],
                owner=parts[1],
                name=parts[2],
                reference_override=entry.get("reference"),
                fixture_folder=entry.get("folder"),
            )
        except ValidationError as e:
            raise ValueError(f"Invalid registry entry {entry['id']!r}: {e}")

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, key: str) -> bool:
        return key in self._descriptors

    def lookup(self, provider: str, owner: str, name: str) -> RepositoryDescriptor:
        """
        Get the descriptor of a tracked repository.

        Raises:
            NotFoundError: If the repository is not tracked
        """
        key = "/".join([provider, owner, name])
        descriptor = self._descriptors.get(key)
        if descriptor is None:
            raise NotFoundError(f"Repository {key} is not tracked")
        return descriptor

    def list_repositories(self) -> List[RepositoryDescriptor]:
        """List all tracked repositories in registration order."""
        return list(self._descriptors.values())
