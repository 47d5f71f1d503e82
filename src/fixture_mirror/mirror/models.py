"""Data model for mirrored repositories and their fixture snapshots."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


SNAPSHOT_FILE_NAME = "tests.json"
CONTENT_DIR_NAME = "content"


class RepositoryDescriptor(BaseModel):
    """Immutable identity of a tracked remote repository."""

    model_config = ConfigDict(frozen=True)

    provider: str = Field(..., description="Hosting provider (e.g., github)")
    owner: str = Field(..., description="Repository owner or organization")
    name: str = Field(..., description="Repository name")
    reference_override: Optional[str] = Field(
        default=None, description="Reference to track instead of the default"
    )
    fixture_folder: Optional[str] = Field(
        default=None, description="Folder holding fixture files"
    )

    @field_validator("provider", "owner", "name")
    @classmethod
    def validate_segment(cls, v: str) -> str:
        # Each value becomes one directory level of the mirror hierarchy
        if not v or v in (".", "..") or "/" in v or "\\" in v:
            raise ValueError(f"Invalid repository path segment: {v!r}")
        return v

    @property
    def key(self) -> str:
        """Unique `provider/owner/name` key of this repository."""
        return "/".join([self.provider, self.owner, self.name])


@dataclass
class MirrorHandle:
    """Binding of a descriptor to an opened local working copy."""

    descriptor: RepositoryDescriptor
    root_path: Path
    content_path: Path
    cloned: bool = False
    reference: Optional[str] = None
    commit: Optional[str] = None


@dataclass
class FixtureRecord:
    """One fixture file, either as raw text or as decoded structured data."""

    id: str
    content: Optional[str] = None
    data: Any = None
    structured: bool = False

    def to_dict(self) -> Dict[str, Any]:
        if self.structured:
            return {"id": self.id, "data": self.data}
        return {"id": self.id, "content": self.content}


FixtureSnapshot = List[FixtureRecord]


@dataclass
class RefreshResult:
    """Outcome of a successful refresh."""

    duration_ms: int
    descriptor: RepositoryDescriptor

    def to_dict(self) -> Dict[str, Any]:
        return {
            "refresh": self.duration_ms,
            "repository": self.descriptor.model_dump(),
        }
