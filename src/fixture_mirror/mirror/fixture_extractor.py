"""
Fixture Extractor - turns a fixture folder into one JSON snapshot.

Records keep the order os.scandir() yields them in, which is the
filesystem's own listing order and is not guaranteed to be alphabetical.
Extraction is all-or-nothing: a single unreadable file aborts the snapshot.
"""

import asyncio
import datetime
import json
import logging
import math
import os
import tempfile
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml  # type: ignore

from .errors import ExtractionError
from .models import SNAPSHOT_FILE_NAME, FixtureRecord, FixtureSnapshot


logger = logging.getLogger(__name__)

DEFAULT_FIXTURE_FOLDER = "tests"
STRUCTURED_EXTENSIONS = {".yaml", ".yml"}


def _json_default(value: Any) -> Any:
    # YAML timestamps decode to date/datetime objects
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _finite(value: Any) -> Any:
    # NaN and infinities (YAML .nan/.inf) have no JSON form; emit null
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {key: _finite(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_finite(item) for item in value]
    return value


class FixtureExtractor:
    """Scans a fixture folder and publishes its snapshot atomically."""

    def __init__(self, default_folder: str = DEFAULT_FIXTURE_FOLDER):
        self.default_folder = default_folder

    @staticmethod
    def snapshot_path(working_tree_path: Union[str, Path]) -> Path:
        """Snapshot location: a `tests.json` sibling of the working tree."""
        return Path(working_tree_path).resolve().parent / SNAPSHOT_FILE_NAME

    async def extract(
        self, working_tree_path: Union[str, Path], fixture_folder: Optional[str] = None
    ) -> FixtureSnapshot:
        """
        Read every regular file of the fixture folder and publish the snapshot.

        Args:
            working_tree_path: Checked-out working copy
            fixture_folder: Folder relative to the working copy (defaults to
                the extractor's default folder)

        Returns:
            The records written to the snapshot, in listing order

        Raises:
            ExtractionError: If the folder cannot be listed, a file cannot be
                read or decoded, or the snapshot cannot be written
        """
        working_tree_path = Path(working_tree_path)
        folder = working_tree_path / (fixture_folder or self.default_folder)

        files = await asyncio.to_thread(self.list_fixture_files, folder)
        snapshot: FixtureSnapshot = []
        for file_path in files:
            snapshot.append(await asyncio.to_thread(self.read_record, file_path))

        target = self.snapshot_path(working_tree_path)
        await asyncio.to_thread(self.publish, snapshot, target)
        logger.info(f"Extracted {len(snapshot)} fixture(s) from {folder} to {target}")
        return snapshot

    @staticmethod
    def list_fixture_files(folder: Path) -> List[Path]:
        """List the regular files directly inside a folder, in listing order."""
        try:
            with os.scandir(folder) as entries:
                return [
                    Path(entry.path)
                    for entry in entries
                    if entry.is_file(follow_symlinks=True)
                ]
        except OSError as e:
            raise ExtractionError(
                f"Failed to list fixture folder {folder}: {e.strerror or e}",
                path=folder,
                cause=e,
            ) from e

    @staticmethod
    def read_record(file_path: Path) -> FixtureRecord:
        """Read one fixture file into a record, decoding structured formats."""
        try:
            content = file_path.read_text(encoding="utf-8")
            if file_path.suffix.lower() in STRUCTURED_EXTENSIONS:
                return FixtureRecord(
                    id=file_path.name, data=yaml.safe_load(content), structured=True
                )
            return FixtureRecord(id=file_path.name, content=content)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            raise ExtractionError(
                f"Failed to read fixture {file_path}: {e}", path=file_path, cause=e
            ) from e

    @staticmethod
    def publish(snapshot: FixtureSnapshot, target: Path) -> None:
        """
        Write the snapshot with an atomic replace.

        Readers see either the previous complete document or the new one:
        1. Write to a temporary file in the same directory
        2. Sync to disk
        3. Atomic rename over the snapshot
        """
        try:
            payload = json.dumps(
                [_finite(record.to_dict()) for record in snapshot],
                ensure_ascii=False,
                allow_nan=False,
                separators=(",", ":"),
                default=_json_default,
            )
        except (TypeError, ValueError) as e:
            raise ExtractionError(
                f"Failed to serialize snapshot {target}: {e}", path=target, cause=e
            ) from e

        try:
            tmp_fd, tmp_path = tempfile.mkstemp(
                dir=str(target.parent), prefix=".tests_", suffix=".tmp"
            )
        except OSError as e:
            raise ExtractionError(
                f"Failed to write snapshot {target}: {e}", path=target, cause=e
            ) from e

        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, str(target))
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise ExtractionError(
                f"Failed to write snapshot {target}: {e}", path=target, cause=e
            ) from e
