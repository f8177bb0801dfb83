"""Archive Store - date-partitioned, append-only snapshot archive.

Layout: <base>/<year>/<month>/<day>.bin, one partition per local calendar
day, numbers not zero-padded (2023/10/7.bin).

A run loads today's partition (or starts a new one), appends exactly one
snapshot and writes the whole partition back. The write goes through a
temporary file and an atomic rename, so a crash leaves either the old or the
new partition on disk, never a truncated one. There is no locking: when two
runs save the same partition the later write wins.

Partition format: the magic bytes b"SMA1" followed by the gzip-compressed
JSON dump of the ExportFile model.
"""

import gzip
import zlib
from datetime import date, datetime
from pathlib import Path
from typing import Callable

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from src.school_mining.errors import ArchiveCorruptError, ArchiveError, ArchiveIOError
from src.school_mining.logging import get_logger
from src.school_mining.models import STORED, ExportFile, Snapshot
from src.school_mining.utils import write_atomic

log = get_logger(__name__)

MAGIC = b"SMA1"
PARTITION_SUFFIX = ".bin"


def encode_export(export_file: ExportFile) -> bytes:
    """Serialize a full ExportFile to partition bytes.

    Raises:
        ArchiveError: If the model cannot be serialized.
    """
    try:
        payload = export_file.model_dump_json().encode("utf-8")
    except PydanticSerializationError as e:
        raise ArchiveError(f"Archive could not be serialized: {e}") from e
    # mtime=0 keeps the output stable for identical content
    return MAGIC + gzip.compress(payload, mtime=0)


def decode_export(data: bytes) -> ExportFile:
    """Parse partition bytes back into an ExportFile.

    Raises:
        ArchiveCorruptError: If the header, compression or content is invalid.
    """
    if not data.startswith(MAGIC):
        raise ArchiveCorruptError("Archive header missing or unknown")
    try:
        payload = gzip.decompress(data[len(MAGIC):])
    except (OSError, EOFError, zlib.error) as e:
        raise ArchiveCorruptError(f"Archive is not valid gzip data: {e}") from e
    try:
        return ExportFile.model_validate_json(payload, context={STORED: True})
    except ValidationError as e:
        raise ArchiveCorruptError(
            f"Archive content is invalid ({e.error_count()} errors)"
        ) from e


class ArchiveStore:
    """Loads and saves the partition of the current local day.

    The partition is chosen from the clock on every call, so load() and
    save() on either side of midnight address different files.
    """

    def __init__(
        self, base_path: str | Path, clock: Callable[[], datetime] | None = None
    ) -> None:
        """Initialize ArchiveStore.

        Args:
            base_path: Root directory of the archive.
            clock: Returns the current local time. Defaults to datetime.now.
        """
        self.base_path = Path(base_path)
        self._clock = clock or datetime.now

    def partition_path(self, moment: date | None = None) -> Path:
        """Path of the partition for `moment` (default: now)."""
        moment = moment or self._clock()
        return (
            self.base_path
            / str(moment.year)
            / str(moment.month)
            / f"{moment.day}{PARTITION_SUFFIX}"
        )

    def load(self) -> ExportFile:
        """Load today's partition, or start an empty one.

        When the partition does not exist yet its directory is created and a
        new ExportFile dated now is returned.

        Raises:
            ArchiveCorruptError: If the partition exists but cannot be decoded.
            ArchiveIOError: If reading the file or creating the directory fails.
        """
        path = self.partition_path()

        if path.exists():
            try:
                data = path.read_bytes()
            except OSError as e:
                raise ArchiveIOError(f"Archive {path} could not be read: {e}") from e
            export_file = decode_export(data)
            log.info(
                "archive_loaded", path=str(path), snapshots=len(export_file.snapshots)
            )
            return export_file

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArchiveIOError(
                f"Archive directory {path.parent} could not be created: {e}"
            ) from e

        log.info("archive_created", path=str(path))
        return ExportFile.new()

    @staticmethod
    def add(export_file: ExportFile, snapshot: Snapshot) -> None:
        """Append `snapshot` to `export_file`. No validation happens here."""
        export_file.add(snapshot)

    def save(self, export_file: ExportFile) -> Path:
        """Write the full ExportFile to today's partition.

        Returns:
            Path of the written partition.

        Raises:
            ArchiveError: If serialization fails.
            ArchiveIOError: If the partition cannot be written.
        """
        path = self.partition_path()
        data = encode_export(export_file)

        try:
            write_atomic(path, data)
        except OSError as e:
            raise ArchiveIOError(f"Archive {path} could not be written: {e}") from e

        log.info(
            "archive_saved",
            path=str(path),
            snapshots=len(export_file.snapshots),
            size=len(data),
        )
        return path
