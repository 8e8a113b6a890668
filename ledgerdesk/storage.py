"""
Storage Backend Module

Provides an abstract row-oriented storage interface with an in-memory
implementation (testing) and a CSV flat-file implementation (persistence).

Rows are lists of strings. The file backend never edits in place: deletions
rewrite the whole file through a temporary file that atomically replaces the
original, and a failed append is truncated back to the previous size.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Union
from contextlib import contextmanager
from pathlib import Path
import csv
import io
import os
import tempfile
import threading

from .errors import StorageError, ValidationError
from .logging_config import get_logger


Row = List[str]

# Longest field csv.reader accepts with its default field size limit
MAX_FIELD_LENGTH = 131072


def encode_row(row: Sequence[str]) -> str:
    """Serialize one row, quoting fields that contain the delimiter, quotes, CR or LF"""
    buffer = io.StringIO()
    # Both CR and LF in the terminator make the writer quote either one
    csv.writer(buffer, lineterminator="\r\n").writerow(row)
    return buffer.getvalue()[:-2] + "\n"


def decode_rows(text: str) -> List[Row]:
    """
    Parse CSV text into rows, skipping blank lines

    Raises:
        StorageError: If the text is not parseable CSV
    """
    try:
        return [row for row in csv.reader(io.StringIO(text, newline="")) if row]
    except csv.Error as e:
        raise StorageError(f"Corrupt record data: {e}") from e


def check_field_lengths(fields: Sequence[str]) -> None:
    """
    Raises:
        ValidationError: If any field is longer than the reader can parse back
    """
    for value in fields:
        if len(value) > MAX_FIELD_LENGTH:
            raise ValidationError(
                f"Field too long: {len(value)} characters (maximum {MAX_FIELD_LENGTH})"
            )


class RecordStorage(ABC):
    """Abstract interface for row storage backends"""

    def __init__(self, header: Optional[Sequence[str]] = None):
        self.header = list(header) if header else None
        self._lock = threading.RLock()

    @abstractmethod
    def exists(self) -> bool:
        """Check if the backing store has been created"""
        pass

    def _is_empty(self) -> bool:
        return not self._read_text()

    @abstractmethod
    def _read_text(self) -> str:
        """Read the full serialized content"""
        pass

    @abstractmethod
    def _append_text(self, text: str) -> None:
        """Append serialized content, leaving prior content intact on failure"""
        pass

    @abstractmethod
    def _replace_text(self, text: str) -> None:
        """Replace the full content atomically"""
        pass

    def initialize(self, default_rows: Sequence[Sequence[str]] = ()) -> bool:
        """
        Create the store with its header and default rows if it does not exist

        Returns:
            True if the store was created, False if it already existed
        """
        with self._lock:
            if self.exists():
                return False
            self._replace_text(self._serialize(default_rows))
            return True

    def read_rows(self) -> List[Row]:
        """Read all data rows in storage order (header excluded)"""
        with self._lock:
            rows = decode_rows(self._read_text())
        if self.header and rows:
            # First row is the header whatever its content
            rows = rows[1:]
        return rows

    def append_row(self, row: Sequence[str]) -> None:
        """Append one row"""
        with self._lock:
            if not self.exists() or (self.header and self._is_empty()):
                # A new or zero-length store gets its header first
                self._replace_text(self._serialize([row]))
            else:
                self._append_text(encode_row(row))

    def replace_rows(self, rows: Sequence[Sequence[str]]) -> None:
        """Rewrite the store with exactly these data rows"""
        with self._lock:
            self._replace_text(self._serialize(rows))

    def count(self) -> int:
        """Count data rows"""
        return len(self.read_rows())

    @contextmanager
    def locked(self):
        """Hold the storage lock across a read-modify-write sequence"""
        with self._lock:
            yield self

    def _serialize(self, rows: Sequence[Sequence[str]]) -> str:
        lines = [encode_row(self.header)] if self.header else []
        lines.extend(encode_row(row) for row in rows)
        return "".join(lines)


class InMemoryRecordStorage(RecordStorage):
    """In-memory storage implementation for testing"""

    def __init__(self, header: Optional[Sequence[str]] = None):
        super().__init__(header)
        self._text: Optional[str] = None

    def exists(self) -> bool:
        return self._text is not None

    def _read_text(self) -> str:
        return self._text or ""

    def _append_text(self, text: str) -> None:
        self._text = (self._text or "") + text

    def _replace_text(self, text: str) -> None:
        self._text = text


class CsvFileStorage(RecordStorage):
    """CSV flat-file storage implementation for persistence"""

    def __init__(self, path: Union[str, Path], header: Optional[Sequence[str]] = None):
        super().__init__(header)
        self.path = Path(path)
        self.logger = get_logger("ledgerdesk.storage")

    def exists(self) -> bool:
        return self.path.exists()

    def _is_empty(self) -> bool:
        try:
            return self.path.stat().st_size == 0
        except OSError as e:
            raise StorageError(f"Could not stat {self.path}: {e}") from e

    def _read_text(self) -> str:
        try:
            with open(self.path, "r", encoding="utf-8", newline="") as handle:
                return handle.read()
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Could not read {self.path}: {e}") from e

    def _append_text(self, text: str) -> None:
        try:
            original_size = self.path.stat().st_size
        except OSError as e:
            raise StorageError(f"Could not stat {self.path}: {e}") from e

        try:
            with open(self.path, "a", encoding="utf-8", newline="") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
        except OSError as e:
            self._truncate(original_size)
            raise StorageError(f"Could not append to {self.path}: {e}") from e

    def _truncate(self, size: int) -> None:
        """Roll a failed append back to the previous file size"""
        try:
            with open(self.path, "r+b") as handle:
                handle.truncate(size)
        except OSError as e:
            self.logger.error(f"Could not roll back {self.path} to {size} bytes: {e}")

    def _replace_text(self, text: str) -> None:
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            # Temp file lives in the same directory so os.replace stays on one filesystem
            fd, temp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(directory)
            )
        except OSError as e:
            raise StorageError(f"Could not create temporary file for {self.path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_path, self.path)
        except OSError as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise StorageError(f"Could not rewrite {self.path}: {e}") from e
