"""Log store — the indexed, persisted collection of entries.

Entries live in memory as an immutable tuple whose positions are the
indices users see (0..N-1, no gaps). The backing CSV file mirrors that
tuple after every completed mutation:

- append writes one record at the end of the file and fsyncs it
- delete renumbers the tail and rewrites the whole file through a temp
  file and ``os.replace``

Memory is only updated after the disk write succeeded, so a failed write
leaves both at the last good state.
"""

from __future__ import annotations

import io
import logging
import os
import stat
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Iterator

from worklog.errors import CorruptLogError, IndexOutOfRange, LogIOError
from worklog.models import DurationLike, Entry
from worklog.parser import dump_records, is_header, parse_record, read_rows

logger = logging.getLogger(__name__)


class LogStore:
    """Ordered log entries backed by one CSV file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()
        self._entries: tuple[Entry, ...] = ()
        # Records dropped by the last load(skip_corrupt=True)
        self.skipped: list[CorruptLogError] = []
        # Unterminated, unparsable last record left by an interrupted append
        self.torn: CorruptLogError | None = None
        self._torn_offset: int | None = None

    @classmethod
    def open(cls, path: Path | str, skip_corrupt: bool = False) -> LogStore:
        """Create a store for ``path`` and load whatever it already holds."""
        store = cls(path)
        store.load(skip_corrupt=skip_corrupt)
        return store

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> Entry:
        return self._entries[index]

    def list(self) -> tuple[Entry, ...]:
        """Return the current entries. The tuple is never mutated."""
        return self._entries

    # -- Reading --

    def load(self, skip_corrupt: bool = False) -> tuple[Entry, ...]:
        """Read the backing file into memory.

        A missing file is an empty log. An unparsable record raises
        ``CorruptLogError`` unless ``skip_corrupt`` is set, in which case
        it is logged, collected in ``self.skipped`` and left out. Indices
        always follow record order.

        An unparsable last record with no line terminator is what an
        interrupted append leaves behind. It is logged, kept in
        ``self.torn`` and cut off by the next write instead of failing
        the load.
        """
        entries: list[Entry] = []
        skipped: list[CorruptLogError] = []
        torn: CorruptLogError | None = None
        torn_offset: int | None = None
        renumbered = 0

        data = self._read_bytes()
        text, cut = _decode(data, self.path)
        lines = io.StringIO(text, newline="").readlines()
        rows = list(read_rows(io.StringIO(text, newline=""), self.path))
        unterminated = bool(data) and not data.endswith(b"\n")

        for position, (line, row) in enumerate(rows):
            if line == 1 and is_header(row):
                continue
            try:
                entry = parse_record(row, line=line, path=self.path)
            except CorruptLogError as exc:
                if unterminated and position == len(rows) - 1:
                    torn = exc
                    torn_offset = len("".join(lines[: line - 1]).encode("utf-8"))
                    continue
                if not skip_corrupt:
                    raise
                logger.warning("Skipping corrupt record: %s", exc)
                skipped.append(exc)
                continue
            expected = len(entries)
            if entry.index != expected:
                renumbered += 1
                entry = entry.with_index(expected)
            entries.append(entry)

        if torn is None and cut is not None:
            # The undecodable bytes were the whole unterminated tail
            torn = CorruptLogError(self.path, len(lines) + 1, [], "incomplete final record")
            torn_offset = cut
        if torn is not None:
            logger.warning("Ignoring incomplete final record (interrupted append?): %s", torn)
        if renumbered:
            logger.warning(
                "%s: %d record(s) had out-of-sequence indices; renumbered by position",
                self.path, renumbered,
            )

        self._entries = tuple(entries)
        self.skipped = skipped
        self.torn = torn
        self._torn_offset = torn_offset
        logger.debug("Loaded %d entries from %s", len(entries), self.path)
        return self._entries

    def _read_bytes(self) -> bytes:
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            return b""
        except OSError as exc:
            logger.error("Failed to read %s: %s", self.path, exc)
            raise LogIOError(self.path, "read", exc) from exc

    # -- Mutations --

    def append(
        self,
        description: str,
        duration: DurationLike,
        timestamp: datetime | None = None,
        paused: DurationLike = 0,
    ) -> int:
        """Validate and persist a new entry, returning its index."""
        index = len(self._entries)
        entry = Entry.create(description, duration, timestamp, index=index, paused=paused)
        self._append_record(entry)
        self._entries = self._entries + (entry,)
        logger.info("Appended entry %d: %s (%ss)", index, entry.description, entry.seconds)
        return index

    def delete(self, index: int) -> Entry:
        """Remove the entry at ``index`` and shift later entries down by one.

        Returns the removed entry as it was before deletion. Refuses with
        ``CorruptLogError`` while records skipped at load are held back,
        since the rewrite would lose them; ``repair`` drops them first.
        """
        length = len(self._entries)
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < length:
            raise IndexOutOfRange(index, length)
        if self.skipped:
            first = self.skipped[0]
            raise CorruptLogError(
                self.path, first.line, first.record,
                f"{len(self.skipped)} unparsable record(s) were skipped at load and "
                "would be lost; run 'worklog repair' before deleting",
            )

        removed = self._entries[index]
        tail = self._entries[index + 1:]
        remaining = self._entries[:index] + tuple(
            e.with_index(i) for i, e in enumerate(tail, start=index)
        )
        self._rewrite(remaining)
        self._entries = remaining
        logger.info("Deleted entry %d: %s (%d renumbered)", index, removed.description, len(tail))
        return removed

    def flush(self) -> None:
        """Make sure the file exists, matches memory and is on disk."""
        if not self.path.exists() and self._entries:
            logger.warning("%s disappeared; rewriting %d entries", self.path, len(self._entries))
            self._rewrite(self._entries)
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a+b", buffering=0) as f:
                if f.seek(0, os.SEEK_END) == 0:
                    _write_all(f, dump_records([]).encode("utf-8"))
                os.fsync(f.fileno())
        except OSError as exc:
            logger.error("Failed to flush %s: %s", self.path, exc)
            raise LogIOError(self.path, "flush", exc) from exc

    def repair(self) -> list[CorruptLogError]:
        """Rewrite the file without its unparsable records.

        Returns the records that were dropped, including an incomplete
        final record.
        """
        self.load(skip_corrupt=True)
        dropped = list(self.skipped)
        if self.torn is not None:
            dropped.append(self.torn)
        if self.path.exists():
            self._rewrite(self._entries)
        self.skipped = []
        logger.info("Repaired %s: kept %d, dropped %d", self.path, len(self._entries), len(dropped))
        return dropped

    # -- Disk writes --

    def _append_record(self, entry: Entry) -> None:
        header = dump_records([]).encode("utf-8")
        record = dump_records([entry], header=False).encode("utf-8")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a+b", buffering=0) as f:
                start = f.seek(0, os.SEEK_END)
                if self._torn_offset is not None and self._torn_offset <= start:
                    logger.warning("Cutting incomplete final record from %s", self.path)
                    start = self._torn_offset
                    os.ftruncate(f.fileno(), start)
                payload = record
                if start == 0:
                    payload = header + record
                else:
                    f.seek(start - 1)
                    if f.read(1) != b"\n":
                        # Hand-edited file without a trailing newline
                        payload = b"\r\n" + record
                try:
                    _write_all(f, payload)
                    os.fsync(f.fileno())
                except OSError:
                    os.ftruncate(f.fileno(), start)
                    raise
        except OSError as exc:
            logger.error("Failed to append to %s: %s", self.path, exc)
            raise LogIOError(self.path, "append to", exc) from exc
        self.torn = None
        self._torn_offset = None

    def _rewrite(self, entries: tuple[Entry, ...]) -> None:
        """Replace the file with ``entries`` without ever exposing a partial file."""
        payload = dump_records(entries).encode("utf-8")
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=directory, prefix=f".{self.path.name}.", suffix=".tmp")
        except OSError as exc:
            logger.error("Failed to create temp file next to %s: %s", self.path, exc)
            raise LogIOError(self.path, "rewrite", exc) from exc

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            if self.path.exists():
                os.chmod(tmp, stat.S_IMODE(self.path.stat().st_mode))
            os.replace(tmp, self.path)
        except OSError as exc:
            logger.error("Failed to rewrite %s: %s", self.path, exc)
            _remove_temp(tmp)
            raise LogIOError(self.path, "rewrite", exc) from exc

        self.torn = None
        self._torn_offset = None
        _sync_directory(directory)


def _decode(data: bytes, path: Path) -> tuple[str, int | None]:
    """Decode file bytes as UTF-8.

    Returns the text and, when only an unterminated tail failed to decode,
    the byte offset where that tail starts (the tail is left out).
    """
    try:
        return data.decode("utf-8"), None
    except UnicodeDecodeError as exc:
        cut = data.rfind(b"\n") + 1
        if not data.endswith(b"\n") and exc.start >= cut:
            return data[:cut].decode("utf-8"), cut
        line = data.count(b"\n", 0, exc.start) + 1
        raise CorruptLogError(path, line, [], f"file is not UTF-8 text ({exc.reason})") from exc


def _write_all(f, data: bytes) -> None:
    """Write every byte to an unbuffered file."""
    view = memoryview(data)
    while view:
        written = f.write(view)
        if not written:
            raise OSError("short write")
        view = view[written:]


def _remove_temp(tmp: str) -> None:
    try:
        os.unlink(tmp)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove temp file %s: %s", tmp, exc)


def _sync_directory(directory: Path) -> None:
    """Persist the rename itself (POSIX only)."""
    if os.name != "posix":
        return
    try:
        dir_fd = os.open(directory, os.O_RDONLY)
    except OSError as exc:
        logger.debug("Cannot open %s to sync: %s", directory, exc)
        return
    try:
        os.fsync(dir_fd)
    except OSError as exc:
        logger.debug("Directory fsync failed for %s: %s", directory, exc)
    finally:
        os.close(dir_fd)
