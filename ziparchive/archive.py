"""
Copyright 2025 DNAi inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

"""
ZIP archive implementation.

This module provides the ZipArchive class, which reads, creates and
incrementally updates ZIP archives directly against a byte stream.
"""

import codecs
import io
import logging
from enum import Enum
from typing import BinaryIO, Optional

from .codec import CompressionLevel
from .constants import (
    FLAG_UTF8,
    MAX_CD_OFFSET,
    MAX_CD_SIZE,
    MAX_ENTRIES,
    MAX_FIELD_LENGTH,
    MAX_FILE_SIZE,
)
from .entry import ExistingData, PendingData, ZipArchiveEntry
from .errors import (
    ZipCapabilityError,
    ZipClosedError,
    ZipEntryStateError,
    ZipFormatError,
    ZipModeError,
    ZipUnsupportedFeature,
)
from .limits import DEFAULT_LIMITS, ZipLimits, check_entry_count
from .stream import stream_capabilities, stream_length
from .structures import (
    CentralDirectoryHeader,
    EndOfCentralDirectory,
    find_eocd,
    parse_central_directory_header,
    parse_eocd,
    parse_local_file_header,
    write_central_directory_header,
    write_eocd,
    write_local_file_header,
)
from .utils import read_exact, write_bytes

logger = logging.getLogger(__name__)


class ZipArchiveMode(Enum):
    """What an archive may do with its entries. Fixed for the archive's lifetime."""

    READ = "r"
    CREATE = "w"
    UPDATE = "a"


# Which modes allow which operation
_ALLOWED_MODES = {
    "entries": {ZipArchiveMode.READ, ZipArchiveMode.UPDATE},
    "get_entry": {ZipArchiveMode.READ, ZipArchiveMode.UPDATE},
    "read_entry": {ZipArchiveMode.READ, ZipArchiveMode.UPDATE},
    "create_entry": {ZipArchiveMode.CREATE, ZipArchiveMode.UPDATE},
    "write_entry": {ZipArchiveMode.CREATE, ZipArchiveMode.UPDATE},
    "set_comment": {ZipArchiveMode.CREATE, ZipArchiveMode.UPDATE},
    "delete": {ZipArchiveMode.UPDATE},
}

_MODE_ERRORS = {
    "entries": "Entries cannot be enumerated in create mode",
    "get_entry": "Cannot get entries in create mode",
    "read_entry": "Entries cannot be read in create mode",
    "create_entry": "Cannot create entries in read mode",
    "write_entry": "Entries cannot be written in read mode",
    "set_comment": "The archive comment cannot be changed in read mode",
    "delete": "Entries can only be deleted when the archive is opened in update mode",
}

_REQUIRED_CAPABILITIES = {
    ZipArchiveMode.READ: ("readable",),
    ZipArchiveMode.CREATE: ("writable",),
    ZipArchiveMode.UPDATE: ("readable", "writable", "seekable"),
}


class ZipArchive:
    """A ZIP archive bound to a byte stream.

    The mode decides what the archive can do:

    - ``READ``: the central directory is parsed on construction; entries can
      be listed and read. Nothing is written.
    - ``CREATE``: entries can only be added. Everything is written when the
      archive is closed.
    - ``UPDATE``: entries can be read, added and deleted. On close the whole
      stream is rewritten from scratch.

    The archive and its entries share one stream position and are not safe
    for concurrent use.

    Example:
        with ZipArchive(open("archive.zip", "wb"), ZipArchiveMode.CREATE) as z:
            with z.create_entry("hello.txt").open() as w:
                w.write(b"Hello, World!")

        with ZipArchive(open("archive.zip", "rb")) as z:
            print(z.get_entry("hello.txt").read())
    """

    def __init__(
        self,
        stream: BinaryIO,
        mode: ZipArchiveMode | str = ZipArchiveMode.READ,
        leave_open: bool = False,
        entry_name_encoding: str = "utf-8",
        limits: Optional[ZipLimits] = None,
    ):
        """Bind an archive to a stream.

        Args:
            stream: Binary file-like object backing the archive.
            mode: ``ZipArchiveMode`` member or its value ("r", "w", "a").
            leave_open: If True, the stream is not closed when the archive is.
            entry_name_encoding: Encoding for entry names without the UTF-8 flag.
            limits: Zip-bomb limits applied when reading; defaults to ``ZipLimits()``.

        Raises:
            TypeError: If stream is None.
            ZipCapabilityError: If the stream cannot serve the requested mode.
            ZipFormatError: If an existing archive cannot be parsed.
            ZipBombError: If the archive declares too many entries.
            LookupError: If the encoding is unknown.
        """
        if stream is None:
            raise TypeError("stream must not be None")

        mode = ZipArchiveMode(mode)
        capabilities = stream_capabilities(stream)
        missing = [c for c in _REQUIRED_CAPABILITIES[mode] if not getattr(capabilities, c)]
        if missing:
            raise ZipCapabilityError(
                f"Stream must be {' and '.join(_REQUIRED_CAPABILITIES[mode])} for {mode.name.lower()} mode "
                f"(not {', '.join(missing)})"
            )

        self._source = stream
        self._stream = stream
        self._mode = mode
        self._leave_open = leave_open
        self._seekable = capabilities.seekable
        self._encoding = codecs.lookup(entry_name_encoding).name
        self._limits = limits if limits is not None else DEFAULT_LIMITS
        self._entries: list[ZipArchiveEntry] = []
        self._comment = b""
        self._closed = False

        if mode is ZipArchiveMode.CREATE:
            return

        try:
            if not self._seekable:
                # Central directory lookup needs random access
                logger.debug("buffering non-seekable stream in memory")
                self._stream = io.BytesIO(stream.read())
            self._read_central_directory()
        except Exception:
            if not self._leave_open:
                self._source.close()
            raise

    @property
    def mode(self) -> ZipArchiveMode:
        return self._mode

    @property
    def limits(self) -> ZipLimits:
        return self._limits

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def entries(self) -> tuple[ZipArchiveEntry, ...]:
        """Live entries in central directory order (append order for new ones).

        Raises:
            ZipClosedError: If the archive is closed.
            ZipModeError: In create mode.
        """
        self._check_open()
        self._require("entries")
        return tuple(self._entries)

    @property
    def comment(self) -> bytes:
        """Archive comment stored in the EOCD record."""
        return self._comment

    @comment.setter
    def comment(self, value: bytes) -> None:
        self._check_open()
        self._require("set_comment")
        if len(value) > MAX_FIELD_LENGTH:
            raise ValueError(f"Archive comment too long: {len(value)} bytes (max {MAX_FIELD_LENGTH})")
        self._comment = bytes(value)

    def create_entry(
        self, name: str, compression_level: CompressionLevel = CompressionLevel.OPTIMAL
    ) -> ZipArchiveEntry:
        """Add an empty entry; write its content through ``entry.open()``.

        Args:
            name: Path of the entry inside the archive. Backslashes become forward slashes.
            compression_level: Compression preference for the entry.

        Returns:
            The new entry.

        Raises:
            TypeError: If name is not a string.
            ValueError: If name is blank, contains NUL or is too long once encoded.
            ZipClosedError: If the archive is closed.
            ZipModeError: In read mode.
        """
        if not isinstance(name, str):
            raise TypeError(f"Entry name must be a string, got {type(name).__name__}")
        if not name.strip():
            raise ValueError("Entry name cannot be empty")
        if "\x00" in name:
            raise ValueError("Entry name cannot contain null bytes")

        self._check_open()
        self._require("create_entry")

        name = name.replace("\\", "/")
        encoded = self._encode_name(name)
        if len(encoded) > MAX_FIELD_LENGTH:
            raise ValueError(f"Entry name too long: {len(encoded)} bytes (max {MAX_FIELD_LENGTH})")

        entry = ZipArchiveEntry._new(self, name, CompressionLevel(compression_level))
        self._entries.append(entry)
        logger.debug(f"created entry {name!r} ({entry._compression_level.name.lower()})")
        return entry

    def get_entry(self, name: str) -> Optional[ZipArchiveEntry]:
        """Find an entry by exact name.

        Names may share a path; the first match in archive order wins.

        Returns:
            The entry, or None if there is none with that name.

        Raises:
            ZipClosedError: If the archive is closed.
            ZipModeError: In create mode.
        """
        self._check_open()
        self._require("get_entry")

        name = name.replace("\\", "/")
        for entry in self._entries:
            if entry.full_name == name:
                return entry
        return None

    def close(self) -> None:
        """Write pending changes and release the stream.

        In create and update mode every live entry, the central directory and
        the EOCD record are written. Calling close again does nothing.

        Raises:
            ZipEntryStateError: If an entry still has an open write stream;
                the archive stays open and nothing is written.
        """
        if self._closed:
            return

        if self._mode is not ZipArchiveMode.READ:
            for entry in self._entries:
                if isinstance(entry._data, PendingData) and entry._data.writer_open:
                    raise ZipEntryStateError(
                        f"Cannot close the archive while entry '{entry.full_name}' is open for writing"
                    )

        try:
            if self._mode is not ZipArchiveMode.READ:
                self._write_archive()
        finally:
            self._closed = True
            if not self._leave_open:
                self._source.close()

    def __enter__(self) -> "ZipArchive":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else self._mode.name.lower()
        return f"<ZipArchive {state} entries={len(self._entries)}>"

    def _check_open(self) -> None:
        if self._closed:
            raise ZipClosedError("Archive is closed")

    def _require(self, operation: str) -> None:
        if self._mode not in _ALLOWED_MODES[operation]:
            raise ZipModeError(_MODE_ERRORS[operation])

    def _remove_entry(self, entry: ZipArchiveEntry) -> None:
        self._entries.remove(entry)

    @property
    def _name_flags(self) -> int:
        return FLAG_UTF8 if self._encoding == "utf-8" else 0

    def _encode_name(self, name: str) -> bytes:
        return name.encode(self._encoding)

    def _decode_name(self, header: CentralDirectoryHeader) -> str:
        encoding = "utf-8" if header.flags & FLAG_UTF8 else self._encoding
        return header.filename.decode(encoding, errors="replace").replace("\\", "/")

    def _read_central_directory(self) -> None:
        """Locate the EOCD and materialize one entry per central directory record."""
        f = self._stream
        file_size = stream_length(f)

        if self._mode is ZipArchiveMode.UPDATE and file_size == 0:
            logger.debug("empty stream, starting a new archive")
            return

        eocd_offset = find_eocd(f, file_size)
        f.seek(eocd_offset, io.SEEK_SET)
        eocd = parse_eocd(f)

        check_entry_count(eocd.cd_records_total, self._limits)

        if eocd.disk_num != 0 or eocd.cd_disk != 0 or eocd.cd_records_on_disk != eocd.cd_records_total:
            raise ZipUnsupportedFeature("Split or multi-volume archives are not supported")
        if eocd.cd_offset == MAX_CD_OFFSET or eocd.cd_size == MAX_CD_SIZE:
            raise ZipUnsupportedFeature("ZIP64 archives are not supported")
        if eocd.cd_offset + eocd.cd_size > eocd_offset:
            raise ZipFormatError(
                f"Central directory extends beyond EOCD: offset {eocd.cd_offset}, "
                f"size {eocd.cd_size} (EOCD at {eocd_offset})"
            )

        f.seek(eocd.cd_offset, io.SEEK_SET)
        for _ in range(eocd.cd_records_total):
            header = parse_central_directory_header(f)
            self._entries.append(ZipArchiveEntry._from_header(self, self._decode_name(header), header))

        self._comment = eocd.comment
        logger.debug(f"parsed central directory: {len(self._entries)} entries at offset {eocd.cd_offset}")

    def _read_stored_payload(self, entry: ZipArchiveEntry) -> tuple[bytes, bytes]:
        """Return (local extra field, still-compressed payload) of a stored entry."""
        data = entry._data
        if not isinstance(data, ExistingData):
            raise ZipEntryStateError(f"Entry '{entry.full_name}' has no stored data")

        f = self._stream
        f.seek(data.offset, io.SEEK_SET)
        local_header = parse_local_file_header(f)
        return local_header.extra, read_exact(f, data.header.compressed_size)

    def _write_archive(self) -> None:
        """Write every live entry, then the central directory and the EOCD.

        In update mode the payloads of surviving stored entries are read into
        memory first, because truncating the stream invalidates every offset.
        Memory use is therefore proportional to the archive size.
        """
        if len(self._entries) > MAX_ENTRIES:
            raise ZipUnsupportedFeature(f"Too many entries: {len(self._entries)} (ZIP64 not supported)")

        f = self._stream
        cached: dict[ZipArchiveEntry, tuple[bytes, bytes]] = {}

        if self._mode is ZipArchiveMode.UPDATE:
            for entry in self._entries:
                if not entry.is_new:
                    cached[entry] = self._read_stored_payload(entry)

            f.seek(0, io.SEEK_SET)
            f.truncate(0)
            offset = 0
        else:
            offset = f.tell() if self._seekable else 0

        written: list[tuple[ZipArchiveEntry, CentralDirectoryHeader]] = []
        for entry in self._entries:
            if entry.is_new:
                header, payload = entry._finalize()
                local_extra = b""
            else:
                header = entry._current_header()
                local_extra, payload = cached[entry]

            if offset > MAX_FILE_SIZE:
                raise ZipUnsupportedFeature("Archive is larger than 4 GiB (ZIP64 not supported)")

            header = header.relocated(offset)
            offset += write_local_file_header(f, header.to_local_header(local_extra))
            offset += write_bytes(f, payload)
            written.append((entry, header))

        if offset > MAX_CD_OFFSET:
            raise ZipUnsupportedFeature("Archive is larger than 4 GiB (ZIP64 not supported)")

        cd_offset = offset
        for _, header in written:
            offset += write_central_directory_header(f, header)
        cd_size = offset - cd_offset

        write_eocd(
            f,
            EndOfCentralDirectory(
                disk_num=0,
                cd_disk=0,
                cd_records_on_disk=len(written),
                cd_records_total=len(written),
                cd_size=cd_size,
                cd_offset=cd_offset,
                comment=self._comment,
            ),
        )
        flush = getattr(f, "flush", None)
        if callable(flush):
            flush()

        for entry, header in written:
            entry._commit(header)

        logger.debug(
            f"wrote {len(written)} entries ({self._mode.name.lower()} mode), "
            f"central directory at {cd_offset}, {cd_size} bytes"
        )
