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

from __future__ import annotations

"""
ZIP archive entry implementation.

An entry is in exactly one of two data states:

- ``ExistingData``: backed by a central directory record and the offset of
  its local file header in the archive stream. Opening it reads.
- ``PendingData``: an in-memory buffer collecting writer output. Opening it
  writes. No header exists until the archive finalizes the entry on close.
"""

import io
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING, BinaryIO, Optional, Union

from .codec import CompressionLevel, inflate, select_method
from .constants import (
    COMP_STORED,
    FLAG_ENCRYPTED,
    MAX_FILE_SIZE,
    METHOD_NAMES,
    SUPPORTED_METHODS,
    VERSION_DEFAULT,
    VERSION_MADE_BY_DEFAULT,
)
from .errors import (
    ZipClosedError,
    ZipCrcError,
    ZipEntryStateError,
    ZipFormatError,
    ZipUnsupportedFeature,
)
from .limits import check_compression_ratio, check_declared_size, check_decompressed_size
from .stream import EntryWriteStream, stream_length
from .structures import CentralDirectoryHeader, parse_local_file_header
from .utils import crc32, read_exact, timestamp_to_dos_datetime

if TYPE_CHECKING:
    from .archive import ZipArchive

logger = logging.getLogger(__name__)


@dataclass
class ExistingData:
    """Entry stored in the archive stream."""

    header: CentralDirectoryHeader
    offset: int


@dataclass
class PendingData:
    """Entry being written, buffered in memory until the archive is closed."""

    buffer: bytearray = field(default_factory=bytearray)
    writer_open: bool = False


EntryData = Union[ExistingData, PendingData]


class ZipArchiveEntry:
    """A single file or directory inside a :class:`ZipArchive`.

    Entries are created by the archive, either while parsing the central
    directory or through :meth:`ZipArchive.create_entry`, and must not be
    used after the archive is closed.
    """

    def __init__(
        self,
        archive: ZipArchive,
        full_name: str,
        data: EntryData,
        *,
        last_write_time: datetime,
        external_attributes: int = 0,
        compression_level: CompressionLevel = CompressionLevel.OPTIMAL,
    ):
        self._archive = archive
        self._full_name = full_name
        self._data = data
        self._last_write_time = last_write_time
        self._external_attributes = external_attributes
        self._compression_level = compression_level
        self._is_new = isinstance(data, PendingData)
        self._deleted = False
        self._metadata_changed = False

    @classmethod
    def _from_header(
        cls, archive: ZipArchive, full_name: str, header: CentralDirectoryHeader
    ) -> ZipArchiveEntry:
        return cls(
            archive,
            full_name,
            ExistingData(header=header, offset=header.local_header_offset),
            last_write_time=header.date_time,
            external_attributes=header.external_attrs,
        )

    @classmethod
    def _new(
        cls, archive: ZipArchive, full_name: str, compression_level: CompressionLevel
    ) -> ZipArchiveEntry:
        return cls(
            archive,
            full_name,
            PendingData(),
            last_write_time=datetime.now(),
            compression_level=compression_level,
        )

    @property
    def archive(self) -> ZipArchive:
        """The archive this entry belongs to."""
        return self._archive

    @property
    def full_name(self) -> str:
        """Path of the entry inside the archive, forward-slash separated."""
        return self._full_name

    @property
    def name(self) -> str:
        """File name part of :attr:`full_name`; empty for directory entries."""
        return self._full_name.rsplit("/", 1)[-1]

    @property
    def is_directory(self) -> bool:
        return self._full_name.endswith("/")

    @property
    def is_new(self) -> bool:
        """True for entries created in this session rather than read from the stream."""
        return self._is_new

    @property
    def last_write_time(self) -> datetime:
        return self._last_write_time

    @last_write_time.setter
    def last_write_time(self, value: datetime) -> None:
        self._check_usable()
        self._last_write_time = value
        self._metadata_changed = True

    @property
    def external_attributes(self) -> int:
        return self._external_attributes

    @external_attributes.setter
    def external_attributes(self, value: int) -> None:
        self._check_usable()
        self._external_attributes = value & 0xFFFFFFFF
        self._metadata_changed = True

    @property
    def length(self) -> int:
        """Uncompressed size in bytes."""
        if isinstance(self._data, ExistingData):
            return self._data.header.uncompressed_size
        return len(self._data.buffer)

    @property
    def compressed_length(self) -> int:
        """Compressed size in bytes; 0 until a new entry is written out."""
        if isinstance(self._data, ExistingData):
            return self._data.header.compressed_size
        return 0

    @property
    def crc32(self) -> int:
        if isinstance(self._data, ExistingData):
            return self._data.header.crc32
        return 0

    @property
    def compression_method(self) -> Optional[int]:
        """ZIP method code, or None while the entry is still pending."""
        if isinstance(self._data, ExistingData):
            return self._data.header.compression_method
        return None

    def open(self) -> BinaryIO:
        """Open the entry.

        Stored entries open for reading and return the decompressed content.
        Pending entries open for writing and return a stream appending to the
        entry's buffer; it must be closed before the archive is closed.

        Returns:
            Binary file-like object.

        Raises:
            ZipClosedError: If the archive is closed.
            ZipEntryStateError: If the entry was deleted or is already open for writing.
            ZipBombError: If a size, ratio or streaming guard trips.
            ZipFormatError: If the entry's records are corrupt.
            ZipUnsupportedFeature: If the entry is encrypted or uses another method.
            ZipCrcError: If the decompressed data fails CRC32 validation.
        """
        self._check_usable()

        if isinstance(self._data, ExistingData):
            self._archive._require("read_entry")
            return io.BytesIO(self._read(self._archive._stream, self._data))

        self._archive._require("write_entry")
        return self._open_for_writing(self._data)

    def read(self) -> bytes:
        """Return the entry's full decompressed content."""
        with self.open() as f:
            return f.read()

    def delete(self) -> None:
        """Delete the entry from the archive.

        The entry disappears from the archive's entry list immediately; the
        stream is rewritten without it when the archive is closed.

        Raises:
            ZipClosedError: If the archive is closed.
            ZipEntryStateError: If the entry was already deleted.
            ZipModeError: If the archive is not in update mode.
        """
        self._check_usable()
        self._archive._require("delete")

        self._deleted = True
        self._archive._remove_entry(self)
        logger.debug(f"deleted entry {self._full_name!r}")

    def _check_usable(self) -> None:
        if self._archive.closed:
            raise ZipClosedError("Archive is closed")
        if self._deleted:
            raise ZipEntryStateError(f"Entry '{self._full_name}' has been deleted")

    def _read(self, stream: BinaryIO, data: ExistingData) -> bytes:
        header = data.header
        limits = self._archive.limits
        name = self._full_name

        if header.flags & FLAG_ENCRYPTED:
            raise ZipUnsupportedFeature(f"Entry '{name}' is encrypted (encryption not supported)")
        if header.compression_method not in SUPPORTED_METHODS:
            raise ZipUnsupportedFeature(
                f"Entry '{name}' uses unsupported compression method {header.compression_method}"
            )

        check_declared_size(name, header.uncompressed_size, limits)
        if header.compression_method != COMP_STORED:
            check_compression_ratio(name, header.uncompressed_size, header.compressed_size, limits)

        file_size = stream_length(stream)
        if data.offset >= file_size:
            raise ZipFormatError(
                f"Invalid local header offset for entry '{name}': {data.offset} (file size: {file_size})"
            )

        # The local header only tells us where the payload starts
        stream.seek(data.offset, io.SEEK_SET)
        parse_local_file_header(stream)

        payload_start = stream.tell()
        if payload_start + header.compressed_size > file_size:
            raise ZipFormatError(
                f"Compressed data extends beyond file for entry '{name}': "
                f"position {payload_start}, size {header.compressed_size} (file size: {file_size})"
            )
        payload = read_exact(stream, header.compressed_size)

        logger.debug(
            f"read entry {name!r}: method={METHOD_NAMES[header.compression_method]}, "
            f"compressed={header.compressed_size}, declared={header.uncompressed_size}"
        )

        if header.compression_method == COMP_STORED:
            check_decompressed_size(name, len(payload), limits)
            content = payload
        else:
            content = inflate(payload, name, limits)

        actual_crc = crc32(content)
        if actual_crc != header.crc32:
            raise ZipCrcError(
                f"CRC32 mismatch for entry '{name}': expected 0x{header.crc32:08X}, got 0x{actual_crc:08X}"
            )
        return content

    def _open_for_writing(self, data: PendingData) -> EntryWriteStream:
        if data.writer_open:
            raise ZipEntryStateError(f"Entry '{self._full_name}' is already open for writing")

        data.writer_open = True

        def _release() -> None:
            data.writer_open = False

        return EntryWriteStream(data.buffer, on_close=_release)

    def _finalize(self) -> tuple[CentralDirectoryHeader, bytes]:
        """Compress the pending buffer and build the entry's central directory header.

        Returns:
            Tuple of (header, payload) where payload is the bytes to store
            after the local header.
        """
        if not isinstance(self._data, PendingData):
            raise ZipEntryStateError(f"Entry '{self._full_name}' has no pending data")
        if self._data.writer_open:
            raise ZipEntryStateError(f"Entry '{self._full_name}' is still open for writing")

        raw = bytes(self._data.buffer)
        method, payload = select_method(raw, self._compression_level)

        if len(raw) > MAX_FILE_SIZE or len(payload) > MAX_FILE_SIZE:
            raise ZipUnsupportedFeature(
                f"Entry '{self._full_name}' is larger than 4 GiB (ZIP64 not supported)"
            )

        mod_date, mod_time = timestamp_to_dos_datetime(self._last_write_time)
        header = CentralDirectoryHeader(
            version_made_by=VERSION_MADE_BY_DEFAULT,
            version_needed=VERSION_DEFAULT,
            flags=self._archive._name_flags,
            compression_method=method,
            mod_time=mod_time,
            mod_date=mod_date,
            crc32=crc32(raw),
            compressed_size=len(payload),
            uncompressed_size=len(raw),
            disk_num=0,
            internal_attrs=0,
            external_attrs=self._external_attributes,
            local_header_offset=0,
            filename=self._archive._encode_name(self._full_name),
        )
        return header, payload

    def _current_header(self) -> CentralDirectoryHeader:
        """Central directory header of a stored entry, with metadata edits applied."""
        if not isinstance(self._data, ExistingData):
            raise ZipEntryStateError(f"Entry '{self._full_name}' has not been written yet")

        header = self._data.header
        if self._metadata_changed:
            mod_date, mod_time = timestamp_to_dos_datetime(self._last_write_time)
            header = replace(
                header,
                mod_date=mod_date,
                mod_time=mod_time,
                external_attrs=self._external_attributes,
            )
        return header

    def _commit(self, header: CentralDirectoryHeader) -> None:
        """Record where the entry now lives after a write-back."""
        self._data = ExistingData(header=header, offset=header.local_header_offset)
        self._metadata_changed = False

    def __str__(self) -> str:
        return self._full_name

    def __repr__(self) -> str:
        return f"<ZipArchiveEntry {self._full_name!r} length={self.length}>"
