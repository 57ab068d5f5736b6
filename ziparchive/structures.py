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
ZIP structure definitions, parsing and writing functions.

This module defines dataclasses for the three on-disk records the archive
engine uses (local file header, central directory header and end of central
directory record), together with a reader and a writer for each. Every
reader takes the stream explicitly and consumes exactly one record; every
writer returns the number of bytes it emitted so callers can track offsets
on streams that cannot report their position.
"""

import io
import struct
from dataclasses import dataclass, replace
from datetime import datetime
from typing import BinaryIO

from .constants import (
    CENTRAL_DIR_HEADER,
    CENTRAL_DIR_HEADER_SIZE,
    END_OF_CENTRAL_DIR,
    END_OF_CENTRAL_DIR_MAGIC,
    END_OF_CENTRAL_DIR_SIZE,
    FLAG_DATA_DESCRIPTOR,
    LOCAL_FILE_HEADER,
    LOCAL_FILE_HEADER_SIZE,
    MAX_EOCD_SEARCH,
    MAX_FIELD_LENGTH,
)
from .errors import ZipFormatError
from .utils import (
    dos_datetime_to_timestamp,
    read_exact,
    read_uint16,
    read_uint32,
    write_bytes,
)


@dataclass
class LocalFileHeader:
    """Local file header structure.

    This header appears before each file's compressed data in the ZIP archive.
    Readers only use it as a positional marker: the central directory copy of
    these fields is authoritative.
    """

    version_needed: int
    flags: int
    compression_method: int
    mod_time: int
    mod_date: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    filename: bytes
    extra: bytes = b""

    @property
    def size(self) -> int:
        """Total size of the record on disk."""
        return LOCAL_FILE_HEADER_SIZE + len(self.filename) + len(self.extra)


@dataclass
class CentralDirectoryHeader:
    """Central directory header structure.

    This header appears in the central directory and contains information
    about a file entry, including a pointer to the local file header.
    """

    version_made_by: int
    version_needed: int
    flags: int
    compression_method: int
    mod_time: int
    mod_date: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    disk_num: int
    internal_attrs: int
    external_attrs: int
    local_header_offset: int
    filename: bytes
    extra: bytes = b""
    comment: bytes = b""

    @property
    def date_time(self) -> datetime:
        """Get modification date/time as datetime object."""
        return dos_datetime_to_timestamp(self.mod_date, self.mod_time)

    @property
    def size(self) -> int:
        """Total size of the record on disk."""
        return CENTRAL_DIR_HEADER_SIZE + len(self.filename) + len(self.extra) + len(self.comment)

    def to_local_header(self, extra: bytes = b"") -> LocalFileHeader:
        """Build the matching local file header.

        The data descriptor flag is cleared: sizes and CRC are always
        written in the local header itself.
        """
        return LocalFileHeader(
            version_needed=self.version_needed,
            flags=self.flags & ~FLAG_DATA_DESCRIPTOR,
            compression_method=self.compression_method,
            mod_time=self.mod_time,
            mod_date=self.mod_date,
            crc32=self.crc32,
            compressed_size=self.compressed_size,
            uncompressed_size=self.uncompressed_size,
            filename=self.filename,
            extra=extra,
        )

    def relocated(self, offset: int) -> "CentralDirectoryHeader":
        """Return a copy pointing at a new local header offset."""
        return replace(self, local_header_offset=offset, flags=self.flags & ~FLAG_DATA_DESCRIPTOR)


@dataclass
class EndOfCentralDirectory:
    """End of Central Directory record.

    This record marks the end of the central directory and contains
    information needed to locate the central directory.
    """

    disk_num: int
    cd_disk: int
    cd_records_on_disk: int
    cd_records_total: int
    cd_size: int
    cd_offset: int
    comment: bytes = b""


def _check_field_length(name: str, value: bytes) -> None:
    if len(value) > MAX_FIELD_LENGTH:
        raise ZipFormatError(f"{name} too long: {len(value)} bytes (max {MAX_FIELD_LENGTH})")


def parse_local_file_header(f: BinaryIO) -> LocalFileHeader:
    """Parse a local file header from the current file position.

    Args:
        f: Binary file-like object positioned at the start of a local file header.

    Returns:
        LocalFileHeader object.

    Raises:
        ZipFormatError: If the signature is invalid or file is truncated.
    """
    signature = read_uint32(f)
    if signature != LOCAL_FILE_HEADER:
        raise ZipFormatError(
            f"Invalid local file header signature: 0x{signature:08X}, "
            f"expected 0x{LOCAL_FILE_HEADER:08X}"
        )

    version_needed = read_uint16(f)
    flags = read_uint16(f)
    compression_method = read_uint16(f)
    mod_time = read_uint16(f)
    mod_date = read_uint16(f)
    crc32 = read_uint32(f)
    compressed_size = read_uint32(f)
    uncompressed_size = read_uint32(f)
    filename_len = read_uint16(f)
    extra_len = read_uint16(f)

    filename = read_exact(f, filename_len)
    extra = read_exact(f, extra_len)

    return LocalFileHeader(
        version_needed=version_needed,
        flags=flags,
        compression_method=compression_method,
        mod_time=mod_time,
        mod_date=mod_date,
        crc32=crc32,
        compressed_size=compressed_size,
        uncompressed_size=uncompressed_size,
        filename=filename,
        extra=extra,
    )


def parse_central_directory_header(f: BinaryIO) -> CentralDirectoryHeader:
    """Parse a central directory header from the current file position.

    Args:
        f: Binary file-like object positioned at the start of a central directory header.

    Returns:
        CentralDirectoryHeader object.

    Raises:
        ZipFormatError: If the signature is invalid or file is truncated.
    """
    signature = read_uint32(f)
    if signature != CENTRAL_DIR_HEADER:
        raise ZipFormatError(
            f"Invalid central directory header signature: 0x{signature:08X}, "
            f"expected 0x{CENTRAL_DIR_HEADER:08X}"
        )

    version_made_by = read_uint16(f)
    version_needed = read_uint16(f)
    flags = read_uint16(f)
    compression_method = read_uint16(f)
    mod_time = read_uint16(f)
    mod_date = read_uint16(f)
    crc32 = read_uint32(f)
    compressed_size = read_uint32(f)
    uncompressed_size = read_uint32(f)
    filename_len = read_uint16(f)
    extra_len = read_uint16(f)
    comment_len = read_uint16(f)
    disk_num = read_uint16(f)
    internal_attrs = read_uint16(f)
    external_attrs = read_uint32(f)
    local_header_offset = read_uint32(f)

    filename = read_exact(f, filename_len)
    extra = read_exact(f, extra_len)
    comment = read_exact(f, comment_len)

    return CentralDirectoryHeader(
        version_made_by=version_made_by,
        version_needed=version_needed,
        flags=flags,
        compression_method=compression_method,
        mod_time=mod_time,
        mod_date=mod_date,
        crc32=crc32,
        compressed_size=compressed_size,
        uncompressed_size=uncompressed_size,
        disk_num=disk_num,
        internal_attrs=internal_attrs,
        external_attrs=external_attrs,
        local_header_offset=local_header_offset,
        filename=filename,
        extra=extra,
        comment=comment,
    )


def parse_eocd(f: BinaryIO) -> EndOfCentralDirectory:
    """Parse an End of Central Directory record from the current file position.

    Args:
        f: Binary file-like object positioned at the start of an EOCD record.

    Returns:
        EndOfCentralDirectory object.

    Raises:
        ZipFormatError: If the signature is invalid or file is truncated.
    """
    signature = read_uint32(f)
    if signature != END_OF_CENTRAL_DIR:
        raise ZipFormatError(
            f"Invalid EOCD signature: 0x{signature:08X}, "
            f"expected 0x{END_OF_CENTRAL_DIR:08X}"
        )

    disk_num = read_uint16(f)
    cd_disk = read_uint16(f)
    cd_records_on_disk = read_uint16(f)
    cd_records_total = read_uint16(f)
    cd_size = read_uint32(f)
    cd_offset = read_uint32(f)
    comment_len = read_uint16(f)
    comment = read_exact(f, comment_len)

    return EndOfCentralDirectory(
        disk_num=disk_num,
        cd_disk=cd_disk,
        cd_records_on_disk=cd_records_on_disk,
        cd_records_total=cd_records_total,
        cd_size=cd_size,
        cd_offset=cd_offset,
        comment=comment,
    )


def find_eocd(f: BinaryIO, file_size: int) -> int:
    """Locate the End of Central Directory record.

    Scans backward from the end of the file for the EOCD signature. The EOCD
    can be followed by up to 65535 bytes of comment, so the record is looked
    for in the last ``22 + 65535`` bytes. A candidate is accepted only if its
    declared comment fits in the bytes that follow it.

    Args:
        f: Seekable binary file-like object.
        file_size: Total size of the stream in bytes.

    Returns:
        Absolute offset of the EOCD signature.

    Raises:
        ZipFormatError: If no EOCD record can be found.
    """
    max_scan = min(MAX_EOCD_SEARCH, file_size)
    start = file_size - max_scan

    f.seek(start, io.SEEK_SET)
    data = read_exact(f, max_scan)

    end = len(data)
    while True:
        pos = data.rfind(END_OF_CENTRAL_DIR_MAGIC, 0, end)
        if pos == -1:
            raise ZipFormatError("End of Central Directory record not found")

        fixed_end = pos + END_OF_CENTRAL_DIR_SIZE
        if fixed_end <= len(data):
            comment_len = struct.unpack("<H", data[fixed_end - 2 : fixed_end])[0]
            if fixed_end + comment_len <= len(data):
                return start + pos

        # Signature bytes inside a comment or a payload; keep looking
        end = pos + len(END_OF_CENTRAL_DIR_MAGIC) - 1


def write_local_file_header(f: BinaryIO, header: LocalFileHeader) -> int:
    """Write a local file header.

    Args:
        f: Binary file-like object to write to.
        header: Header to serialize.

    Returns:
        Number of bytes written.
    """
    _check_field_length("Filename", header.filename)
    _check_field_length("Extra field", header.extra)

    fixed = struct.pack(
        "<IHHHHHIIIHH",
        LOCAL_FILE_HEADER,
        header.version_needed,
        header.flags,
        header.compression_method,
        header.mod_time,
        header.mod_date,
        header.crc32,
        header.compressed_size,
        header.uncompressed_size,
        len(header.filename),
        len(header.extra),
    )
    written = write_bytes(f, fixed)
    written += write_bytes(f, header.filename)
    written += write_bytes(f, header.extra)
    return written


def write_central_directory_header(f: BinaryIO, header: CentralDirectoryHeader) -> int:
    """Write a central directory header.

    Args:
        f: Binary file-like object to write to.
        header: Header to serialize.

    Returns:
        Number of bytes written.
    """
    _check_field_length("Filename", header.filename)
    _check_field_length("Extra field", header.extra)
    _check_field_length("Comment", header.comment)

    fixed = struct.pack(
        "<IHHHHHHIIIHHHHHII",
        CENTRAL_DIR_HEADER,
        header.version_made_by,
        header.version_needed,
        header.flags,
        header.compression_method,
        header.mod_time,
        header.mod_date,
        header.crc32,
        header.compressed_size,
        header.uncompressed_size,
        len(header.filename),
        len(header.extra),
        len(header.comment),
        header.disk_num,
        header.internal_attrs,
        header.external_attrs & 0xFFFFFFFF,
        header.local_header_offset,
    )
    written = write_bytes(f, fixed)
    written += write_bytes(f, header.filename)
    written += write_bytes(f, header.extra)
    written += write_bytes(f, header.comment)
    return written


def write_eocd(f: BinaryIO, eocd: EndOfCentralDirectory) -> int:
    """Write an End of Central Directory record.

    Args:
        f: Binary file-like object to write to.
        eocd: Record to serialize.

    Returns:
        Number of bytes written.
    """
    _check_field_length("Archive comment", eocd.comment)

    fixed = struct.pack(
        "<IHHHHIIH",
        END_OF_CENTRAL_DIR,
        eocd.disk_num,
        eocd.cd_disk,
        eocd.cd_records_on_disk,
        eocd.cd_records_total,
        eocd.cd_size,
        eocd.cd_offset,
        len(eocd.comment),
    )
    written = write_bytes(f, fixed)
    written += write_bytes(f, eocd.comment)
    return written
