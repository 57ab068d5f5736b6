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
Debugging utilities for the ziparchive library.

This module provides tools for analyzing and debugging ZIP file structures.
"""

import io
import os
from typing import BinaryIO, Optional

from .archive import ZipArchive
from .constants import (
    CENTRAL_DIR_HEADER,
    CENTRAL_DIR_HEADER_SIZE,
    END_OF_CENTRAL_DIR,
    END_OF_CENTRAL_DIR_SIZE,
    LOCAL_FILE_HEADER,
    LOCAL_FILE_HEADER_SIZE,
)
from .errors import ZipError
from .limits import ZipLimits
from .stream import stream_length
from .utils import read_uint16, read_uint32


def hex_dump(data: bytes, offset: int = 0, length: Optional[int] = None, width: int = 16) -> str:
    """Format bytes as offset, hex and printable-ASCII columns.

    ``offset`` is the stream position of ``data[0]`` and only affects the
    labels. ``length`` caps how many bytes are shown.
    """
    if length is not None:
        data = data[:length]

    rows = []
    for start in range(0, len(data), width):
        row = data[start : start + width]
        text = "".join(chr(b) if 0x20 <= b < 0x7F else "." for b in row)
        rows.append(f"{offset + start:08X}  {row.hex(' ').upper():<{width * 3}}  {text}")
    return "\n".join(rows)


def _field(f: BinaryIO, offset: int, reader) -> int:
    f.seek(offset, io.SEEK_SET)
    return reader(f)


def dump_archive_structure(stream: BinaryIO, limit: int = 10) -> str:
    """Describe the records found by a linear scan of a ZIP stream.

    The scan walks record by record from the start of the stream, so it
    also shows records that the central directory no longer references.

    Args:
        stream: Seekable binary stream holding the archive.
        limit: Maximum number of offsets listed per record type.

    Returns:
        Formatted string describing the ZIP structure.
    """
    file_size = stream_length(stream)
    output = [f"File size: {file_size} bytes ({file_size / 1024 / 1024:.2f} MB)"]

    offset = 0
    local_headers = []
    central_headers = []
    eocd_offset = None

    while offset + 4 <= file_size:
        sig = _field(stream, offset, read_uint32)

        if sig == LOCAL_FILE_HEADER and offset + LOCAL_FILE_HEADER_SIZE <= file_size:
            local_headers.append(offset)
            compressed_size = _field(stream, offset + 18, read_uint32)
            filename_len = _field(stream, offset + 26, read_uint16)
            extra_len = read_uint16(stream)
            offset += LOCAL_FILE_HEADER_SIZE + filename_len + extra_len + compressed_size
        elif sig == CENTRAL_DIR_HEADER and offset + CENTRAL_DIR_HEADER_SIZE <= file_size:
            central_headers.append(offset)
            filename_len = _field(stream, offset + 28, read_uint16)
            extra_len = read_uint16(stream)
            comment_len = read_uint16(stream)
            offset += CENTRAL_DIR_HEADER_SIZE + filename_len + extra_len + comment_len
        elif sig == END_OF_CENTRAL_DIR and offset + END_OF_CENTRAL_DIR_SIZE <= file_size:
            eocd_offset = offset
            comment_len = _field(stream, offset + 20, read_uint16)
            offset += END_OF_CENTRAL_DIR_SIZE + comment_len
        else:
            offset += 1  # Unknown, advance slowly

    output.append(f"\nLocal File Headers: {len(local_headers)}")
    for i, off in enumerate(local_headers[:limit]):
        output.append(f"  [{i}] Offset: 0x{off:08X}")

    output.append(f"\nCentral Directory Headers: {len(central_headers)}")
    for i, off in enumerate(central_headers[:limit]):
        output.append(f"  [{i}] Offset: 0x{off:08X}")

    if eocd_offset is not None:
        output.append(f"\nEnd of Central Directory: 0x{eocd_offset:08X}")
    else:
        output.append("\nEnd of Central Directory: not found")

    return "\n".join(output)


def verify_archive(path: str | os.PathLike, limits: Optional[ZipLimits] = None) -> tuple[bool, list[str]]:
    """Verify that an archive opens and that every entry reads back intact.

    Args:
        path: Path to ZIP file.
        limits: Zip-bomb limits applied while reading.

    Returns:
        Tuple of (is_valid, list_of_errors).
    """
    errors = []

    try:
        with ZipArchive(open(path, "rb"), limits=limits) as archive:
            for entry in archive.entries:
                try:
                    entry.read()
                except ZipError as e:
                    errors.append(f"Error reading {entry.full_name}: {e}")
    except ZipError as e:
        errors.append(f"Error opening ZIP file: {e}")

    return len(errors) == 0, errors
