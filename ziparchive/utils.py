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
Utility functions for the ziparchive library.

This module provides helper functions for CRC32 calculation, DOS date/time
conversion, and safe binary I/O operations.
"""

import struct
import zlib
from datetime import datetime
from typing import BinaryIO

from .errors import ZipFormatError

DOS_EPOCH = datetime(1980, 1, 1, 0, 0, 0)
DOS_MAX = datetime(2107, 12, 31, 23, 59, 58)


def crc32(data: bytes) -> int:
    """Calculate CRC32 checksum for data.

    Args:
        data: Bytes to calculate CRC32 for.

    Returns:
        CRC32 value as unsigned 32-bit integer.
    """
    return zlib.crc32(data) & 0xFFFFFFFF


def dos_datetime_to_timestamp(dos_date: int, dos_time: int) -> datetime:
    """Convert DOS date and time to Python datetime.

    DOS date format (16 bits):
        Bits 0-4: Day (1-31)
        Bits 5-8: Month (1-12)
        Bits 9-15: Year - 1980 (0-127, so 1980-2107)

    DOS time format (16 bits):
        Bits 0-4: Second / 2 (0-29, so 0-58 seconds in 2-second increments)
        Bits 5-10: Minute (0-59)
        Bits 11-15: Hour (0-23)

    Args:
        dos_date: DOS date value (16-bit unsigned integer).
        dos_time: DOS time value (16-bit unsigned integer).

    Returns:
        Naive datetime object representing the DOS date/time.
    """
    day = dos_date & 0x1F
    month = (dos_date >> 5) & 0x0F
    year = ((dos_date >> 9) & 0x7F) + 1980

    second = (dos_time & 0x1F) * 2
    minute = (dos_time >> 5) & 0x3F
    hour = (dos_time >> 11) & 0x1F

    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError:
        # Zeroed or garbled fields
        return DOS_EPOCH


def timestamp_to_dos_datetime(dt: datetime) -> tuple[int, int]:
    """Convert Python datetime to DOS date and time.

    The conversion is lossy: seconds are truncated to even values, the
    timezone is ignored, and values outside 1980-2107 are clamped to the
    nearest representable instant.

    Args:
        dt: datetime object to convert.

    Returns:
        Tuple of (dos_date, dos_time) as 16-bit unsigned integers.
    """
    dt = dt.replace(tzinfo=None)
    if dt < DOS_EPOCH:
        dt = DOS_EPOCH
    elif dt > DOS_MAX:
        dt = DOS_MAX

    year = dt.year - 1980
    dos_date = dt.day | (dt.month << 5) | (year << 9)
    dos_time = (dt.second // 2) | (dt.minute << 5) | (dt.hour << 11)

    return (dos_date & 0xFFFF, dos_time & 0xFFFF)


def read_exact(f: BinaryIO, size: int) -> bytes:
    """Read exactly 'size' bytes from file, raising ZipFormatError on short read.

    Args:
        f: Binary file-like object to read from.
        size: Number of bytes to read.

    Returns:
        Exactly 'size' bytes of data.

    Raises:
        ZipFormatError: If fewer than 'size' bytes could be read or size is invalid.
    """
    if size < 0:
        raise ZipFormatError(f"Invalid read size: {size} (must be non-negative)")

    data = f.read(size)
    if data is None or len(data) != size:
        got = 0 if data is None else len(data)
        raise ZipFormatError(f"Unexpected end of file: expected {size} bytes, got {got}")
    return data


def read_uint16(f: BinaryIO) -> int:
    """Read a little-endian 16-bit unsigned integer from file."""
    return struct.unpack("<H", read_exact(f, 2))[0]


def read_uint32(f: BinaryIO) -> int:
    """Read a little-endian 32-bit unsigned integer from file."""
    return struct.unpack("<I", read_exact(f, 4))[0]


def write_bytes(f: BinaryIO, data: bytes) -> int:
    """Write raw bytes to file.

    Args:
        f: Binary file-like object to write to.
        data: Bytes to write.

    Returns:
        Number of bytes written.

    Raises:
        ZipFormatError: If the write operation writes fewer bytes than expected.
    """
    written = f.write(data)
    if written is not None and written != len(data):
        raise ZipFormatError(f"Write operation failed: expected to write {len(data)} bytes, wrote {written} bytes")
    return len(data)

