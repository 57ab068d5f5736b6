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
Custom exception classes for the ziparchive library.

This module defines specific exception types for different error conditions
that can occur when reading, creating or updating ZIP archives.
"""


class ZipError(Exception):
    """Base exception class for all ZIP-related errors."""

    pass


class ZipFormatError(ZipError):
    """Raised when a ZIP archive has an invalid format or structure.

    This exception is raised when:
    - Required signatures are missing or incorrect
    - A record is truncated
    - Offsets or sizes point outside the stream
    """

    pass


class ZipBombError(ZipFormatError):
    """Raised when an archive trips one of the zip-bomb guards.

    This exception is raised when:
    - The declared entry count exceeds the configured maximum
    - An entry declares an uncompressed size above the configured cap
    - An entry declares a compression ratio above the configured maximum
    - Decompression produces more bytes than the configured cap
    """

    pass


class ZipUnsupportedFeature(ZipError):
    """Raised when encountering an unsupported ZIP feature.

    This exception is raised when:
    - Compression method is neither stored nor deflate
    - Encryption is used (not supported)
    """

    pass


class ZipCrcError(ZipError):
    """Raised when CRC32 checksum validation fails.

    This exception is raised when the computed CRC32 of decompressed data
    does not match the expected CRC32 stored in the archive.
    """

    pass


class ZipCompressionError(ZipError):
    """Raised when compression or decompression fails.

    This exception is raised when:
    - Compressed data is corrupted
    - The deflate stream ends before its end-of-stream marker
    - Extra data follows the deflate stream
    """

    pass


class ZipCapabilityError(ZipError, ValueError):
    """Raised when the backing stream cannot serve the requested mode."""

    pass


class ZipModeError(ZipError):
    """Raised when an operation is not allowed in the archive's mode."""

    pass


class ZipClosedError(ZipError, ValueError):
    """Raised when an archive or entry is used after the archive was closed."""

    pass


class ZipEntryStateError(ZipError):
    """Raised when an entry is in the wrong state for an operation.

    This exception is raised when:
    - The entry has been deleted
    - A write stream for the entry is already open
    - The archive is closed while a write stream is still open
    """

    pass
