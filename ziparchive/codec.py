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
Compression codec selection and raw DEFLATE transforms.

ZIP entries carry raw DEFLATE streams (no zlib header or trailer), so every
compressor and decompressor here is created with negative window bits.
"""

import zlib
from enum import Enum

from .constants import COMP_DEFLATE, COMP_STORED, DECOMPRESS_CHUNK_SIZE
from .errors import ZipCompressionError
from .limits import ZipLimits, check_decompressed_size


class CompressionLevel(Enum):
    """Compression preference for a new entry."""

    OPTIMAL = zlib.Z_DEFAULT_COMPRESSION
    FASTEST = zlib.Z_BEST_SPEED
    SMALLEST_SIZE = zlib.Z_BEST_COMPRESSION
    NO_COMPRESSION = zlib.Z_NO_COMPRESSION


def deflate(data: bytes, level: CompressionLevel = CompressionLevel.OPTIMAL) -> bytes:
    """Compress data into a raw DEFLATE stream.

    Args:
        data: Bytes to compress.
        level: Compression preference.

    Returns:
        Raw DEFLATE bytes.

    Raises:
        ZipCompressionError: If zlib fails.
    """
    try:
        compressor = zlib.compressobj(level.value, zlib.DEFLATED, -zlib.MAX_WBITS)
        return compressor.compress(data) + compressor.flush()
    except zlib.error as e:
        raise ZipCompressionError(f"Deflate compression failed: {e}") from e


def inflate(
    data: bytes,
    name: str,
    limits: ZipLimits,
    chunk_size: int = DECOMPRESS_CHUNK_SIZE,
) -> bytes:
    """Decompress a raw DEFLATE stream under a hard output cap.

    Output is requested from zlib at most ``chunk_size`` bytes at a time and
    the running total is checked against ``limits.max_entry_size`` before
    each chunk is kept, so an oversized stream is abandoned after at most
    one extra chunk, whatever the headers claim.

    Args:
        data: Raw DEFLATE bytes.
        name: Entry name, used in error messages.
        limits: Policy holding the size cap.
        chunk_size: Maximum number of bytes produced per iteration.

    Returns:
        Decompressed bytes.

    Raises:
        ZipBombError: If the output grows past the cap.
        ZipCompressionError: If the stream is corrupt, truncated, or followed by extra data.
    """
    if not data:
        return b""

    decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
    output = bytearray()
    pending = data

    try:
        while not decompressor.eof:
            chunk = decompressor.decompress(pending, chunk_size)
            pending = decompressor.unconsumed_tail
            if not chunk and not pending and not decompressor.eof:
                raise ZipCompressionError(f"Deflate stream for '{name}' ended before its end-of-stream marker")

            check_decompressed_size(name, len(output) + len(chunk), limits)
            output += chunk
    except zlib.error as e:
        raise ZipCompressionError(f"Deflate decompression failed for '{name}': {e}") from e

    if decompressor.unused_data:
        raise ZipCompressionError(f"Extra data after compressed stream for '{name}'")

    return bytes(output)


def select_method(data: bytes, level: CompressionLevel) -> tuple[int, bytes]:
    """Choose between store and deflate for an entry's payload.

    Deflate is kept only when it actually makes the payload smaller;
    empty payloads and entries created without compression are stored.

    Args:
        data: Uncompressed entry bytes.
        level: Compression preference requested for the entry.

    Returns:
        Tuple of (compression_method, payload_bytes).
    """
    if level is CompressionLevel.NO_COMPRESSION or not data:
        return COMP_STORED, data

    compressed = deflate(data, level)
    if len(compressed) >= len(data):
        return COMP_STORED, data
    return COMP_DEFLATE, compressed
