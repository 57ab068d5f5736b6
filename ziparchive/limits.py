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
Zip-bomb protection policy.

The guards are pure predicates over declared or observed sizes. They are
evaluated at four independent points:

1. the entry count declared by the EOCD, before any central directory
   record is parsed;
2. the uncompressed size declared by an entry, before any buffer is
   allocated for it;
3. the compression ratio declared by an entry, before decompression starts;
4. the number of bytes actually produced so far during decompression.

Only the last one measures real output, so it is the only one a crafted
header cannot get past.
"""

import logging
from dataclasses import dataclass

from .constants import (
    DEFAULT_MAX_COMPRESSION_RATIO,
    DEFAULT_MAX_ENTRY_COUNT,
    DEFAULT_MAX_ENTRY_SIZE,
)
from .errors import ZipBombError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZipLimits:
    """Resource limits applied when reading an archive.

    Attributes:
        max_entry_count: Maximum number of entries the EOCD may declare.
        max_entry_size: Maximum uncompressed size of a single entry, declared or actual.
        max_compression_ratio: Maximum uncompressed/compressed ratio for compressed entries.
    """

    max_entry_count: int = DEFAULT_MAX_ENTRY_COUNT
    max_entry_size: int = DEFAULT_MAX_ENTRY_SIZE
    max_compression_ratio: float = DEFAULT_MAX_COMPRESSION_RATIO

    def __post_init__(self) -> None:
        if self.max_entry_count < 0:
            raise ValueError(f"max_entry_count must be non-negative, got {self.max_entry_count}")
        if self.max_entry_size < 0:
            raise ValueError(f"max_entry_size must be non-negative, got {self.max_entry_size}")
        if self.max_compression_ratio <= 0:
            raise ValueError(f"max_compression_ratio must be positive, got {self.max_compression_ratio}")


DEFAULT_LIMITS = ZipLimits()


def check_entry_count(count: int, limits: ZipLimits) -> None:
    """Reject an archive declaring more entries than allowed."""
    if count > limits.max_entry_count:
        _reject(
            f"Archive claims {count:,} entries, which exceeds the maximum allowed "
            f"count of {limits.max_entry_count:,}. This may indicate a zip bomb."
        )


def check_declared_size(name: str, uncompressed_size: int, limits: ZipLimits) -> None:
    """Reject an entry declaring an uncompressed size above the cap."""
    if uncompressed_size > limits.max_entry_size:
        _reject(
            f"Entry '{name}' claims uncompressed size of {uncompressed_size:,} bytes, which "
            f"exceeds the maximum allowed size of {limits.max_entry_size:,} bytes. "
            "This may indicate a zip bomb."
        )


def compression_ratio(uncompressed_size: int, compressed_size: int) -> float:
    """Return the uncompressed/compressed ratio; infinite when nothing is stored for real data."""
    if compressed_size == 0:
        return float("inf") if uncompressed_size > 0 else 0.0
    return uncompressed_size / compressed_size


def check_compression_ratio(name: str, uncompressed_size: int, compressed_size: int, limits: ZipLimits) -> None:
    """Reject a compressed entry whose declared ratio is above the maximum."""
    ratio = compression_ratio(uncompressed_size, compressed_size)
    if ratio > limits.max_compression_ratio:
        _reject(
            f"Entry '{name}' has a compression ratio of {ratio:,.1f}:1, which exceeds the "
            f"maximum allowed ratio of {limits.max_compression_ratio:,}:1. This may indicate a zip bomb."
        )


def check_decompressed_size(name: str, produced: int, limits: ZipLimits) -> None:
    """Reject a decompression that has produced more bytes than the cap."""
    if produced > limits.max_entry_size:
        _reject(
            f"Entry '{name}' actual decompressed size exceeds the maximum allowed size of "
            f"{limits.max_entry_size:,} bytes. This may indicate a zip bomb."
        )


def _reject(message: str) -> None:
    logger.warning(message)
    raise ZipBombError(message)
