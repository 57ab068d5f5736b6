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

"""Tests for the zip-bomb guard predicates."""

import logging
import math

import pytest

from ziparchive.errors import ZipBombError, ZipFormatError
from ziparchive.limits import (
    DEFAULT_LIMITS,
    ZipLimits,
    check_compression_ratio,
    check_declared_size,
    check_decompressed_size,
    check_entry_count,
    compression_ratio,
)


class TestZipLimits:
    """Limit configuration."""

    def test_defaults(self):
        assert DEFAULT_LIMITS.max_entry_count == 65535
        assert DEFAULT_LIMITS.max_entry_size == 1024**3
        assert DEFAULT_LIMITS.max_compression_ratio == 1000

    def test_frozen(self):
        with pytest.raises(AttributeError):
            DEFAULT_LIMITS.max_entry_count = 1

    @pytest.mark.parametrize(
        "kwargs",
        [{"max_entry_count": -1}, {"max_entry_size": -1}, {"max_compression_ratio": 0}],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            ZipLimits(**kwargs)


class TestGuards:
    """Each guard accepts the boundary value and rejects anything above it."""

    def test_entry_count(self):
        limits = ZipLimits(max_entry_count=10)
        check_entry_count(10, limits)
        with pytest.raises(ZipBombError, match="claims 11 entries"):
            check_entry_count(11, limits)

    def test_declared_size(self):
        limits = ZipLimits(max_entry_size=1000)
        check_declared_size("a.txt", 1000, limits)
        with pytest.raises(ZipBombError, match="a.txt"):
            check_declared_size("a.txt", 1001, limits)

    def test_compression_ratio(self):
        limits = ZipLimits(max_compression_ratio=100)
        check_compression_ratio("a.txt", 10000, 100, limits)
        with pytest.raises(ZipBombError, match="compression ratio"):
            check_compression_ratio("a.txt", 10001, 100, limits)

    def test_zero_compressed_size_with_data_rejected(self):
        with pytest.raises(ZipBombError):
            check_compression_ratio("a.txt", 1, 0, DEFAULT_LIMITS)

    def test_empty_entry_accepted(self):
        check_compression_ratio("a.txt", 0, 0, DEFAULT_LIMITS)

    def test_decompressed_size(self):
        limits = ZipLimits(max_entry_size=1000)
        check_decompressed_size("a.txt", 1000, limits)
        with pytest.raises(ZipBombError, match="actual decompressed size exceeds"):
            check_decompressed_size("a.txt", 1001, limits)

    def test_bomb_error_is_format_error(self):
        with pytest.raises(ZipFormatError):
            check_entry_count(2, ZipLimits(max_entry_count=1))

    def test_rejection_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="ziparchive.limits"):
            with pytest.raises(ZipBombError):
                check_entry_count(2, ZipLimits(max_entry_count=1))
        assert "zip bomb" in caplog.text


class TestCompressionRatio:
    """Ratio helper."""

    def test_values(self):
        assert compression_ratio(1000, 10) == 100
        assert compression_ratio(0, 0) == 0
        assert math.isinf(compression_ratio(5, 0))
