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

"""Shared test fixtures and helpers for ziparchive tests."""

import io
import struct
from pathlib import Path

import pytest

from ziparchive import CompressionLevel, ZipArchive, ZipArchiveMode

# Offsets of fields inside the central directory header
CDH_FLAGS = 8
CDH_METHOD = 10
CDH_CRC32 = 16
CDH_COMPRESSED_SIZE = 20
CDH_UNCOMPRESSED_SIZE = 24

# Offsets of fields inside the EOCD record
EOCD_RECORDS_ON_DISK = 8
EOCD_RECORDS_TOTAL = 10
EOCD_CD_OFFSET = 16


class NonSeekableWriter(io.RawIOBase):
    """Write-only sink that cannot seek or report its position."""

    def __init__(self) -> None:
        super().__init__()
        self.data = bytearray()

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        self.data += bytes(b)
        return len(b)


class NonSeekableReader(io.RawIOBase):
    """Read-only source that cannot seek."""

    def __init__(self, data: bytes) -> None:
        super().__init__()
        self._inner = io.BytesIO(data)

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        chunk = self._inner.read(len(b))
        b[: len(chunk)] = chunk
        return len(chunk)


def build_archive(
    entries: dict[str, bytes],
    level: CompressionLevel = CompressionLevel.OPTIMAL,
    comment: bytes = b"",
) -> bytes:
    """Create an archive in memory and return its bytes."""
    buf = io.BytesIO()
    with ZipArchive(buf, ZipArchiveMode.CREATE, leave_open=True) as z:
        for name, content in entries.items():
            with z.create_entry(name, level).open() as w:
                w.write(content)
        if comment:
            z.comment = comment
    return buf.getvalue()


def cdh_offset(data: bytes, index: int = 0) -> int:
    """Offset of the index-th central directory header."""
    pos = -1
    for _ in range(index + 1):
        pos = data.index(b"PK\x01\x02", pos + 1)
    return pos


def eocd_offset(data: bytes) -> int:
    return data.rindex(b"PK\x05\x06")


def patch_u16(data: bytes, offset: int, value: int) -> bytes:
    return data[:offset] + struct.pack("<H", value) + data[offset + 2 :]


def patch_u32(data: bytes, offset: int, value: int) -> bytes:
    return data[:offset] + struct.pack("<I", value) + data[offset + 4 :]


@pytest.fixture
def sample_archive() -> bytes:
    """Archive with a compressible text entry, a binary entry and a directory."""
    return build_archive(
        {
            "docs/readme.txt": b"Hello, World!\n" * 200,
            "data.bin": bytes(range(256)),
            "docs/empty/": b"",
        }
    )


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    """Small directory tree with nested files and an empty directory."""
    root = tmp_path / "src"
    (root / "sub" / "deeper").mkdir(parents=True)
    (root / "empty").mkdir()
    (root / "top.txt").write_bytes(b"top level file\n" * 50)
    (root / "sub" / "mid.txt").write_bytes(b"middle")
    (root / "sub" / "deeper" / "leaf.bin").write_bytes(bytes(range(200)))
    return root
