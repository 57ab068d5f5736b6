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

"""Tests for the file-system helpers."""

import io
import os
import stat
from datetime import datetime

import pytest

from conftest import build_archive
from ziparchive import (
    CompressionLevel,
    ZipArchive,
    ZipArchiveMode,
    ZipFormatError,
    create_entry_from_file,
    create_from_directory,
    extract_to_directory,
    extract_to_file,
    open_archive,
    open_read,
)


class TestOpenArchive:
    """Opening archives by path."""

    def test_create_then_read(self, tmp_path):
        path = tmp_path / "a.zip"
        with open_archive(path, ZipArchiveMode.CREATE) as z:
            with z.create_entry("a.txt").open() as w:
                w.write(b"on disk")

        with open_read(path) as z:
            assert z.get_entry("a.txt").read() == b"on disk"

    def test_create_refuses_existing(self, tmp_path):
        path = tmp_path / "a.zip"
        path.write_bytes(b"")
        with pytest.raises(FileExistsError):
            open_archive(path, ZipArchiveMode.CREATE)

    def test_read_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            open_read(tmp_path / "missing.zip")

    def test_update_creates_missing(self, tmp_path):
        path = tmp_path / "new.zip"
        with open_archive(path, "a") as z:
            with z.create_entry("a.txt").open() as w:
                w.write(b"first")

        with open_archive(path, ZipArchiveMode.UPDATE) as z:
            with z.create_entry("b.txt").open() as w:
                w.write(b"second")

        with open_read(path) as z:
            assert [e.full_name for e in z.entries] == ["a.txt", "b.txt"]

    def test_file_closed_with_archive(self, tmp_path):
        path = tmp_path / "a.zip"
        path.write_bytes(build_archive({"a.txt": b"x"}))
        z = open_read(path)
        stream = z._stream
        z.close()
        assert stream.closed


class TestEntryFromFile:
    """Copying files into entries."""

    def test_carries_mtime_and_mode(self, tmp_path):
        source = tmp_path / "script.sh"
        source.write_bytes(b"#!/bin/sh\necho hi\n")
        os.chmod(source, 0o755)
        mtime = datetime(2022, 5, 6, 7, 8, 10).timestamp()
        os.utime(source, (mtime, mtime))

        buf = io.BytesIO()
        with ZipArchive(buf, ZipArchiveMode.CREATE, leave_open=True) as z:
            create_entry_from_file(z, source, "bin/script.sh", CompressionLevel.FASTEST)

        with ZipArchive(io.BytesIO(buf.getvalue())) as z:
            entry = z.get_entry("bin/script.sh")
            assert entry.read() == b"#!/bin/sh\necho hi\n"
            assert entry.last_write_time == datetime(2022, 5, 6, 7, 8, 10)
            assert (entry.external_attributes >> 16) & 0o777 == 0o755


class TestExtract:
    """Extracting entries to disk."""

    def test_extract_to_file(self, tmp_path, sample_archive):
        target = tmp_path / "readme.txt"
        with ZipArchive(io.BytesIO(sample_archive)) as z:
            entry = z.get_entry("docs/readme.txt")
            extract_to_file(entry, target)
            assert target.read_bytes() == entry.read()
            assert datetime.fromtimestamp(target.stat().st_mtime) == entry.last_write_time

    def test_extract_to_file_refuses_overwrite(self, tmp_path, sample_archive):
        target = tmp_path / "readme.txt"
        target.write_bytes(b"existing")
        with ZipArchive(io.BytesIO(sample_archive)) as z:
            with pytest.raises(FileExistsError):
                extract_to_file(z.get_entry("docs/readme.txt"), target)
            assert target.read_bytes() == b"existing"

            extract_to_file(z.get_entry("docs/readme.txt"), target, overwrite=True)
            assert target.read_bytes() == b"Hello, World!\n" * 200

    def test_special_mode_bits_dropped(self, tmp_path):
        buf = io.BytesIO()
        with ZipArchive(buf, ZipArchiveMode.CREATE, leave_open=True) as z:
            entry = z.create_entry("tool")
            entry.external_attributes = (stat.S_IFREG | 0o4777) << 16
            with entry.open() as w:
                w.write(b"payload")

        target = tmp_path / "tool"
        with ZipArchive(io.BytesIO(buf.getvalue())) as z:
            extract_to_file(z.get_entry("tool"), target)

        mode = os.stat(target).st_mode
        assert not mode & (stat.S_ISUID | stat.S_ISGID | stat.S_ISVTX)
        assert stat.S_IMODE(mode) & ~0o777 == 0

    def test_extract_to_directory(self, tmp_path, sample_archive):
        out = tmp_path / "out"
        with ZipArchive(io.BytesIO(sample_archive)) as z:
            extracted = extract_to_directory(z, out)

        assert len(extracted) == 3
        assert (out / "docs" / "readme.txt").read_bytes() == b"Hello, World!\n" * 200
        assert (out / "data.bin").read_bytes() == bytes(range(256))
        assert (out / "docs" / "empty").is_dir()

    @pytest.mark.parametrize("name", ["../evil.txt", "a/../../evil.txt", "/tmp/evil.txt"])
    def test_zip_slip_rejected(self, tmp_path, name):
        data = build_archive({"good.txt": b"fine", name: b"evil"})
        out = tmp_path / "out"
        with ZipArchive(io.BytesIO(data)) as z:
            with pytest.raises(ZipFormatError, match="outside"):
                extract_to_directory(z, out)

        # Nothing is written when any entry escapes
        assert not (out / "good.txt").exists()
        assert not (tmp_path / "evil.txt").exists()


class TestCreateFromDirectory:
    """Archiving directory trees."""

    def test_round_trip(self, tmp_path, source_tree):
        archive = tmp_path / "tree.zip"
        count = create_from_directory(source_tree, archive)
        assert count == 4

        with open_read(archive) as z:
            names = {e.full_name for e in z.entries}
        assert names == {"top.txt", "empty/", "sub/mid.txt", "sub/deeper/leaf.bin"}

        out = tmp_path / "out"
        with open_read(archive) as z:
            extract_to_directory(z, out)
        assert (out / "top.txt").read_bytes() == (source_tree / "top.txt").read_bytes()
        assert (out / "sub" / "deeper" / "leaf.bin").read_bytes() == bytes(range(200))
        assert (out / "empty").is_dir()

    def test_include_base_directory(self, tmp_path, source_tree):
        archive = tmp_path / "tree.zip"
        create_from_directory(source_tree, archive, include_base_directory=True)

        with open_read(archive) as z:
            names = [e.full_name for e in z.entries]
        assert names[0] == "src/"
        assert "src/sub/mid.txt" in names

    def test_store_level(self, tmp_path, source_tree):
        archive = tmp_path / "tree.zip"
        create_from_directory(source_tree, archive, CompressionLevel.NO_COMPRESSION)

        with open_read(archive) as z:
            assert all(e.compressed_length == e.length for e in z.entries)

    def test_refuses_existing_archive(self, tmp_path, source_tree):
        archive = tmp_path / "tree.zip"
        archive.write_bytes(b"keep")
        with pytest.raises(FileExistsError):
            create_from_directory(source_tree, archive)
        assert archive.read_bytes() == b"keep"

    def test_archive_inside_source_skipped(self, source_tree):
        archive = source_tree / "tree.zip"
        assert create_from_directory(source_tree, archive) == 4

        with open_read(archive) as z:
            names = {e.full_name for e in z.entries}
        assert "tree.zip" not in names

    def test_source_must_be_directory(self, tmp_path):
        with pytest.raises(NotADirectoryError):
            create_from_directory(tmp_path / "missing", tmp_path / "a.zip")
