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

"""Tests for the command-line interface."""

import pytest

from conftest import CDH_CRC32, CDH_UNCOMPRESSED_SIZE, build_archive, cdh_offset, patch_u32
from ziparchive import open_read
from ziparchive.__main__ import _parse_size, main


@pytest.fixture
def archive_file(tmp_path):
    path = tmp_path / "sample.zip"
    path.write_bytes(build_archive({"a.txt": b"alpha\n" * 100, "dir/b.txt": b"beta"}))
    return path


def run_failing(argv) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestParseSize:
    """Size argument parsing."""

    @pytest.mark.parametrize(
        "text, expected",
        [("100", 100), ("4KB", 4096), ("2mb", 2 * 1024**2), ("1GB", 1024**3)],
    )
    def test_valid(self, text, expected):
        assert _parse_size(text) == expected

    def test_invalid(self):
        assert run_failing(["--max-entry-size", "lots", "list", "x.zip"]) == 2


class TestReadCommands:
    """list, info, test and dump."""

    def test_list(self, archive_file, capsys):
        assert main(["list", str(archive_file)]) == 0
        assert capsys.readouterr().out.splitlines() == ["a.txt", "dir/b.txt"]

    def test_info(self, archive_file, capsys):
        assert main(["info", str(archive_file)]) == 0
        out = capsys.readouterr().out
        assert "Entries: 2" in out
        assert "deflate" in out
        assert "dir/b.txt" in out

    def test_test_ok(self, archive_file, capsys):
        assert main(["test", str(archive_file)]) == 0
        assert "Status: OK" in capsys.readouterr().out

    def test_test_corrupt(self, archive_file, capsys):
        data = archive_file.read_bytes()
        archive_file.write_bytes(patch_u32(data, cdh_offset(data) + CDH_CRC32, 0))
        assert main(["test", str(archive_file)]) == 1
        assert "FAILED" in capsys.readouterr().out

    def test_dump(self, archive_file, capsys):
        assert main(["dump", str(archive_file), "--hex", "32"]) == 0
        out = capsys.readouterr().out
        assert "Local File Headers: 2" in out
        assert "00000000  50 4B 03 04" in out

    def test_missing_archive(self, tmp_path, capsys):
        assert run_failing(["list", str(tmp_path / "missing.zip")]) == 2
        assert "ziparchive: File not found" in capsys.readouterr().err

    def test_not_a_zip(self, tmp_path, capsys):
        path = tmp_path / "junk.zip"
        path.write_bytes(b"junk" * 10)
        assert run_failing(["list", str(path)]) == 1
        assert "End of Central Directory" in capsys.readouterr().err

    def test_bomb_limits(self, archive_file, tmp_path, capsys):
        assert run_failing(["--max-entries", "1", "list", str(archive_file)]) == 1
        err = capsys.readouterr().err
        assert "zip bomb" in err
        assert "Suggestion" in err

    def test_max_entry_size_flag(self, archive_file, tmp_path, capsys):
        data = archive_file.read_bytes()
        archive_file.write_bytes(patch_u32(data, cdh_offset(data) + CDH_UNCOMPRESSED_SIZE, 5000))
        assert run_failing(["--max-entry-size", "4KB", "extract", str(archive_file), "-d", str(tmp_path / "o")]) == 1


class TestWriteCommands:
    """create, add, extract and delete."""

    def test_create_and_extract(self, source_tree, tmp_path, capsys):
        archive = tmp_path / "tree.zip"
        assert main(["create", str(archive), str(source_tree), "--smallest"]) == 0
        assert "4 entries" in capsys.readouterr().out

        out = tmp_path / "out"
        assert main(["extract", str(archive), "-d", str(out)]) == 0
        assert (out / "sub" / "mid.txt").read_bytes() == b"middle"

        capsys.readouterr()
        assert run_failing(["extract", str(archive), "-d", str(out)]) == 2
        assert "--overwrite" in capsys.readouterr().err
        assert main(["extract", str(archive), "-d", str(out), "--overwrite"]) == 0

    def test_create_existing(self, source_tree, archive_file, capsys):
        assert run_failing(["create", str(archive_file), str(source_tree)]) == 2
        err = capsys.readouterr().err
        assert "File already exists" in err
        assert "--overwrite" not in err

    def test_add_and_delete(self, archive_file, tmp_path):
        source = tmp_path / "notes.txt"
        source.write_bytes(b"notes")

        assert main(["add", str(archive_file), str(source), "--name", "docs/notes.txt"]) == 0
        with open_read(archive_file) as z:
            assert z.get_entry("docs/notes.txt").read() == b"notes"

        assert main(["delete", str(archive_file), "a.txt"]) == 0
        with open_read(archive_file) as z:
            assert [e.full_name for e in z.entries] == ["dir/b.txt", "docs/notes.txt"]

    def test_add_creates_archive(self, tmp_path):
        source = tmp_path / "one.txt"
        source.write_bytes(b"one")
        archive = tmp_path / "new.zip"

        assert main(["add", str(archive), str(source), "--store"]) == 0
        with open_read(archive) as z:
            assert z.get_entry("one.txt").compressed_length == 3

    def test_delete_missing_entry(self, archive_file, capsys):
        assert run_failing(["delete", str(archive_file), "nope.txt"]) == 1
        assert "Entry not found" in capsys.readouterr().err
