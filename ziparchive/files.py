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
File-system helpers built on ZipArchive.

These functions open archives by path, copy files into entries and extract
entries back to disk.
"""

import logging
import os
import shutil
import stat
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from .archive import ZipArchive, ZipArchiveMode
from .codec import CompressionLevel
from .constants import UNIX_DIR_ATTRS
from .entry import ZipArchiveEntry
from .errors import ZipFormatError
from .limits import ZipLimits

logger = logging.getLogger(__name__)

_OPEN_MODES = {
    ZipArchiveMode.READ: "rb",
    ZipArchiveMode.CREATE: "xb",
    ZipArchiveMode.UPDATE: "r+b",
}


def open_archive(
    path: str | os.PathLike,
    mode: ZipArchiveMode | str = ZipArchiveMode.READ,
    entry_name_encoding: str = "utf-8",
    limits: Optional[ZipLimits] = None,
) -> ZipArchive:
    """Open an archive on disk.

    Create mode refuses an existing file. Update mode creates the file when
    it does not exist yet.

    Args:
        path: Path to the archive.
        mode: ``ZipArchiveMode`` member or its value.
        entry_name_encoding: Encoding for entry names without the UTF-8 flag.
        limits: Zip-bomb limits used when reading.

    Returns:
        ZipArchive that owns the file and closes it on close().

    Raises:
        FileNotFoundError: In read mode, if the file does not exist.
        FileExistsError: In create mode, if the file already exists.
    """
    mode = ZipArchiveMode(mode)
    file_mode = _OPEN_MODES[mode]
    if mode is ZipArchiveMode.UPDATE and not os.path.exists(path):
        file_mode = "w+b"

    f = open(path, file_mode)
    logger.debug(f"opened {os.fspath(path)!r} ({file_mode}) in {mode.name.lower()} mode")
    return ZipArchive(f, mode, entry_name_encoding=entry_name_encoding, limits=limits)


def open_read(path: str | os.PathLike, limits: Optional[ZipLimits] = None) -> ZipArchive:
    """Open an archive on disk for reading."""
    return open_archive(path, ZipArchiveMode.READ, limits=limits)


def create_entry_from_file(
    archive: ZipArchive,
    source: str | os.PathLike,
    entry_name: str,
    compression_level: CompressionLevel = CompressionLevel.OPTIMAL,
) -> ZipArchiveEntry:
    """Copy a file into a new entry.

    The entry takes the file's modification time and its unix permission bits.

    Args:
        archive: Archive in create or update mode.
        source: File to copy.
        entry_name: Name of the new entry.
        compression_level: Compression preference for the entry.

    Returns:
        The new entry.
    """
    st = os.stat(source)
    entry = archive.create_entry(entry_name, compression_level)
    entry.last_write_time = datetime.fromtimestamp(st.st_mtime)
    entry.external_attributes = (stat.S_IFREG | stat.S_IMODE(st.st_mode)) << 16

    with open(source, "rb") as src, entry.open() as dst:
        shutil.copyfileobj(src, dst)

    logger.debug(f"added {os.fspath(source)!r} as {entry_name!r} ({st.st_size} bytes)")
    return entry


def _umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def extract_to_file(entry: ZipArchiveEntry, destination: str | os.PathLike, overwrite: bool = False) -> None:
    """Write an entry's content to a file.

    Args:
        entry: Entry to extract.
        destination: Target file path.
        overwrite: Replace an existing file instead of failing.

    Raises:
        FileExistsError: If the target exists and overwrite is False.
    """
    content = entry.read()

    with open(destination, "wb" if overwrite else "xb") as f:
        f.write(content)

    mtime = entry.last_write_time.timestamp()
    os.utime(destination, (mtime, mtime))

    # Permission bits only; setuid, setgid and sticky are never restored.
    mode = (entry.external_attributes >> 16) & 0o777 & ~_umask()
    if mode:
        os.chmod(destination, mode)


def _safe_target(base: Path, entry_name: str) -> Path:
    """Resolve an entry name under base, rejecting names that escape it."""
    target = (base / entry_name).resolve()
    if target != base and base not in target.parents:
        raise ZipFormatError(f"Entry '{entry_name}' would be extracted outside of {base}")
    return target


def extract_to_directory(
    archive: ZipArchive, destination: str | os.PathLike, overwrite: bool = False
) -> list[Path]:
    """Extract every entry below a directory.

    Every target path is checked before anything is written, so an archive
    with one malicious name extracts nothing.

    Args:
        archive: Archive in read or update mode.
        destination: Directory to extract into; created if missing.
        overwrite: Replace existing files instead of failing.

    Returns:
        Paths of the extracted files and directories.

    Raises:
        ZipFormatError: If an entry name resolves outside the destination.
        FileExistsError: If a file exists and overwrite is False.
    """
    base = Path(destination).resolve()
    targets = [(entry, _safe_target(base, entry.full_name)) for entry in archive.entries]

    base.mkdir(parents=True, exist_ok=True)
    extracted = []
    for entry, target in targets:
        if entry.is_directory:
            target.mkdir(parents=True, exist_ok=True)
        else:
            target.parent.mkdir(parents=True, exist_ok=True)
            extract_to_file(entry, target, overwrite=overwrite)
        extracted.append(target)

    logger.debug(f"extracted {len(extracted)} entries to {base}")
    return extracted


def _iter_tree(source_dir: Path, base: Path, exclude: Optional[Path] = None) -> Iterable[tuple[str, Path]]:
    """Yield (entry_name, path) for every file and empty directory under source_dir.

    A file resolving to exclude is skipped.
    """
    for root, dirs, files in os.walk(source_dir):
        dirs.sort()
        root_path = Path(root)
        if not dirs and not files and root_path != source_dir:
            yield root_path.relative_to(base).as_posix() + "/", root_path
        for filename in sorted(files):
            file_path = root_path / filename
            if exclude is not None and file_path.resolve() == exclude:
                continue
            yield file_path.relative_to(base).as_posix(), file_path


def create_from_directory(
    source_dir: str | os.PathLike,
    archive_path: str | os.PathLike,
    compression_level: CompressionLevel = CompressionLevel.OPTIMAL,
    include_base_directory: bool = False,
) -> int:
    """Archive a directory tree into a new file.

    Args:
        source_dir: Directory to archive.
        archive_path: Path of the archive to create.
        compression_level: Compression preference for every file.
        include_base_directory: Prefix entry names with the source directory's name.

    Returns:
        Number of entries written.

    Raises:
        NotADirectoryError: If source_dir is not a directory.
        FileExistsError: If archive_path already exists.
    """
    source = Path(source_dir).resolve()
    if not source.is_dir():
        raise NotADirectoryError(f"Not a directory: {source}")

    base = source.parent if include_base_directory else source
    target = Path(archive_path).resolve()
    count = 0
    with open_archive(archive_path, ZipArchiveMode.CREATE) as archive:
        if include_base_directory:
            entry = archive.create_entry(source.name + "/")
            entry.external_attributes = UNIX_DIR_ATTRS
            count += 1

        for entry_name, path in _iter_tree(source, base, exclude=target):
            if entry_name.endswith("/"):
                entry = archive.create_entry(entry_name)
                entry.external_attributes = UNIX_DIR_ATTRS
                entry.last_write_time = datetime.fromtimestamp(path.stat().st_mtime)
            else:
                create_entry_from_file(archive, path, entry_name, compression_level)
            count += 1

    logger.debug(f"archived {count} entries from {source} into {os.fspath(archive_path)!r}")
    return count
