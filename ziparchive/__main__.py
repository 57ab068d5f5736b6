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
Command-line interface for ziparchive (``ziparchive``).

Supported commands (via ``python -m ziparchive``):

- ``list``    : List entries in an archive
- ``info``    : Show a detailed table of entries
- ``extract`` : Extract entries to a directory
- ``create``  : Create a new archive from a directory
- ``add``     : Add a file to an existing archive
- ``delete``  : Delete an entry from an archive
- ``test``    : Test archive integrity without extracting
- ``dump``    : Show the record layout of an archive

Example usages:

    # List entries
    python -m ziparchive list archive.zip

    # Extract everything into ./output
    python -m ziparchive extract archive.zip -d output

    # Create archive.zip from all files under ./data
    python -m ziparchive create archive.zip data

Reading commands apply the zip-bomb limits, which can be tuned with
``--max-entries``, ``--max-entry-size`` and ``--max-ratio``.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .archive import ZipArchiveMode
from .codec import CompressionLevel
from .constants import METHOD_NAMES
from .debug import dump_archive_structure, hex_dump, verify_archive
from .errors import ZipBombError, ZipError
from .files import create_entry_from_file, create_from_directory, extract_to_directory, open_archive
from .limits import ZipLimits

logger = logging.getLogger(__name__)


def _print_error(message: str, exit_code: int = 1, suggestion: Optional[str] = None) -> None:
    """Print an error message to stderr and exit with the given code.

    Args:
        message: Error message to display.
        exit_code: Exit code to use.
        suggestion: Optional suggestion to help the user resolve the error.
    """
    sys.stderr.write(f"ziparchive: {message}\n")
    if suggestion:
        sys.stderr.write(f"ziparchive: Suggestion: {suggestion}\n")
    sys.exit(exit_code)


def _parse_size(size_str: str) -> int:
    """
    Parse a size string (e.g., "64MB", "100KB", "1GB") into bytes.

    Args:
        size_str: Size string with optional suffix (KB, MB, GB).

    Returns:
        Size in bytes.

    Raises:
        argparse.ArgumentTypeError: If size string is invalid.
    """
    size_str = size_str.strip().upper()
    multipliers = {"KB": 1024, "MB": 1024**2, "GB": 1024**3}

    try:
        if size_str[-2:] in multipliers:
            return int(size_str[:-2]) * multipliers[size_str[-2:]]
        return int(size_str)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Invalid size format: {size_str} (expected number or number with KB/MB/GB suffix)"
        ) from None


def _format_size(size_bytes: float) -> str:
    """Format size in bytes to human-readable format (e.g., "1.50 MB")."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size_bytes < 1024.0:
            return f"{size_bytes:.2f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.2f} TB"


def _limits_from_args(args: argparse.Namespace) -> ZipLimits:
    defaults = ZipLimits()
    return ZipLimits(
        max_entry_count=args.max_entries if args.max_entries is not None else defaults.max_entry_count,
        max_entry_size=args.max_entry_size if args.max_entry_size is not None else defaults.max_entry_size,
        max_compression_ratio=args.max_ratio if args.max_ratio is not None else defaults.max_compression_ratio,
    )


def _cmd_list(archive: Path, limits: ZipLimits) -> None:
    """List all entries in an archive, one per line."""
    with open_archive(archive, limits=limits) as z:
        for entry in z.entries:
            print(entry.full_name)


def _cmd_info(archive: Path, limits: ZipLimits) -> None:
    """Print a table with metadata for each entry."""
    with open_archive(archive, limits=limits) as z:
        entries = z.entries
        print(f"Archive: {archive}")
        print(f"Entries: {len(entries)}")
        if z.comment:
            print(f"Archive comment: {z.comment.decode('utf-8', errors='replace')}")
        print("=" * 80)
        print(f"{'Name':40}  {'Size':>10}  {'Compr.':>10}  {'Method':>8}  {'Modified':>16}")
        print("-" * 80)

        total_size = 0
        total_compressed = 0
        for entry in entries:
            display_name = entry.full_name if len(entry.full_name) <= 40 else entry.full_name[:37] + "..."
            method = METHOD_NAMES.get(entry.compression_method, str(entry.compression_method))
            modified = entry.last_write_time.strftime("%Y-%m-%d %H:%M")
            print(
                f"{display_name:40}  {entry.length:10d}  {entry.compressed_length:10d}  "
                f"{method:>8}  {modified:>16}"
            )
            total_size += entry.length
            total_compressed += entry.compressed_length

        print("-" * 80)
        print(f"Total: {_format_size(total_size)} uncompressed, {_format_size(total_compressed)} compressed")


def _cmd_extract(archive: Path, directory: Path, overwrite: bool, limits: ZipLimits) -> None:
    """Extract every entry into a directory."""
    with open_archive(archive, limits=limits) as z:
        extracted = extract_to_directory(z, directory, overwrite=overwrite)
    print(f"Extracted {len(extracted)} entries to {directory}")


def _cmd_create(archive: Path, source: Path, level: CompressionLevel, include_base: bool) -> None:
    """Create a new archive from a directory tree."""
    if not source.is_dir():
        _print_error(f"Source is not a directory: {source}", exit_code=2)
    count = create_from_directory(source, archive, level, include_base_directory=include_base)
    print(f"Created {archive} with {count} entries")


def _cmd_add(archive: Path, source: Path, name: Optional[str], level: CompressionLevel, limits: ZipLimits) -> None:
    """Add a file to an archive, creating the archive if needed."""
    if not source.is_file():
        _print_error(f"Source file not found: {source}", exit_code=2)
    with open_archive(archive, ZipArchiveMode.UPDATE, limits=limits) as z:
        entry = create_entry_from_file(z, source, name or source.name, level)
    print(f"Added {entry.full_name}")


def _cmd_delete(archive: Path, name: str, limits: ZipLimits) -> None:
    """Delete an entry from an archive."""
    if not archive.exists():
        _print_error(f"Archive not found: {archive}", exit_code=2)
    with open_archive(archive, ZipArchiveMode.UPDATE, limits=limits) as z:
        entry = z.get_entry(name)
        if entry is None:
            _print_error(f"Entry not found: {name}", exit_code=1)
        entry.delete()
    print(f"Deleted {name}")


def _cmd_test(archive: Path, limits: ZipLimits) -> int:
    """Test archive integrity without extracting.

    Returns:
        Exit code: 0 if every entry reads back intact, 1 otherwise.
    """
    ok, errors = verify_archive(archive, limits=limits)
    if ok:
        print(f"Archive: {archive}")
        print("Status: OK")
        return 0

    print(f"Archive: {archive}")
    print(f"Status: FAILED ({len(errors)} errors)")
    for error in errors:
        print(f"  {error}")
    return 1


def _cmd_dump(archive: Path, hex_bytes: int) -> None:
    """Print the record layout of an archive, optionally with a hex dump of its head."""
    with open(archive, "rb") as f:
        print(f"ZIP File Structure: {archive}")
        print("=" * 80)
        print(dump_archive_structure(f))
        if hex_bytes:
            f.seek(0)
            print()
            print(hex_dump(f.read(hex_bytes)))


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the top-level argument parser."""
    parser = argparse.ArgumentParser(
        prog="ziparchive",
        description="ziparchive - ZIP archive engine with zip-bomb protection (library and CLI).",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--max-entries",
        type=int,
        default=None,
        metavar="N",
        help="Maximum number of entries an archive may declare (default: 65535)",
    )
    parser.add_argument(
        "--max-entry-size",
        type=_parse_size,
        default=None,
        metavar="SIZE",
        help="Maximum uncompressed size of a single entry, e.g. 512MB (default: 1GB)",
    )
    parser.add_argument(
        "--max-ratio",
        type=float,
        default=None,
        metavar="RATIO",
        help="Maximum compression ratio of a single entry (default: 1000)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # list
    p_list = subparsers.add_parser("list", help="List entries in an archive")
    p_list.add_argument("archive", type=Path, help="Path to the ZIP archive")

    # info
    p_info = subparsers.add_parser("info", help="Show detailed info about archive entries")
    p_info.add_argument("archive", type=Path, help="Path to the ZIP archive")

    # extract
    p_extract = subparsers.add_parser("extract", help="Extract entries to a directory")
    p_extract.add_argument("archive", type=Path, help="Path to the ZIP archive")
    p_extract.add_argument("-d", "--directory", type=Path, default=Path("."), help="Output directory")
    p_extract.add_argument("--overwrite", action="store_true", help="Overwrite existing files")

    # create
    p_create = subparsers.add_parser("create", help="Create an archive from a directory")
    p_create.add_argument("archive", type=Path, help="Path of the archive to create")
    p_create.add_argument("source", type=Path, help="Directory to archive")
    p_create.add_argument("--include-base", action="store_true", help="Keep the source directory name in entry names")
    level = p_create.add_mutually_exclusive_group()
    level.add_argument("--store", dest="level", action="store_const", const=CompressionLevel.NO_COMPRESSION)
    level.add_argument("--fastest", dest="level", action="store_const", const=CompressionLevel.FASTEST)
    level.add_argument("--smallest", dest="level", action="store_const", const=CompressionLevel.SMALLEST_SIZE)
    p_create.set_defaults(level=CompressionLevel.OPTIMAL)

    # add
    p_add = subparsers.add_parser("add", help="Add a file to an archive")
    p_add.add_argument("archive", type=Path, help="Path to the ZIP archive (created if missing)")
    p_add.add_argument("file", type=Path, help="File to add")
    p_add.add_argument("--name", default=None, help="Entry name (default: the file name)")
    p_add.add_argument("--store", action="store_true", help="Store without compression")

    # delete
    p_delete = subparsers.add_parser("delete", help="Delete an entry from an archive")
    p_delete.add_argument("archive", type=Path, help="Path to the ZIP archive")
    p_delete.add_argument("name", help="Entry name to delete")

    # test
    p_test = subparsers.add_parser("test", help="Test archive integrity without extracting")
    p_test.add_argument("archive", type=Path, help="Path to the ZIP archive")

    # dump
    p_dump = subparsers.add_parser("dump", help="Show the record layout of an archive")
    p_dump.add_argument("archive", type=Path, help="Path to the ZIP archive")
    p_dump.add_argument("--hex", type=int, default=0, metavar="N", help="Also hex dump the first N bytes")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the ziparchive CLI.

    This function is invoked when running:

        python -m ziparchive ...

    or, if a console script is configured, via:

        ziparchive ...
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        limits = _limits_from_args(args)
    except ValueError as e:
        _print_error(str(e), exit_code=2)

    try:
        if args.command == "list":
            _cmd_list(args.archive, limits)
        elif args.command == "info":
            _cmd_info(args.archive, limits)
        elif args.command == "extract":
            _cmd_extract(args.archive, args.directory, args.overwrite, limits)
        elif args.command == "create":
            _cmd_create(args.archive, args.source, args.level, args.include_base)
        elif args.command == "add":
            level = CompressionLevel.NO_COMPRESSION if args.store else CompressionLevel.OPTIMAL
            _cmd_add(args.archive, args.file, args.name, level, limits)
        elif args.command == "delete":
            _cmd_delete(args.archive, args.name, limits)
        elif args.command == "test":
            return _cmd_test(args.archive, limits)
        elif args.command == "dump":
            _cmd_dump(args.archive, args.hex)
    except ZipBombError as e:
        _print_error(str(e), exit_code=1, suggestion="Raise --max-entries, --max-entry-size or --max-ratio if the archive is trusted")
    except ZipError as e:
        _print_error(str(e), exit_code=1)
    except FileNotFoundError as e:
        _print_error(f"File not found: {e.filename}", exit_code=2)
    except FileExistsError as e:
        overwrite_hint = "Use --overwrite to replace existing files" if args.command == "extract" else None
        _print_error(f"File already exists: {e.filename}", exit_code=2, suggestion=overwrite_hint)
    except PermissionError as e:
        _print_error(f"Permission denied: {e.filename}", exit_code=2)
    except KeyboardInterrupt:
        _print_error("Interrupted by user", exit_code=130)

    return 0


if __name__ == "__main__":
    sys.exit(main())
