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
ziparchive - Pure Python ZIP archive engine with zip-bomb protection.

This library reads, creates and updates standard ZIP archives directly
against a byte stream, using only Python standard library modules.
"""

from .archive import ZipArchive, ZipArchiveMode
from .codec import CompressionLevel
from .entry import ZipArchiveEntry
from .errors import (
    ZipBombError,
    ZipCapabilityError,
    ZipClosedError,
    ZipCompressionError,
    ZipCrcError,
    ZipEntryStateError,
    ZipError,
    ZipFormatError,
    ZipModeError,
    ZipUnsupportedFeature,
)
from .files import (
    create_entry_from_file,
    create_from_directory,
    extract_to_directory,
    extract_to_file,
    open_archive,
    open_read,
)
from .limits import ZipLimits

__all__ = [
    "ZipArchive",
    "ZipArchiveMode",
    "ZipArchiveEntry",
    "CompressionLevel",
    "ZipLimits",
    "ZipError",
    "ZipFormatError",
    "ZipBombError",
    "ZipUnsupportedFeature",
    "ZipCompressionError",
    "ZipCrcError",
    "ZipCapabilityError",
    "ZipModeError",
    "ZipClosedError",
    "ZipEntryStateError",
    "open_archive",
    "open_read",
    "create_entry_from_file",
    "extract_to_file",
    "extract_to_directory",
    "create_from_directory",
]

__version__ = "0.1.0"
