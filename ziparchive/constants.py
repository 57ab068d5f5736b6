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
ZIP format constants including signatures, compression methods, flags, and version numbers.

This module defines the wire constants used by the record codecs and the
default policy values used by the zip-bomb guards.
"""

# ZIP file signatures (magic numbers)
LOCAL_FILE_HEADER = 0x04034B50  # "PK\x03\x04"
CENTRAL_DIR_HEADER = 0x02014B50  # "PK\x01\x02"
END_OF_CENTRAL_DIR = 0x06054B50  # "PK\x05\x06"

END_OF_CENTRAL_DIR_MAGIC = b"PK\x05\x06"

# Compression methods
COMP_STORED = 0  # No compression
COMP_DEFLATE = 8  # Deflate compression (zlib)

SUPPORTED_METHODS = (COMP_STORED, COMP_DEFLATE)

METHOD_NAMES = {
    COMP_STORED: "stored",
    COMP_DEFLATE: "deflate",
}

# General purpose bit flags
FLAG_ENCRYPTED = 0x0001  # File is encrypted
FLAG_DATA_DESCRIPTOR = 0x0008  # Data descriptor follows file data
FLAG_UTF8 = 0x0800  # UTF-8 encoding for filename/comment

# ZIP version constants
VERSION_DEFAULT = 20  # Version needed to extract (2.0, deflate)
VERSION_MADE_BY_DEFAULT = 63  # Made by: Unix (63 = 3.0 * 20 + 3)

# Classic ZIP limits (32-bit)
MAX_FILE_SIZE = 0xFFFFFFFF  # 4 GiB - 1
MAX_ENTRIES = 0xFFFF  # 65535 entries
MAX_CD_SIZE = 0xFFFFFFFF  # 4 GiB - 1
MAX_CD_OFFSET = 0xFFFFFFFF  # 4 GiB - 1
MAX_FIELD_LENGTH = 0xFFFF  # name/extra/comment length fields are uint16

# Local file header size (fixed part)
LOCAL_FILE_HEADER_SIZE = 30

# Central directory header size (fixed part, excluding filename/extra/comment)
CENTRAL_DIR_HEADER_SIZE = 46

# End of central directory size (fixed part, excluding comment)
END_OF_CENTRAL_DIR_SIZE = 22

# Longest possible EOCD record: fixed part plus a maximal comment
MAX_EOCD_SEARCH = END_OF_CENTRAL_DIR_SIZE + MAX_FIELD_LENGTH

# Unix mode bits stored in the high word of the external attributes
UNIX_DIR_ATTRS = 0o040755 << 16

# Zip-bomb policy defaults
DEFAULT_MAX_ENTRY_COUNT = MAX_ENTRIES
DEFAULT_MAX_ENTRY_SIZE = 1024**3  # 1 GiB
DEFAULT_MAX_COMPRESSION_RATIO = 1000

# Output chunk requested from the inflater per iteration
DECOMPRESS_CHUNK_SIZE = 80 * 1024
