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
Stream helpers for the archive engine.

This module provides the buffered write stream handed out for new entries,
where the final compressed size and CRC32 are not known until every byte
has been seen, and small helpers describing the archive's backing stream.
"""

import io
from typing import BinaryIO, Callable, NamedTuple, Optional


class StreamCapabilities(NamedTuple):
    """What a backing stream can do."""

    readable: bool
    writable: bool
    seekable: bool


def _query_capability(stream: BinaryIO, method: str, *fallback_attrs: str) -> bool:
    query = getattr(stream, method, None)
    if callable(query):
        try:
            return bool(query())
        except ValueError:
            # closed file
            return False
    return all(callable(getattr(stream, attr, None)) for attr in fallback_attrs)


def stream_capabilities(stream: BinaryIO) -> StreamCapabilities:
    """Report whether a stream is readable, writable and seekable.

    Objects following the ``io`` protocol are asked directly; bare file-like
    objects are judged by the methods they expose.
    """
    return StreamCapabilities(
        readable=_query_capability(stream, "readable", "read"),
        writable=_query_capability(stream, "writable", "write"),
        seekable=_query_capability(stream, "seekable", "seek", "tell"),
    )


def stream_length(f: BinaryIO) -> int:
    """Return the total length of a seekable stream without moving its position."""
    position = f.tell()
    try:
        f.seek(0, io.SEEK_END)
        return f.tell()
    finally:
        f.seek(position, io.SEEK_SET)


class EntryWriteStream(io.RawIOBase):
    """Write-only stream that appends to an entry's in-memory buffer.

    Nothing reaches the archive's backing stream until the archive is
    closed; the entry is told when this stream is released so it can be
    finalized.

    Example:
        with archive.create_entry("hello.txt").open() as w:
            w.write(b"Hello, World!")
    """

    def __init__(self, buffer: bytearray, on_close: Optional[Callable[[], None]] = None):
        super().__init__()
        self._buffer = buffer
        self._on_close = on_close

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed entry stream")
        data = bytes(b)
        self._buffer += data
        return len(data)

    def tell(self) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed entry stream")
        return len(self._buffer)

    def close(self) -> None:
        if self.closed:
            return
        try:
            if self._on_close is not None:
                self._on_close()
        finally:
            self._on_close = None
            super().close()
