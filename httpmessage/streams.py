"""
Byte streams used as message bodies.

Messages only rely on the StreamLike protocol; Stream is the implementation
used whenever a body is given as bytes, str or a raw binary file object.
"""
from __future__ import annotations

import io
import os
from typing import Any
from typing import BinaryIO
from typing import Protocol
from typing import runtime_checkable

from httpmessage import exceptions
from httpmessage.utils import strutils


@runtime_checkable
class StreamLike(Protocol):
    def read(self, n: int = -1) -> bytes: ...

    def write(self, data: bytes) -> int: ...

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> None: ...

    def tell(self) -> int: ...

    def eof(self) -> bool: ...

    def get_contents(self) -> bytes: ...

    def get_metadata(self, key: str | None = None) -> Any: ...

    def detach(self) -> BinaryIO | None: ...

    def close(self) -> None: ...

    def __bytes__(self) -> bytes: ...


class Stream:
    """
    A StreamLike wrapper around a binary file object.

    The wrapper owns the handle: close() closes it, detach() hands it back to
    the caller and leaves the wrapper unusable. Converting a stream to bytes
    or str never raises; it rewinds and reads everything, or returns an empty
    value if that is not possible.
    """

    def __init__(self, handle: BinaryIO):
        if not hasattr(handle, "read"):
            raise exceptions.InvalidBody(
                f"Stream handle must be a binary file object, not {type(handle).__name__}"
            )
        self._handle: BinaryIO | None = handle

    @classmethod
    def from_bytes(cls, content: bytes | str = b"") -> Stream:
        """
        Create a readable and writable in-memory stream, positioned at the start.
        """
        content = strutils.always_bytes(content, "utf-8", "surrogateescape")
        return cls(io.BytesIO(content))

    @classmethod
    def empty(cls) -> Stream:
        return cls.from_bytes(b"")

    def __repr__(self) -> str:
        if self._handle is None:
            return "Stream(detached)"
        return f"Stream(size={self.size}, mode={self.get_metadata('mode')!r})"

    def _get_handle(self) -> BinaryIO:
        if self._handle is None:
            raise exceptions.StreamDetached("Stream has been detached")
        return self._handle

    @property
    def readable(self) -> bool:
        return self._handle is not None and _call_or(self._handle, "readable", True)

    @property
    def writable(self) -> bool:
        return self._handle is not None and _call_or(self._handle, "writable", False)

    @property
    def seekable(self) -> bool:
        return self._handle is not None and _call_or(self._handle, "seekable", False)

    @property
    def size(self) -> int | None:
        """
        Size of the stream in bytes, or None if it cannot be determined.
        """
        handle = self._handle
        if handle is None:
            return None
        if isinstance(handle, io.BytesIO):
            return handle.getbuffer().nbytes
        if not self.seekable:
            return None
        try:
            pos = handle.tell()
            try:
                return handle.seek(0, os.SEEK_END)
            finally:
                handle.seek(pos)
        except (OSError, ValueError):
            return None

    def tell(self) -> int:
        handle = self._get_handle()
        try:
            return handle.tell()
        except (OSError, ValueError) as e:
            raise exceptions.StreamError(f"Unable to determine stream position: {e}") from e

    def eof(self) -> bool:
        handle = self._get_handle()
        size = self.size
        if size is None:
            return False
        return handle.tell() >= size

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> None:
        handle = self._get_handle()
        if not self.seekable:
            raise exceptions.StreamError("Stream is not seekable")
        try:
            handle.seek(offset, whence)
        except (OSError, ValueError) as e:
            raise exceptions.StreamError(f"Unable to seek to stream position {offset}: {e}") from e

    def rewind(self) -> None:
        self.seek(0)

    def read(self, n: int = -1) -> bytes:
        handle = self._get_handle()
        if not self.readable:
            raise exceptions.StreamError("Stream is not readable")
        try:
            return handle.read(n)
        except (OSError, ValueError) as e:
            raise exceptions.StreamError(f"Unable to read from stream: {e}") from e

    def write(self, data: bytes | str) -> int:
        handle = self._get_handle()
        if not self.writable:
            raise exceptions.StreamError("Stream is not writable")
        data = strutils.always_bytes(data, "utf-8", "surrogateescape")
        try:
            return handle.write(data)
        except (OSError, ValueError) as e:
            raise exceptions.StreamError(f"Unable to write to stream: {e}") from e

    def get_contents(self) -> bytes:
        """
        The remaining contents, from the current position to the end.
        """
        return self.read()

    def get_metadata(self, key: str | None = None) -> Any:
        """
        Stream metadata as a dict (mode, seekable, uri), or a single entry
        if key is given. Unknown keys yield None.
        """
        handle = self._get_handle()
        metadata = {
            "mode": getattr(handle, "mode", "rb+" if self.writable else "rb"),
            "seekable": self.seekable,
            "uri": getattr(handle, "name", None) if not isinstance(handle, io.BytesIO) else None,
        }
        if key is None:
            return metadata
        return metadata.get(key)

    def detach(self) -> BinaryIO | None:
        handle, self._handle = self._handle, None
        return handle

    def close(self) -> None:
        handle = self.detach()
        if handle is not None:
            handle.close()

    def __bytes__(self) -> bytes:
        try:
            self.rewind()
            return self.get_contents()
        except exceptions.StreamError:
            return b""

    def __str__(self) -> str:
        return strutils.native(bytes(self))


def _call_or(handle, method: str, default: bool) -> bool:
    f = getattr(handle, method, None)
    if f is None:
        return default
    try:
        return f()
    except ValueError:  # closed file
        return False


def to_stream(body: StreamLike | BinaryIO | bytes | str | None) -> StreamLike:
    """
    Resolve a message body into a stream:

        None              -> empty in-memory stream
        bytes / str       -> in-memory stream with that content
        StreamLike        -> returned unchanged
        binary file object -> wrapped in a Stream

    Raises:
        InvalidBody, for anything else.
    """
    if body is None:
        return Stream.empty()
    if isinstance(body, (bytes, bytearray, str)):
        return Stream.from_bytes(bytes(body) if isinstance(body, bytearray) else body)
    if isinstance(body, StreamLike):
        return body
    if hasattr(body, "read"):
        return Stream(body)
    raise exceptions.InvalidBody(
        f"Body must be bytes, str, None or a stream, not {type(body).__name__}"
    )


def peek(stream: StreamLike) -> bytes:
    """
    The whole content of stream, leaving its position where it was.
    Streams that cannot report or restore their position yield b"".
    """
    try:
        pos = stream.tell()
    except exceptions.StreamError:
        return b""
    content = bytes(stream)
    try:
        stream.seek(pos)
    except exceptions.StreamError:
        return b""
    return content
