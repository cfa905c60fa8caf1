from __future__ import annotations

import logging
import os
import shutil
from typing import Protocol

from httpmessage import exceptions
from httpmessage import streams

logger = logging.getLogger(__name__)


class UploadMover(Protocol):
    def is_uploaded_file(self, path: str) -> bool: ...

    def move_uploaded_file(self, src: str, dst: str) -> bool: ...


class FilesystemMover:
    """
    Moves uploaded files on the local filesystem.

    If upload_dir is given, only regular files inside that directory count
    as uploaded files. Otherwise any regular file does.
    """

    def __init__(self, upload_dir: str | None = None):
        self.upload_dir = os.path.realpath(upload_dir) if upload_dir else None

    def __repr__(self):
        return f"FilesystemMover(upload_dir={self.upload_dir!r})"

    def is_uploaded_file(self, path: str) -> bool:
        if not os.path.isfile(path):
            return False
        if self.upload_dir is None:
            return True
        return os.path.commonpath([self.upload_dir, os.path.realpath(path)]) == self.upload_dir

    def move_uploaded_file(self, src: str, dst: str) -> bool:
        try:
            shutil.move(src, dst)
        except OSError as e:
            logger.warning("Unable to move uploaded file %s to %s: %s", src, dst, e)
            return False
        return True


class UploadedFile:
    """
    A file uploaded through an HTTP request.

    The file can be moved exactly once. Afterwards both move_to() and
    get_stream() raise UploadAlreadyMoved.
    """

    def __init__(
        self,
        file: str,
        client_filename: str | None,
        client_media_type: str | None,
        size: int | None,
        error: int,
        mover: UploadMover | None = None,
    ):
        self.file = file
        self.client_filename = client_filename
        self.client_media_type = client_media_type
        self.size = size
        self.error = error
        self.mover: UploadMover = mover or FilesystemMover()
        self.moved = False
        self._stream: streams.Stream | None = None

    def __repr__(self):
        return (
            f"UploadedFile({self.client_filename!r}, {self.client_media_type!r}, "
            f"size={self.size}, error={self.error})"
        )

    def get_stream(self) -> streams.Stream:
        """
        A stream over the uploaded file. Repeated calls return the same stream.

        Raises:
            UploadAlreadyMoved, if the file has been moved.
        """
        if self.moved:
            raise exceptions.UploadAlreadyMoved(
                f"Uploaded file {self.client_filename} has already been moved"
            )
        if self._stream is None:
            self._stream = streams.Stream(open(self.file, "rb"))
        return self._stream

    def move_to(self, target_path: str | os.PathLike) -> None:
        """
        Move the uploaded file to target_path.
        A stream handed out by get_stream() is closed first.

        Raises:
            UploadAlreadyMoved, if the file has been moved before.
            InvalidUploadTarget, if the target directory is not writable.
            UploadError, if the file is not an uploaded file or the move fails.
        """
        if self.moved:
            raise exceptions.UploadAlreadyMoved("Uploaded file already moved")

        target_path = os.fspath(target_path)
        target_dir = os.path.dirname(target_path) or os.curdir
        if not os.access(target_dir, os.W_OK):
            raise exceptions.InvalidUploadTarget(
                f"Upload target path {target_path} is not writable"
            )

        if not self.mover.is_uploaded_file(self.file):
            raise exceptions.UploadError(f"{self.file} is not a valid uploaded file")

        if self._stream is not None:
            self._stream.close()
            self._stream = None

        if not self.mover.move_uploaded_file(self.file, target_path):
            raise exceptions.UploadError(
                f"Error moving uploaded file {self.client_filename} to {target_path}"
            )

        self.moved = True
