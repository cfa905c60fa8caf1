from __future__ import annotations

import logging
import mimetypes
import os
import urllib.parse
from dataclasses import dataclass
from typing import BinaryIO

from python_multipart.exceptions import FormParserError
from python_multipart.multipart import Field
from python_multipart.multipart import File
from python_multipart.multipart import create_form_parser

from httpmessage.net.http import headers
from httpmessage.utils import strutils

logger = logging.getLogger(__name__)

UPLOAD_ERR_OK = 0
UPLOAD_ERR_NO_FILE = 4

CHUNK_SIZE = 64 * 1024


@dataclass
class UploadedPart:
    """A file part of a form submission, already written to disk."""

    field_name: str
    filename: str
    media_type: str
    path: str
    size: int
    error: int


def _native(x: bytes | None) -> str:
    if x is None:
        return ""
    return strutils.native(x)


def parse_form(
    content_type: str,
    body: BinaryIO,
    content_length: int | None = None,
    upload_dir: str | None = None,
) -> tuple[list[tuple[str, str]], list[UploadedPart]]:
    """
    Stream an urlencoded or multipart form body through python-multipart.

    Regular fields are returned as (name, value) tuples in submission order.
    File parts are flushed to a temporary file in upload_dir (or the system
    temp directory), which is left in place for the caller to move or
    delete.

    Raises:
        ValueError, if the content type is not a form type or the body is malformed.
    """
    fields: list[tuple[str, str]] = []
    parts: list[UploadedPart] = []
    # python-multipart hands out urlencoded fields undecoded.
    urlencoded = headers.media_type(content_type) == "application/x-www-form-urlencoded"

    def on_field(field: Field) -> None:
        name, value = _native(field.field_name), _native(field.value)
        if urlencoded:
            name = urllib.parse.unquote_plus(name, errors="surrogateescape")
            value = urllib.parse.unquote_plus(value, errors="surrogateescape")
        fields.append((name, value))

    def on_file(file: File) -> None:
        if file.in_memory:
            file.flush_to_disk()
        filename = _native(file.file_name)
        parts.append(
            UploadedPart(
                field_name=_native(file.field_name),
                filename=filename,
                media_type=mimetypes.guess_type(filename)[0] or "application/octet-stream",
                path=os.fsdecode(file.actual_file_name),
                size=file.size,
                error=UPLOAD_ERR_NO_FILE if not filename and not file.size else UPLOAD_ERR_OK,
            )
        )
        file.close()

    config = {
        "UPLOAD_DIR": upload_dir,
        "UPLOAD_DELETE_TMP": False,
        "UPLOAD_KEEP_EXTENSIONS": True,
        # Every part goes to disk so that it can be moved later on.
        "MAX_MEMORY_FILE_SIZE": 0,
    }
    try:
        parser = create_form_parser({"Content-Type": content_type}, on_field, on_file, config=config)
        remaining = content_length if content_length is not None else float("inf")
        while remaining > 0:
            chunk = body.read(int(min(remaining, CHUNK_SIZE)))
            if not chunk:
                break
            parser.write(chunk)
            remaining -= len(chunk)
        parser.finalize()
    except FormParserError as e:
        raise ValueError(f"Malformed form body: {e}") from e

    logger.debug("Parsed form body: %d fields, %d files", len(fields), len(parts))
    return fields, parts


def files_tree(parts: list[UploadedPart]) -> dict[str, dict]:
    """
    Arrange uploaded parts the way a CGI-style files map is laid out:
    one entry per field with name/type/tmp_name/error/size keys. Fields
    named "x[]" collect several files, with a list under every key.
    """
    tree: dict[str, dict] = {}
    for part in parts:
        values = {
            "name": part.filename,
            "type": part.media_type,
            "tmp_name": part.path,
            "error": part.error,
            "size": part.size,
        }
        if part.field_name.endswith("[]"):
            entry = tree.setdefault(part.field_name[:-2], {k: [] for k in values})
            for k, v in values.items():
                entry[k].append(v)
        else:
            tree[part.field_name] = values
    return tree
