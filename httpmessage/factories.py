"""
Build message objects from an Environment.

uri_from_environment, headers_from_environment and files_from_environment
each read one aspect of the environment; server_request_from_environment
combines them into a ServerRequest.
"""
from __future__ import annotations

import logging
import urllib.parse
from collections.abc import Mapping
from typing import Any

from httpmessage import exceptions
from httpmessage import streams
from httpmessage.environment import Environment
from httpmessage.http import Headers
from httpmessage.http import ServerRequest
from httpmessage.net.http import headers as content_types
from httpmessage.uploads import FilesystemMover
from httpmessage.uploads import UploadedFile
from httpmessage.uri import Uri

logger = logging.getLogger(__name__)

# Server variables without an "HTTP_" prefix that still describe request headers.
SPECIAL_HEADERS = frozenset(
    {
        "CONTENT_TYPE",
        "CONTENT_LENGTH",
        "PHP_AUTH_USER",
        "PHP_AUTH_PW",
        "PHP_AUTH_DIGEST",
        "AUTH_TYPE",
    }
)

REDIRECT_PREFIX = "REDIRECT_"

uri_from_string = Uri.from_string


def _request_path(request_uri: str | None) -> str:
    # The request uri is only a path and a query, so we give it a dummy
    # authority to be able to use a regular url parser.
    try:
        parts = urllib.parse.urlsplit("http://example.com" + (request_uri or ""))
    except ValueError as e:
        raise exceptions.InvalidUri(f"Unable to parse request uri {request_uri!r}: {e}") from e
    if parts.netloc != "example.com":
        raise exceptions.InvalidUri(f"Unable to parse request uri {request_uri!r}")
    return parts.path or "/"


def uri_from_environment(environment: Environment) -> Uri:
    """
    Raises:
        InvalidUri, if the request uri cannot be parsed or the scheme is not supported.
    """
    return Uri(
        scheme=environment.request_scheme,
        host=environment.host,
        port=environment.port,
        path=_request_path(environment.request_uri),
        query=environment.query_string,
        fragment="",
        user=environment.auth_user,
        password=environment.auth_password,
    )


def headers_from_environment(environment: Environment) -> Headers:
    """
    Collect the request headers from the server variables.

    "HTTP_*" variables and the names in SPECIAL_HEADERS are headers. A
    "REDIRECT_" prefix added by chained rewrites is removed, unless the
    variable also exists without the prefix, in which case the unprefixed
    variable wins.
    """
    server = environment.server
    fields: dict[str, Any] = {}
    for name, value in server.items():
        if name.startswith(REDIRECT_PREFIX):
            name = name[len(REDIRECT_PREFIX):]
            if name in server:
                logger.debug("Ignoring %s%s, %s is set", REDIRECT_PREFIX, name, name)
                continue
        if name.startswith("HTTP_") or name in SPECIAL_HEADERS:
            fields[name] = value
    return Headers(fields)


def _uploaded_file(
    entry: Mapping[str, Any], mover: FilesystemMover, index: int | None = None
) -> UploadedFile:
    def value(key: str):
        v = entry.get(key)
        if index is None:
            return v
        if isinstance(v, (list, tuple)):
            return v[index] if index < len(v) else None
        return None

    return UploadedFile(
        value("tmp_name"),
        value("name"),
        value("type"),
        value("size"),
        value("error"),
        mover,
    )


def files_from_environment(environment: Environment) -> dict[str, Any]:
    """
    Turn the raw files tree into UploadedFile instances.

    A field with a single file maps to an UploadedFile, a field with several
    files (where every attribute is a list) maps to a list of them.
    Only files inside the environment's upload_dir can be moved, if it is set.
    """
    mover = FilesystemMover(environment.upload_dir)
    files: dict[str, Any] = {}
    for field_name, entry in environment.files.items():
        if not isinstance(entry, Mapping):
            continue
        error = entry.get("error")
        if isinstance(error, (list, tuple)):
            files[field_name] = [_uploaded_file(entry, mover, i) for i in range(len(error))]
        else:
            files[field_name] = _uploaded_file(entry, mover)
    return files


def server_request_from_environment(environment: Environment) -> ServerRequest:
    """
    Assemble a ServerRequest from the environment.

    For POSTed forms the already decoded post fields become the parsed body,
    as the raw body of a multipart upload has been consumed by then.

    Raises:
        InvalidArgument, if the environment describes a request that cannot
        be represented (unsupported method, scheme or protocol version).
    """
    request = ServerRequest(
        method=environment.request_method,
        uri=uri_from_environment(environment),
        headers=headers_from_environment(environment),
        body=streams.Stream(environment.body),
        protocol_version=environment.protocol_version or "1.1",
        server_params=environment.server,
        cookie_params=environment.cookies,
        uploaded_files=files_from_environment(environment),
    )
    if request.method == "POST" and content_types.is_form(request.get_header_line("content-type")):
        request = request.with_parsed_body(dict(environment.post))
    return request
