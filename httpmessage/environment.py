from __future__ import annotations

import logging
import tempfile
import urllib.parse
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import BinaryIO

from httpmessage import exceptions
from httpmessage.net.http import cookies
from httpmessage.net.http import headers
from httpmessage.net.http import multipart
from httpmessage.net.http import url

logger = logging.getLogger(__name__)

# Request bodies up to this size are buffered in memory, larger ones spill to disk.
SPOOL_MAX_SIZE = 1024 * 1024


@dataclass(frozen=True)
class Environment:
    """
    A read-only snapshot of the raw request context, as a CGI-style server
    presents it: the server variables, the body handle and the already
    decoded post fields, cookies and files. upload_dir is the directory
    uploaded files were written to, if known.

    Accessors return None when the underlying variable is not set.
    """

    server: Mapping[str, Any]
    body: BinaryIO
    post: Mapping[str, Any] = field(default_factory=dict)
    cookies: Mapping[str, Any] = field(default_factory=dict)
    files: Mapping[str, Any] = field(default_factory=dict)
    upload_dir: str | None = None

    def __post_init__(self):
        if not hasattr(self.body, "read"):
            raise exceptions.InvalidEnvironment(
                f"Environment body must be a binary file object, not {type(self.body).__name__}"
            )

    def __repr__(self):
        return f"Environment({self.request_method} {self.request_uri})"

    @property
    def query_string(self) -> str | None:
        return self.server.get("QUERY_STRING")

    @property
    def request_method(self) -> str | None:
        return self.server.get("REQUEST_METHOD")

    @property
    def request_uri(self) -> str | None:
        return self.server.get("REQUEST_URI")

    @property
    def request_scheme(self) -> str | None:
        scheme = self.server.get("REQUEST_SCHEME")
        if scheme is None and self.server.get("HTTPS", "off").lower() != "off":
            return "https"
        return scheme

    @property
    def host(self) -> str | None:
        """
        The Host header without a port, falling back to SERVER_NAME.
        """
        host = self.server.get("HTTP_HOST")
        if host:
            return url.parse_authority(host)[0]
        return self.server.get("SERVER_NAME")

    @property
    def port(self) -> str | None:
        return self.server.get("SERVER_PORT")

    @property
    def protocol_version(self) -> str | None:
        """
        The version part of SERVER_PROTOCOL, e.g. "1.1" for "HTTP/1.1".
        A bare major version ("HTTP/2") is returned as "2.0".
        """
        protocol = self.server.get("SERVER_PROTOCOL")
        if not protocol or "/" not in protocol:
            return None
        version = protocol.split("/", 1)[1]
        if version.isdigit():
            version += ".0"
        return version

    @property
    def auth_user(self) -> str | None:
        return self.server.get("PHP_AUTH_USER")

    @property
    def auth_password(self) -> str | None:
        return self.server.get("PHP_AUTH_PW")

    @classmethod
    def from_wsgi(
        cls,
        environ: Mapping[str, Any],
        *,
        upload_dir: str | None = None,
        spool_max_size: int = SPOOL_MAX_SIZE,
    ) -> Environment:
        """
        Build an environment from a WSGI environ.

        The request body is copied from wsgi.input into a seekable spool
        file. For form submissions (POST with an urlencoded or multipart
        content type) the fields and uploaded files are decoded right away;
        uploaded files are written to upload_dir, or the system temp
        directory if it is not given.

        Raises:
            InvalidEnvironment, if a form submission cannot be decoded.
        """
        server = {k: v for k, v in environ.items() if isinstance(v, str)}
        server.setdefault("REQUEST_SCHEME", environ.get("wsgi.url_scheme", "http"))
        if "REQUEST_URI" not in server:
            # PATH_INFO is decoded as latin-1 by the WSGI server.
            path = server.get("SCRIPT_NAME", "") + server.get("PATH_INFO", "")
            request_uri = urllib.parse.quote(path.encode("latin-1", "replace"), safe="/;=,@:$&+!*'()")
            if server.get("QUERY_STRING"):
                request_uri += "?" + server["QUERY_STRING"]
            server["REQUEST_URI"] = request_uri or "/"

        try:
            content_length: int | None = int(server.get("CONTENT_LENGTH") or 0)
        except ValueError:
            content_length = None

        body = tempfile.SpooledTemporaryFile(max_size=spool_max_size)
        wsgi_input = environ.get("wsgi.input")
        if wsgi_input is not None and content_length != 0:
            remaining = content_length if content_length is not None else float("inf")
            while remaining > 0:
                chunk = wsgi_input.read(int(min(remaining, multipart.CHUNK_SIZE)))
                if not chunk:
                    break
                body.write(chunk)
                remaining -= len(chunk)
        body.seek(0)

        post: dict[str, Any] = {}
        files: dict[str, Any] = {}
        content_type = server.get("CONTENT_TYPE", "")
        if server.get("REQUEST_METHOD") == "POST" and headers.is_form(content_type):
            try:
                fields, parts = multipart.parse_form(content_type, body, upload_dir=upload_dir)
            except ValueError as e:
                raise exceptions.InvalidEnvironment(f"Malformed form submission: {e}") from e
            post = url.nest(fields)
            files = multipart.files_tree(parts)
            body.seek(0)
            logger.debug(
                "Decoded form submission for %s: %d fields, %d files",
                server["REQUEST_URI"], len(fields), len(parts),
            )

        return cls(
            server=server,
            body=body,
            post=post,
            cookies=cookies.cookie_params(server.get("HTTP_COOKIE")),
            files=files,
            upload_dir=upload_dir,
        )
