from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from collections.abc import Iterator
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from httpmessage import exceptions
from httpmessage import streams
from httpmessage.net.http import body as bodyparser
from httpmessage.net.http import status_codes
from httpmessage.net.http import url
from httpmessage.uploads import UploadedFile
from httpmessage.uri import Uri
from httpmessage.utils import strutils

PROTOCOL_VERSIONS = ("1.0", "1.1", "2.0")
REQUEST_METHODS = ("GET", "POST", "DELETE", "PUT", "PATCH", "HEAD", "OPTIONS")
SERVER_REQUEST_METHODS = ("GET", "POST", "DELETE", "PUT", "PATCH")


def _header_value(value) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return strutils.native(bytes(value))
    if strutils.is_scalar(value):
        return str(value)
    raise exceptions.InvalidHeader(
        f"Header values must be strings, not {type(value).__name__}"
    )


def _header_values(value) -> tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(_header_value(v) for v in value)
    return (_header_value(value),)


class Headers:
    """
    An immutable collection of HTTP headers, mapping normalized names to
    lists of values.

    Names are normalized on the way in: lowercased, underscores turned into
    dashes and a leading "http-" removed, so server variables can be used
    directly:

    >>> h = Headers({"HTTP_ACCEPT": "text/html, application/xml"})
    >>> h.get("Accept")
    ['text/html', 'application/xml']

    On construction string values are split on commas and trimmed, except
    for the names in IGNORE_SPLITTING whose values routinely contain
    commas. Lists are taken as they are.

    add(), set() and remove() leave the collection untouched and return a
    new Headers instance:

    >>> h2 = h.set("accept", "text/plain")
    >>> h.get_line("accept"), h2.get_line("accept")
    ('text/html,application/xml', 'text/plain')
    """

    IGNORE_SPLITTING = frozenset({"user-agent"})

    _fields: dict[str, tuple[str, ...]]

    def __init__(
        self,
        fields: Mapping[str, Any] | Iterable[tuple[str, Any]] = (),
        **headers,
    ):
        """
        *Args:*
         - *fields:* (optional) a name -> value mapping or an iterable of
           ``(name, value)`` tuples.
         - *\\*\\*headers:* Additional headers. Will overwrite values with the
           same normalized name from `fields`; ``content_type`` becomes
           ``content-type``.
        """
        if isinstance(fields, Headers):
            fields = fields._fields.items()
        elif isinstance(fields, Mapping):
            fields = fields.items()
        elif isinstance(fields, (str, bytes)):
            raise exceptions.InvalidHeader("Headers must be a mapping or a list of (name, value) tuples")

        data: dict[str, tuple[str, ...]] = {}
        for name, value in [*fields, *headers.items()]:
            name = self.normalize_name(name)
            data[name] = self._split(name, value)
        self._fields = data

    @classmethod
    def _from_fields(cls, data: dict[str, tuple[str, ...]]) -> Headers:
        h = object.__new__(cls)
        h._fields = data
        return h

    @classmethod
    def _split(cls, name: str, value) -> tuple[str, ...]:
        if isinstance(value, (list, tuple)):
            return _header_values(value)
        value = _header_value(value)
        if name in cls.IGNORE_SPLITTING:
            return (value,)
        return tuple(v.strip() for v in value.split(","))

    @staticmethod
    def normalize_name(name: str | bytes) -> str:
        """
        Lowercase, translate "_" to "-" and strip a leading "http-".

        Raises:
            InvalidHeader, if name is not a string.
        """
        if isinstance(name, bytes):
            name = strutils.native(name)
        if not isinstance(name, str):
            raise exceptions.InvalidHeader(
                f"Header name must be a string, not {type(name).__name__}"
            )
        name = name.lower().replace("_", "-")
        if name.startswith("http-"):
            name = name[5:]
        return name

    def add(self, name: str, value) -> Headers:
        """
        Append value(s) to the values already present for name.
        """
        name = self.normalize_name(name)
        data = dict(self._fields)
        data[name] = data.get(name, ()) + _header_values(value)
        return self._from_fields(data)

    def set(self, name: str, value) -> Headers:
        """
        Replace all values for name.
        """
        name = self.normalize_name(name)
        data = dict(self._fields)
        data[name] = _header_values(value)
        return self._from_fields(data)

    def remove(self, name: str) -> Headers:
        name = self.normalize_name(name)
        if name not in self._fields:
            return self
        data = dict(self._fields)
        del data[name]
        return self._from_fields(data)

    def get(self, name: str) -> list[str]:
        return list(self._fields.get(self.normalize_name(name), ()))

    def get_line(self, name: str) -> str:
        return ",".join(self.get(name))

    def exists(self, name: str) -> bool:
        return self.normalize_name(name) in self._fields

    def all(self) -> dict[str, list[str]]:
        return {name: list(values) for name, values in self._fields.items()}

    def __contains__(self, name) -> bool:
        return isinstance(name, (str, bytes)) and self.exists(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __eq__(self, other):
        if isinstance(other, Headers):
            return self._fields == other._fields
        return False

    def __hash__(self):
        return hash(frozenset(self._fields.items()))

    def __repr__(self):
        return f"Headers({self.all()!r})"


def _validate_protocol_version(version) -> str:
    if version not in PROTOCOL_VERSIONS:
        raise exceptions.InvalidProtocol(
            f"Invalid HTTP version {version!r}. Must be one of: {', '.join(PROTOCOL_VERSIONS)}"
        )
    return version


def _make_headers(headers) -> Headers:
    if headers is None:
        return Headers()
    if isinstance(headers, Headers):
        return headers
    if isinstance(headers, (Mapping, list, tuple)):
        return Headers(headers)
    raise exceptions.InvalidHeader(
        f"Headers must be a Headers instance or a mapping, not {type(headers).__name__}"
    )


@dataclass(frozen=True)
class MessageData:
    protocol_version: str
    headers: Headers
    body: streams.StreamLike


class Message:
    """
    An immutable HTTP message: protocol version, headers and a body stream.

    Request, ServerRequest and Response each hold a Message and expose its
    accessors. Every with_* method returns a new object and leaves the
    receiver unchanged.
    """

    data: MessageData

    def __init__(
        self,
        headers: Headers | Mapping[str, Any] | None = None,
        body: streams.StreamLike | bytes | str | None = None,
        protocol_version: str = "1.1",
    ):
        self.data = MessageData(
            protocol_version=_validate_protocol_version(protocol_version),
            headers=_make_headers(headers),
            body=streams.to_stream(body),
        )

    def __repr__(self) -> str:
        return f"Message(HTTP/{self.protocol_version}, {len(self.headers)} headers)"

    def __eq__(self, other):
        if isinstance(other, Message):
            return self.data == other.data
        return False

    __hash__ = None  # type: ignore

    def _evolve(self, **changes) -> Message:
        m = object.__new__(type(self))
        m.data = dataclasses.replace(self.data, **changes)
        return m

    @property
    def protocol_version(self) -> str:
        """
        HTTP version as a plain number, e.g. "1.1".
        """
        return self.data.protocol_version

    @property
    def headers(self) -> Headers:
        return self.data.headers

    @property
    def body(self) -> streams.StreamLike:
        return self.data.body

    def get_headers(self) -> dict[str, list[str]]:
        return self.data.headers.all()

    def has_header(self, name: str) -> bool:
        return self.data.headers.exists(name)

    def get_header(self, name: str) -> list[str]:
        """
        All values of the given header, or an empty list if it is not present.
        """
        return self.data.headers.get(name)

    def get_header_line(self, name: str) -> str:
        """
        All values of the given header joined with ",", or an empty string.
        """
        return self.data.headers.get_line(name)

    def with_protocol_version(self, version: str) -> Message:
        return self._evolve(protocol_version=_validate_protocol_version(version))

    def with_header(self, name: str, value) -> Message:
        """
        Replace the given header.

        Raises:
            InvalidHeader, if name is not a string.
        """
        return self._evolve(headers=self.data.headers.set(name, value))

    def with_added_header(self, name: str, value) -> Message:
        """
        Append value(s) to the given header; existing values are kept.
        """
        return self._evolve(headers=self.data.headers.add(name, value))

    def without_header(self, name: str) -> Message:
        return self._evolve(headers=self.data.headers.remove(name))

    def with_body(self, body: streams.StreamLike | bytes | str | None) -> Message:
        return self._evolve(body=streams.to_stream(body))


class _MessageView:
    """
    Message accessors for the types that hold a Message in data.message.
    """

    data: Any

    def _evolve(self, **changes):
        m = object.__new__(type(self))
        m.data = dataclasses.replace(self.data, **changes)
        return m

    def _with_message(self, message: Message):
        return self._evolve(message=message)

    def __eq__(self, other):
        if type(other) is type(self):
            return self.data == other.data
        return False

    __hash__ = None  # type: ignore

    @property
    def message(self) -> Message:
        return self.data.message

    @property
    def protocol_version(self) -> str:
        return self.data.message.protocol_version

    @property
    def headers(self) -> Headers:
        return self.data.message.headers

    @property
    def body(self) -> streams.StreamLike:
        return self.data.message.body

    def get_headers(self) -> dict[str, list[str]]:
        return self.data.message.get_headers()

    def has_header(self, name: str) -> bool:
        return self.data.message.has_header(name)

    def get_header(self, name: str) -> list[str]:
        return self.data.message.get_header(name)

    def get_header_line(self, name: str) -> str:
        return self.data.message.get_header_line(name)

    def with_protocol_version(self, version: str):
        return self._with_message(self.data.message.with_protocol_version(version))

    def with_header(self, name: str, value):
        return self._with_message(self.data.message.with_header(name, value))

    def with_added_header(self, name: str, value):
        return self._with_message(self.data.message.with_added_header(name, value))

    def without_header(self, name: str):
        return self._with_message(self.data.message.without_header(name))

    def with_body(self, body: streams.StreamLike | bytes | str | None):
        return self._with_message(self.data.message.with_body(body))


# Request logic shared by Request and ServerRequest.


def _validate_method(method, allowed: tuple[str, ...]) -> str:
    if method not in allowed:
        raise exceptions.InvalidMethod(
            f"Invalid method {method!r}. Must be one of: {', '.join(allowed)}"
        )
    return method


def _make_uri(uri) -> Uri:
    if isinstance(uri, Uri):
        return uri
    if isinstance(uri, str):
        return Uri.from_string(uri)
    raise exceptions.InvalidUri(f"Uri must be a Uri or a string, not {type(uri).__name__}")


def _host_header(message: Message, uri: Uri, preserve_host: bool) -> Message:
    """
    Set the Host header from uri.

    If preserve_host is true, an existing non-empty Host header is kept.
    """
    if not uri.host:
        return message
    if preserve_host and message.get_header_line("host"):
        return message
    return message.with_header("host", uri.host)


def _request_target(uri: Uri, request_target: str | None) -> str:
    if request_target is not None:
        return request_target
    target = uri.path or "/"
    if uri.query:
        target += "?" + uri.query
    return target


@dataclass(frozen=True)
class RequestData:
    message: Message
    method: str
    uri: Uri
    request_target: str | None = None


class Request(_MessageView):
    """
    An outgoing HTTP request.

    If the uri carries a host and no (or an empty) Host header is given, the
    Host header is derived from the uri.
    """

    data: RequestData

    def __init__(
        self,
        method: str,
        uri: Uri | str,
        headers: Headers | Mapping[str, Any] | None = None,
        body: streams.StreamLike | bytes | str | None = None,
        protocol_version: str = "1.1",
    ):
        uri = _make_uri(uri)
        message = Message(headers, body, protocol_version)
        self.data = RequestData(
            message=_host_header(message, uri, preserve_host=True),
            method=_validate_method(method, REQUEST_METHODS),
            uri=uri,
        )

    def __repr__(self) -> str:
        return f"Request({self.method} {self.uri})"

    @property
    def method(self) -> str:
        return self.data.method

    @property
    def uri(self) -> Uri:
        return self.data.uri

    @property
    def request_target(self) -> str:
        """
        The request target as given by with_request_target, or the path and
        query of the uri ("/" if the path is empty).
        """
        return _request_target(self.data.uri, self.data.request_target)

    def with_method(self, method: str) -> Request:
        return self._evolve(method=_validate_method(method, REQUEST_METHODS))

    def with_request_target(self, request_target: str) -> Request:
        return self._evolve(request_target=request_target)

    def with_uri(self, uri: Uri | str, preserve_host: bool = False) -> Request:
        """
        Replace the uri.

        Unless preserve_host is set, the Host header is updated to the host of
        the new uri (if it has one). With preserve_host, the Host header is
        only set if it is missing or empty.
        """
        uri = _make_uri(uri)
        return self._evolve(
            uri=uri,
            message=_host_header(self.data.message, uri, preserve_host),
        )


class _Unset:
    def __repr__(self):
        return "UNSET"


UNSET: Any = _Unset()


def _validate_uploaded_files(tree) -> None:
    if isinstance(tree, Mapping):
        entries = tree.values()
    elif isinstance(tree, (list, tuple)):
        entries = tree
    else:
        raise exceptions.InvalidUploadedFiles(
            f"Uploaded files must be a mapping or a list, not {type(tree).__name__}"
        )
    for entry in entries:
        if isinstance(entry, (Mapping, list, tuple)):
            _validate_uploaded_files(entry)
        elif not isinstance(entry, UploadedFile):
            raise exceptions.InvalidUploadedFiles(
                f"Invalid entry in uploaded files structure: {entry!r}"
            )


@dataclass(frozen=True)
class ServerRequestData:
    message: Message
    method: str
    uri: Uri
    request_target: str | None = None
    server_params: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    cookie_params: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    uploaded_files: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    attributes: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    query_params: Mapping[str, Any] | None = None
    parsed_body: Any = UNSET


class ServerRequest(_MessageView):
    """
    An incoming, server-side HTTP request.

    Besides the request line and message it carries the server parameters,
    cookies, uploaded files and free-form attributes. Query parameters and
    the parsed body are derived from the uri and the body on every read
    unless they have been set explicitly with with_query_params or
    with_parsed_body.
    """

    data: ServerRequestData

    def __init__(
        self,
        method: str,
        uri: Uri | str,
        headers: Headers | Mapping[str, Any] | None = None,
        body: streams.StreamLike | bytes | str | None = None,
        protocol_version: str = "1.1",
        server_params: Mapping[str, Any] | None = None,
        cookie_params: Mapping[str, Any] | None = None,
        uploaded_files: Mapping[str, Any] | None = None,
        attributes: Mapping[str, Any] | None = None,
    ):
        uploaded_files = dict(uploaded_files or {})
        _validate_uploaded_files(uploaded_files)
        self.data = ServerRequestData(
            message=Message(headers, body, protocol_version),
            method=_validate_method(method, SERVER_REQUEST_METHODS),
            uri=_make_uri(uri),
            server_params=dict(server_params or {}),
            cookie_params=dict(cookie_params or {}),
            uploaded_files=uploaded_files,
            attributes=dict(attributes or {}),
        )

    def __repr__(self) -> str:
        return f"ServerRequest({self.method} {self.uri})"

    @property
    def method(self) -> str:
        return self.data.method

    @property
    def uri(self) -> Uri:
        return self.data.uri

    @property
    def request_target(self) -> str:
        return _request_target(self.data.uri, self.data.request_target)

    @property
    def server_params(self) -> dict[str, Any]:
        return dict(self.data.server_params)

    @property
    def cookie_params(self) -> dict[str, Any]:
        return dict(self.data.cookie_params)

    @property
    def uploaded_files(self) -> dict[str, Any]:
        return dict(self.data.uploaded_files)

    @property
    def attributes(self) -> dict[str, Any]:
        return dict(self.data.attributes)

    @property
    def query_params(self) -> dict[str, Any]:
        """
        The query parameters set with with_query_params, or the decoded query
        string of the uri. Bracketed names such as "a[]" build nested values.
        """
        if self.data.query_params is not None:
            return dict(self.data.query_params)
        return url.decode_nested(self.data.uri.query)

    @property
    def parsed_body(self) -> Any:
        """
        The body set with with_parsed_body, or the body decoded according to
        the first Content-Type value. None if the content type is not
        supported or the body cannot be decoded.
        """
        if self.data.parsed_body is not UNSET:
            return self.data.parsed_body
        content_type = self.get_header("content-type")
        return bodyparser.parse(
            streams.peek(self.body),
            content_type[0] if content_type else "",
        )

    def get_attribute(self, name: str, default: Any = None) -> Any:
        return self.data.attributes.get(name, default)

    def with_method(self, method: str) -> ServerRequest:
        return self._evolve(method=_validate_method(method, SERVER_REQUEST_METHODS))

    def with_request_target(self, request_target: str) -> ServerRequest:
        return self._evolve(request_target=request_target)

    def with_uri(self, uri: Uri | str, preserve_host: bool = False) -> ServerRequest:
        uri = _make_uri(uri)
        return self._evolve(
            uri=uri,
            message=_host_header(self.data.message, uri, preserve_host),
        )

    def with_cookie_params(self, cookies: Mapping[str, Any]) -> ServerRequest:
        return self._evolve(cookie_params=dict(cookies))

    def with_query_params(self, query: Mapping[str, Any]) -> ServerRequest:
        """
        Set the query parameters. The uri is left unchanged.
        """
        return self._evolve(query_params=dict(query))

    def with_uploaded_files(self, uploaded_files: Mapping[str, Any]) -> ServerRequest:
        """
        Replace the uploaded files tree.

        Raises:
            InvalidUploadedFiles, if any leaf of the tree is not an UploadedFile.
        """
        _validate_uploaded_files(uploaded_files)
        return self._evolve(uploaded_files=dict(uploaded_files))

    def with_parsed_body(self, data: Any) -> ServerRequest:
        """
        Set the parsed body. Only None, mappings, lists and other objects are
        accepted; strings and numbers are rejected.

        Raises:
            InvalidParsedBody
        """
        if data is not None and strutils.is_scalar(data):
            raise exceptions.InvalidParsedBody(
                f"Parsed body must be a mapping, a list, an object or None, not {type(data).__name__}"
            )
        return self._evolve(parsed_body=data)

    def with_attribute(self, name: str, value: Any) -> ServerRequest:
        attributes = dict(self.data.attributes)
        attributes[name] = value
        return self._evolve(attributes=attributes)

    def without_attribute(self, name: str) -> ServerRequest:
        attributes = dict(self.data.attributes)
        attributes.pop(name, None)
        return self._evolve(attributes=attributes)


def _validate_status(code) -> int:
    if isinstance(code, str) and code.isdigit():
        code = int(code)
    if isinstance(code, bool) or not isinstance(code, int):
        raise exceptions.InvalidStatus(f"Invalid HTTP status code {code!r}")
    if not 100 <= code < 600:
        raise exceptions.InvalidStatus(
            f"Invalid HTTP status code {code}. Must be between 100 and 599"
        )
    return code


@dataclass(frozen=True)
class ResponseData:
    message: Message
    status_code: int
    reason_phrase: str = ""


class Response(_MessageView):
    """
    An HTTP response.
    """

    data: ResponseData

    def __init__(
        self,
        status_code: int = status_codes.OK,
        headers: Headers | Mapping[str, Any] | None = None,
        body: streams.StreamLike | bytes | str | None = None,
        reason_phrase: str = "",
        protocol_version: str = "1.1",
    ):
        self.data = ResponseData(
            message=Message(headers, body, protocol_version),
            status_code=_validate_status(status_code),
            reason_phrase=reason_phrase,
        )

    def __repr__(self) -> str:
        return f"Response({self.status_code} {self.reason_phrase})"

    @property
    def status_code(self) -> int:
        return self.data.status_code

    @property
    def reason_phrase(self) -> str:
        """
        The reason phrase given with the status code, or the standard phrase
        for the status code (an empty string if there is none).
        """
        if self.data.reason_phrase:
            return self.data.reason_phrase
        return status_codes.RESPONSES.get(self.data.status_code, "")

    def with_status(self, code: int, reason_phrase: str = "") -> Response:
        """
        Raises:
            InvalidStatus, if code is not an integer between 100 and 599.
        """
        code = _validate_status(code)
        if not reason_phrase:
            reason_phrase = status_codes.RESPONSES.get(code, "")
        return self._evolve(status_code=code, reason_phrase=reason_phrase)
