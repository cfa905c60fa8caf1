from __future__ import annotations

from httpmessage import exceptions
from httpmessage.net import check
from httpmessage.net.http import url

SCHEMES = ("", "http", "https")


def _normalize_scheme(scheme) -> str:
    if scheme is None:
        scheme = ""
    if not isinstance(scheme, str):
        raise exceptions.InvalidUri("Uri scheme must be a string")
    scheme = scheme.lower().replace("://", "")
    if scheme not in SCHEMES:
        raise exceptions.InvalidUri('Uri scheme must be one of: "", "https", "http"')
    return scheme


def _normalize_port(port) -> int | None:
    # Ports coming from server variables are strings.
    if port is None or port == "":
        return None
    if isinstance(port, str):
        if not port.isdigit():
            raise exceptions.InvalidUri(f"Uri port must be numeric, not {port!r}")
        port = int(port)
    elif isinstance(port, bool) or not isinstance(port, int):
        raise exceptions.InvalidUri("Uri port must be None or an integer")
    if not 0 <= port <= 65535:
        raise exceptions.InvalidUri(f"Uri port {port} is out of range")
    return port


def _normalize_path(path) -> str:
    if path is None:
        path = ""
    if not isinstance(path, str):
        raise exceptions.InvalidUri("Uri path must be a string")
    path = url.quote(path)
    if path.startswith("/"):
        # Ensure only one leading slash
        return "/" + path.lstrip("/")
    return path


def _normalize_component(value, prefix: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise exceptions.InvalidUri("Uri query and fragment must be strings")
    if value.startswith(prefix):
        value = value[1:]
    return url.quote(value)


class Uri:
    """
    An immutable URI, as described in RFC 3986.

    Components are normalized on construction: the scheme and host are
    lowercased, the path, query and fragment are percent-encoded without
    double-encoding existing escapes, and a path starting with several
    slashes is reduced to a single leading slash.

    >>> str(Uri("http", "Test.COM", 1111, "/a/b", "q=1", "f"))
    'http://test.com:1111/a/b?q=1#f'

    The port is kept as given, but `port` hides the standard port of the
    scheme (80 for http, 443 for https).

    All with_* methods validate their argument and return a new Uri; the
    receiver is never modified.
    """

    __slots__ = ("_scheme", "_host", "_port", "_path", "_query", "_fragment", "_user", "_password")

    def __init__(
        self,
        scheme: str = "",
        host: str = "",
        port: int | str | None = None,
        path: str = "/",
        query: str = "",
        fragment: str = "",
        user: str = "",
        password: str = "",
    ):
        self._scheme = _normalize_scheme(scheme)
        self._host = (host or "").lower()
        self._port = _normalize_port(port)
        self._path = _normalize_path(path)
        self._query = _normalize_component(query, "?")
        self._fragment = _normalize_component(fragment, "#")
        self._user = user or ""
        self._password = password or ""

    @classmethod
    def from_string(cls, uri: str) -> Uri:
        """
        Parse a URI string.

        Raises:
            InvalidUri, if the string cannot be parsed or uses an unsupported scheme.
        """
        if not isinstance(uri, str):
            raise exceptions.InvalidUri(f"Uri must be a string, not {type(uri).__name__}")
        try:
            scheme, host, port, path, query, fragment, user, password = url.split(uri)
        except ValueError as e:
            raise exceptions.InvalidUri(f"Invalid uri {uri!r}: {e}") from e
        return cls(scheme, host, port, path, query, fragment, user, password)

    def _replace(self, **changes) -> Uri:
        parts = dict(
            scheme=self._scheme,
            host=self._host,
            port=self._port,
            path=self._path,
            query=self._query,
            fragment=self._fragment,
            user=self._user,
            password=self._password,
        )
        parts.update(changes)
        return Uri(**parts)

    def _parts(self) -> tuple:
        return (
            self._scheme,
            self._host,
            self._port,
            self._path,
            self._query,
            self._fragment,
            self._user,
            self._password,
        )

    def __eq__(self, other):
        if isinstance(other, Uri):
            return self._parts() == other._parts()
        return False

    def __hash__(self):
        return hash(self._parts())

    def __repr__(self) -> str:
        return f"Uri({str(self)!r})"

    def __str__(self) -> str:
        scheme = self.scheme
        authority = self.authority
        path = "/" + self.path.lstrip("/")
        return (
            (f"{scheme}:" if scheme else "")
            + (f"//{authority}" if authority else "")
            + path
            + (f"?{self.query}" if self.query else "")
            + (f"#{self.fragment}" if self.fragment else "")
        )

    @property
    def scheme(self) -> str:
        """
        The URI scheme, lowercased: "", "http" or "https".
        """
        return self._scheme

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int | None:
        """
        The port, or None if it is not set or is the standard port of the scheme.
        """
        if self._port is not None and url.default_port(self._scheme) == self._port:
            return None
        return self._port

    @property
    def path(self) -> str:
        """
        The percent-encoded path. It may be empty, absolute or rootless.
        """
        return self._path

    @property
    def query(self) -> str:
        """
        The percent-encoded query string, without the leading "?".
        """
        return self._query

    @property
    def fragment(self) -> str:
        return self._fragment

    @property
    def user(self) -> str:
        return self._user

    @property
    def password(self) -> str:
        return self._password

    @property
    def user_info(self) -> str:
        """
        "user" or "user:password", or an empty string if there is no user.
        """
        if not self._user:
            return ""
        if self._password:
            return f"{self._user}:{self._password}"
        return self._user

    @property
    def authority(self) -> str:
        """
        "[user-info@]host[:port]", leaving out the parts that are empty.
        """
        user_info = self.user_info
        return (
            (f"{user_info}@" if user_info else "")
            + self._host
            + (f":{self.port}" if self.port is not None else "")
        )

    def with_scheme(self, scheme: str) -> Uri:
        return self._replace(scheme=_normalize_scheme(scheme))

    def with_user_info(self, user: str, password: str | None = None) -> Uri:
        """
        An empty user removes the user information.
        """
        return self._replace(user=user, password=password)

    def with_host(self, host: str) -> Uri:
        if not isinstance(host, str):
            raise exceptions.InvalidUri("Uri host must be a string")
        return self._replace(host=host)

    def with_port(self, port: int | None) -> Uri:
        check.validate_port(port)
        return self._replace(port=port)

    def with_path(self, path: str) -> Uri:
        check.validate_path(path)
        return self._replace(path=path)

    def with_query(self, query: str) -> Uri:
        check.validate_query(query)
        return self._replace(query=query)

    def with_fragment(self, fragment: str) -> Uri:
        return self._replace(fragment=fragment)
