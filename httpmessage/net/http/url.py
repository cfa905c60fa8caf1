from __future__ import annotations

import logging
import re
import urllib.parse
from collections.abc import Iterable
from typing import Any

logger = logging.getLogger(__name__)

# Form keys with more bracketed parts than this are dropped.
MAX_NESTING_LEVEL = 64

# This regex extracts & splits the host header into host and port.
# Handles the edge case of IPv6 addresses containing colons.
# https://bugzilla.mozilla.org/show_bug.cgi?id=45891
_authority_re = re.compile(r"^(?P<host>[^:]+|\[.+\])(?::(?P<port>\d+))?$")

# Everything outside unreserved, sub-delims, ":", "@", "/" and "%" gets escaped,
# as well as a "%" that does not start a valid escape sequence.
_unsafe_re = re.compile(
    r"(?:[^A-Za-z0-9_\-.~!$&'()*+,;=:@/%]+|%(?![A-Fa-f0-9]{2}))"
)

_nested_key_re = re.compile(r"^(?P<base>[^\[]+)(?P<rest>(?:\[[^\[\]]*\])+)$")
_subkey_re = re.compile(r"\[([^\[\]]*)\]")
_index_re = re.compile(r"0|[1-9][0-9]*")


def quote(s: str) -> str:
    """
    Percent-encode s as required for a URI path, query or fragment.

    Existing escape sequences ("%" followed by two hex digits) are left alone,
    so quote(quote(s)) == quote(s).

    Returns:
        An ascii-encodable str.
    """
    return _unsafe_re.sub(
        lambda m: urllib.parse.quote(m.group(0), safe="", errors="surrogateescape"),
        s,
    )


def unquote(s: str) -> str:
    """
    Args:
        s: A surrogate-escaped str
    Returns:
        A surrogate-escaped str
    """
    return urllib.parse.unquote(s, errors="surrogateescape")


def split(
    url: str,
) -> tuple[str, str, int | None, str, str, str, str, str]:
    """
    Split a URI reference into its components.

    Missing parts are returned as empty strings, a missing port as None and
    a missing path as "/".

    Returns:
        A (scheme, host, port, path, query, fragment, user, password) tuple

    Raises:
        ValueError, if the port is not numeric or out of range, or the
        authority is malformed.
    """
    parts = urllib.parse.urlsplit(url)
    port = parts.port
    return (
        parts.scheme,
        parts.hostname or "",
        port,
        parts.path or "/",
        parts.query,
        parts.fragment,
        parts.username or "",
        parts.password or "",
    )


def default_port(scheme: str) -> int | None:
    return {
        "http": 80,
        "https": 443,
    }.get(scheme, None)


def hostport(scheme: str, host: str, port: int | None) -> str:
    """
    Returns the host component, with a port specification if needed.
    """
    if port is None or default_port(scheme) == port:
        return host
    return "%s:%d" % (host, port)


def parse_authority(authority: str) -> tuple[str, int | None]:
    """
    Extract the host and port from host header/authority information.

    Malformed input is returned unchanged as the host, without a port.
    """
    m = _authority_re.match(authority)
    if not m:
        return authority, None
    host = m.group("host")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if m.group("port"):
        return host, int(m.group("port"))
    return host, None


def decode(s: str) -> list[tuple[str, str]]:
    """
    Takes a urlencoded string and returns a list of surrogate-escaped (key, value) tuples.
    """
    return urllib.parse.parse_qsl(s, keep_blank_values=True, errors="surrogateescape")


def decode_nested(s: str) -> dict[str, Any]:
    """
    Decode a urlencoded string into a (possibly nested) dict.

    Keys using bracket syntax build nested containers:

        a=1&b[x]=2&b[y]=3&c[]=4&c[]=5

    Returns:

        {"a": "1", "b": {"x": "2", "y": "3"}, "c": ["4", "5"]}

    Later values for the same key replace earlier ones. Keys with more than
    MAX_NESTING_LEVEL bracketed parts are dropped.
    """
    return nest(decode(s))


def nest(pairs: Iterable[tuple[str, Any]]) -> dict[str, Any]:
    """
    Build a nested structure from flat (key, value) pairs, see decode_nested.
    """
    root: dict = {}
    for key, value in pairs:
        m = _nested_key_re.match(key)
        if not m:
            root[key] = value
            continue
        parts = [m.group("base")] + _subkey_re.findall(m.group("rest"))
        if len(parts) - 1 > MAX_NESTING_LEVEL:
            logger.debug("Dropping form key nested deeper than %d levels", MAX_NESTING_LEVEL)
            continue
        container = root
        for i, part in enumerate(parts):
            if i > 0:
                part = _nested_index(container, part)
            if i == len(parts) - 1:
                container[part] = value
            else:
                child = container.get(part)
                if not isinstance(child, dict):
                    child = {}
                    container[part] = child
                container = child
    return {k: _listify(v) for k, v in root.items()}


def _nested_index(container: dict, part: str) -> int | str:
    if part == "":
        indices = [k for k in container if isinstance(k, int)]
        return max(indices) + 1 if indices else 0
    if _index_re.fullmatch(part):
        return int(part)
    return part


def _listify(value):
    # Containers whose keys are exactly 0..n-1 become lists.
    if not isinstance(value, dict):
        return value
    items = {k: _listify(v) for k, v in value.items()}
    if list(items) == list(range(len(items))):
        return list(items.values())
    return {str(k): v for k, v in items.items()}
