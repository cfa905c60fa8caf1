"""
Parsing of request Cookie headers.

We try to be as permissive as possible: malformed pairs are kept rather than
rejected, values may be quoted (with backslash escapes) or bare, and a pair
without "=" is read as a name with an empty value.

    http://tools.ietf.org/html/rfc6265
"""
from httpmessage.net.http import url

TPairs = list[tuple[str, str]]


def _read_until(s: str, start: int, term: str) -> tuple[str, int]:
    """
        Read until one of the characters in term is reached.
    """
    if start == len(s):
        return "", start + 1
    for i in range(start, len(s)):
        if s[i] in term:
            return s[start:i], i
    return s[start:], len(s)


def _read_quoted_string(s: str, start: int) -> tuple[str, int]:
    """
        start: offset to the first quote of the string to be read

        RFC6265 disallows backslashes or double quotes within quoted strings.
        Prior RFCs use backslashes to escape, so we unescape them.
    """
    escaping = False
    ret = []
    i = start
    for i in range(start + 1, len(s)):
        if escaping:
            ret.append(s[i])
            escaping = False
        elif s[i] == '"':
            break
        elif s[i] == "\\":
            escaping = True
        else:
            ret.append(s[i])
    return "".join(ret), i + 1


def _read_value(s: str, start: int) -> tuple[str, int]:
    if start >= len(s):
        return "", start
    elif s[start] == '"':
        return _read_quoted_string(s, start)
    else:
        return _read_until(s, start, ";")


def parse_cookie_header(line: str) -> TPairs:
    """
        Parse a Cookie header value.
        Returns a list of (name, value) tuples, in header order.
    """
    pairs: TPairs = []
    off = 0
    while off < len(line):
        lhs, off = _read_until(line, off, ";=")
        lhs = lhs.strip()
        rhs = ""
        if off < len(line) and line[off] == "=":
            rhs, off = _read_value(line, off + 1)
            rhs = rhs.strip()
        if rhs or lhs:
            pairs.append((lhs, rhs))
        off += 1
    return pairs


def cookie_params(line: str | None) -> dict[str, str]:
    """
        Turn a Cookie header value into a name -> value mapping.

        Values are percent-decoded. If a name occurs more than once,
        the first occurrence wins.
    """
    params: dict[str, str] = {}
    for name, value in parse_cookie_header(line or ""):
        if name and name not in params:
            params[name] = url.unquote(value)
    return params
