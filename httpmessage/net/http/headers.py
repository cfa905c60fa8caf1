import collections

FORM_CONTENT_TYPES = frozenset(
    {
        "application/x-www-form-urlencoded",
        "multipart/form-data",
    }
)


def parse_content_type(c: str) -> tuple[str, str, dict[str, str]] | None:
    """
    A simple parser for content-type values. Returns a (type, subtype,
    parameters) tuple, where type and subtype are strings, and parameters
    is a dict. If the string could not be parsed, return None.

    E.g. the following string:

        text/html; charset=UTF-8

    Returns:

        ("text", "html", {"charset": "UTF-8"})
    """
    parts = c.split(";", 1)
    ts = parts[0].split("/", 1)
    if len(ts) != 2:
        return None
    d = collections.OrderedDict()
    if len(parts) == 2:
        for i in parts[1].split(";"):
            clause = i.split("=", 1)
            if len(clause) == 2:
                d[clause[0].strip()] = clause[1].strip().strip('"')
    return ts[0].strip().lower(), ts[1].strip().lower(), d


def media_type(c: str | None) -> str:
    """
    The "type/subtype" part of a content-type value, lowercased.
    Unparseable or missing values yield an empty string.
    """
    if not c:
        return ""
    ct = parse_content_type(c)
    if ct is None:
        return ""
    return f"{ct[0]}/{ct[1]}"


def is_form(c: str | None) -> bool:
    """
    True if the content-type announces an HTML form submission.
    """
    return media_type(c) in FORM_CONTENT_TYPES
