"""
Validation predicates for the individual parts of a URI.

The is_* functions answer a question, the validate_* functions raise
InvalidUri with a message suitable for the caller.
"""
from httpmessage import exceptions


def is_valid_port(port) -> bool:
    """
    A port is either absent (None) or an integer strictly between 1 and 65535.

    Both endpoints are rejected.
    """
    if port is None:
        return True
    if isinstance(port, bool) or not isinstance(port, int):
        return False
    return 1 < port < 65535


def is_valid_query(query) -> bool:
    return isinstance(query, str) and "#" not in query


def is_valid_path(path) -> bool:
    return is_valid_query(path) and "?" not in path


def validate_port(port) -> None:
    if not is_valid_port(port):
        raise exceptions.InvalidUri(
            "Uri port must be None or an integer between 1 and 65535"
        )


def validate_query(query) -> None:
    if not isinstance(query, str):
        raise exceptions.InvalidUri("Query must be a string")
    if "#" in query:
        raise exceptions.InvalidUri("Query must not contain a URI fragment")


def validate_path(path) -> None:
    # Part of the validation is the same as for the query.
    validate_query(path)
    if "?" in path:
        raise exceptions.InvalidUri(
            "Invalid path provided; must not contain a query string"
        )
