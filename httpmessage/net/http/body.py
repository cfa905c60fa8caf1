"""
Decode request bodies into structured data, keyed by content type.

Only a handful of media types are understood:

    application/json                      -> dict/list/scalar via json
    application/xml, text/xml             -> lxml.etree._Element
    application/x-www-form-urlencoded,
    multipart/form-data                   -> dict (see url.decode_nested)

Anything else, including a missing content type, yields None. Decoding never
raises: malformed payloads also yield None.
"""
import json
import logging
from typing import Any
from typing import Callable

import lxml.etree

from httpmessage.net.http import headers
from httpmessage.net.http import url
from httpmessage.utils import strutils

logger = logging.getLogger(__name__)


def decode_json(content: str) -> Any:
    try:
        return json.loads(content)
    except (ValueError, RecursionError):
        logger.debug("Invalid JSON body", exc_info=True)
        return None


def decode_xml(content: str) -> lxml.etree._Element | None:
    # Entities are left unexpanded and nothing is fetched over the network.
    parser = lxml.etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        load_dtd=False,
        strip_cdata=False,
        recover=False,
    )
    try:
        return lxml.etree.fromstring(content.encode("utf-8", "surrogateescape"), parser)
    except (lxml.etree.LxmlError, LookupError, ValueError):
        logger.debug("Invalid XML body", exc_info=True)
        return None


def decode_form(content: str) -> dict[str, Any]:
    return url.decode_nested(content)


DECODERS: dict[str, Callable[[str], Any]] = {
    "application/json": decode_json,
    "application/xml": decode_xml,
    "text/xml": decode_xml,
    "application/x-www-form-urlencoded": decode_form,
    "multipart/form-data": decode_form,
}


def parse(content: str | bytes, content_type: str | None) -> Any:
    """
    Decode content according to content_type.

    Args:
        content: The raw body. bytes are decoded as UTF-8.
        content_type: A content-type header value. Parameters such as
            charset are ignored for dispatch.

    Returns:
        The decoded structure, or None if the type is not supported or the
        content cannot be decoded.
    """
    decoder = DECODERS.get(headers.media_type(content_type))
    if decoder is None:
        return None
    text = strutils.always_str(content, "utf-8", "surrogateescape")
    return decoder(text)
