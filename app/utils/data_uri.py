"""
Data URI helpers.

Token metadata and content are frequently stored on-chain as
``data:`` URIs, either base64 or percent-encoded.
"""

import base64
from urllib.parse import unquote


def is_data_uri(uri: str | None) -> bool:
    """Check whether a URI is a data URI."""
    return bool(uri) and uri.startswith("data:")


def decode_data_uri(uri: str) -> tuple[str, str]:
    """
    Decode a data URI.

    Args:
        uri: ``data:<mime>[;charset=...][;base64],<payload>``

    Returns:
        Tuple of (content_type, decoded text)

    Raises:
        ValueError: If the URI has no payload separator
    """
    comma = uri.find(",")
    if comma == -1:
        raise ValueError("Malformed data URI: missing ','")

    header = uri[5:comma]
    payload = uri[comma + 1:]

    content_type = header.split(";")[0] or "text/plain"

    if ";base64" in header:
        text = base64.b64decode(payload).decode("utf-8")
    else:
        text = unquote(payload.replace("charset=UTF-8,", ""))

    return content_type, text
