"""Data URL codec for images crossing the UI boundary.

Images travel as ``data:<mime>;base64,<payload>`` strings and are exposed to
the transcript as an ``ImageAttachment`` (bytes plus MIME type).
"""

import base64
import binascii
import re

from composer_core.errors import InvalidMessageShape
from composer_core.messages import ImageAttachment

_DATA_URL = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<payload>[A-Za-z0-9+/=\s]*)$"
)


def decode_data_url(url: str) -> ImageAttachment:
    """Decode a base64 ``data:`` URL into an image attachment.

    Args:
        url: The data URL.

    Returns:
        ImageAttachment with the decoded bytes and declared MIME type.

    Raises:
        InvalidMessageShape: If the URL is not a base64 data URL.
    """
    match = _DATA_URL.match(url)
    if match is None:
        raise InvalidMessageShape(f"Not a base64 data URL: {url[:40]!r}")

    try:
        data = base64.b64decode(match.group("payload"), validate=False)
    except binascii.Error as e:
        raise InvalidMessageShape(f"Invalid base64 payload in data URL: {e}") from e

    return ImageAttachment(data=data, mime_type=match.group("mime"))


def encode_data_url(data: bytes, mime_type: str) -> str:
    """Encode raw bytes as a base64 ``data:`` URL."""
    return ImageAttachment(data=data, mime_type=mime_type).to_data_url()
