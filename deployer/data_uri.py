import base64
import binascii
import re
from urllib.parse import unquote_to_bytes
from typing import Tuple

DATA_URI_RE = re.compile(r"^data:([^;,]+)?(;[^,]*)?,(.*)$", re.IGNORECASE | re.DOTALL)

class DataUriError(Exception):
    pass

def is_data_uri(uri: str) -> bool:
    return uri.lower().startswith("data:")

def decode_data_uri(uri: str) -> Tuple[str, bytes]:
    """Return ``(mime, payload)`` for base64 or percent-encoded data URIs."""
    m = DATA_URI_RE.match(uri)
    if not m:
        raise DataUriError("Unsupported data URI")
    mime, params, body = m.groups()
    mime = mime or "text/plain"
    if params and "base64" in params.lower():
        try:
            return mime, base64.b64decode(body, validate=False)
        except (binascii.Error, ValueError) as e:
            raise DataUriError(f"Invalid base64 payload: {e}") from e
    return mime, unquote_to_bytes(body)