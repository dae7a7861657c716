import logging
from .errors import Misconfigured, Unauthorized
from .settings import Settings

logger = logging.getLogger(__name__)

def _same(a: str, b: str) -> bool:
    # surrogatepass: a JSON body can carry lone surrogates
    x_bytes = a.encode("utf-8", "surrogatepass")
    y_bytes = b.encode("utf-8", "surrogatepass")
    if len(x_bytes) != len(y_bytes):
        return False
    diff = 0
    for x, y in zip(x_bytes, y_bytes):
        diff |= x ^ y
    return diff == 0

def verify_secret(secret: str, settings: Settings) -> None:
    expected = settings.WORKER_SECRET
    if not expected:
        raise Misconfigured("Server misconfigured: WORKER_SECRET not set")
    if not _same(secret or "", expected):
        logger.warning("Invalid secret attempt")
        raise Unauthorized("invalid secret")
