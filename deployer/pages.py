import logging
import time
from typing import Callable
import requests

logger = logging.getLogger(__name__)

def poll_until_ready(
    url: str,
    deadline: float = 9 * 60,
    interval: float = 10,
    probe_timeout: float = 5,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    http=requests,
) -> bool:
    """Probe ``url`` until it answers exactly 200 or ``deadline`` seconds pass.

    Non-200 answers and network errors both count as "not yet"; nothing raises.
    """
    if probe_timeout >= interval:
        raise ValueError("probe_timeout must be smaller than interval")

    logger.info("Polling %s for readiness (timeout: %ss)", url, deadline)
    start = clock()
    attempts = 0
    while clock() - start < deadline:
        attempts += 1
        try:
            r = http.get(url, timeout=probe_timeout, allow_redirects=True)
            if r.status_code == 200:
                logger.info("Pages ready (%d attempts, %.1fs)", attempts, clock() - start)
                return True
            logger.info("Pages not ready yet (status %d), attempt %d", r.status_code, attempts)
        except Exception as e:
            logger.info("Pages check failed (%s), attempt %d", e, attempts)

        remaining = deadline - (clock() - start)
        if remaining > 0:
            sleep(min(interval, remaining))

    logger.warning("Pages did not become ready within %ss (%d attempts)", deadline, attempts)
    return False
