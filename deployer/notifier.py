import logging
import time
import traceback
from typing import Callable, Optional, Sequence
import requests
from .records import RecordStore

logger = logging.getLogger(__name__)

# Fixed schedule, not a formula: delay after attempt n is DEFAULT_DELAYS[n-1].
DEFAULT_DELAYS = (1, 2, 4, 8, 16, 32)
DEFAULT_TIMEOUT = 30

def notify_with_backoff(
    evaluation_url: str,
    payload: dict,
    max_attempts: int = 6,
    *,
    delays: Sequence[float] = DEFAULT_DELAYS,
    timeout: float = DEFAULT_TIMEOUT,
    records: Optional[RecordStore] = None,
    sleep: Callable[[float], None] = time.sleep,
    http=requests,
) -> bool:
    """POST ``payload`` as JSON until a 2xx answer or ``max_attempts`` run out.

    Never raises. The outcome is persisted to ``records`` when given.
    """
    headers = {"Content-Type": "application/json"}
    logger.info("Notifying evaluator at %s", evaluation_url)
    for attempt in range(1, max_attempts + 1):
        try:
            r = http.post(evaluation_url, json=payload, headers=headers, timeout=timeout)
            if 200 <= r.status_code < 300:
                logger.info("Notification successful (attempt %d)", attempt)
                if records is not None:
                    _persist(records.write_last_notify, attempt, r.status_code, payload)
                return True
            logger.warning("Notification attempt %d returned status %d", attempt, r.status_code)
        except Exception as e:
            logger.warning(
                "Notification attempt %d failed: %s", attempt,
                "".join(traceback.format_exception_only(type(e), e)).strip(),
            )
        if attempt < max_attempts:
            delay = delays[min(attempt - 1, len(delays) - 1)]
            logger.info("Retrying in %ss", delay)
            sleep(delay)

    logger.error("All notification attempts failed")
    if records is not None:
        _persist(records.write_notify_failure, evaluation_url, payload)
    return False

def _persist(write, *args) -> None:
    # the caller is promised a bool, so a broken disk is logged, not raised
    try:
        write(*args)
    except OSError:
        logger.exception("Could not persist notification record")
