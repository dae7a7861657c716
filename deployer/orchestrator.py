"""One task, end to end: generate -> scan -> publish -> wait for Pages -> notify.

``accept`` runs synchronously in the request; ``run`` is the detached part and
never raises. Steps are strictly sequential. Failures in generate/publish/poll
skip straight to an ``error`` notification and are always written to
``last-error.log``; a Pages timeout only downgrades the status.
"""
import logging
import re
import secrets
import string
import time
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, Optional
from .errors import ValidationError
from .generator import generate
from .guardrails import scan_tree
from .models import NotificationPayload, PublishResult, TaskAccepted, TaskRequest, utc_now
from .notifier import notify_with_backoff
from .pages import poll_until_ready
from .publisher import Publisher
from .records import RecordStore
from .security import verify_secret
from .settings import Settings

logger = logging.getLogger(__name__)

class TaskState(str, Enum):
    ACCEPTED = "accepted"
    GENERATING = "generating"
    PUBLISHING = "publishing"
    AWAITING_AVAILABILITY = "awaiting_availability"
    NOTIFYING = "notifying"
    DONE = "done"
    FAILED = "failed"

_BASE36 = string.digits + string.ascii_lowercase

def _base36(n: int) -> str:
    out = ""
    while True:
        n, r = divmod(n, 36)
        out = _BASE36[r] + out
        if n == 0:
            return out

def make_repo_name(task: str, now_ms: Optional[int] = None) -> str:
    """``<task>-<ms time in base36>-<4 random chars>``, safe as a GitHub repo name."""
    slug = re.sub(r"[^A-Za-z0-9._-]+", "-", task).strip("-.")[:80] or "task"
    stamp = _base36(int(time.time() * 1000) if now_ms is None else now_ms)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"{slug}-{stamp}-{suffix}"

class TaskOrchestrator:
    def __init__(
        self,
        settings: Settings,
        publisher: Optional[Publisher] = None,
        records: Optional[RecordStore] = None,
        generate_fn: Optional[Callable[..., Dict]] = None,
        poll_fn: Callable[..., bool] = poll_until_ready,
        notify_fn: Callable[..., bool] = notify_with_backoff,
        on_transition: Optional[Callable[[str, TaskState], Any]] = None,
    ):
        self.settings = settings
        self.publisher = publisher or Publisher(settings)
        self.records = records or RecordStore(settings.RECORDS_DIR)
        self.generate = generate_fn or partial(generate, settings=settings)
        self.poll = poll_fn
        self.notify = notify_fn
        self.on_transition = on_transition

    def _enter(self, req: TaskRequest, state: TaskState) -> None:
        logger.info("[%s] -> %s", req.task, state.value)
        if self.on_transition is None:
            return
        try:
            self.on_transition(req.task, state)
        except Exception:
            logger.exception("Transition hook failed for %s -> %s", req.task, state.value)

    # ---- synchronous part ----
    def accept(self, req: TaskRequest, raw_body: Optional[Dict[str, Any]] = None) -> TaskAccepted:
        timestamp = utc_now()
        try:
            self.records.append_task_request(raw_body if raw_body is not None else req.model_dump(), timestamp)
        except OSError:
            logger.exception("Could not append to task log")

        missing = req.missing_fields()
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        verify_secret(req.secret, self.settings)

        logger.info("Task accepted: %s, round %d", req.task, req.round)
        self._enter(req, TaskState.ACCEPTED)
        return TaskAccepted(task=req.task, round=req.round, timestamp=timestamp)

    # ---- background part ----
    def run(self, req: TaskRequest) -> NotificationPayload:
        started = time.monotonic()
        s = self.settings
        result: Optional[PublishResult] = None
        status = "success"
        failure: Optional[Exception] = None

        try:
            self._enter(req, TaskState.GENERATING)
            files = self.generate(req.brief, req.attachments, req.checks,
                                  {"task": req.task, "round": req.round, "nonce": req.nonce})

            self._enter(req, TaskState.PUBLISHING)
            scan_tree(files)
            result = self.publisher.publish(make_repo_name(req.task), files,
                                            owner_identity=req.email or "",
                                            task=req.task, brief=req.brief)
            logger.info("Repository %s commit %s pages %s",
                        result.repo_url, result.commit_sha, result.pages_url)

            self._enter(req, TaskState.AWAITING_AVAILABILITY)
            ready = self.poll(result.pages_url, s.PAGES_TIMEOUT_SECONDS,
                              s.PAGES_POLL_INTERVAL_SECONDS, s.PAGES_PROBE_TIMEOUT_SECONDS)
            if not ready:
                logger.warning("GitHub Pages did not return 200 within timeout")
                status = "pages_timeout"
        except Exception as exc:
            logger.exception("Task %s failed", req.task)
            failure = exc
            status = "error"

        self._enter(req, TaskState.NOTIFYING)
        payload = NotificationPayload(
            email=req.email,
            task=req.task,
            round=req.round,
            nonce=req.nonce,
            repo_url=result.repo_url if result else "",
            commit_sha=result.commit_sha if result else "",
            pages_url=result.pages_url if result else "",
            status=status,
            error=str(failure) if failure is not None else None,
        )
        delivered = self.notify(req.evaluation_url, payload.to_json(),
                                timeout=s.NOTIFY_TIMEOUT_SECONDS, records=self.records)
        if not delivered:
            logger.error("Failed to notify evaluator after all retries")

        if failure is not None:
            try:
                self.records.write_last_error(failure)
            except OSError:
                logger.exception("Could not write error record")
            self._enter(req, TaskState.FAILED)
        else:
            self._enter(req, TaskState.DONE)
        logger.info("Task %s finished in %.2fs", req.task, time.monotonic() - started)
        return payload
