"""Durable local records: the only audit trail of task requests and outcomes.

Each write replaces its target atomically (temp file + ``os.replace``), so a
reader never sees a half-written file. The task log is read-modify-write and is
serialized with a lock so concurrent tasks cannot drop each other's entries.
"""
import json
import logging
import os
import tempfile
import threading
import traceback
from typing import Any, Dict, List, Optional
from .models import utc_now

logger = logging.getLogger(__name__)

TASKS_LOG = "tasks-log.json"
LAST_NOTIFY = "last-notify.json"
NOTIFY_FAILURE = "notify-failure.json"
LAST_ERROR = "last-error.log"
KNOWN = (TASKS_LOG, LAST_NOTIFY, NOTIFY_FAILURE, LAST_ERROR)

_task_log_lock = threading.Lock()

class RecordStore:
    def __init__(self, root: str = "."):
        self.root = root

    def path(self, name: str) -> str:
        return os.path.join(self.root, name)

    def _replace(self, name: str, text: str) -> None:
        os.makedirs(self.root, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp, self.path(name))
        except BaseException:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise

    def _write_json(self, name: str, data: Any) -> None:
        self._replace(name, json.dumps(data, indent=2))

    def append_task_request(self, body: Dict[str, Any], timestamp: Optional[str] = None) -> None:
        entry = {"timestamp": timestamp or utc_now(), "body": {**body, "secret": "***REDACTED***"}}
        with _task_log_lock:
            logs = self.task_log()
            logs.append(entry)
            self._write_json(TASKS_LOG, logs)

    def task_log(self) -> List[Dict[str, Any]]:
        try:
            with open(self.path(TASKS_LOG), "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except json.JSONDecodeError:
            logger.warning("%s is not valid JSON; starting a fresh log", TASKS_LOG)
            return []
        return data if isinstance(data, list) else []

    def write_last_notify(self, attempt: int, status: int, payload: Dict[str, Any]) -> None:
        self._write_json(LAST_NOTIFY, {
            "timestamp": utc_now(),
            "attempt": attempt,
            "status": status,
            "payload": payload,
        })

    def write_notify_failure(self, evaluation_url: str, payload: Dict[str, Any],
                             error: str = "All notification attempts failed") -> None:
        self._write_json(NOTIFY_FAILURE, {
            "timestamp": utc_now(),
            "evaluation_url": evaluation_url,
            "payload": payload,
            "error": error,
        })

    def write_last_error(self, exc: BaseException) -> None:
        detail = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        self._replace(LAST_ERROR, f"{utc_now()}\n{detail}\n")

    def read(self, name: str) -> Optional[str]:
        if name not in KNOWN:
            return None
        try:
            with open(self.path(name), "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None
