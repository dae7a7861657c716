from __future__ import annotations

from typing import Any

import pytest
import requests

from deployer.records import RecordStore
from deployer.settings import Settings


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None, text: str = ""):
        self.status_code = status_code
        self._body = body
        self.text = text or ("" if body is None else str(body))
        self.content = b"" if body is None and not text else b"x"

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class ScriptedHttp:
    """Stands in for the ``requests`` module: answers come from a script, calls are recorded.

    A script item may be a status code, a ``FakeResponse`` or an exception instance.
    The last item repeats once the script runs out.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.calls: list[dict] = []

    def _next(self, method: str, url: str, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, int):
            return FakeResponse(item)
        return item

    def post(self, url, **kwargs):
        return self._next("POST", url, **kwargs)

    def get(self, url, **kwargs):
        return self._next("GET", url, **kwargs)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        WORKER_SECRET="s3cret",
        GITHUB_TOKEN="gh-token",
        GITHUB_USER_OR_ORG="octo",
        PREFERRED_DRIVER="api",
        RECORDS_DIR=str(tmp_path),
        OPENAI_API_KEY="",
        OPENAI_BASE_URL="",
        SETTLE_DELAY_SECONDS=0,
        BRANCH_POLL_INTERVAL_SECONDS=0,
    )


@pytest.fixture()
def records(tmp_path) -> RecordStore:
    return RecordStore(str(tmp_path))


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def connection_error() -> requests.ConnectionError:
    return requests.ConnectionError("connection refused")
