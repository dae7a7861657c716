from __future__ import annotations

import os
import subprocess

import pytest

from deployer.errors import PublishError
from deployer.gh_cli import GhCliStrategy, stderr_status, write_tree
from deployer.models import PublishContext, PublishResult
from deployer.publisher import (
    LICENSE_PATH,
    FallbackStrategy,
    Publisher,
    RestApiStrategy,
    mit_license,
)


class FakeClient:
    def __init__(self, pages_error: PublishError | None = None, branch_visible_after: int = 0):
        self.calls: list[tuple] = []
        self.pages_error = pages_error
        self.branch_checks = 0
        self.branch_visible_after = branch_visible_after
        self.blobs = 0

    def create_repo(self, name, description="", auto_init=True, owner=None):
        self.calls.append(("create_repo", name, auto_init, owner))
        return {"html_url": f"https://github.com/octo/{name}"}

    def get_ref_sha(self, owner, repo, branch):
        self.calls.append(("get_ref_sha", owner, repo, branch))
        return "init-sha"

    def create_blob(self, owner, repo, content):
        self.blobs += 1
        self.calls.append(("create_blob", content))
        return f"blob-{self.blobs}"

    def create_tree(self, owner, repo, entries):
        self.calls.append(("create_tree", entries))
        return "tree-sha"

    def create_commit(self, owner, repo, message, tree, parents):
        self.calls.append(("create_commit", message, tree, parents))
        return "new-sha"

    def update_ref(self, owner, repo, branch, sha, force=True):
        self.calls.append(("update_ref", branch, sha, force))
        return {}

    def enable_pages(self, owner, repo, branch, path="/"):
        self.calls.append(("enable_pages", branch, path))
        if self.pages_error is not None:
            raise self.pages_error
        return {}

    def get_branch(self, owner, repo, branch):
        self.branch_checks += 1
        if self.branch_checks <= self.branch_visible_after:
            raise PublishError("not found", status=404)
        return {"name": branch}


class StubStrategy:
    def __init__(self, name, result=None, error=None):
        self.name = name
        self.result = result
        self.error = error
        self.calls = []

    def publish(self, name, files, ctx):
        self.calls.append((name, dict(files), ctx))
        if self.error is not None:
            raise self.error
        return self.result


CTX = PublishContext(owner="octo", branch="main", task="t1", brief="Create a sum of sales calculator")
RESULT = PublishResult(repo_url="https://github.com/octo/r", commit_sha="abc", pages_url="https://octo.github.io/r/")


def test_rest_strategy_sequence_and_branch_outcome():
    client = FakeClient()
    sleeps = []
    strategy = RestApiStrategy(client, sleep=sleeps.append, settle_delay=9)

    result = strategy.publish("r", {"index.html": "<h1>hi</h1>", "assets/logo.png": b"\x89PNG"}, CTX)

    names = [c[0] for c in client.calls]
    assert names == ["create_repo", "get_ref_sha", "create_blob", "create_blob",
                     "create_tree", "create_commit", "update_ref", "enable_pages"]
    assert sleeps == [9]
    assert client.calls[0] == ("create_repo", "r", True, "octo")

    tree_entries = client.calls[4][1]
    assert {e["path"] for e in tree_entries} == {"index.html", "assets/logo.png"}
    assert all(e["mode"] == "100644" and e["type"] == "blob" for e in tree_entries)

    # new commit sits on top of the auto-init commit and the branch is force-moved to it
    assert client.calls[5] == ("create_commit", "Initial commit - t1", "tree-sha", ["init-sha"])
    assert client.calls[6] == ("update_ref", "main", "new-sha", True)

    assert result == PublishResult(repo_url="https://github.com/octo/r", commit_sha="new-sha",
                                   pages_url="https://octo.github.io/r/")


def test_rest_strategy_pages_failure_is_not_fatal():
    client = FakeClient(pages_error=PublishError("409 conflict", status=409))
    strategy = RestApiStrategy(client, sleep=lambda s: None)

    result = strategy.publish("r", {"index.html": "x"}, CTX)

    assert result.pages_url == "https://octo.github.io/r/"
    assert result.commit_sha == "new-sha"


@pytest.mark.parametrize("status", [401, 403])
def test_authorization_error_falls_back_to_secondary(status):
    primary = StubStrategy("api", error=PublishError("denied", status=status))
    secondary = StubStrategy("gh", result=RESULT)

    result = FallbackStrategy(primary, secondary).publish("r", {"a": "b"}, CTX)

    assert result == RESULT
    assert len(primary.calls) == 1
    assert len(secondary.calls) == 1


def test_other_publish_errors_propagate_without_fallback():
    primary = StubStrategy("api", error=PublishError("server error", status=500))
    secondary = StubStrategy("gh", result=RESULT)

    with pytest.raises(PublishError, match="server error"):
        FallbackStrategy(primary, secondary).publish("r", {}, CTX)
    assert secondary.calls == []


def test_failed_fallback_keeps_authorization_status():
    denied = PublishError("Bad credentials", status=401, strategy="api")
    primary = StubStrategy("api", error=denied)
    secondary = StubStrategy("gh", error=PublishError("gh CLI not found", strategy="gh"))

    with pytest.raises(PublishError, match="gh CLI not found") as info:
        FallbackStrategy(primary, secondary).publish("r", {}, CTX)

    assert info.value.status == 401
    assert info.value.is_authorization
    assert info.value.__cause__ is denied


def test_failed_fallback_prefers_secondary_status():
    primary = StubStrategy("api", error=PublishError("denied", status=403))
    secondary = StubStrategy("gh", error=PublishError("server error", status=502))

    with pytest.raises(PublishError) as info:
        FallbackStrategy(primary, secondary).publish("r", {}, CTX)

    assert info.value.status == 502


def test_publisher_injects_license_before_publishing(settings):
    cli = StubStrategy("gh", result=RESULT)
    publisher = Publisher(settings, client=FakeClient(), cli=cli, runner=lambda *a, **k: "")
    settings.PREFERRED_DRIVER = "gh"
    files = {"index.html": "x"}

    assert publisher.publish("r", files, owner_identity="student@example.com", task="t1") == RESULT

    sent = cli.calls[0][1]
    assert LICENSE_PATH in sent
    assert "student@example.com" in sent[LICENSE_PATH]
    assert sent[LICENSE_PATH].startswith("MIT License")
    assert cli.calls[0][2].owner == "octo"


def test_publisher_requires_credentials(settings):
    settings.GITHUB_TOKEN = ""
    rest = StubStrategy("api", result=RESULT)
    publisher = Publisher(settings, client=FakeClient(), rest=rest, cli=StubStrategy("gh"))

    with pytest.raises(PublishError, match="GITHUB_TOKEN"):
        publisher.publish("r", {})
    assert rest.calls == []


def test_strategy_selection_prefers_cli_when_installed(settings):
    settings.PREFERRED_DRIVER = "auto"
    rest, cli = StubStrategy("api"), StubStrategy("gh")

    installed = Publisher(settings, client=FakeClient(), rest=rest, cli=cli, runner=lambda *a, **k: "gh 2.40")
    assert installed.select_strategy() is cli

    def missing(*args, **kwargs):
        raise FileNotFoundError("gh")

    absent = Publisher(settings, client=FakeClient(), rest=rest, cli=cli, runner=missing)
    chosen = absent.select_strategy()
    assert isinstance(chosen, FallbackStrategy)
    assert chosen.primary is rest and chosen.secondary is cli


class RecordingRunner:
    def __init__(self, fail_on: str | None = None, stderr: str = "boom"):
        self.commands: list[list[str]] = []
        self.cwds: list = []
        self.fail_on = fail_on
        self.seen_files: list[str] = []
        self.stderr = stderr

    def __call__(self, cmd, cwd=None, env=None):
        self.commands.append(cmd)
        self.cwds.append(cwd)
        if cmd[:2] == ["git", "add"]:
            self.seen_files = sorted(
                os.path.relpath(os.path.join(d, f), cwd) for d, _, fs in os.walk(cwd) for f in fs
            )
        if self.fail_on and " ".join(cmd).startswith(self.fail_on):
            raise subprocess.CalledProcessError(1, cmd, stderr=self.stderr)
        if cmd[:2] == ["git", "rev-parse"]:
            return "cli-sha\n"
        return ""


def test_cli_strategy_pushes_and_cleans_up():
    runner = RecordingRunner()
    client = FakeClient(branch_visible_after=2)
    sleeps = []
    strategy = GhCliStrategy("tok", client, runner=runner, sleep=sleeps.append,
                             branch_poll_attempts=15, branch_poll_interval=3)

    result = strategy.publish("r", {"index.html": "x", "assets/data.bin": b"\x00\x01"}, CTX)

    assert result == PublishResult(repo_url="https://github.com/octo/r", commit_sha="cli-sha",
                                   pages_url="https://octo.github.io/r/")
    assert runner.seen_files == sorted(["index.html", os.path.join("assets", "data.bin")])
    create = next(c for c in runner.commands if c[:3] == ["gh", "repo", "create"])
    assert "octo/r" in create and "--push" in create and "--public" in create
    assert ["git", "branch", "-M", "main"] in runner.commands
    assert sleeps == [3, 3, 3]
    assert not os.path.exists(next(c for c in runner.cwds if c is not None))


def test_cli_strategy_uses_gh_api_when_pages_call_fails():
    runner = RecordingRunner()
    client = FakeClient(pages_error=PublishError("forbidden", status=403))
    strategy = GhCliStrategy("tok", client, runner=runner, sleep=lambda s: None)

    strategy.publish("r", {"index.html": "x"}, CTX)

    assert any(c[:2] == ["gh", "api"] and "repos/octo/r/pages" in c for c in runner.commands)


def test_cli_strategy_removes_workdir_on_failure():
    runner = RecordingRunner(fail_on="gh repo create")
    strategy = GhCliStrategy("tok", FakeClient(), runner=runner, sleep=lambda s: None)

    with pytest.raises(PublishError, match="boom"):
        strategy.publish("r", {"index.html": "x"}, CTX)

    workdir = next(c for c in runner.cwds if c is not None)
    assert not os.path.exists(workdir)


def test_write_tree_refuses_escaping_paths(tmp_path):
    with pytest.raises(PublishError):
        write_tree(tmp_path, {"../evil.txt": "x"})


def test_mit_license_names_author():
    text = mit_license("someone@example.com")
    assert "Copyright (c)" in text and "someone@example.com" in text


def test_cli_strategy_continues_when_branch_never_appears():
    runner = RecordingRunner()
    client = FakeClient(branch_visible_after=10)
    sleeps = []
    strategy = GhCliStrategy("tok", client, runner=runner, sleep=sleeps.append,
                             branch_poll_attempts=4, branch_poll_interval=3)

    result = strategy.publish("r", {"index.html": "x"}, CTX)

    assert sleeps == [3, 3, 3, 3]
    assert client.branch_checks == 4
    assert result.commit_sha == "cli-sha"
    assert ("enable_pages", "main", "/") in client.calls


def test_cli_strategy_classifies_gh_auth_failures():
    runner = RecordingRunner(fail_on="gh repo create",
                             stderr="HTTP 401: Bad credentials (https://api.github.com/user/repos)")
    strategy = GhCliStrategy("tok", FakeClient(), runner=runner, sleep=lambda s: None)

    with pytest.raises(PublishError) as info:
        strategy.publish("r", {"index.html": "x"}, CTX)

    assert info.value.status == 401
    assert info.value.is_authorization


@pytest.mark.parametrize("stderr,status", [
    ("HTTP 403: Resource not accessible by integration", 403),
    ("To get started with GitHub CLI, please run:  gh auth login", 401),
    ("remote: Invalid username or password.\nfatal: Authentication failed", 401),
    ("GraphQL: Name already exists on this account (createRepository)", None),
])
def test_stderr_status(stderr, status):
    assert stderr_status(stderr) == status
