"""Create a GitHub repository from a file tree and turn on Pages for it.

Two strategies share one contract: ``RestApiStrategy`` drives the git data API
directly, ``GhCliStrategy`` pushes a local repository through the ``gh`` CLI.
The CLI is preferred whenever it is installed; otherwise the REST strategy runs
and an authorization failure (401/403) retries through the CLI.
"""
import logging
import time
from typing import Callable, Optional, Protocol
from .errors import PublishError
from .gh_cli import GhCliStrategy, Runner, gh_available, run
from .github_rest import GitHubClient, pages_url, repo_html_url
from .models import FileTree, PublishContext, PublishResult
from .settings import Settings

logger = logging.getLogger(__name__)

LICENSE_PATH = "LICENSE"

MIT_LICENSE = """MIT License

Copyright (c) %YEAR% %AUTHOR%

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE.
"""

def mit_license(author: str) -> str:
    return MIT_LICENSE.replace("%YEAR%", time.strftime("%Y")).replace("%AUTHOR%", author or "Author")


class PublishStrategy(Protocol):
    name: str

    def publish(self, name: str, files: FileTree, ctx: PublishContext) -> PublishResult: ...


class RestApiStrategy:
    name = "api"

    def __init__(self, client: GitHubClient, sleep: Callable[[float], None] = time.sleep,
                 settle_delay: float = 9):
        self.client = client
        self.sleep = sleep
        self.settle_delay = settle_delay

    def publish(self, name: str, files: FileTree, ctx: PublishContext) -> PublishResult:
        c, owner = self.client, ctx.owner
        description = f"{ctx.task} - {ctx.brief[:100]}" if ctx.task else ctx.brief[:100]

        # auto_init gives the repo a branch to hang our commit on
        repo = c.create_repo(name, description=description, auto_init=True, owner=owner)
        logger.info("Repository created: %s", repo.get("html_url", name))
        self.sleep(self.settle_delay)

        parent = c.get_ref_sha(owner, name, ctx.branch)
        entries = [
            {"path": path, "mode": "100644", "type": "blob", "sha": c.create_blob(owner, name, content)}
            for path, content in files.items()
        ]
        tree = c.create_tree(owner, name, entries)
        commit = c.create_commit(owner, name, ctx.commit_message, tree, [parent])
        logger.info("Commit created: %s", commit)

        # Force-move the branch: the auto-init placeholder's files are not in our tree.
        c.update_ref(owner, name, ctx.branch, commit, force=True)

        try:
            c.enable_pages(owner, name, ctx.branch, ctx.pages_path)
            logger.info("GitHub Pages enabled")
        except PublishError as e:
            logger.warning("Could not enable Pages via API: %s", e)

        return PublishResult(
            repo_url=repo.get("html_url") or repo_html_url(owner, name),
            commit_sha=commit,
            pages_url=pages_url(owner, name),
        )


class FallbackStrategy:
    """Run ``primary``; on an authorization-class ``PublishError`` run ``secondary``."""

    def __init__(self, primary: PublishStrategy, secondary: PublishStrategy):
        self.primary = primary
        self.secondary = secondary
        self.name = f"{primary.name}->{secondary.name}"

    def publish(self, name: str, files: FileTree, ctx: PublishContext) -> PublishResult:
        try:
            return self.primary.publish(name, files, ctx)
        except PublishError as e:
            if not e.is_authorization:
                raise
            logger.warning("%s publish unauthorized (%s); falling back to %s",
                           self.primary.name, e.status, self.secondary.name)
            primary_error = e
        try:
            return self.secondary.publish(name, files, ctx)
        except PublishError as e:
            # keep the authorization class visible to callers
            raise PublishError(
                f"{self.secondary.name} fallback failed after {self.primary.name} "
                f"returned {primary_error.status}: {e}",
                status=e.status if e.status is not None else primary_error.status,
                strategy=self.secondary.name,
            ) from primary_error


def with_fallback(primary: PublishStrategy, secondary: PublishStrategy) -> PublishStrategy:
    return FallbackStrategy(primary, secondary)


class Publisher:
    def __init__(self, settings: Settings, client: Optional[GitHubClient] = None,
                 rest: Optional[PublishStrategy] = None, cli: Optional[PublishStrategy] = None,
                 runner: Runner = run, sleep: Callable[[float], None] = time.sleep):
        self.settings = settings
        self.runner = runner
        client = client or GitHubClient(settings.GITHUB_TOKEN, settings.GITHUB_API_URL)
        self.rest = rest or RestApiStrategy(client, sleep=sleep,
                                            settle_delay=settings.SETTLE_DELAY_SECONDS)
        self.cli = cli or GhCliStrategy(
            settings.GITHUB_TOKEN, client, runner=runner, sleep=sleep,
            branch_poll_attempts=settings.BRANCH_POLL_ATTEMPTS,
            branch_poll_interval=settings.BRANCH_POLL_INTERVAL_SECONDS,
        )

    def select_strategy(self) -> PublishStrategy:
        driver = self.settings.PREFERRED_DRIVER.lower()
        if driver == "gh" or (driver == "auto" and gh_available(self.runner)):
            logger.info("Using gh CLI")
            return self.cli
        logger.info("Using GitHub REST API")
        return with_fallback(self.rest, self.cli)

    def publish(self, name: str, files: FileTree, owner_identity: str = "",
                task: str = "", brief: str = "") -> PublishResult:
        """Publish ``files`` as repository ``name``; ``owner_identity`` is credited in LICENSE."""
        s = self.settings
        files[LICENSE_PATH] = mit_license(owner_identity or s.GITHUB_USER_OR_ORG)
        if not s.GITHUB_TOKEN or not s.GITHUB_USER_OR_ORG:
            raise PublishError("Missing GITHUB_TOKEN or GITHUB_USER_OR_ORG")

        ctx = PublishContext(owner=s.GITHUB_USER_OR_ORG, branch=s.DEFAULT_BRANCH,
                             pages_path=s.PAGES_BUILD_PATH, task=task, brief=brief)
        logger.info("Creating repository: %s", name)
        return self.select_strategy().publish(name, files, ctx)
