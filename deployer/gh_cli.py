import logging
import os
import pathlib
import re
import subprocess
import tempfile
import time
from typing import Callable, Dict, List, Optional
from .errors import PublishError
from .github_rest import GitHubClient, pages_url, repo_html_url
from .models import FileTree, PublishContext, PublishResult

logger = logging.getLogger(__name__)

Runner = Callable[..., str]

def run(cmd: List[str], cwd=None, env: Optional[Dict[str, str]] = None) -> str:
    logger.info("RUN: %s", " ".join(cmd))
    proc = subprocess.run(cmd, cwd=cwd, env=env, check=True, capture_output=True, text=True)
    return proc.stdout

def gh_available(runner: Runner = run) -> bool:
    try:
        runner(["gh", "--version"])
    except (OSError, subprocess.CalledProcessError):
        return False
    return True

_HTTP_STATUS_RE = re.compile(r"HTTP (\d{3})")

def stderr_status(stderr: str) -> Optional[int]:
    """HTTP status reported by gh/git, 401 for credential failures without one."""
    m = _HTTP_STATUS_RE.search(stderr)
    if m:
        return int(m.group(1))
    lowered = stderr.lower()
    if "authentication" in lowered or "bad credentials" in lowered or "gh auth login" in lowered:
        return 401
    return None

def write_tree(root: pathlib.Path, files: FileTree) -> None:
    base = root.resolve()
    for path, content in files.items():
        p = (root / path).resolve()
        if base not in p.parents:
            raise PublishError(f"refusing to write outside the repository: {path}", strategy="gh")
        p.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            p.write_bytes(content)
        else:
            p.write_text(content, encoding="utf-8")

class GhCliStrategy:
    """Publish through a local git repository and ``gh repo create --push``.

    Preferred for fresh repositories: pushing a complete local history avoids
    racing GitHub's asynchronous initialisation of an auto-init repo.
    """
    name = "gh"

    def __init__(self, token: str, client: GitHubClient, runner: Runner = run,
                 sleep: Callable[[float], None] = time.sleep,
                 branch_poll_attempts: int = 15, branch_poll_interval: float = 3):
        self.token = token
        self.client = client
        self.runner = runner
        self.sleep = sleep
        self.branch_poll_attempts = branch_poll_attempts
        self.branch_poll_interval = branch_poll_interval

    def _env(self) -> Dict[str, str]:
        env = os.environ.copy()
        env["GH_TOKEN"] = self.token
        env["GIT_TERMINAL_PROMPT"] = "0"
        return env

    def publish(self, name: str, files: FileTree, ctx: PublishContext) -> PublishResult:
        if not gh_available(self.runner):
            raise PublishError("gh CLI not found. Install from https://cli.github.com/", strategy=self.name)

        with tempfile.TemporaryDirectory(prefix="deployer-") as tmp:
            root = pathlib.Path(tmp) / name
            root.mkdir(parents=True)
            write_tree(root, files)
            env = self._env()
            try:
                self.runner(["git", "init"], cwd=root, env=env)
                self.runner(["git", "config", "user.email", "bot@llm-deploy.local"], cwd=root, env=env)
                self.runner(["git", "config", "user.name", ctx.owner], cwd=root, env=env)
                self.runner(["git", "add", "."], cwd=root, env=env)
                self.runner(["git", "commit", "-m", ctx.commit_message], cwd=root, env=env)
                self.runner(["git", "branch", "-M", ctx.branch], cwd=root, env=env)
                self.runner([
                    "gh", "repo", "create", f"{ctx.owner}/{name}",
                    "--public", "--source", ".", "--remote", "origin", "--push",
                ], cwd=root, env=env)
                commit_sha = self.runner(["git", "rev-parse", "HEAD"], cwd=root, env=env).strip()
            except subprocess.CalledProcessError as e:
                detail = (e.stderr or "").strip() or str(e)
                raise PublishError(f"gh publish failed: {detail}", status=stderr_status(detail),
                                   strategy=self.name) from e

            logger.info("Repository created: %s", repo_html_url(ctx.owner, name))
            self._wait_for_branch(name, ctx)
            self._enable_pages(name, ctx, root, env)

        return PublishResult(
            repo_url=repo_html_url(ctx.owner, name),
            commit_sha=commit_sha,
            pages_url=pages_url(ctx.owner, name),
        )

    def _wait_for_branch(self, name: str, ctx: PublishContext) -> bool:
        # repo creation can finish before the pushed branch is visible through the API
        for i in range(self.branch_poll_attempts):
            self.sleep(self.branch_poll_interval)
            try:
                self.client.get_branch(ctx.owner, name, ctx.branch)
                logger.info("Branch %s confirmed", ctx.branch)
                return True
            except PublishError:
                logger.info("Waiting for branch %s (attempt %d/%d)",
                            ctx.branch, i + 1, self.branch_poll_attempts)
        logger.warning("Branch %s not visible after %d attempts, continuing",
                       ctx.branch, self.branch_poll_attempts)
        return False

    def _enable_pages(self, name: str, ctx: PublishContext, root: pathlib.Path, env) -> None:
        try:
            self.client.enable_pages(ctx.owner, name, ctx.branch, ctx.pages_path)
            logger.info("GitHub Pages enabled")
            return
        except PublishError as e:
            logger.warning("Could not enable Pages via API: %s", e)
        try:
            self.runner([
                "gh", "api", f"repos/{ctx.owner}/{name}/pages", "-X", "POST",
                "-f", f"source[branch]={ctx.branch}", "-f", f"source[path]={ctx.pages_path}",
            ], cwd=root, env=env)
            logger.info("GitHub Pages enabled via gh CLI")
        except (OSError, subprocess.CalledProcessError) as e:
            logger.warning("Could not enable Pages via gh CLI either: %s", e)
