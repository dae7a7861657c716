"""Operator commands mirroring each pipeline step."""
import json
import pathlib
import sys

import rich_click as click

from . import __version__
from .errors import NotificationFailure, PublishError
from .generator import generate
from .log import configure_logging
from .models import Attachment, FileTree
from .notifier import notify_with_backoff
from .pages import poll_until_ready
from .publisher import Publisher
from .records import RecordStore
from .settings import Settings

click.rich_click.USE_MARKDOWN = True


def _settings() -> Settings:
    settings = Settings()
    configure_logging(settings)
    return settings


def read_tree(root: pathlib.Path) -> FileTree:
    """Load a directory as a file tree; files containing NUL bytes stay binary."""
    files: FileTree = {}
    for p in sorted(root.rglob("*")):
        if not p.is_file() or ".git" in p.relative_to(root).parts:
            continue
        data = p.read_bytes()
        rel = p.relative_to(root).as_posix()
        files[rel] = data if b"\x00" in data else data.decode("utf-8", errors="replace")
    return files


@click.group()
@click.version_option(version=__version__, prog_name="deployer")
def cli() -> None:
    """App deployment task tools."""


@cli.command("generate")
@click.argument("brief")
@click.option("--attachments", "attachments_file", type=click.Path(exists=True, path_type=pathlib.Path),
              default=None, help="JSON list of {name, url} attachments.")
@click.option("--out", type=click.Path(path_type=pathlib.Path), default=pathlib.Path("generated-output"),
              show_default=True, help="Output directory.")
def generate_cmd(brief: str, attachments_file, out: pathlib.Path) -> None:
    """Generate an app from BRIEF into a local directory."""
    settings = _settings()
    attachments = []
    if attachments_file is not None:
        attachments = [Attachment(**a) for a in json.loads(attachments_file.read_text(encoding="utf-8"))]
    files = generate(brief, attachments, [], {"task": "test-task", "round": 1, "nonce": "test"},
                     settings=settings)
    for path, content in files.items():
        target = out / path
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")
        click.echo(f"Created: {path}")
    click.echo(f"Generation complete! Output in: {out}")


@cli.command("publish")
@click.argument("repo_name")
@click.argument("files_dir", type=click.Path(exists=True, file_okay=False, path_type=pathlib.Path))
def publish_cmd(repo_name: str, files_dir: pathlib.Path) -> None:
    """Create REPO_NAME on GitHub from the files in FILES_DIR."""
    settings = _settings()
    files = read_tree(files_dir)
    click.echo(f"Loaded {len(files)} files")
    try:
        result = Publisher(settings).publish(repo_name, files, task=repo_name,
                                             brief="Manual repository creation via script")
    except PublishError as e:
        click.echo(f"Error creating repository: {e}", err=True)
        sys.exit(1)
    click.echo(f"Repository URL: {result.repo_url}")
    click.echo(f"Commit SHA: {result.commit_sha}")
    click.echo(f"Pages URL: {result.pages_url}")


@cli.command("notify")
@click.argument("evaluation_url")
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False, path_type=pathlib.Path))
def notify_cmd(evaluation_url: str, payload_file: pathlib.Path) -> None:
    """POST the JSON in PAYLOAD_FILE to EVALUATION_URL with retries."""
    settings = _settings()
    payload = json.loads(payload_file.read_text(encoding="utf-8"))
    try:
        if not notify_with_backoff(evaluation_url, payload, records=RecordStore(settings.RECORDS_DIR),
                                   timeout=settings.NOTIFY_TIMEOUT_SECONDS):
            raise NotificationFailure("Notification failed after all retries")
    except NotificationFailure as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    click.echo("Notification successful!")


@cli.command("check-pages")
@click.argument("pages_url")
@click.option("--timeout", type=int, default=540, show_default=True, help="Seconds to wait.")
def check_pages_cmd(pages_url: str, timeout: int) -> None:
    """Wait until PAGES_URL answers 200."""
    settings = _settings()
    if poll_until_ready(pages_url, timeout, settings.PAGES_POLL_INTERVAL_SECONDS,
                        settings.PAGES_PROBE_TIMEOUT_SECONDS):
        click.echo("Pages are ready!")
        return
    click.echo("Pages not ready within timeout", err=True)
    sys.exit(1)


if __name__ == "__main__":
    cli()
