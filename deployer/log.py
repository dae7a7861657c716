import logging
import os
import sys

from .settings import Settings

FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

def configure_logging(settings: Settings) -> logging.Logger:
    """Attach console + append-only file handlers to the package logger.

    Safe to call more than once (e.g. on reload); handlers are replaced, not stacked.
    """
    logger = logging.getLogger("deployer")
    logger.setLevel(logging.INFO)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(FORMAT))
    handlers = [console_handler]

    log_dir = os.path.dirname(settings.log_path)
    try:
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(settings.log_path, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FORMAT))
        handlers.append(file_handler)
    except OSError as e:
        print(f"WARN: cannot open log file {settings.log_path}: {e}", file=sys.stderr)

    for h in logger.handlers:
        h.close()
    logger.handlers = handlers
    logger.propagate = False
    return logger

def tail(path: str, lines: int = 200) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return "".join(f.readlines()[-lines:])
