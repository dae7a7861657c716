# deployer/guardrails.py
"""Pre-publish secret scan.

Advisory hygiene only: the pattern set is fixed and content crafted to dodge it
will get through. Binary files are never scanned.
"""
import logging
import re
from typing import Dict, List, Tuple
from .models import FileTree, SecretViolation

logger = logging.getLogger(__name__)

REDACTED = "***REDACTED***"

# Order matters: scan() reports category order, then match order.
PATTERNS: List[Tuple[str, "re.Pattern[str]"]] = [
    ("worker_secret_name", re.compile(r"WORKER_SECRET", re.I)),
    ("github_token_name", re.compile(r"GITHUB_TOKEN", re.I)),
    ("github_pat", re.compile(r"ghp_[a-zA-Z0-9]{36}")),
    ("openai_key", re.compile(r"sk-[a-zA-Z0-9]{48}")),
    ("google_api_key", re.compile(r"AIza[0-9A-Za-z_-]{35}")),
    ("long_token", re.compile(r"\b[A-Z0-9]{32,}\b")),
]

def scan(content: str) -> List[SecretViolation]:
    return [
        SecretViolation(match=m.group(0), category=category)
        for category, pattern in PATTERNS
        for m in pattern.finditer(content)
    ]

def redact(content: str, violations: List[SecretViolation]) -> str:
    cleaned = content
    for v in violations:
        cleaned = cleaned.replace(v.match, REDACTED)
    return cleaned

def scan_tree(files: FileTree) -> Dict[str, List[SecretViolation]]:
    """Scan every text file, redacting in place. Returns violations per path.

    Redaction can expose a new token boundary (a long run followed by the
    marker), so each file is rescanned until it comes back clean.
    """
    found = {}
    for path, content in list(files.items()):
        if isinstance(content, bytes):
            continue
        violations = scan(content)
        if not violations:
            continue
        logger.warning(
            "Potential secrets found in %s: %s",
            path, sorted({v.category for v in violations}),
        )
        found[path] = []
        while violations:
            found[path].extend(violations)
            content = redact(content, violations)
            violations = scan(content)
        files[path] = content
    return found
