import logging
from typing import Dict, List, Optional
from .data_uri import DataUriError, decode_data_uri, is_data_uri
from .llm import synthesize_app
from .models import Attachment, FileTree, utc_now
from .settings import Settings
from .templates import TEMPLATES, pick_template

logger = logging.getLogger(__name__)

def _attachment_map(attachments: List[Attachment]) -> Dict[str, bytes]:
    out = {}
    for a in attachments:
        if not is_data_uri(a.url):
            logger.warning("Skipping attachment %s: not a data URI", a.name)
            continue
        try:
            _, data = decode_data_uri(a.url)
        except DataUriError as e:
            logger.warning("Skipping attachment %s: %s", a.name, e)
            continue
        out[a.name] = data
    return out

def generate_readme(brief: str, meta: Dict, file_list: List[str]) -> str:
    files = "\n".join(f"- `{f}`" for f in file_list)
    return f"""# {meta.get("task", "app")}

**Round:** {meta.get("round", 1)}
**Generated:** {utc_now()}

## Overview

{brief}

## Files

{files}

## Usage

1. Open `index.html` in a web browser
2. Pass URL parameters as needed (e.g. `?url=...`)
3. View the output

## License

MIT License - see LICENSE
"""

def generate(brief: str, attachments: List[Attachment], checks: List[str], meta: Dict,
             settings: Optional[Settings] = None) -> FileTree:
    """Produce the app's file tree: entry point, companions, assets and README."""
    assets = _attachment_map(attachments)
    files: FileTree = {f"assets/{name}": data for name, data in assets.items()}

    app_files = None
    if settings is not None and settings.llm_enabled:
        try:
            app_files = synthesize_app(settings, brief, checks, list(assets), meta)
        except Exception as e:
            logger.warning("LLM synthesis failed, using template: %s", e)
    if app_files is None:
        template = pick_template(brief)
        logger.info("Detected template: %s", template)
        app_files = TEMPLATES[template](brief, list(assets))

    files.update(app_files)
    files["README.md"] = generate_readme(brief, meta, sorted(files))
    logger.info("Generated %d files", len(files))
    return files
