import logging
import re
from typing import Dict, List, Tuple
from openai import OpenAI
from .settings import Settings

logger = logging.getLogger(__name__)

# ---------- client ----------
def _client(settings: Settings) -> OpenAI:
    if not settings.llm_enabled:
        raise RuntimeError("OPENAI_API_KEY/OPENAI_BASE_URL not set")
    return OpenAI(api_key=settings.OPENAI_API_KEY, base_url=settings.OPENAI_BASE_URL)

# ---------- synthesis ----------
_FENCE_RE = re.compile(r"<<(INDEX_HTML|STYLES_CSS|APP_JS)>>\s*([\s\S]*?)\s*<</\1>>", re.IGNORECASE)
_NAMES = {"INDEX_HTML": "index.html", "STYLES_CSS": "styles.css", "APP_JS": "app.js"}

def extract_blocks(text: str) -> Dict[str, str]:
    out = {}
    for kind, body in _FENCE_RE.findall(text):
        out[_NAMES[kind.upper()]] = body.strip()
    return out

def build_prompt(brief: str, checks: List[str], attachment_names: List[str], meta: Dict) -> str:
    checks_text = "\n".join(f"- {c}" for c in checks) or "- (none)"
    var_lines = "\n".join(f"- {k}: {v}" for k, v in meta.items()) or "- (no extra vars)"
    return f"""
You are generating a minimal static web app with exactly three files: index.html, styles.css and app.js.

Rules:
- Satisfy the brief and all checks.
- index.html must link styles.css and load app.js.
- If attachments are referenced, use fetch('assets/<filename>') where filename is one of: {attachment_names or "[]"}.
- Use vanilla JS and CDN links only. Never embed API keys or tokens.
- Keep total output < 250 lines.

Context variables:
{var_lines}

Brief:
{brief}

Checks to satisfy:
{checks_text}

Output FORMAT (strict):
<<INDEX_HTML>>
[the full HTML file here]
<</INDEX_HTML>>

<<STYLES_CSS>>
[the full CSS file here]
<</STYLES_CSS>>

<<APP_JS>>
[the full JS file here]
<</APP_JS>>
"""

def synthesize_app(settings: Settings, brief: str, checks: List[str],
                   attachment_names: List[str], meta: Dict) -> Dict[str, str]:
    client = _client(settings)
    resp = client.chat.completions.create(
        model=settings.OPENAI_MODEL,
        messages=[
            {"role": "system", "content": "Generate only the three code blocks requested; no extra prose."},
            {"role": "user", "content": build_prompt(brief, checks, attachment_names, meta)},
        ],
        temperature=0.15,
    )
    files = extract_blocks(resp.choices[0].message.content or "")
    missing = [n for n in _NAMES.values() if not files.get(n)]
    if missing:
        raise RuntimeError(f"LLM did not return required code blocks: {missing}")
    logger.info("LLM synthesized %d files", len(files))
    return files
