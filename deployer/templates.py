"""Built-in app templates used when no LLM is configured.

Each template returns ``index.html``, ``styles.css`` and ``app.js``.
"""
import html
import json
from typing import Callable, Dict, List

BASE_CSS = """* { margin: 0; padding: 0; box-sizing: border-box; }

body {
  font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif;
  background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
  min-height: 100vh;
  display: flex;
  justify-content: center;
  align-items: center;
  padding: 20px;
}

.container {
  background: white;
  padding: 30px;
  border-radius: 10px;
  box-shadow: 0 10px 40px rgba(0,0,0,0.2);
  max-width: 720px;
  width: 100%;
}

h1 { color: #333; margin-bottom: 20px; text-align: center; }

.info { background: #f0f0f0; padding: 10px; border-radius: 5px; margin-bottom: 15px; font-size: 14px; color: #666; }

textarea {
  width: 100%;
  height: 200px;
  padding: 10px;
  border: 2px solid #ddd;
  border-radius: 5px;
  font-family: 'Courier New', monospace;
  margin-bottom: 15px;
}

button {
  width: 100%;
  padding: 12px;
  background: #667eea;
  color: white;
  border: none;
  border-radius: 5px;
  font-size: 16px;
  cursor: pointer;
}

button:hover { background: #5568d3; }

.output { margin-top: 20px; padding: 15px; background: #f8f9fa; border-radius: 5px; min-height: 50px; }
"""

def _page(title: str, body: str, head_extra: str = "") -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{html.escape(title)}</title>
  <link rel="stylesheet" href="styles.css">{head_extra}
</head>
<body>
  <div class="container">
    <h1>{html.escape(title)}</h1>
{body}
  </div>
  <script src="app.js"></script>
</body>
</html>
"""

SUM_OF_SALES_JS = """// Sum of Sales Calculator
const params = new URLSearchParams(window.location.search);
const sourceUrl = params.get('url');
const input = document.getElementById('csv-input');
const output = document.getElementById('total-sales');

function calculateSum() {
  const lines = input.value.trim().split('\\n').filter(line => line.length > 0);
  let sum = 0;
  let count = 0;
  for (let i = 1; i < lines.length; i++) {
    const parts = lines[i].split(',');
    const sales = parseFloat((parts[parts.length - 1] || '').trim());
    if (!isNaN(sales)) {
      sum += sales;
      count++;
    }
  }
  output.textContent = count > 0 ? sum.toFixed(2) : '0.00';
  document.getElementById('record-count').textContent = count + ' records';
}

document.getElementById('calculate-btn').addEventListener('click', calculateSum);

function load(url) {
  return fetch(url).then(res => {
    if (!res.ok) throw new Error('HTTP ' + res.status);
    return res.text();
  });
}

const initial = sourceUrl || (window.DEFAULT_DATA || null);
if (initial) {
  document.getElementById('source-url').textContent = 'Source: ' + initial;
  load(initial)
    .then(text => { input.value = text; calculateSum(); })
    .catch(err => { output.textContent = 'Error loading data: ' + err.message; });
} else {
  document.getElementById('source-url').textContent = 'Paste CSV data (header row first, sales in the last column).';
}
"""

MARKDOWN_JS = """// Markdown to HTML Converter
const input = document.getElementById('markdown-input');
const output = document.getElementById('markdown-output');

function render() {
  output.innerHTML = marked.parse(input.value);
  if (window.hljs) {
    output.querySelectorAll('pre code').forEach(el => hljs.highlightElement(el));
  }
}

document.getElementById('convert-btn').addEventListener('click', render);

const sourceUrl = new URLSearchParams(window.location.search).get('url') || window.DEFAULT_DATA;
if (sourceUrl) {
  fetch(sourceUrl).then(r => r.text()).then(text => { input.value = text; render(); });
}
"""

GENERIC_JS = """// Generated application
const params = new URLSearchParams(window.location.search);
const sourceUrl = params.get('url');
const output = document.getElementById('main-output');

if (sourceUrl) {
  document.getElementById('source-url').textContent = 'Source URL: ' + sourceUrl;
  fetch(sourceUrl)
    .then(r => r.text())
    .then(text => { output.textContent = text; })
    .catch(err => { output.textContent = 'Error loading data: ' + err.message; });
} else {
  document.getElementById('source-url').textContent = 'No source URL provided.';
}
"""

def _default_data_script(assets: List[str]) -> str:
    if not assets:
        return ""
    # JSON string literal, with "<" escaped so a name cannot close the script element
    value = json.dumps(f"assets/{assets[0]}").replace("<", "\\u003c")
    return f"\n  <script>window.DEFAULT_DATA = {value};</script>"

def sum_of_sales(brief: str, assets: List[str]) -> Dict[str, str]:
    body = """    <div id="source-url" class="info"></div>
    <textarea id="csv-input" placeholder="date,sales"></textarea>
    <button id="calculate-btn">Calculate Sum</button>
    <div class="output">Total Sales: <span id="total-sales">0.00</span> (<span id="record-count">0 records</span>)</div>"""
    return {
        "index.html": _page("Sum of Sales Calculator", body, _default_data_script(assets)),
        "styles.css": BASE_CSS,
        "app.js": SUM_OF_SALES_JS,
    }

def markdown_to_html(brief: str, assets: List[str]) -> Dict[str, str]:
    head = (
        '\n  <script src="https://cdn.jsdelivr.net/npm/marked/marked.min.js"></script>'
        '\n  <script src="https://cdn.jsdelivr.net/npm/@highlightjs/cdn-assets/highlight.min.js"></script>'
        + _default_data_script(assets)
    )
    body = """    <textarea id="markdown-input" placeholder="# Markdown here"></textarea>
    <button id="convert-btn">Convert</button>
    <div id="markdown-output" class="output"></div>"""
    return {
        "index.html": _page("Markdown to HTML Converter", body, head),
        "styles.css": BASE_CSS,
        "app.js": MARKDOWN_JS,
    }

def generic(brief: str, assets: List[str]) -> Dict[str, str]:
    body = f"""    <p class="info">{html.escape(brief)}</p>
    <div id="source-url" class="info"></div>
    <div id="main-output" class="output"></div>"""
    return {
        "index.html": _page("Generated App", body),
        "styles.css": BASE_CSS,
        "app.js": GENERIC_JS,
    }

TEMPLATES: Dict[str, Callable[[str, List[str]], Dict[str, str]]] = {
    "sum-of-sales": sum_of_sales,
    "markdown-to-html": markdown_to_html,
    "generic": generic,
}

def pick_template(brief: str) -> str:
    b = brief.lower()
    if "sum" in b and "sales" in b:
        return "sum-of-sales"
    if "markdown" in b and "html" in b:
        return "markdown-to-html"
    return "generic"
