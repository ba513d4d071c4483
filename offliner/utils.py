"""
utils.py - Shared utilities for template processing and file naming

Consolidates functionality used by the interceptor generator, the
layout assigner and configuration loading.
"""

import hashlib
from pathlib import Path
from typing import Dict, Any
from urllib.parse import urlparse


# ───────────────────────── Template Processing ──────────────────────────

class TemplateLoader:
    """
    Shared template loading and rendering utility.

    Templates are plain JavaScript files with __PLACEHOLDER__ markers that
    are substituted at generation time. The host never executes them.
    """

    def __init__(self, js_dir: Path = None):
        """
        Initialize template loader.

        @param js_dir: Directory containing JavaScript template files
        """
        self.js_dir = js_dir or Path(__file__).resolve().parent / "js"
        self.js_templates_cache = {}  # Cached JS templates

    def load_template(self, template_name: str) -> str:
        """
        Return the raw text of a template, reading it from disk once.

        @param template_name: JS file name (e.g., "link_interceptor.js")
        @return: Unrendered template text
        @raises FileNotFoundError: If the template does not exist
        """
        if template_name in self.js_templates_cache:
            return self.js_templates_cache[template_name]

        template_path = self.js_dir / template_name
        if not template_path.exists():
            raise FileNotFoundError(f"JS template not found: {template_path}")

        template = template_path.read_text(encoding="utf-8")
        self.js_templates_cache[template_name] = template
        return template

    def load_and_render_template(self, template_name: str, template_vars: Dict[str, Any]) -> str:
        """
        Load a JS template file and render it with template variables.

        @param template_name: JS file name (e.g., "link_interceptor.js")
        @param template_vars: Dict of variable names to values for replacement
        @return: Rendered JavaScript code
        """
        rendered = self.load_template(template_name)
        for var_name, var_value in template_vars.items():
            if var_name.startswith("__") and var_name.endswith("__"):
                # Variable already in __VAR__ format, use as-is
                placeholder = var_name
            else:
                placeholder = f"__{var_name.upper()}__"

            rendered = rendered.replace(placeholder, str(var_value))

        return rendered


# ───────────────────────── File Path Utilities ──────────────────────────

# Leave a little slack for parent-dir prefix when computing max length.
MAX_FILENAME_LEN = 200  # 255 is the usual hard limit on most POSIX filesystems.


def safe_filename(stem: str, ext: str, salt: str, max_len: int = MAX_FILENAME_LEN) -> str:
    """Return *stem* + '_' + 8-hex-md5 + *ext*, trimming *stem* if needed.

    @param stem (str): Base filename without extension.
    @param ext (str): File extension, including leading dot.
    @param salt (str): Salt value used to generate deterministic MD5 suffix.
    @param max_len (int): Upper bound on the returned name's length.

    @return (str): Filename no longer than *max_len*.
    """

    salt_hash = hashlib.md5(salt.encode()).hexdigest()[:8]
    # room for underscore between stem and salt
    budget = max_len - len(ext) - len(salt_hash) - 1
    if budget < 8:
        # pathological: give up on the stem entirely.
        return f"{salt_hash}{ext}"
    if len(stem) > budget:
        stem = stem[:budget]
    return f"{stem}_{salt_hash}{ext}"


# ───────────────────────── URL Validation ──────────────────────────

def is_valid_url(url: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    try:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)
    except (TypeError, ValueError):
        return False
