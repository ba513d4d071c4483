"""
css.py - url() rewriting for stylesheets and inline styles

Pattern based, not a CSS parser: url(...) and @import "..." occurrences
are found with regular expressions and each reference goes through the
path resolver. A url( inside a CSS comment or string is rewritten like
any other occurrence.
"""

import re
from typing import Tuple

from .debug import debug_print
from .paths import RewriteContext, classify_and_rewrite

# ─── Patterns ───────────────────────────────────────────────
CSS_URL_RE = re.compile(
    r"""url\s*\(\s*(?P<q>["']?)(?P<u>[^"')]*?)(?P=q)\s*\)""",
    re.IGNORECASE,
)

# @import "x.css" / @import 'x.css' (the url() form is covered above)
CSS_IMPORT_RE = re.compile(
    r"""@import\s+(?P<q>["'])(?P<u>[^"']+)(?P=q)""",
    re.IGNORECASE,
)


def _rewrite_matches(pattern: re.Pattern, css: str, ctx: RewriteContext) -> Tuple[str, int]:
    count = 0

    def repl(m: re.Match) -> str:
        nonlocal count
        url = m.group("u").strip()
        if not url:
            return m.group(0)
        outcome = classify_and_rewrite(url, ctx)
        if outcome.is_external or not outcome.changed:
            return m.group(0)
        count += 1
        whole = m.group(0)
        start = m.start("u") - m.start(0)
        end = m.end("u") - m.start(0)
        return whole[:start] + outcome.rewritten + whole[end:]

    return pattern.sub(repl, css), count


def fix_css(css: str, ctx: RewriteContext) -> Tuple[str, int]:
    """Rewrite same-origin url() and @import references in stylesheet text.

    @param css: Stylesheet text
    @param ctx: Context whose target_path is where this CSS is written
    @return: (rewritten CSS, number of references changed)
    @raises ValueError: If css is not a string
    """
    if not isinstance(css, str):
        raise ValueError("css must be a string")

    fixed, url_count = _rewrite_matches(CSS_URL_RE, css, ctx)
    fixed, import_count = _rewrite_matches(CSS_IMPORT_RE, fixed, ctx)
    if url_count or import_count:
        debug_print(f"[DEBUG] css: {url_count} url(), {import_count} @import rewritten")
    return fixed, url_count + import_count


def fix_inline_style(style: str, ctx: RewriteContext) -> str:
    """Rewrite url() references inside a style="" attribute value."""
    fixed, _ = _rewrite_matches(CSS_URL_RE, style, ctx)
    return fixed
