"""
javascript.py - Best-effort URL rewriting in JavaScript source

Recognises URL-bearing string literals in a fixed set of idioms and
rewrites the same-origin ones through the path resolver. This is not a
JS parser: concatenated or computed URLs are invisible here and are left
to the runtime interceptor (see interceptor.py).

Key functions:
- fix_js(): Rewrite every recognised literal, return text and count
"""

import re
from typing import List, Tuple

from .debug import debug_print
from .paths import RewriteContext, classify_and_rewrite

# ─── Patterns ───────────────────────────────────────────────
# Every pattern captures the quote as 'q' and the literal body as 'u'.
_LIT = r"""(?P<q>["'`])(?P<u>[^"'`\s\\]+?)(?P=q)"""

JS_URL_PATTERNS: List[Tuple[str, re.Pattern]] = [
    # "https://site/x", '//site/x', `/x` - bare absolute URL or root path literal
    ("literal", re.compile(
        r"""(?P<q>["'`])(?P<u>(?:https?:)?//[^"'`\s\\$]+|/[^/"'`\s\\$*][^"'`\s\\$]*)(?P=q)"""
    )),
    # src = "..." / href: "..." / action = "..." / url: "..."
    ("assignment", re.compile(
        r"""\b(?:src|href|action|url)\s*[=:]\s*""" + _LIT, re.IGNORECASE
    )),
    # fetch("...")
    ("fetch", re.compile(r"""\bfetch\s*\(\s*""" + _LIT)),
    # xhr.open("GET", "...")
    ("xhr_open", re.compile(
        r"""\.open\s*\(\s*["'][A-Za-z]+["']\s*,\s*""" + _LIT
    )),
    # window.location = "..." / location.href = "..."
    ("location", re.compile(
        r"""\blocation(?:\.href)?\s*=\s*""" + _LIT
    )),
    # location.assign("...") / location.replace("...")
    ("location_call", re.compile(
        r"""\blocation\.(?:assign|replace)\s*\(\s*""" + _LIT
    )),
    # router.push("...") / navigate.replace("...") / history.go("...")
    ("router", re.compile(
        r"""\b(?:router|\$router|history|navigate|navigation)\.(?:push|replace|go)\s*\(\s*""" + _LIT
    )),
    # history.pushState(state, title, "...")
    ("push_state", re.compile(
        r"""\bhistory\.(?:pushState|replaceState)\s*\([^,()]*,[^,()]*,\s*""" + _LIT
    )),
    # document.createElement("a").href = "..."
    ("create_element", re.compile(
        r"""createElement\s*\(\s*["'](?:a|img|script|link|iframe)["']\s*\)[^;]*?\.(?:href|src)\s*=\s*"""
        + _LIT
    )),
    # el.setAttribute("href", "...")
    ("set_attribute", re.compile(
        r"""setAttribute\s*\(\s*["'](?:href|src|action)["']\s*,\s*""" + _LIT
    )),
    # new URL("...")
    ("url_constructor", re.compile(r"""\bnew\s+URL\s*\(\s*""" + _LIT)),
]


def _rewrite_literals(pattern: re.Pattern, js: str, ctx: RewriteContext) -> Tuple[str, int]:
    count = 0

    def repl(m: re.Match) -> str:
        nonlocal count
        url = m.group("u")
        if m.group("q") == "`" and "${" in url:
            return m.group(0)
        outcome = classify_and_rewrite(url, ctx)
        if outcome.is_external or not outcome.changed:
            return m.group(0)
        count += 1
        whole = m.group(0)
        start = m.start("u") - m.start(0)
        end = m.end("u") - m.start(0)
        return whole[:start] + outcome.rewritten + whole[end:]

    return pattern.sub(repl, js), count


def fix_js(js: str, ctx: RewriteContext) -> Tuple[str, int]:
    """Rewrite same-origin URL literals in JavaScript source.

    Rewritten literals are relative, which none of the patterns rewrite
    again, so applying the patterns in sequence is safe.

    @param js: JavaScript source text
    @param ctx: Context of the page the script runs in
    @return: (rewritten source, number of literals changed)
    @raises ValueError: If js is not a string
    """
    if not isinstance(js, str):
        raise ValueError("js must be a string")

    total = 0
    for name, pattern in JS_URL_PATTERNS:
        js, count = _rewrite_literals(pattern, js, ctx)
        if count:
            debug_print(f"[DEBUG] js: {count} literal(s) rewritten by '{name}' pattern")
        total += count
    return js, total
