"""
fixer.py - Composite entry point for one fetched document

Runs the HTML, CSS and JavaScript rewriters with one set of options and
merges their statistics. Performs no I/O; persisting the result is the
caller's job (see layout.save_document()).
"""

from dataclasses import dataclass, field

from .css import fix_css
from .html import fix_document
from .javascript import fix_js
from .options import FixOptions, FixStats


@dataclass
class FixResult:
    """Rewritten texts for one document plus their merged statistics."""
    fixed_html: str = ""
    fixed_css: str = ""
    fixed_js: str = ""
    stats: FixStats = field(default_factory=FixStats)


def fix_all_links(html: str, css: str, js: str, options: FixOptions) -> FixResult:
    """Rewrite a page's HTML together with its CSS and JavaScript.

    CSS is only rewritten when ``options.fix_css_urls`` is set; otherwise it
    is returned as given. Empty inputs are returned empty.

    @param html: HTML document text
    @param css: Stylesheet text associated with the document
    @param js: JavaScript text associated with the document
    @param options: FixOptions for the document
    @return: FixResult with all three rewritten texts and merged FixStats
    @raises ValueError: If any text argument is not a string
    """
    for name, value in (("html", html), ("css", css), ("js", js)):
        if not isinstance(value, str):
            raise ValueError(f"{name} must be a string")

    fixed_html, html_stats = fix_document(html, options) if html else ("", FixStats())

    fixed_css, css_count = css, 0
    if css and options.fix_css_urls:
        fixed_css, css_count = fix_css(css, options)

    fixed_js, js_count = js, 0
    if js:
        fixed_js, js_count = fix_js(js, options)

    stats = html_stats.merge(FixStats(css_urls_fixed=css_count, js_urls_fixed=js_count))
    return FixResult(fixed_html=fixed_html, fixed_css=fixed_css, fixed_js=fixed_js, stats=stats)
