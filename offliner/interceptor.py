"""
interceptor.py - Runtime link interceptor generation

Static rewriting cannot see URLs that single-page applications build
after load. The interceptor is a small script, rendered here from
js/link_interceptor.js and embedded in every cloned page, that patches
document.createElement and the innerHTML/outerHTML setters in the
browser so those late URLs are made relative too.

The script is text only: nothing in this package executes it.

Key functions:
- generate_interceptor(): Render the script for one document
- inject_interceptor(): Insert a rendered script as the first <head> child
"""

import json
from typing import Optional

from bs4 import BeautifulSoup

from .paths import RewriteContext, document_dir
from .utils import TemplateLoader

# ─── Constants ───────────────────────────────────────────────
INTERCEPTOR_TEMPLATE = "link_interceptor.js"
INTERCEPTOR_VERSION = "1.0"
INTERCEPTOR_MARKER = "data-offliner-interceptor"

_LOADER = TemplateLoader()


def _js_value(value) -> str:
    """JSON-encode a value so it is safe inside an inline <script>."""
    return json.dumps(value).replace("</", "<\\/")


def generate_interceptor(ctx: RewriteContext, loader: Optional[TemplateLoader] = None) -> str:
    """Render the interceptor script for the document described by *ctx*.

    @param ctx: Context of the document the script will be embedded in
    @param loader: Template loader to use; defaults to the package templates
    @return: JavaScript source, ready to be placed in a <script> element
    """
    loader = loader or _LOADER
    return loader.load_and_render_template(INTERCEPTOR_TEMPLATE, {
        "__INTERCEPTOR_VERSION__": INTERCEPTOR_VERSION,
        "__VERSION_JSON__": _js_value(INTERCEPTOR_VERSION),
        "__PAGE_URL__": _js_value(ctx.origin_url),
        "__DOCUMENT_DIR__": _js_value(document_dir(ctx.target_path)),
        "__PRESERVE_QUERY__": _js_value(ctx.preserve_query),
        "__PRESERVE_FRAGMENT__": _js_value(ctx.preserve_fragment),
    })


def insert_interceptor_tag(soup: BeautifulSoup, script: str) -> None:
    """Insert *script* as an inline <script> before anything else can run."""
    if soup.find("script", attrs={INTERCEPTOR_MARKER: True}):
        return

    tag = soup.new_tag("script")
    tag[INTERCEPTOR_MARKER] = INTERCEPTOR_VERSION
    tag.string = script

    parent = soup.head or soup.body
    if parent is not None:
        parent.insert(0, tag)
    elif soup.html is not None:
        soup.html.insert(0, tag)
    else:
        soup.insert(0, tag)


def inject_interceptor(html_content: str, script: str) -> str:
    """
    Return *html_content* with *script* embedded as the first <head> child.

    A document that already carries an interceptor is returned unchanged
    apart from re-serialisation.

    @param html_content: HTML document text
    @param script: Rendered interceptor (see generate_interceptor())
    @return: HTML text with the interceptor embedded
    @raises ValueError: If inputs are invalid
    """
    if not isinstance(html_content, str):
        raise ValueError("html_content must be a string")
    if not isinstance(script, str):
        raise ValueError("script must be a string")

    soup = BeautifulSoup(html_content, "html.parser")
    insert_interceptor_tag(soup, script)
    return str(soup)
