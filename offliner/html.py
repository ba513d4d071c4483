"""
html.py - HTML reference rewriting for offline viewing

This module rewrites every resource reference in an HTML document so the
document works from its on-disk location instead of the original origin.
References are found through BeautifulSoup selector queries over a fixed
table of tag/attribute locations; each one goes through the path resolver.

Key functions:
- fix_document(): Rewrite a whole document, return HTML and FixStats
- fix_srcset(): Rewrite the URL parts of a srcset value
- fix_markup_text(): Tree-free fallback for markup that fails to parse
"""

import re
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup

from .css import CSS_URL_RE, fix_css, fix_inline_style
from .debug import debug_print
from .interceptor import generate_interceptor, insert_interceptor_tag
from .options import FixOptions, FixStats
from .paths import RewriteContext, classify_and_rewrite, is_inert

# ─── Constants ───────────────────────────────────────────────
# (css selector, attribute, FixStats counter, FixOptions toggle)
URL_LOCATIONS: List[Tuple[str, str, Optional[str], Optional[str]]] = [
    ("a[href]", "href", "links_fixed", None),
    ("img[src]", "src", "images_fixed", None),
    ("img[data-src]", "data-src", "images_fixed", None),
    ("script[src]", "src", "scripts_fixed", None),
    # rel=stylesheet only; other <link> references count as links
    ("link[href]", "href", "stylesheets_fixed", None),
    ("form[action]", "action", "forms_fixed", "fix_forms"),
    ("iframe[src]", "src", "iframes_fixed", "fix_iframes"),
    ("video[src]", "src", "media_fixed", "fix_media"),
    ("video[poster]", "poster", "media_fixed", "fix_media"),
    ("audio[src]", "src", "media_fixed", "fix_media"),
    ("video source[src]", "src", "media_fixed", "fix_media"),
    ("audio source[src]", "src", "media_fixed", "fix_media"),
    ("track[src]", "src", "media_fixed", "fix_media"),
    ("embed[src]", "src", "media_fixed", "fix_media"),
    ("object[data]", "data", "media_fixed", "fix_media"),
]

SRCSET_LOCATIONS: List[Tuple[str, str]] = [
    ("img[srcset]", "srcset"),
    ("img[data-srcset]", "data-srcset"),
    ("picture > source[srcset]", "srcset"),
]

# Only navigational references are swapped for the external placeholder
REPLACEABLE_TAGS = frozenset({"a", "form", "iframe"})

_META_REFRESH_URL_RE = re.compile(r"""(url\s*=\s*)(['"]?)([^'"\s;]+)""", re.IGNORECASE)

# Raw-text fallback: attribute="value" pairs that carry URLs
_ATTR_URL_RE = re.compile(
    r"""\b(?P<attr>src|href|action|poster|data-src|data-href)\s*=\s*(?P<q>["'])(?P<u>[^"']*)(?P=q)""",
    re.IGNORECASE,
)


# ───────────────────────── helpers ──────────────────────────

def _has_rel(element, value: str) -> bool:
    rel = element.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return any(item.lower() == value for item in rel)


def _fix_url_attribute(element, attr: str, options: FixOptions, stats: FixStats, counter: Optional[str]) -> None:
    value = element.get(attr)
    if not isinstance(value, str) or is_inert(value):
        return

    outcome = classify_and_rewrite(value, options)
    if outcome.is_external:
        if options.replace_external_links and element.name in REPLACEABLE_TAGS:
            element[attr] = options.external_link_replacement
            stats.external_links_replaced += 1
        return
    if outcome.is_data_uri or outcome.is_blob_url:
        return

    element[attr] = outcome.rewritten
    if counter:
        stats.increment(counter)


def parse_srcset(srcset: str) -> List[Tuple[str, str]]:
    """Split a srcset value into (url, descriptor) candidates.

    A URL runs to the next whitespace; commas inside it (data: URIs,
    CDN transforms) are kept, trailing commas end the candidate.
    """
    candidates = []
    pos, length = 0, len(srcset)
    while pos < length:
        while pos < length and (srcset[pos].isspace() or srcset[pos] == ","):
            pos += 1
        if pos >= length:
            break

        start = pos
        while pos < length and not srcset[pos].isspace():
            pos += 1
        url = srcset[start:pos]

        descriptor = ""
        if url.endswith(","):
            url = url.rstrip(",")
        else:
            end = srcset.find(",", pos)
            if end == -1:
                end = length
            descriptor = srcset[pos:end].strip()
            pos = end + 1
        candidates.append((url, descriptor))
    return candidates


def fix_srcset(srcset: str, ctx: RewriteContext) -> str:
    """Rewrite the URL portion of each srcset candidate, keeping descriptors.

    Returns *srcset* untouched when no candidate changes.
    """
    changed = False
    parts = []
    for url, descriptor in parse_srcset(srcset):
        outcome = classify_and_rewrite(url, ctx)
        if not outcome.is_external and outcome.changed:
            url = outcome.rewritten
            changed = True
        parts.append(f"{url} {descriptor}".strip())
    return ", ".join(parts) if changed else srcset


def fix_meta_refresh(content: str, ctx: RewriteContext) -> str:
    """Rewrite the url= part of a meta refresh value ("5;url=/next")."""
    m = _META_REFRESH_URL_RE.search(content)
    if not m:
        return content
    outcome = classify_and_rewrite(m.group(3), ctx)
    if outcome.is_external or not outcome.changed:
        return content
    return content[:m.start(3)] + outcome.rewritten + content[m.end(3):]


def fix_base_href(href: str, ctx: RewriteContext) -> str:
    """Point a same-origin <base href> at the document's own directory.

    Every other reference is rewritten relative to the document's
    location, so the base must resolve there too. External bases are
    kept as-is.
    """
    if is_inert(href):
        return href
    outcome = classify_and_rewrite(href, ctx)
    if outcome.is_external or outcome.is_data_uri or outcome.is_blob_url:
        return href
    return "./"


# ───────────────────────── document rewriting ──────────────────────────

def fix_document(html_content: str, options: FixOptions) -> Tuple[str, FixStats]:
    """
    Rewrite every resource reference in an HTML document for offline use.

    Canonical links are metadata and are never touched. Parse errors from
    the markup parser propagate; see fix_markup_text() for a fallback.

    @param html_content: Raw HTML content as a string
    @param options: FixOptions for this document
    @return: (rewritten HTML, FixStats for this document)
    @raises ValueError: If html_content is not a string
    """
    if not isinstance(html_content, str):
        raise ValueError("html_content must be a string")

    soup = BeautifulSoup(html_content, "html.parser")
    stats = FixStats()

    for selector, attr, counter, toggle in URL_LOCATIONS:
        if toggle and not getattr(options, toggle):
            continue
        for element in soup.select(selector):
            element_counter = counter
            if element.name == "link":
                if _has_rel(element, "canonical"):
                    continue
                if not _has_rel(element, "stylesheet"):
                    element_counter = "links_fixed"
            _fix_url_attribute(element, attr, options, stats, element_counter)

    for base in soup.select("base[href]"):
        base["href"] = fix_base_href(base["href"], options)

    for selector, attr in SRCSET_LOCATIONS:
        for element in soup.select(selector):
            srcset = element.get(attr)
            if not srcset:
                continue
            fixed = fix_srcset(srcset, options)
            if fixed != srcset:
                element[attr] = fixed
                stats.images_fixed += 1

    if options.fix_meta_tags:
        for meta in soup.find_all("meta", attrs={"http-equiv": re.compile(r"^\s*refresh\s*$", re.I)}):
            content = meta.get("content")
            if content:
                meta["content"] = fix_meta_refresh(content, options)

    if options.fix_inline_styles:
        for element in soup.select("[style]"):
            style = element["style"]
            fixed = fix_inline_style(style, options)
            if fixed != style:
                element["style"] = fixed
                stats.inline_styles_fixed += 1

    if options.fix_css_urls:
        for style in soup.find_all("style"):
            if style.string is None:
                continue
            fixed, count = fix_css(str(style.string), options)
            if count:
                style.string = fixed
                stats.css_urls_fixed += count

    if options.inject_interceptor:
        insert_interceptor_tag(soup, generate_interceptor(options))

    debug_print(f"[DEBUG] {options.target_path}: {stats.as_dict()}")
    return str(soup), stats


def fix_markup_text(html_content: str, options: FixOptions) -> Tuple[str, int]:
    """
    Rewrite URL attributes and url() references in markup without a tree.

    Degraded path for documents the markup parser rejects: it cannot see
    element context, so canonical links and feature toggles are not
    honoured.

    @param html_content: Markup text
    @param options: FixOptions for this document
    @return: (rewritten text, number of references changed)
    @raises ValueError: If html_content is not a string
    """
    if not isinstance(html_content, str):
        raise ValueError("html_content must be a string")

    count = 0

    def repl(m: re.Match) -> str:
        nonlocal count
        outcome = classify_and_rewrite(m.group("u"), options)
        if outcome.is_external or not outcome.changed:
            return m.group(0)
        count += 1
        whole = m.group(0)
        start = m.start("u") - m.start(0)
        end = m.end("u") - m.start(0)
        return whole[:start] + outcome.rewritten + whole[end:]

    fixed = _ATTR_URL_RE.sub(repl, html_content)
    if CSS_URL_RE.search(fixed):
        fixed, css_count = fix_css(fixed, options)
        count += css_count
    print(f"[WARN] {options.target_path}: rewritten without a markup tree ({count} reference(s))")
    return fixed, count
