"""
paths.py - URL classification and relative path computation

Pure functions that decide what a reference in a cloned document points
at (same-origin resource, external site, inline data, blob) and turn
same-origin references into paths relative to the document's location on
disk. Nothing here performs I/O or keeps state between calls, so the
functions are safe to call from any number of worker threads.

Key functions:
- classify_and_rewrite(): Classify one URL and rewrite it if same-origin
- relative_path(): Filesystem-relative path between two locations
- is_same_origin(): Scheme + host + port comparison
"""

import posixpath
import re
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, List, Optional, Tuple
from urllib.parse import urlsplit

from .debug import debug_print, debug_print_error

# ─── Constants ───────────────────────────────────────────────
# References that name no resource at all
NOOP_LINKS = frozenset({"", "#", "javascript:void(0)", "javascript:void(0);", "javascript:;"})

# Schemes that are actions, not files; left alone and never external
PSEUDO_SCHEMES = ("javascript:", "mailto:", "tel:", "sms:")

DEFAULT_PORTS = {"http": 80, "https": 443}

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")
MAX_URL_LOG_LENGTH = 80  # Truncate URLs in logs for readability

# ───────────────────────── data structures ──────────────────────────

@dataclass(frozen=True)
class RewriteContext:
    """Per-call configuration for rewriting references in one document.

    @param origin_url: Absolute URL of the document being processed.
    @param target_path: Where that document is written, relative to the output root.
    @param preserve_query: Re-append query strings to rewritten paths.
    @param preserve_fragment: Re-append fragments to rewritten paths.
    @param handle_data_uris: Flag data: URIs for extraction instead of passing through.
    @param handle_blob_urls: Flag blob: URLs for extraction instead of passing through.
    @param locate: Maps a same-origin URL (no query/fragment) to its on-disk path.
        None, or a None result, means the URL pathname is the on-disk path.
    """
    origin_url: str
    target_path: str
    preserve_query: bool = False
    preserve_fragment: bool = True
    handle_data_uris: bool = False
    handle_blob_urls: bool = False
    locate: Optional[Callable[[str], Optional[str]]] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class RewriteOutcome:
    """Result of classifying one reference.

    External, data and blob outcomes always carry the input unchanged.
    ``needs_extraction`` marks data/blob references an extraction step
    should pick up because the matching handle_* flag was set.
    """
    rewritten: str
    original: str
    is_external: bool = False
    is_data_uri: bool = False
    is_blob_url: bool = False
    needs_extraction: bool = False

    @property
    def changed(self) -> bool:
        return self.rewritten != self.original


# ───────────────────────── helpers ──────────────────────────

def is_inert(url: str) -> bool:
    """True for references that never name another resource.

    Covers empty values, bare or fragment-only anchors, query-only links
    and javascript:/mailto:/tel:/sms: pseudo-links.
    """
    ref = url.strip()
    if ref.lower() in NOOP_LINKS:
        return True
    if ref.startswith(("#", "?")):
        return True
    return ref.lower().startswith(PSEUDO_SCHEMES)


def _origin(url: str) -> Optional[Tuple[str, str, int]]:
    """Return (scheme, host, port) for an http(s) URL, or None if it has none."""
    try:
        parts = urlsplit(url)
        host = parts.hostname
        port = parts.port
    except ValueError:
        return None
    scheme = parts.scheme.lower()
    if scheme not in DEFAULT_PORTS or not host:
        return None
    return scheme, host, port or DEFAULT_PORTS[scheme]


def is_same_origin(url: str, other: str) -> bool:
    """Scheme, host and effective port match. Unparsable URLs never match."""
    mine = _origin(url)
    return mine is not None and mine == _origin(other)


def _origin_prefix(origin_url: str) -> str:
    try:
        parts = urlsplit(origin_url)
    except ValueError:
        return ""
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}"


def _origin_scheme(origin_url: str) -> str:
    try:
        scheme = urlsplit(origin_url).scheme
    except ValueError:
        scheme = ""
    return scheme or "https"


def _split_reference(ref: str) -> Tuple[str, str, str]:
    """Split a path reference into (path, query, fragment) without URL parsing."""
    rest, _, fragment = ref.partition("#")
    path, _, query = rest.partition("?")
    return path, query, fragment


def _segments(path: str) -> List[str]:
    return [seg for seg in path.replace("\\", "/").split("/") if seg and seg != "."]


def document_dir(target_path: str) -> str:
    """Directory a document at *target_path* resolves its references from."""
    normalized = target_path.replace("\\", "/")
    if normalized.endswith("/"):
        return normalized
    return posixpath.dirname(normalized)


def relative_path(from_dir: str, to_path: str) -> str:
    """Relative path that leads from directory *from_dir* to *to_path*.

    Both arguments are slash-separated paths from a common root; leading
    slashes, empty and '.' segments are ignored.

    >>> relative_path("/a/b/c", "/a/x")
    '../../x'
    >>> relative_path("/a/b", "/a/b")
    './'
    """
    from_parts = _segments(from_dir)
    to_parts = _segments(to_path)

    common = 0
    while (
        common < len(from_parts)
        and common < len(to_parts)
        and from_parts[common] == to_parts[common]
    ):
        common += 1

    parts = [".."] * (len(from_parts) - common) + to_parts[common:]
    if not parts:
        return "./"
    # "a:b.html" would otherwise read as a URL scheme
    if ":" in parts[0]:
        parts.insert(0, ".")
    return "/".join(parts)


# ───────────────────────── classification ──────────────────────────

def _rewrite_same_origin(
    path: str,
    query: str,
    fragment: str,
    ctx: RewriteContext,
    original: str,
) -> RewriteOutcome:
    pathname = path or "/"
    target = None
    if ctx.locate is not None:
        target = ctx.locate(_origin_prefix(ctx.origin_url) + pathname)

    keep_slash = False
    if target is None:
        target = pathname
        keep_slash = pathname.endswith("/")

    rewritten = relative_path(document_dir(ctx.target_path), target)
    if keep_slash and rewritten != "./":
        rewritten += "/"
    if ctx.preserve_query and query:
        rewritten += f"?{query}"
    if ctx.preserve_fragment and fragment:
        rewritten += f"#{fragment}"

    debug_print(f"[DEBUG] rewrite {original[:MAX_URL_LOG_LENGTH]} -> {rewritten}")
    return RewriteOutcome(rewritten=rewritten, original=original)


def _external(original: str) -> RewriteOutcome:
    debug_print(f"[DEBUG] external, kept: {original[:MAX_URL_LOG_LENGTH]}")
    return RewriteOutcome(rewritten=original, original=original, is_external=True)


def classify_and_rewrite(url: str, ctx: RewriteContext) -> RewriteOutcome:
    """Classify *url* relative to ``ctx.origin_url`` and rewrite it if same-origin.

    Never raises: anything that cannot be parsed is reported as external
    and returned unchanged, so one bad reference cannot stop the rest of
    a document from being rewritten.

    @param url: Reference exactly as it appears in the document.
    @param ctx: Rewrite configuration for the referencing document.
    @return: RewriteOutcome with the rewritten text and classification flags.
    """
    original = url
    ref = url.strip()
    lowered = ref.lower()

    if is_inert(ref):
        return RewriteOutcome(rewritten=original, original=original)

    if lowered.startswith("data:"):
        debug_print(f"[DEBUG] data URI, kept: {original[:MAX_URL_LOG_LENGTH]}")
        return RewriteOutcome(
            rewritten=original,
            original=original,
            is_data_uri=True,
            needs_extraction=ctx.handle_data_uris,
        )

    if lowered.startswith("blob:"):
        debug_print(f"[DEBUG] blob URL, kept: {original[:MAX_URL_LOG_LENGTH]}")
        return RewriteOutcome(
            rewritten=original,
            original=original,
            is_blob_url=True,
            needs_extraction=ctx.handle_blob_urls,
        )

    if ref.startswith("//"):
        outcome = classify_and_rewrite(f"{_origin_scheme(ctx.origin_url)}:{ref}", ctx)
        if outcome.is_external:
            return _external(original)
        return replace(outcome, original=original)

    if ref.startswith("/"):
        path, query, fragment = _split_reference(ref)
        return _rewrite_same_origin(path, query, fragment, ctx, original)

    if not _SCHEME_RE.match(ref):
        # already relative
        return RewriteOutcome(rewritten=original, original=original)

    if not lowered.startswith(("http://", "https://")):
        return _external(original)

    try:
        parts = urlsplit(ref)
    except ValueError as e:
        debug_print_error(f"[DEBUG] unparsable URL {original[:MAX_URL_LOG_LENGTH]}: {e}")
        return _external(original)

    if not is_same_origin(ref, ctx.origin_url):
        return _external(original)

    return _rewrite_same_origin(parts.path, parts.query, parts.fragment, ctx, original)


def rewrite_urls(urls: Iterable[str], ctx: RewriteContext) -> List[RewriteOutcome]:
    """Batch form of classify_and_rewrite()."""
    return [classify_and_rewrite(url, ctx) for url in urls]
