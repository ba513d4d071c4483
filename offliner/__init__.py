"""
Offliner - Offline reconstruction engine for cloned websites.

Rewrites every resource reference in fetched HTML, CSS and JavaScript so
a cloned site works from the local filesystem, decides where each
resource lands on disk, and generates the runtime interceptor that
catches URLs built by page scripts after load.
"""

__version__ = "1.0.0"

# Main exports for API usage
from .paths import RewriteContext, RewriteOutcome, classify_and_rewrite, relative_path
from .options import FixOptions, FixStats
from .fixer import FixResult, fix_all_links
from .html import fix_document, fix_srcset
from .css import fix_css
from .javascript import fix_js
from .interceptor import generate_interceptor, inject_interceptor
from .layout import (
    AssetDirectoryPolicy,
    SiteLayout,
    asset_directory_for,
    clean_filename,
    path_structure_for,
)

__all__ = [
    "RewriteContext",
    "RewriteOutcome",
    "classify_and_rewrite",
    "relative_path",
    "FixOptions",
    "FixStats",
    "FixResult",
    "fix_all_links",
    "fix_document",
    "fix_srcset",
    "fix_css",
    "fix_js",
    "generate_interceptor",
    "inject_interceptor",
    "AssetDirectoryPolicy",
    "SiteLayout",
    "asset_directory_for",
    "clean_filename",
    "path_structure_for",
    "__version__",
]
