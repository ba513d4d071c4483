"""
options.py - Document-level fixing configuration and statistics

FixOptions extends the per-call RewriteContext with the output directory,
the external-link replacement policy and per-feature toggles. FixStats is
the counter record one document's rewrite produces.

Example usage:
    # Programmatic usage
    options = FixOptions(
        origin_url="https://site.example/blog/",
        target_path="blog/index.html",
        replace_external_links=True,
    )

    # From loaded user configuration (camelCase keys accepted)
    options = FixOptions.from_dict({"originURL": "https://site.example/", "targetPath": "index.html"})

Environment variables:
    OFFLINER_REPLACE_EXTERNAL: Default for replace_external_links (1/true/yes)
    OFFLINER_EXTERNAL_PLACEHOLDER: Default replacement for external links
"""

import os
import re
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping

from .paths import RewriteContext
from .utils import is_valid_url

# ─── Constants ───────────────────────────────────────────────
DEFAULT_EXTERNAL_PLACEHOLDER = "#offline"
_TRUTHY = ("1", "true", "yes")

# camelCase names used by stored job configuration
_KEY_ALIASES = {
    "originURL": "origin_url",
    "originUrl": "origin_url",
    "baseUrl": "origin_url",
    "targetPath": "target_path",
    "preserveQuery": "preserve_query",
    "preserveQueryStrings": "preserve_query",
    "preserveFragment": "preserve_fragment",
    "preserveFragments": "preserve_fragment",
    "handleDataURIs": "handle_data_uris",
    "handleDataUris": "handle_data_uris",
    "handleBlobURLs": "handle_blob_urls",
    "handleBlobUrls": "handle_blob_urls",
    "outputDir": "output_dir",
    "replaceExternalLinks": "replace_external_links",
    "externalLinkReplacement": "external_link_replacement",
    "fixForms": "fix_forms",
    "fixIframes": "fix_iframes",
    "fixMetaTags": "fix_meta_tags",
    "fixInlineStyles": "fix_inline_styles",
    "fixCssUrls": "fix_css_urls",
    "fixMedia": "fix_media",
    "injectInterceptor": "inject_interceptor",
}

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def normalize_keys(data: Mapping[str, Any], aliases: Mapping[str, str]) -> Dict[str, Any]:
    """Map camelCase configuration keys onto dataclass field names."""
    normalized = {}
    for key, value in data.items():
        name = aliases.get(key) or _CAMEL_RE.sub("_", key).lower()
        normalized[name] = value
    return normalized


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in _TRUTHY


# ───────────────────────── data structures ──────────────────────────

@dataclass(frozen=True)
class FixOptions(RewriteContext):
    """Configuration for fixing every reference in one document."""

    # ─── Output ───
    output_dir: str = ""

    # ─── External link policy ───
    replace_external_links: bool = field(default_factory=lambda: _env_flag("OFFLINER_REPLACE_EXTERNAL"))
    external_link_replacement: str = field(
        default_factory=lambda: os.getenv("OFFLINER_EXTERNAL_PLACEHOLDER") or DEFAULT_EXTERNAL_PLACEHOLDER
    )

    # ─── Feature toggles ───
    fix_forms: bool = True
    fix_iframes: bool = True
    fix_meta_tags: bool = True
    fix_inline_styles: bool = True
    fix_css_urls: bool = True
    fix_media: bool = True
    inject_interceptor: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'FixOptions':
        """Create FixOptions from loaded user configuration.

        @param data: Mapping with snake_case or camelCase keys
        @return: Validated FixOptions instance
        @raises ValueError: If keys are unknown or values are invalid
        """
        values = normalize_keys(data, _KEY_ALIASES)
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown option(s): {', '.join(unknown)}")

        if "origin_url" not in values or "target_path" not in values:
            raise ValueError("origin_url and target_path are required")

        options = cls(**values)
        options.validate()
        return options

    def validate(self) -> None:
        """Check option values.

        @raises ValueError: If any value is invalid
        """
        if not is_valid_url(self.origin_url):
            raise ValueError(f"Invalid origin URL: {self.origin_url}")
        if not isinstance(self.target_path, str) or not self.target_path:
            raise ValueError("target_path must be a non-empty string")
        if self.replace_external_links and not self.external_link_replacement:
            raise ValueError("external_link_replacement must not be empty")


@dataclass
class FixStats:
    """Counters for one document. Never shared between documents."""
    links_fixed: int = 0
    images_fixed: int = 0
    scripts_fixed: int = 0
    stylesheets_fixed: int = 0
    forms_fixed: int = 0
    iframes_fixed: int = 0
    media_fixed: int = 0
    inline_styles_fixed: int = 0
    css_urls_fixed: int = 0
    js_urls_fixed: int = 0
    external_links_replaced: int = 0

    def increment(self, counter: str, amount: int = 1) -> None:
        setattr(self, counter, getattr(self, counter) + amount)

    def merge(self, other: 'FixStats') -> 'FixStats':
        """Return a new FixStats holding the sum of both records."""
        return FixStats(**{
            f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)
        })

    @property
    def total(self) -> int:
        return sum(getattr(self, f.name) for f in fields(self))

    def as_dict(self) -> Dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
