"""
layout.py - On-disk placement of cloned resources

Decides where every page and asset of a clone lands, relative to the
output root. Placement is computed from the URL alone (never from crawl
order), so a document can be rewritten before the resources it points at
have been fetched. The path chosen here must be the one the path resolver
is told about, which is why SiteLayout.locate is the intended value for
RewriteContext.locate.

Only directory creation touches the filesystem; it is idempotent and
errors propagate to the caller.

Key functions:
- clean_filename(): Filesystem-safe filename for a URL
- asset_directory_for(): Subdirectory for an asset by extension
- path_structure_for(): Mirror a URL's directories under a base directory
- SiteLayout: URL -> target path assignment for one clone job
"""

import os
import posixpath
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import unquote, urlsplit

from .debug import debug_print
from .options import FixOptions, normalize_keys
from .paths import is_same_origin
from .utils import MAX_FILENAME_LEN, is_valid_url, safe_filename

# ─── Constants ───────────────────────────────────────────────
ASSET_CATEGORIES = ("image", "css", "js", "font", "video", "audio", "document", "icon")

DEFAULT_ASSET_DIRS: Dict[str, str] = {
    "image": "assets/images",
    "css": "assets/css",
    "js": "assets/js",
    "font": "assets/fonts",
    "video": "assets/videos",
    "audio": "assets/audio",
    "document": "assets/documents",
    "icon": "assets/icons",
}
CATCH_ALL_DIR = "assets"

_CATEGORY_EXTENSIONS = {
    "image": ("jpg", "jpeg", "png", "gif", "webp", "svg", "bmp", "avif", "tif", "tiff"),
    "css": ("css",),
    "js": ("js", "mjs", "cjs"),
    "font": ("woff", "woff2", "ttf", "otf", "eot"),
    "video": ("mp4", "webm", "ogv", "mov", "avi", "m4v"),
    "audio": ("mp3", "wav", "ogg", "oga", "aac", "m4a", "flac"),
    "document": ("pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "txt", "csv"),
    "icon": ("ico",),
}
EXTENSION_CATEGORIES: Dict[str, str] = {
    ext: category for category, exts in _CATEGORY_EXTENSIONS.items() for ext in exts
}
# Image files whose name mentions "icon" go to the icons directory
_ICON_HINT_EXTS = frozenset({"png", "svg", "ico", "gif", "webp"})

HTML_LIKE_EXTS = frozenset({
    ".html", ".htm", ".xhtml", ".shtml", ".php", ".asp", ".aspx", ".jsp", ".jspx", ".cfm",
})

# Keys accepted for per-category overrides ("images" as well as "image")
_PLURAL_CATEGORIES = {
    "images": "image", "fonts": "font", "videos": "video",
    "documents": "document", "icons": "icon",
}

_POLICY_ALIASES = {
    "organizeByType": "organize_by_type",
    "flatStructure": "flat_structure",
    "preserveOriginal": "preserve_original",
    "assetSubdirectories": "subdirectories",
    "asset_subdirectories": "subdirectories",
}

_EXT_RE = re.compile(r"^\.[A-Za-z0-9]{1,10}$")
_ILLEGAL_CHARS_RE = re.compile(r'[<>:"/\\|?*%#\x00-\x1f\x7f\s]')
_REPEATED_SEP_RE = re.compile(r"_{2,}")


# ───────────────────────── data structures ──────────────────────────

@dataclass(frozen=True)
class AssetDirectoryPolicy:
    """Where assets go, per category. Built once per clone job.

    @param subdirectories: Category -> subdirectory overrides, merged over the defaults
    @param organize_by_type: Split assets into per-category subdirectories
    @param flat_structure: Put every file in the output root
    @param preserve_original: Mirror the original URL hierarchy for assets
    """
    subdirectories: Mapping[str, str] = field(default_factory=dict)
    organize_by_type: bool = True
    flat_structure: bool = False
    preserve_original: bool = False

    def __post_init__(self):
        merged = dict(DEFAULT_ASSET_DIRS)
        for key, value in self.subdirectories.items():
            category = _PLURAL_CATEGORIES.get(key, key)
            if category not in DEFAULT_ASSET_DIRS:
                raise ValueError(f"Unknown asset category: {key}")
            if not isinstance(value, str) or not value.strip("/"):
                raise ValueError(f"Invalid directory for {key}: {value!r}")
            merged[category] = value.strip("/")
        object.__setattr__(self, "subdirectories", merged)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'AssetDirectoryPolicy':
        """Create a policy from loaded user configuration.

        @param data: Mapping with snake_case or camelCase keys
        @return: Validated AssetDirectoryPolicy
        @raises ValueError: If keys are unknown or values are invalid
        """
        values = normalize_keys(data, _POLICY_ALIASES)
        known = {"subdirectories", "organize_by_type", "flat_structure", "preserve_original"}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown layout option(s): {', '.join(unknown)}")
        return cls(**values)


DEFAULT_POLICY = AssetDirectoryPolicy()


# ───────────────────────── helpers ──────────────────────────

def _url_path(url: str) -> str:
    """Path component of *url* without origin, query or fragment."""
    if "://" in url or url.startswith("//"):
        try:
            return urlsplit(url).path
        except ValueError:
            pass
    path, _, _ = url.partition("#")
    path, _, _ = path.partition("?")
    return path


def _has_extension(name: str) -> bool:
    return bool(_EXT_RE.match(posixpath.splitext(name)[1]))


def _sanitize(text: str) -> str:
    text = _ILLEGAL_CHARS_RE.sub("_", text)
    return _REPEATED_SEP_RE.sub("_", text)


def _mirror_segments(path: str) -> List[str]:
    """Directory segments of *path*, minus a trailing filename-like segment."""
    segments = [_sanitize(unquote(seg)).strip("_") for seg in path.split("/")]
    segments = [seg for seg in segments if seg and seg not in (".", "..")]
    if segments and not path.endswith("/") and _has_extension(segments[-1]):
        segments.pop()
    return segments


def _page_filename(filename: str) -> str:
    """Pages are always written as .html/.htm so browsers render them."""
    stem, ext = posixpath.splitext(filename)
    if ext.lower() in (".html", ".htm"):
        return filename
    return f"{stem}.html"


# ───────────────────────── public API ──────────────────────────

def clean_filename(url: str, fallback: str = "index") -> str:
    """Return a filesystem-safe filename for the resource at *url*.

    Query and fragment are dropped. A path without a filename uses
    *fallback* as the stem; a name without an extension gets ".html".
    Over-long names keep their extension and gain a short hash of *url*.

    @param url: Absolute URL or URL path
    @param fallback: Stem used when the path names no file
    @return: Sanitized filename
    """
    path = _url_path(url)
    name = "" if path.endswith("/") else unquote(path.rsplit("/", 1)[-1])

    stem, ext = posixpath.splitext(name)
    if not _EXT_RE.match(ext):
        stem, ext = name, ""
    stem = _sanitize(stem).strip("_.")
    if not stem:
        stem = _sanitize(fallback).strip("_.") or "index"
    if not ext:
        ext = ".html"

    if len(stem) + len(ext) > MAX_FILENAME_LEN:
        return safe_filename(stem, ext, url)
    return f"{stem}{ext}"


def asset_category(name: str) -> Optional[str]:
    """Category for an extension ("png", ".png") or filename, None if unknown."""
    text = _url_path(name.strip()).lower()
    ext = text.rsplit(".", 1)[-1] if "." in text else text
    category = EXTENSION_CATEGORIES.get(ext)
    if category and ext in _ICON_HINT_EXTS and "icon" in text.rsplit("/", 1)[-1]:
        return "icon"
    return category


def asset_directory_for(extension: str, policy: Optional[AssetDirectoryPolicy] = None) -> str:
    """Subdirectory (relative to the output root) for an asset.

    @param extension: Extension with or without the dot, or a filename
    @param policy: Directory policy; defaults to DEFAULT_POLICY
    @return: The category directory, "assets" for unknown types,
        or "" under flat_structure
    """
    policy = policy or DEFAULT_POLICY
    if policy.flat_structure:
        return ""
    if not policy.organize_by_type:
        return CATCH_ALL_DIR
    category = asset_category(extension)
    if category is None:
        return CATCH_ALL_DIR
    return policy.subdirectories[category]


def ensure_directory(path: Union[str, Path]) -> str:
    """Create *path* and its parents if absent. Safe to call concurrently.

    @raises OSError: If the directory cannot be created
    """
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as e:
        print(f"[ERROR] Could not create directory {path}: {e}")
        raise
    return str(path)


def path_structure_for(
    base_dir: Union[str, Path],
    url_path: str,
    policy: Optional[AssetDirectoryPolicy] = None,
) -> str:
    """Mirror the directories of *url_path* under *base_dir* and create them.

    The final segment is dropped when it looks like a filename. Under
    flat_structure the base directory itself is returned.

    @param base_dir: Output root
    @param url_path: URL or URL path of the resource
    @param policy: Directory policy; defaults to DEFAULT_POLICY
    @return: The created directory
    @raises OSError: If the directory cannot be created
    """
    policy = policy or DEFAULT_POLICY
    if policy.flat_structure:
        return ensure_directory(base_dir)

    segments = _mirror_segments(_url_path(url_path))
    directory = os.path.join(str(base_dir), *segments)
    debug_print(f"[DEBUG] directory for {url_path}: {directory}")
    return ensure_directory(directory)


def create_directory_structure(
    base_dir: Union[str, Path],
    policy: Optional[AssetDirectoryPolicy] = None,
) -> Dict[str, str]:
    """Create the output root and the asset directories the policy uses.

    @return: Category -> created directory (empty under flat_structure)
    @raises OSError: If a directory cannot be created
    """
    policy = policy or DEFAULT_POLICY
    ensure_directory(base_dir)
    if policy.flat_structure:
        return {}
    if not policy.organize_by_type:
        path = ensure_directory(os.path.join(str(base_dir), CATCH_ALL_DIR))
        return {category: path for category in ASSET_CATEGORIES}
    return {
        category: ensure_directory(os.path.join(str(base_dir), policy.subdirectories[category]))
        for category in ASSET_CATEGORIES
    }


def _checked_target(output_root: Union[str, Path], target_path: str) -> Path:
    normalized = posixpath.normpath(target_path.replace("\\", "/"))
    if normalized.startswith(("/", "../")) or normalized in (".", ".."):
        raise ValueError(f"target_path escapes the output root: {target_path}")
    return Path(output_root) / normalized


def save_document(output_root: Union[str, Path], target_path: str, content: Union[str, bytes]) -> Path:
    """
    Write a rewritten document (or asset bytes) at its target path.

    @param output_root: Output root directory
    @param target_path: Path relative to the root, as assigned by SiteLayout
    @param content: Text (written as UTF-8) or bytes
    @return: Path of the written file
    @raises ValueError: If target_path points outside the output root
    @raises OSError: If the directory or file cannot be written
    """
    dest = _checked_target(output_root, target_path)
    ensure_directory(dest.parent)

    if isinstance(content, bytes):
        dest.write_bytes(content)
    else:
        with open(dest, "w", encoding="utf-8") as fh:
            fh.write(content)
    debug_print(f"[DEBUG] saved {dest}")
    return dest


class SiteLayout:
    """
    URL -> target path assignment for one clone job.

    Pages (extensionless or HTML-like paths) keep the site hierarchy:
    /blog/post/ -> blog/post/index.html, /about -> about/index.html.
    Assets go to their category directory as name_<md5 of path>.ext
    (/a/logo.png and /b/logo.png stay distinct), or mirror their
    original path under preserve_original. flat_structure puts everything
    in the root with the path flattened into the filename.
    """

    def __init__(
        self,
        origin_url: str,
        policy: Optional[AssetDirectoryPolicy] = None,
        output_root: Optional[Union[str, Path]] = None,
    ):
        if not is_valid_url(origin_url):
            raise ValueError(f"Invalid origin URL: {origin_url}")
        self.origin_url = origin_url
        self.policy = policy or DEFAULT_POLICY
        self.output_root = str(output_root) if output_root is not None else None

    def is_page(self, url: str) -> bool:
        path = _url_path(url)
        name = "" if path.endswith("/") else path.rsplit("/", 1)[-1]
        if not _has_extension(name):
            return True
        return posixpath.splitext(name)[1].lower() in HTML_LIKE_EXTS

    def _flat_path(self, path: str, is_page: bool) -> str:
        segments = [seg for seg in path.split("/") if seg]
        if not segments:
            return "index.html"
        joined = "_".join(segments)
        if path.endswith("/"):
            name = clean_filename("/", fallback=joined)
        else:
            name = clean_filename("/" + joined)
        return _page_filename(name) if is_page else name

    def target_path(self, url: str) -> str:
        """On-disk path of *url* relative to the output root."""
        path = _url_path(url) or "/"
        is_page = self.is_page(url)

        if self.policy.flat_structure:
            return self._flat_path(path, is_page)

        segments = _mirror_segments(path)
        if is_page:
            has_name = not path.endswith("/") and _has_extension(path.rsplit("/", 1)[-1])
            name = _page_filename(clean_filename(path)) if has_name else "index.html"
            return posixpath.join(*segments, name)

        name = clean_filename(path)
        if self.policy.preserve_original:
            return posixpath.join(*segments, name)
        directory = asset_directory_for(name, self.policy)
        # category directories are shared; the name carries an md5 of the URL path
        stem, ext = posixpath.splitext(name)
        name = safe_filename(stem, ext, path)
        return posixpath.join(directory, name)

    def locate(self, url: str) -> Optional[str]:
        """RewriteContext.locate hook: target path for same-origin URLs."""
        if not is_same_origin(url, self.origin_url):
            return None
        return self.target_path(url)

    def options_for(self, url: str, **overrides) -> FixOptions:
        """FixOptions for rewriting the resource at *url* in this layout."""
        values = {
            "origin_url": url,
            "target_path": self.target_path(url),
            "locate": self.locate,
            "output_dir": self.output_root or "",
        }
        values.update(overrides)
        return FixOptions(**values)

    def prepare_directory(self, url: str) -> str:
        """Create the directory that will hold *url*'s file.

        @raises ValueError: If the layout has no output_root
        @raises OSError: If the directory cannot be created
        """
        if self.output_root is None:
            raise ValueError("SiteLayout has no output_root")
        if self.policy.flat_structure or self.is_page(url) or self.policy.preserve_original:
            return path_structure_for(self.output_root, _url_path(url), self.policy)
        directory = posixpath.dirname(self.target_path(url))
        return ensure_directory(os.path.join(self.output_root, directory))
