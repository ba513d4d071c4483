import pytest
import tempfile
from pathlib import Path

from offliner.layout import AssetDirectoryPolicy, SiteLayout
from offliner.options import FixOptions
from offliner.paths import RewriteContext

ORIGIN = "https://site.example/"


@pytest.fixture
def origin_url():
    """Origin shared by the clone-job fixtures."""
    return ORIGIN


@pytest.fixture
def root_ctx():
    """Context for the site's home page written at index.html."""
    return RewriteContext(origin_url=ORIGIN, target_path="index.html")


@pytest.fixture
def blog_ctx():
    """Context for a nested page written at blog/post/index.html."""
    return RewriteContext(
        origin_url="https://site.example/blog/post/",
        target_path="blog/post/index.html",
    )


@pytest.fixture
def blog_options():
    """FixOptions for the nested blog page with default toggles."""
    return FixOptions(
        origin_url="https://site.example/blog/post/",
        target_path="blog/post/index.html",
        replace_external_links=False,
        external_link_replacement="#offline",
    )


@pytest.fixture
def site_layout():
    """SiteLayout with the default by-type policy and no output root."""
    return SiteLayout(ORIGIN, AssetDirectoryPolicy())


@pytest.fixture
def sample_html():
    """A small page touching most rewritten locations."""
    return """<!DOCTYPE html>
<html>
<head>
<title>Post</title>
<link rel="canonical" href="/blog/post/">
<link rel="stylesheet" href="/assets/app.css">
<link rel="icon" href="https://site.example/favicon.ico">
<script src="/static/app.js"></script>
<script src="https://cdn.other.example/lib.js"></script>
<style>body { background: url('/img/bg.png'); }</style>
</head>
<body>
<a href="/about">About</a>
<a href="#top">Top</a>
<a href="https://other.example/page">Elsewhere</a>
<img src="/img/logo.png" srcset="/img/logo.png 1x, /img/logo@2x.png 2x">
<div style="background-image: url(/img/hero.jpg)">hero</div>
</body>
</html>"""


@pytest.fixture
def sample_js_templates_dir():
    """Create temporary directory with JS template files that tests expect."""
    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir)

        js_files = {
            "link_interceptor.js": """
            // Interceptor template __INTERCEPTOR_VERSION__
            const PAGE_URL = __PAGE_URL__;
            const DOCUMENT_DIR = __DOCUMENT_DIR__;
            """,

            "test_template.js": """
            // Test template
            console.log('Test: __TEST_VAR__');
            """,

            "complex_template.js": """
            // Complex template
            const config = {
                value: __NUMERIC_VAR__,
                text: '__TEXT_VAR__',
                flag: __BOOLEAN_VAR__
            };
            """,
        }

        for filename, content in js_files.items():
            (temp_path / filename).write_text(content)

        yield temp_path
