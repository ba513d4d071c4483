"""
Test suite for HTML document rewriting.

Covers every rewritten location, the external-link placeholder policy,
feature toggles, per-document statistics and the round trip with paths
assigned by SiteLayout.
"""
from dataclasses import replace
from urllib.parse import urljoin

import pytest
from bs4 import BeautifulSoup

from offliner.html import fix_document, fix_markup_text, fix_meta_refresh, fix_srcset, parse_srcset
from offliner.interceptor import INTERCEPTOR_MARKER
from offliner.layout import SiteLayout


class TestFixDocument:
    """Test fix_document() over whole pages."""

    def test_sample_page_counts(self, sample_html, blog_options):
        """Test per-category counts on a page touching most locations."""
        fixed, stats = fix_document(sample_html, blog_options)

        assert stats.links_fixed == 2
        assert stats.images_fixed == 2
        assert stats.scripts_fixed == 1
        assert stats.stylesheets_fixed == 1
        assert stats.inline_styles_fixed == 1
        assert stats.css_urls_fixed == 1
        assert stats.external_links_replaced == 0

        assert 'href="../../assets/app.css"' in fixed
        assert 'href="../../favicon.ico"' in fixed
        assert 'src="../../static/app.js"' in fixed
        assert 'src="https://cdn.other.example/lib.js"' in fixed
        assert "url('../../img/bg.png')" in fixed
        assert "url(../../img/hero.jpg)" in fixed
        assert 'href="https://other.example/page"' in fixed

    def test_canonical_link_untouched(self, sample_html, blog_options):
        """Test that rel=canonical keeps its original href."""
        fixed, _ = fix_document(sample_html, blog_options)
        assert 'href="/blog/post/"' in fixed

    def test_external_links_replaced(self, blog_options):
        """Test three anchors, two images and one external link with replacement on."""
        html = (
            '<a href="/one">1</a><a href="/two">2</a>'
            '<a href="https://other.example/x">x</a>'
            '<img src="/a.png"><img src="/b.png">'
        )
        options = replace(blog_options, replace_external_links=True)
        fixed, stats = fix_document(html, options)

        assert stats.links_fixed == 2
        assert stats.external_links_replaced == 1
        assert stats.images_fixed == 2
        assert stats.total == 5
        assert 'href="#offline"' in fixed
        assert "other.example" not in fixed

    def test_replacement_limited_to_navigation(self, blog_options):
        """Test that only anchors, forms and iframes get the placeholder."""
        html = (
            '<iframe src="https://other.example/embed"></iframe>'
            '<form action="https://other.example/submit"></form>'
            '<script src="https://cdn.other.example/lib.js"></script>'
            '<img src="https://cdn.other.example/pic.png">'
        )
        options = replace(blog_options, replace_external_links=True, external_link_replacement="#gone")
        fixed, stats = fix_document(html, options)

        assert stats.external_links_replaced == 2
        assert 'src="#gone"' in fixed
        assert 'action="#gone"' in fixed
        assert 'src="https://cdn.other.example/lib.js"' in fixed
        assert 'src="https://cdn.other.example/pic.png"' in fixed

    def test_anchors_and_pseudo_links_not_counted(self, blog_options):
        """Test that #, javascript: and mailto: links are left alone and uncounted."""
        html = (
            '<a href="#top">t</a><a href="javascript:void(0)">j</a>'
            '<a href="mailto:me@site.example">m</a>'
        )
        fixed, stats = fix_document(html, blog_options)

        assert stats.links_fixed == 0
        assert 'href="#top"' in fixed
        assert 'href="mailto:me@site.example"' in fixed

    def test_relative_links_counted_but_unchanged(self, blog_options):
        """Test that already-relative references are counted and kept."""
        fixed, stats = fix_document('<a href="page.html">p</a>', blog_options)

        assert stats.links_fixed == 1
        assert 'href="page.html"' in fixed

    def test_data_image_not_counted(self, blog_options):
        """Test that data URIs pass through without counting."""
        html = '<img src="data:image/png;base64,AAAA">'
        fixed, stats = fix_document(html, blog_options)

        assert stats.images_fixed == 0
        assert 'src="data:image/png;base64,AAAA"' in fixed

    def test_lazy_load_attributes(self, blog_options):
        """Test data-src and data-srcset on images."""
        html = '<img data-src="/lazy.jpg" data-srcset="/lazy.jpg 1x, /lazy@2x.jpg 2x">'
        fixed, stats = fix_document(html, blog_options)

        assert 'data-src="../../lazy.jpg"' in fixed
        assert 'data-srcset="../../lazy.jpg 1x, ../../lazy@2x.jpg 2x"' in fixed
        assert stats.images_fixed == 2

    def test_picture_sources(self, blog_options):
        """Test <picture><source srcset> alongside the fallback image."""
        html = '<picture><source srcset="/p.webp" type="image/webp"><img src="/p.jpg"></picture>'
        fixed, stats = fix_document(html, blog_options)

        assert 'srcset="../../p.webp"' in fixed
        assert 'src="../../p.jpg"' in fixed
        assert stats.images_fixed == 2

    def test_media_elements(self, blog_options):
        """Test video, poster, source, track and audio references."""
        html = (
            '<video src="/v.mp4" poster="/p.jpg"><source src="/v.webm">'
            '<track src="/c.vtt"></video><audio src="/a.mp3"></audio>'
        )
        fixed, stats = fix_document(html, blog_options)

        assert stats.media_fixed == 5
        assert 'poster="../../p.jpg"' in fixed
        assert 'src="../../c.vtt"' in fixed

    def test_forms_and_iframes(self, blog_options):
        """Test same-origin form actions and iframe sources."""
        html = '<form action="/search"></form><iframe src="/widget/"></iframe>'
        fixed, stats = fix_document(html, blog_options)

        assert 'action="../../search"' in fixed
        assert 'src="../../widget/"' in fixed
        assert stats.forms_fixed == 1
        assert stats.iframes_fixed == 1

    @pytest.mark.parametrize("toggle, html, kept, counter", [
        ("fix_forms", '<form action="/search"></form>', 'action="/search"', "forms_fixed"),
        ("fix_iframes", '<iframe src="/w"></iframe>', 'src="/w"', "iframes_fixed"),
        ("fix_media", '<video src="/v.mp4"></video>', 'src="/v.mp4"', "media_fixed"),
        ("fix_inline_styles", '<p style="background:url(/a.png)"></p>', "url(/a.png)", "inline_styles_fixed"),
        ("fix_css_urls", "<style>a{background:url(/a.png)}</style>", "url(/a.png)", "css_urls_fixed"),
    ])
    def test_feature_toggles(self, toggle, html, kept, counter, blog_options):
        """Test that switching a feature off leaves its locations alone."""
        options = replace(blog_options, **{toggle: False})
        fixed, stats = fix_document(html, options)

        assert kept in fixed
        assert getattr(stats, counter) == 0

    @pytest.mark.parametrize("href", ["https://site.example/", "/", "/blog/", "../"])
    def test_base_href_points_at_document_dir(self, href, blog_options):
        """Test that a same-origin <base href> resolves to the page's own folder."""
        fixed, stats = fix_document(f'<head><base href="{href}"></head>', blog_options)

        assert 'href="./"' in fixed
        assert stats.total == 0

    def test_external_base_href_kept(self, blog_options):
        """Test that a cross-origin <base href> is left alone."""
        fixed, _ = fix_document('<head><base href="https://other.example/"></head>', blog_options)
        assert 'href="https://other.example/"' in fixed

    def test_link_counters_follow_rel(self, blog_options):
        """Test that only rel=stylesheet counts as a stylesheet."""
        html = (
            '<link rel="stylesheet" href="/a.css">'
            '<link rel="preload" href="/font.woff2" as="font">'
            '<link rel="alternate" href="/feed.xml">'
            '<link rel="icon" href="/favicon.ico">'
        )
        fixed, stats = fix_document(html, blog_options)

        assert stats.stylesheets_fixed == 1
        assert stats.links_fixed == 3
        assert 'href="../../font.woff2"' in fixed

    def test_only_direct_picture_sources(self, blog_options):
        """Test that srcset is rewritten on <source> children of <picture> only."""
        html = (
            '<picture><source srcset="/p.webp"><img src="/p.jpg"></picture>'
            '<picture><div><source srcset="/nested.webp"></div></picture>'
        )
        fixed, _ = fix_document(html, blog_options)

        assert 'srcset="../../p.webp"' in fixed
        assert 'srcset="/nested.webp"' in fixed

    def test_meta_refresh(self, blog_options):
        """Test the url= part of a meta refresh."""
        html = '<meta http-equiv="refresh" content="0; url=https://site.example/new/">'
        fixed, _ = fix_document(html, blog_options)
        assert 'content="0; url=../../new/"' in fixed

        off = replace(blog_options, fix_meta_tags=False)
        fixed, _ = fix_document(html, off)
        assert 'content="0; url=https://site.example/new/"' in fixed

    def test_style_block_counts_each_url(self, blog_options):
        """Test that every url() in a <style> block is counted."""
        html = "<style>.a{background:url(/a.png)} .b{background:url('/b.png')}</style>"
        fixed, stats = fix_document(html, blog_options)

        assert "url(../../a.png)" in fixed
        assert "url('../../b.png')" in fixed
        assert stats.css_urls_fixed == 2

    def test_interceptor_injected_when_enabled(self, blog_options):
        """Test that inject_interceptor embeds the rendered script."""
        html = "<html><head><title>x</title></head><body></body></html>"

        fixed, _ = fix_document(html, blog_options)
        assert INTERCEPTOR_MARKER not in fixed

        fixed, _ = fix_document(html, replace(blog_options, inject_interceptor=True))
        assert INTERCEPTOR_MARKER in fixed
        assert 'const DOCUMENT_DIR = "blog/post";' in fixed

    def test_empty_document(self, blog_options):
        """Test that an empty string yields an empty document."""
        fixed, stats = fix_document("", blog_options)
        assert fixed == ""
        assert stats.total == 0

    def test_non_string_raises(self, blog_options):
        """Test input validation."""
        with pytest.raises(ValueError, match="html_content must be a string"):
            fix_document(None, blog_options)


class TestSiteLayoutRoundTrip:
    """Test rewriting against paths assigned by SiteLayout."""

    def test_asset_in_category_directory(self):
        """Test that references resolve to where the layout puts the asset."""
        layout = SiteLayout("https://site.example/")
        options = layout.options_for("https://site.example/blog/post/")
        html = (
            '<link rel="stylesheet" href="https://site.example/assets/app.css">'
            '<img src="/img/logo.png"><a href="/about">About</a>'
        )
        fixed, _ = fix_document(html, options)

        assert options.target_path == "blog/post/index.html"
        css_target = layout.target_path("https://site.example/assets/app.css")
        img_target = layout.target_path("https://site.example/img/logo.png")
        assert css_target.startswith("assets/css/")
        assert f'href="../../{css_target}"' in fixed
        assert f'src="../../{img_target}"' in fixed
        assert 'href="../../about/index.html"' in fixed

    def test_home_page_links(self):
        """Test links out of the root document."""
        layout = SiteLayout("https://site.example/")
        options = layout.options_for("https://site.example/")
        fixed, _ = fix_document('<a href="/blog/post/">post</a>', options)

        assert 'href="blog/post/index.html"' in fixed

    def test_base_href_keeps_links_resolving(self):
        """Test that links resolved through a rewritten <base> reach their files."""
        layout = SiteLayout("https://site.example/", output_root="/out")
        options = layout.options_for("https://site.example/blog/post/")
        html = '<head><base href="https://site.example/"><link rel="stylesheet" href="/y.css"></head>'
        soup = BeautifulSoup(fix_document(html, options)[0], "html.parser")

        page = "file:///out/" + options.target_path
        base = urljoin(page, soup.base["href"])
        effective = urljoin(base, soup.link["href"])
        intended = urljoin(page, "/out/" + layout.target_path("https://site.example/y.css"))

        assert soup.base["href"] == "./"
        assert effective == intended


class TestSrcset:
    """Test srcset parsing and rewriting."""

    def test_mixed_candidates(self, blog_ctx):
        """Test that only root-relative candidates change."""
        assert fix_srcset("a.jpg 1x, /b.jpg 2x", blog_ctx) == "a.jpg 1x, ../../b.jpg 2x"

    def test_width_descriptors(self, blog_ctx):
        """Test w descriptors are kept."""
        assert fix_srcset("/s.jpg 480w, /l.jpg 1024w", blog_ctx) == "../../s.jpg 480w, ../../l.jpg 1024w"

    def test_data_uri_with_comma(self, blog_ctx):
        """Test that commas inside a data URI do not split the candidate."""
        srcset = "data:image/png;base64,AAAA 1x, /b.jpg 2x"
        assert parse_srcset(srcset) == [("data:image/png;base64,AAAA", "1x"), ("/b.jpg", "2x")]
        assert fix_srcset(srcset, blog_ctx) == "data:image/png;base64,AAAA 1x, ../../b.jpg 2x"

    def test_unchanged_returned_verbatim(self, blog_ctx):
        """Test that an unchanged srcset keeps its original formatting."""
        srcset = "a.jpg 1x,https://cdn.other.example/b.jpg   2x"
        assert fix_srcset(srcset, blog_ctx) == srcset

    def test_no_descriptor(self, blog_ctx):
        """Test a single candidate with no descriptor."""
        assert parse_srcset("/only.jpg") == [("/only.jpg", "")]
        assert fix_srcset("/only.jpg", blog_ctx) == "../../only.jpg"


class TestMarkupFallback:
    """Test the tree-free helpers."""

    def test_meta_refresh_helper(self, blog_ctx):
        """Test fix_meta_refresh() on its own."""
        assert fix_meta_refresh("5;URL='/next'", blog_ctx) == "5;URL='../../next'"
        assert fix_meta_refresh("5", blog_ctx) == "5"
        assert fix_meta_refresh("0; url=https://other.example/", blog_ctx) == "0; url=https://other.example/"

    def test_fix_markup_text(self, blog_options, capsys):
        """Test the raw-text fallback rewrites attributes and url() references."""
        html = '<a href="/x">x</a><div style="background:url(/b.png)"></div><a href="https://other.example/">o</a>'
        fixed, count = fix_markup_text(html, blog_options)

        assert count == 2
        assert 'href="../../x"' in fixed
        assert "url(../../b.png)" in fixed
        assert 'href="https://other.example/"' in fixed
        assert "[WARN]" in capsys.readouterr().out
