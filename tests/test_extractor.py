from __future__ import annotations

from unittest.mock import patch

import pytest
from bs4 import BeautifulSoup, ParserRejectedMarkup

from ogpinfo.services.ogp.extractor import (
    MetadataExtractor,
    origin_of,
    parse_html,
    resolve_icon_href,
    to_charrefs,
)

_SOURCE = "http://localhost:8000/test.html"

_TEST_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Test Title</title>
  <meta name="description" content="Test Description">
  <meta property="og:locale" content="en">
  <meta property="og:url" content="http://localhost:8000/">
  <meta property="og:type" content="website">
  <meta property="og:title" content="Test OG Title">
  <meta property="og:description" content="Test OG Description">
  <meta property="og:image" content="http://localhost:8000/ogp.png">
  <meta property="og:site_name" content="Test OG Site">
  <meta property="fb:app_id" content="1234567890123456">
  <meta name="twitter:card" content="summary_large_image">
  <meta name="twitter:image" content="http://localhost:8000/ogp-twitter.png">
  <link rel="icon" href="/favicon.ico">
  <link rel="apple-touch-icon" href="/apple-touch-icon.png">
</head>
<body><h1>Hello</h1></body>
</html>
"""


def _extract(markup: str, source_url: str = _SOURCE) -> dict[str, str]:
    return MetadataExtractor().extract(parse_html(markup), source_url)


class TestExtract:
    def test_full_page(self):
        values = _extract(_TEST_PAGE)
        assert values == {
            "title": "Test Title",
            "description": "Test Description",
            "og:locale": "en",
            "og:url": "http://localhost:8000/",
            "og:type": "website",
            "og:title": "Test OG Title",
            "og:description": "Test OG Description",
            "og:image": "http://localhost:8000/ogp.png",
            "og:site_name": "Test OG Site",
            "fb:app_id": "1234567890123456",
            "twitter:card": "summary_large_image",
            "twitter:image": "http://localhost:8000/ogp-twitter.png",
            "icon": "http://localhost:8000/favicon.ico",
            "apple-touch-icon": "http://localhost:8000/apple-touch-icon.png",
        }

    def test_first_og_title_wins(self):
        values = _extract(
            '<meta property="og:title" content="First">'
            '<meta property="og:title" content="Second">'
        )
        assert values["og:title"] == "First"

    def test_first_description_wins(self):
        values = _extract(
            '<meta name="description" content="One">'
            '<meta name="description" content="Two">'
        )
        assert values["description"] == "One"

    def test_first_title_wins(self):
        values = _extract("<title>One</title><title>Two</title>")
        assert values["title"] == "One"

    def test_first_icon_wins(self):
        values = _extract(
            '<link rel="icon" href="/a.ico"><link rel="icon" href="/b.ico">',
            "https://example.com/x/y",
        )
        assert values["icon"] == "https://example.com/a.ico"

    def test_unrecognised_tags_ignored(self):
        values = _extract(
            '<meta name="keywords" content="a,b">'
            '<meta property="article:author" content="someone">'
            '<meta name="og:title" content="wrong attribute">'
            '<meta property="twitter:card" content="wrong attribute">'
            '<link rel="stylesheet" href="/style.css">'
            '<link rel="shortcut icon" href="/favicon.ico">'
        )
        assert values == {}

    def test_missing_content_is_empty_string(self):
        assert _extract('<meta property="og:title">') == {"og:title": ""}

    def test_tag_with_property_and_name_sets_both(self):
        values = _extract(
            '<meta property="og:description" name="twitter:description" content="Both">'
        )
        assert values == {"og:description": "Both", "twitter:description": "Both"}

    def test_no_title_means_absent_key(self):
        assert "title" not in _extract('<meta property="og:title" content="x">')

    def test_malformed_markup_still_extracts(self):
        values = _extract(
            '<html><head><meta property="og:title" content="Still here">'
            '<div><p>unclosed <b>tags <meta name="twitter:card" content="summary">'
        )
        assert values == {"og:title": "Still here", "twitter:card": "summary"}

    def test_empty_document(self):
        assert _extract("") == {}


class TestIconResolution:
    def test_root_relative_resolved_against_origin(self):
        assert (
            resolve_icon_href("/favicon.ico", "http://host/path/page.html")
            == "http://host/favicon.ico"
        )

    def test_absolute_href_unchanged(self):
        href = "https://cdn.example.com/icon.png"
        assert resolve_icon_href(href, "http://host/page") == href

    def test_document_relative_href_unchanged(self):
        assert resolve_icon_href("img/icon.png", "http://host/page") == "img/icon.png"

    def test_protocol_relative_takes_source_scheme(self):
        assert (
            resolve_icon_href("//cdn.example.com/i.ico", "https://host/page")
            == "https://cdn.example.com/i.ico"
        )

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("http://host/path/page.html", "http://host"),
            ("https://host:8443/", "https://host:8443"),
            ("https://host", "https://host"),
            ("no-scheme/path", ""),
        ],
    )
    def test_origin_of(self, url, expected):
        assert origin_of(url) == expected


class TestCharrefs:
    def test_ascii_passes_through(self):
        assert to_charrefs(b"<p>plain</p>") == "<p>plain</p>"

    def test_non_ascii_becomes_numeric_references(self):
        assert to_charrefs("日本".encode("utf-8")) == "&#26085;&#26412;"

    def test_declared_encoding_is_used(self):
        assert to_charrefs("é".encode("latin-1"), "iso-8859-1") == "&#233;"
        assert to_charrefs("日本".encode("shift_jis"), "shift_jis") == "&#26085;&#26412;"

    def test_unknown_encoding_falls_back_to_utf8(self):
        assert to_charrefs("é".encode("utf-8"), "x-no-such-codec") == "&#233;"

    def test_non_text_encoding_falls_back_to_utf8(self):
        assert to_charrefs(b"<title>x</title>", "base64") == "<title>x</title>"
        assert to_charrefs("é".encode("utf-8"), "hex") == "&#233;"

    def test_invalid_bytes_are_replaced(self):
        assert to_charrefs(b"ok\xff") == "ok&#65533;"

    def test_extract_from_bytes_restores_text(self):
        body = (
            "<title>日本語のタイトル</title>"
            '<meta property="og:title" content="Café">'
        ).encode("utf-8")
        values = MetadataExtractor().extract_from_bytes(body, "utf-8", _SOURCE)
        assert values == {"title": "日本語のタイトル", "og:title": "Café"}


class TestParseHtml:
    def test_rejected_markup_yields_empty_document(self):
        empty = BeautifulSoup("", "html.parser")
        with patch(
            "ogpinfo.services.ogp.extractor.BeautifulSoup",
            side_effect=[ParserRejectedMarkup("bad markup"), empty],
        ):
            soup = parse_html("<<<>>>")
        assert soup is empty
        assert MetadataExtractor().extract(soup, _SOURCE) == {}
