from __future__ import annotations

import hashlib
import re
from urllib.parse import quote_plus

import pytest

from ogpinfo.repositories.cache.keys import derive_key

_KEY_RE = re.compile(r"^[A-Za-z0-9._-]+-[0-9a-f]{32}\.json$")


class TestDeriveKey:
    def test_host_and_md5_of_encoded_url(self):
        url = "http://localhost:8000/test.html"
        expected = hashlib.md5(quote_plus(url, safe="").encode()).hexdigest()
        assert derive_key(url) == f"localhost-{expected}.json"

    def test_deterministic(self):
        url = "https://example.com/a?b=c"
        assert derive_key(url) == derive_key(url)

    @pytest.mark.parametrize(
        "a, b",
        [
            ("https://example.com/", "https://example.com"),
            ("https://example.com/", "http://example.com/"),
            ("https://example.com/?q=1", "https://example.com/?q=2"),
            ("https://example.com/a b", "https://example.com/a+b"),
        ],
    )
    def test_distinct_urls_get_distinct_keys(self, a, b):
        assert derive_key(a) != derive_key(b)

    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/path/to/page?x=1&y=../../etc",
            "https://例え.jp/ページ",
            "http://[::1]:8000/",
            "not a url at all",
            "",
        ],
    )
    def test_filesystem_safe(self, url):
        key = derive_key(url)
        assert _KEY_RE.match(key), key
        assert "/" not in key

    def test_host_prefix_is_lowercased_hostname(self):
        assert derive_key("https://Example.COM:8443/x").startswith("example.com-")

    def test_url_without_host(self):
        assert derive_key("/relative/path").startswith("unknown-")

    def test_ipv6_host_is_sanitised(self):
        assert derive_key("http://[::1]:8000/").startswith("__1-")
