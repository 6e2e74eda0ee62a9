"""Page metadata extraction.

Three steps, each usable on its own:

1. ``to_charrefs`` turns the fetched bytes into pure-ASCII markup, replacing
   every non-ASCII character with a numeric character reference.  The parser
   then cannot mis-decode the page and garble the text.
2. ``parse_html`` parses that markup with BeautifulSoup's ``html.parser``
   backend.  It never raises: broken markup yields whatever tree could be
   recovered, and markup BeautifulSoup refuses outright yields an empty one.
3. ``MetadataExtractor.extract`` walks the tree and collects the recognised
   keys, first occurrence wins.
"""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup, ParserRejectedMarkup
from bs4.element import Tag

logger = logging.getLogger(__name__)

ICON_RELS = ("icon", "apple-touch-icon")
_META_PROPERTY_PREFIXES = ("og:", "fb:")
_META_NAME_PREFIXES = ("twitter:",)


def to_charrefs(body: bytes, encoding: str | None = None) -> str:
    """Decode *body* and replace non-ASCII characters with ``&#NNNN;``.

    The encoding comes from the server.  Names Python does not know, and
    codecs that are not text encodings (``hex``, ``base64``, ...), fall back
    to UTF-8.
    """
    try:
        text = body.decode(encoding or "utf-8", errors="replace")
    except LookupError:
        logger.debug("Unusable encoding %r, decoding as utf-8.", encoding)
        text = body.decode("utf-8", errors="replace")
    return text.encode("ascii", errors="xmlcharrefreplace").decode("ascii")


def parse_html(markup: str) -> BeautifulSoup:
    """Parse *markup* into a best-effort tree.  Never raises."""
    try:
        return BeautifulSoup(markup, "html.parser")
    except ParserRejectedMarkup as exc:
        logger.warning("HTML parser rejected markup, extracting nothing: %s", exc)
        return BeautifulSoup("", "html.parser")


def origin_of(url: str) -> str:
    """Return the scheme + host prefix of *url*: everything before the
    first ``/`` that follows ``://``.
    """
    scheme_end = url.find("://")
    if scheme_end == -1:
        return ""
    path_start = url.find("/", scheme_end + 3)
    return url if path_start == -1 else url[:path_start]


def resolve_icon_href(href: str, source_url: str) -> str:
    """Make a root-relative icon href absolute against *source_url*.

    Protocol-relative hrefs (``//cdn.example/x.ico``) take the source URL's
    scheme; anything else is returned unchanged.
    """
    if href.startswith("//"):
        scheme_end = source_url.find("://")
        return f"{source_url[:scheme_end]}:{href}" if scheme_end != -1 else href
    if href.startswith("/"):
        return origin_of(source_url) + href
    return href


def _attr(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        # multi-valued attributes such as rel
        return " ".join(value)
    return value


class MetadataExtractor:
    """Collects Open Graph, Facebook, Twitter Card and fallback HTML metadata.

    Recognised keys:

    - ``meta[property]`` starting with ``og:`` or ``fb:``
    - ``meta[name]`` starting with ``twitter:``
    - ``meta[name="description"]`` as ``description``
    - the first ``<title>`` as ``title``
    - ``link[rel="icon"]`` / ``link[rel="apple-touch-icon"]`` under their rel

    Tags are visited in document order and the first tag to produce a key
    wins; later duplicates are ignored.
    """

    def extract(self, soup: BeautifulSoup, source_url: str) -> dict[str, str]:
        values: dict[str, str] = {}

        for tag in soup.find_all(["meta", "title", "link"]):
            if tag.name == "meta":
                self._from_meta(tag, values)
            elif tag.name == "title":
                values.setdefault("title", tag.get_text())
            else:
                self._from_link(tag, source_url, values)

        return values

    def extract_from_bytes(
        self, body: bytes, encoding: str | None, source_url: str
    ) -> dict[str, str]:
        """Normalise, parse and extract in one go."""
        return self.extract(parse_html(to_charrefs(body, encoding)), source_url)

    @staticmethod
    def _from_meta(tag: Tag, values: dict[str, str]) -> None:
        prop = _attr(tag, "property")
        name = _attr(tag, "name")
        content = _attr(tag, "content")

        if prop.startswith(_META_PROPERTY_PREFIXES):
            values.setdefault(prop, content)
        if name.startswith(_META_NAME_PREFIXES) or name == "description":
            values.setdefault(name, content)

    @staticmethod
    def _from_link(tag: Tag, source_url: str, values: dict[str, str]) -> None:
        rel = _attr(tag, "rel")
        if rel not in ICON_RELS or rel in values:
            return
        values[rel] = resolve_icon_href(_attr(tag, "href"), source_url)
