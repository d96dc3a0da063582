"""
Streaming title / meta-description extraction.

The scan is a single forward pass over tokenizer events; no document tree
is built. Scanning stops as soon as both fields are settled, or when the
token stream ends (end of document, truncated body, tokenizer failure).
"""

from __future__ import annotations

import codecs
import html
import logging
import re
from collections.abc import Iterable, Iterator
from enum import Enum
from html.parser import HTMLParser

from bs4.dammit import EncodingDetector

from meta_crawler.logging_utils import log_event
from meta_crawler.types import ExtractedMetadata

logger = logging.getLogger(__name__)

WHITESPACE_REGEX = re.compile(r"\s+")

# Bytes buffered before choosing a charset from a BOM or <meta charset>.
_SNIFF_BYTES = 1024
_FALLBACK_ENCODING = "utf-8"


def normalize_whitespace(text: str) -> str:
    """
    Collapse whitespace runs to one space and trim both ends.
    """

    return WHITESPACE_REGEX.sub(" ", text).strip()


class TitleState(Enum):
    SEARCHING = "searching"
    CAPTURING = "capturing"
    FOUND = "found"


class DescriptionState(Enum):
    SEARCHING = "searching"
    FOUND = "found"


class MetadataScanner(HTMLParser):
    """
    Incremental tokenizer that settles the first title and meta description.

    `CAPTURING` holds the text token that immediately follows the first
    ``<title>`` start tag. Title content is raw text up to ``</title>``,
    so nested markup is kept verbatim. The tokenizer may report one text
    token as several data events when it spans feed boundaries, so
    consecutive data events are joined until any other token arrives.
    """

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.title_state = TitleState.SEARCHING
        self.description_state = DescriptionState.SEARCHING
        self._title_parts: list[str] = []
        self._title_unescaped = False
        self._description = ""

    @property
    def done(self) -> bool:
        return (
            self.title_state is TitleState.FOUND
            and self.description_state is DescriptionState.FOUND
        )

    def result(self) -> ExtractedMetadata:
        title = "".join(self._title_parts)
        if not self._title_unescaped:
            title = html.unescape(title)
        return ExtractedMetadata(
            title=normalize_whitespace(title),
            description=self._description,
        )

    def set_cdata_mode(self, elem: str, **kwargs: bool) -> None:
        # Newer parsers switch <title> to escapable raw text themselves and
        # deliver its data with character references already converted.
        super().set_cdata_mode(elem, **kwargs)
        if elem == "title":
            self._title_unescaped = bool(kwargs.get("escapable"))

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._end_title_capture()
        if tag == "title" and self.title_state is TitleState.SEARCHING:
            self.title_state = TitleState.CAPTURING
            self.set_cdata_mode("title")
        elif tag == "meta":
            self._scan_meta(attrs)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        # <title/> is not a title start tag.
        self._end_title_capture()
        if tag == "meta":
            self._scan_meta(attrs)

    def handle_endtag(self, tag: str) -> None:
        self._end_title_capture()

    def handle_data(self, data: str) -> None:
        if self.title_state is TitleState.CAPTURING:
            self._title_parts.append(data)

    def handle_comment(self, data: str) -> None:
        self._end_title_capture()

    def handle_decl(self, decl: str) -> None:
        self._end_title_capture()

    def handle_pi(self, data: str) -> None:
        self._end_title_capture()

    def unknown_decl(self, data: str) -> None:
        self._end_title_capture()

    def close(self) -> None:
        super().close()
        if self.title_state is TitleState.CAPTURING and self.rawdata:
            # Unterminated title text stays buffered after close.
            self._title_parts.append(self.rawdata)
            self.rawdata = ""
        self._end_title_capture()

    def _end_title_capture(self) -> None:
        if self.title_state is TitleState.CAPTURING:
            self.title_state = TitleState.FOUND

    def _scan_meta(self, attrs: list[tuple[str, str | None]]) -> None:
        if self.description_state is DescriptionState.FOUND:
            return

        is_description = any(
            key == "name" and (value or "").lower() == "description"
            for key, value in attrs
        )
        if not is_description:
            return

        for key, value in attrs:
            if key == "content":
                self._description = normalize_whitespace(value or "")
                break
        self.description_state = DescriptionState.FOUND


def _resolve_codec(name: str | None) -> str | None:
    if not name:
        return None
    try:
        return codecs.lookup(name).name
    except LookupError:
        return None


def _choose_encoding(head: bytes, declared: str | None) -> tuple[bytes, str]:
    head, bom_encoding = EncodingDetector.strip_byte_order_mark(head)
    encoding = (
        _resolve_codec(bom_encoding)
        or _resolve_codec(declared)
        or _resolve_codec(EncodingDetector.find_declared_encoding(head, is_html=True))
        or _FALLBACK_ENCODING
    )
    return head, encoding


def _decode_chunks(chunks: Iterable[bytes], declared: str | None) -> Iterator[str]:
    decoder = None
    head = b""
    for chunk in chunks:
        if decoder is None:
            head += chunk
            if len(head) < _SNIFF_BYTES:
                continue
            head, encoding = _choose_encoding(head, declared)
            decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
            chunk, head = head, b""
        text = decoder.decode(chunk)
        if text:
            yield text

    if decoder is None:
        head, encoding = _choose_encoding(head, declared)
        decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        text = decoder.decode(head)
        if text:
            yield text
    tail = decoder.decode(b"", final=True)
    if tail:
        yield tail


def extract_metadata(
    chunks: Iterable[bytes],
    *,
    encoding: str | None = None,
    url: str | None = None,
) -> ExtractedMetadata:
    """Extract the page title and meta description from an HTML byte stream.

    Reading stops as soon as both fields are settled, so large documents
    are usually not consumed past ``<head>``. Malformed markup only limits
    what is found; it never raises.

    Args:
        chunks: Raw body bytes in arrival order.
        encoding: Charset declared by the transport, if any.
        url: Page URL, used only as log context.

    Returns:
        ExtractedMetadata with whitespace-normalized fields, empty when
        not found.
    """
    scanner = MetadataScanner()
    for text in _decode_chunks(chunks, encoding):
        if not _feed(scanner, text, url=url):
            return scanner.result()
        if scanner.done:
            return scanner.result()

    try:
        scanner.close()
    except Exception as exc:
        _log_tokenizer_error(exc, url=url)
    return scanner.result()


def _feed(scanner: MetadataScanner, text: str, *, url: str | None) -> bool:
    try:
        scanner.feed(text)
    except Exception as exc:
        _log_tokenizer_error(exc, url=url)
        return False
    return True


def _log_tokenizer_error(exc: Exception, *, url: str | None) -> None:
    log_event(
        logger,
        logging.DEBUG,
        "html_tokenizer_error",
        url=url,
        error=str(exc),
    )
