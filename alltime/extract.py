from __future__ import annotations

import re
from typing import Iterator

from lxml import html


NO_DATA_BLOCK = "NoDataBlock"

_PRE_OPEN_RE = re.compile(r"<pre\b[^>]*>", re.IGNORECASE)
_BODY_CLOSE_RE = re.compile(r"</body\s*>", re.IGNORECASE)
# lxml rejects C0 control characters other than tab, newline and carriage return.
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")

# Rule/heading lines in the ranking pages start with one of these.
_NOISE_PREFIXES = ("+", "#", "*", "=", "-")
# Annotation rows (indoor marks, oversized track, intermediate times) are not comparable results.
_NOISE_KEYWORDS = ("indoor", "oversized", "intermediate")


class ParseError(Exception):
    def __init__(self, kind: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


def extract_lines(markup: str) -> Iterator[str]:
    """Yield candidate data lines from the first <PRE> block of a ranking page.

    Raises ParseError(NO_DATA_BLOCK) immediately if the page has no <PRE> block.
    """
    block = _slice_pre_block(markup)
    return _candidate_lines(_decode_block(block))


def _slice_pre_block(markup: str) -> str:
    text = markup or ""
    m = _PRE_OPEN_RE.search(text)
    if not m:
        raise ParseError(NO_DATA_BLOCK, "No PRE tag found in HTML")
    content = text[m.end():]
    end = _BODY_CLOSE_RE.search(content)
    if end:
        content = content[: end.start()]
    return content


def _decode_block(block: str) -> str:
    block = _CONTROL_CHARS_RE.sub("", block)
    if not block.strip():
        return ""
    # Parsing as an HTML fragment decodes numeric and named entities and drops
    # stray tags (closing </PRE>, links) while keeping their text.
    root = html.fragment_fromstring(block, create_parent="pre")
    return root.text_content()


def _candidate_lines(text: str) -> Iterator[str]:
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        if line.startswith(_NOISE_PREFIXES):
            continue
        low = line.lower()
        if any(word in low for word in _NOISE_KEYWORDS):
            continue
        yield line
