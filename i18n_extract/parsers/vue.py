"""
Vue single-file component parsing.

split_sfc() cuts a component into its top-level <template>, <script> and
<style> blocks. Everything between blocks (comments, whitespace, custom
blocks) is kept verbatim, so join_sfc() over unchanged blocks returns
the original text.

parse_template() parses a template body with the tree-sitter HTML
grammar. Mustache bodies are masked before parsing, because characters
like ``<`` inside ``{{ a < b }}`` would otherwise be read as markup;
the mask preserves byte offsets, so node ranges still index the
original text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from i18n_extract.errors import ParseError
from i18n_extract.parsers.base import Dialect, LANG_DIALECTS, SourceTree
from i18n_extract.parsers.script import get_parser

_OPEN_TAG_RE = re.compile(r"<(template|script|style)\b((?:[^>\"']|\"[^\"]*\"|'[^']*')*)>", re.IGNORECASE)
_COMMENT_RE = re.compile(r"<!--[\s\S]*?-->")
_ATTR_RE = re.compile(r"([^\s=/>]+)(?:\s*=\s*(\"[^\"]*\"|'[^']*'|[^\s\"'>]+))?")
_TEMPLATE_TAG_RE = re.compile(r"<(/?)template\b(?:[^>\"']|\"[^\"]*\"|'[^']*')*?(/?)>", re.IGNORECASE)
_MUSTACHE_RE = re.compile(r"\{\{([\s\S]*?)\}\}")


@dataclass
class SfcBlock:
    """A top-level block of a single-file component.

    Offsets are character offsets into the component source. ``content``
    is the text between the opening and closing tag.
    """
    tag: str
    attrs: dict[str, str]
    start: int
    end: int
    content_start: int
    content_end: int
    content: str
    line: int = 0

    @property
    def lang(self) -> Optional[str]:
        return self.attrs.get("lang")

    @property
    def dialect(self) -> Dialect:
        return LANG_DIALECTS.get((self.lang or "js").lower(), Dialect.JAVASCRIPT)


@dataclass
class SfcDocument:
    """A component split into blocks plus the text around them."""
    source: str
    blocks: list[SfcBlock] = field(default_factory=list)

    def blocks_of(self, tag: str) -> list[SfcBlock]:
        return [b for b in self.blocks if b.tag == tag]


def parse_attrs(text: str) -> dict[str, str]:
    attrs = {}
    for match in _ATTR_RE.finditer(text):
        value = match.group(2) or ""
        if value[:1] in ("'", '"'):
            value = value[1:-1]
        attrs[match.group(1).lower()] = value
    return attrs


def _template_end(source: str, pos: int, file_path: str) -> tuple[int, int]:
    """Find the </template> matching a <template> opened before pos.

    Returns (content_end, block_end).
    """
    depth = 1
    for match in _TEMPLATE_TAG_RE.finditer(source, pos):
        closing, self_closing = match.group(1), match.group(2)
        if self_closing:
            continue
        depth += -1 if closing else 1
        if depth == 0:
            return match.start(), match.end()
    raise ParseError("unclosed <template> block", file_path=file_path, line=source.count("\n", 0, pos) + 1)


def split_sfc(source: str, file_path: str = "") -> SfcDocument:
    """Split a component into its top-level blocks.

    Raises:
        ParseError: If a top-level block is never closed
    """
    doc = SfcDocument(source=source)
    pos = 0
    while True:
        comment = _COMMENT_RE.search(source, pos)
        match = _OPEN_TAG_RE.search(source, pos)
        if match is None:
            break
        if comment is not None and comment.start() < match.start():
            pos = comment.end()
            continue

        tag = match.group(1).lower()
        attr_text = match.group(2)
        content_start = match.end()
        line = source.count("\n", 0, match.start()) + 1

        if attr_text.rstrip().endswith("/"):
            doc.blocks.append(SfcBlock(tag, parse_attrs(attr_text.rstrip()[:-1]), match.start(),
                                       match.end(), content_start, content_start, "", line))
            pos = match.end()
            continue

        if tag == "template":
            content_end, end = _template_end(source, content_start, file_path)
        else:
            close = re.compile(rf"</{tag}\s*>", re.IGNORECASE).search(source, content_start)
            if close is None:
                raise ParseError(f"unclosed <{tag}> block", file_path=file_path, line=line)
            content_end, end = close.start(), close.end()

        doc.blocks.append(SfcBlock(
            tag=tag,
            attrs=parse_attrs(attr_text),
            start=match.start(),
            end=end,
            content_start=content_start,
            content_end=content_end,
            content=source[content_start:content_end],
            line=line,
        ))
        pos = end
    return doc


def join_sfc(doc: SfcDocument, contents: dict[int, str]) -> str:
    """Reassemble a component, replacing the content of some blocks.

    Args:
        doc: The split component
        contents: Block index -> new content
    """
    out = []
    pos = 0
    for index, block in enumerate(doc.blocks):
        if index not in contents:
            continue
        out.append(doc.source[pos:block.content_start])
        out.append(contents[index])
        pos = block.content_end
    out.append(doc.source[pos:])
    return "".join(out)


def mask_mustaches(text: str) -> bytes:
    """utf-8 bytes of text with every mustache body blanked out."""
    data = text.encode("utf-8")
    parts = []
    pos = 0
    for match in _MUSTACHE_RE.finditer(text):
        body_start = len(text[:match.start(1)].encode("utf-8"))
        body_end = body_start + len(match.group(1).encode("utf-8"))
        parts.append(data[pos:body_start])
        parts.append(b"_" * (body_end - body_start))
        pos = body_end
    parts.append(data[pos:])
    return b"".join(parts)


def parse_template(content: str, file_path: str = "", line_offset: int = 0) -> SourceTree:
    """Parse a <template> body with the HTML grammar.

    Raises:
        ParseError: If the markup contains a syntax error
    """
    tree = get_parser(Dialect.HTML).parse(mask_mustaches(content))
    parsed = SourceTree(source=content.encode("utf-8"), tree=tree, dialect=Dialect.HTML)
    parsed.raise_if_error(file_path, line_offset)
    return parsed
