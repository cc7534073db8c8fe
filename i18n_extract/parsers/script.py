"""
JavaScript / TypeScript / JSX parsing with tree-sitter.

Grammars are loaded lazily and parsers cached per dialect, so importing
this module does not require every grammar package to be installed.

The string helpers here convert between source-level string literals
and the text they denote: unescape_js() decodes a literal body, and
quote_js() produces a literal for generated call expressions.
"""

from __future__ import annotations

import re
from typing import Optional

from tree_sitter import Language, Parser

from i18n_extract.parsers.base import Dialect, SourceTree

_PARSERS: dict[Dialect, Parser] = {}


def _load_language(dialect: Dialect) -> Language:
    if dialect is Dialect.JAVASCRIPT:
        import tree_sitter_javascript as ts_javascript
        return Language(ts_javascript.language())
    if dialect is Dialect.TYPESCRIPT:
        import tree_sitter_typescript as ts_typescript
        return Language(ts_typescript.language_typescript())
    if dialect is Dialect.TSX:
        import tree_sitter_typescript as ts_typescript
        return Language(ts_typescript.language_tsx())
    if dialect is Dialect.HTML:
        import tree_sitter_html as ts_html
        return Language(ts_html.language())
    raise ValueError(f"No tree-sitter grammar for dialect: {dialect.value}")


def get_parser(dialect: Dialect) -> Parser:
    """Cached tree-sitter parser for a dialect."""
    parser = _PARSERS.get(dialect)
    if parser is None:
        parser = Parser(_load_language(dialect))
        _PARSERS[dialect] = parser
    return parser


def parse_source(source: str, dialect: Dialect) -> SourceTree:
    """Parse source text without checking for syntax errors."""
    data = source.encode("utf-8")
    tree = get_parser(dialect).parse(data)
    return SourceTree(source=data, tree=tree, dialect=dialect)


def parse_script(source: str, dialect: Dialect, file_path: str = "", line_offset: int = 0) -> SourceTree:
    """Parse a script region.

    Raises:
        ParseError: If the tree contains a syntax error
    """
    parsed = parse_source(source, dialect)
    parsed.raise_if_error(file_path, line_offset)
    return parsed


def parse_expression(code: str, dialect: Dialect = Dialect.JAVASCRIPT) -> Optional[tuple[SourceTree, int]]:
    """Parse an embedded expression (a Vue directive value or mustache).

    The code is tried as a parenthesized expression first, then as a
    statement list (for handlers like ``a = 1; b()``). Returns the tree
    and the byte offset of ``code`` inside the parsed text, or None when
    neither form parses cleanly.
    """
    wrapped = parse_source(f"({code}\n)", dialect)
    if not wrapped.has_error:
        return wrapped, 1
    plain = parse_source(code, dialect)
    if not plain.has_error:
        return plain, 0
    return None


# ============================================================================
# String literal helpers
# ============================================================================

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}

_ESCAPE_RE = re.compile(
    r"\\(?:u\{([0-9a-fA-F]+)\}|u([0-9a-fA-F]{4})|x([0-9a-fA-F]{2})|(\r\n|[\s\S]))"
)


def _decode_escape(match: re.Match) -> str:
    code_point, utf16, hex_byte, char = match.groups()
    if code_point or utf16 or hex_byte:
        return chr(int(code_point or utf16 or hex_byte, 16))
    if char in ("\n", "\r\n", "\r", "\u2028", "\u2029"):
        return ""  # line continuation
    return _SIMPLE_ESCAPES.get(char, char)


def unescape_js(body: str) -> str:
    """Decode the escape sequences of a string or template literal body."""
    if "\\" not in body:
        return body
    text = _ESCAPE_RE.sub(_decode_escape, body)
    # Rejoin surrogate pairs written as two \uXXXX escapes; lone ones are kept
    return text.encode("utf-16", "surrogatepass").decode("utf-16", "surrogatepass")


def quote_js(text: str, quote: str = "'") -> str:
    """Render text as a JavaScript string literal."""
    escaped = (
        text.replace("\\", "\\\\")
        .replace(quote, "\\" + quote)
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )
    return f"{quote}{escaped}{quote}"
