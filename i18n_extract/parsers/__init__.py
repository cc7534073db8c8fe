"""
Dialect parsers built on tree-sitter.

- script: JavaScript, TypeScript, JSX and TSX
- vue: single-file component splitting and template parsing
"""

from i18n_extract.parsers.base import (
    Dialect,
    SourceEdit,
    SourceTree,
    apply_edits,
    dialect_for_extension,
)
from i18n_extract.parsers.script import (
    get_parser,
    parse_expression,
    parse_script,
    quote_js,
    unescape_js,
)
from i18n_extract.parsers.vue import (
    SfcBlock,
    SfcDocument,
    join_sfc,
    parse_attrs,
    parse_template,
    split_sfc,
)

__all__ = [
    "Dialect",
    "SourceEdit",
    "SourceTree",
    "apply_edits",
    "dialect_for_extension",
    "get_parser",
    "parse_expression",
    "parse_script",
    "quote_js",
    "unescape_js",
    "SfcBlock",
    "SfcDocument",
    "join_sfc",
    "parse_attrs",
    "parse_template",
    "split_sfc",
]
