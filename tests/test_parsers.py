"""
Parser tests for i18n-extract.

These tests verify:
- Byte-range edits and printing
- Script parsing and syntax error reporting
- String literal escaping helpers
- Embedded expression parsing
- Vue single-file component splitting

Run with: pytest tests/test_parsers.py -v
"""

import pytest

from i18n_extract.errors import ParseError
from i18n_extract.parsers import (
    Dialect,
    SourceEdit,
    apply_edits,
    dialect_for_extension,
    join_sfc,
    parse_attrs,
    parse_expression,
    parse_script,
    quote_js,
    split_sfc,
    unescape_js,
)
from i18n_extract.parsers.vue import mask_mustaches, parse_template


class TestEdits:
    """Tests for SourceEdit application."""

    def test_apply_in_offset_order(self):
        """Edits given out of order are applied by position."""
        source = b"abcdef"
        edits = [SourceEdit(4, 5, "E"), SourceEdit(0, 1, "A")]
        assert apply_edits(source, edits) == b"AbcdEf"

    def test_insertions_keep_order(self):
        """Two insertions at one offset keep the given order."""
        edits = [SourceEdit(1, 1, "x"), SourceEdit(1, 1, "y")]
        assert apply_edits(b"ab", edits) == b"axyb"

    def test_overlap_rejected(self):
        """Overlapping replacements raise ValueError."""
        with pytest.raises(ValueError):
            apply_edits(b"abcdef", [SourceEdit(0, 3, "x"), SourceEdit(2, 4, "y")])

    def test_shifted(self):
        """shifted() rebases an edit onto a sub-range."""
        assert SourceEdit(10, 12, "z").shifted(10) == SourceEdit(0, 2, "z")

    def test_multibyte_offsets(self):
        """Offsets are utf-8 byte offsets."""
        source = "a中b".encode("utf-8")
        assert apply_edits(source, [SourceEdit(1, 4, "X")]).decode("utf-8") == "aXb"


class TestScriptParsing:
    """Tests for tree-sitter script parsing."""

    def test_dialects(self):
        """Extensions map to grammars."""
        assert dialect_for_extension("tsx") is Dialect.TSX
        assert dialect_for_extension(".JSX") is Dialect.JAVASCRIPT
        assert dialect_for_extension("vue") is Dialect.VUE

    def test_unknown_extension(self):
        """Unknown extensions raise ValueError."""
        with pytest.raises(ValueError):
            dialect_for_extension("py")

    def test_print_without_edits(self):
        """A parsed source prints back unchanged."""
        source = "const a  =  '你好' ;\n\n// c\n"
        assert parse_script(source, Dialect.JAVASCRIPT).print() == source

    def test_syntax_error_location(self):
        """ParseError carries the file and line of the first error."""
        with pytest.raises(ParseError) as excinfo:
            parse_script("const a = 1\nconst = ;\n", Dialect.JAVASCRIPT, "src/a.js")

        assert excinfo.value.file_path == "src/a.js"
        assert excinfo.value.line == 2
        assert "src/a.js:2" in str(excinfo.value)

    def test_line_offset(self):
        """line_offset shifts reported lines for embedded blocks."""
        with pytest.raises(ParseError) as excinfo:
            parse_script("const = ;\n", Dialect.JAVASCRIPT, "a.vue", line_offset=10)
        assert excinfo.value.line == 11

    def test_typescript_syntax(self):
        """Type annotations need the TypeScript grammar."""
        parse_script("const a: number = 1\n", Dialect.TYPESCRIPT)
        with pytest.raises(ParseError):
            parse_script("const a: number = 1\n", Dialect.JAVASCRIPT)


class TestExpressions:
    """Tests for embedded expression parsing."""

    def test_expression_is_wrapped(self):
        """Expressions parse inside parentheses."""
        parsed = parse_expression("ok ? '是' : '否'")
        assert parsed is not None
        assert parsed[1] == 1

    def test_statement_list(self):
        """Handler statement lists parse without the wrapper."""
        parsed = parse_expression("a = 1; b()")
        assert parsed is not None
        assert parsed[1] == 0

    def test_unparsable(self):
        """Code that is neither form returns None."""
        assert parse_expression("item in") is None


class TestStringHelpers:
    """Tests for unescape_js and quote_js."""

    @pytest.mark.parametrize("body,expected", [
        ("a\\nb", "a\nb"),
        ("\\u4f60", "你"),
        ("\\u{597D}", "好"),
        ("\\x41", "A"),
        ("\\'", "'"),
        ("\\q", "q"),
        ("\\uD83D\\uDE00", "\U0001F600"),
        ("中\\uD800", "中\ud800"),
        ("no escapes", "no escapes"),
    ])
    def test_unescape(self, body, expected):
        """Escape sequences decode to their characters."""
        assert unescape_js(body) == expected

    def test_line_continuation(self):
        """A backslash before a newline disappears."""
        assert unescape_js("第一\\\n第二") == "第一第二"

    def test_quote_single(self):
        """Single quotes and backslashes are escaped."""
        assert quote_js("it's a\\b") == "'it\\'s a\\\\b'"

    def test_quote_double(self):
        """The requested quote character is used."""
        assert quote_js('say "hi"', '"') == '"say \\"hi\\""'

    def test_quote_newline(self):
        """Newlines are escaped so the call stays on one line."""
        assert quote_js("a\nb") == "'a\\nb'"


class TestSfc:
    """Tests for Vue single-file component splitting."""

    SOURCE = (
        "<template>\n"
        "  <div><template v-if=\"a\">x</template></div>\n"
        "</template>\n"
        "\n"
        "<script setup lang=\"ts\">\n"
        "const a = 1\n"
        "</script>\n"
        "<style scoped>\n.a { color: red }\n</style>\n"
    )

    def test_blocks(self):
        """Top-level blocks are found with their attributes."""
        doc = split_sfc(self.SOURCE)

        assert [b.tag for b in doc.blocks] == ["template", "script", "style"]
        script = doc.blocks_of("script")[0]
        assert script.lang == "ts"
        assert script.dialect is Dialect.TYPESCRIPT
        assert script.line == 5

    def test_nested_template(self):
        """Nested <template> tags stay inside the outer block."""
        template = split_sfc(self.SOURCE).blocks[0]
        assert "<template v-if=\"a\">x</template>" in template.content
        assert template.content.endswith("</div>\n")

    def test_join_unchanged(self):
        """Joining without replacements gives back the source."""
        doc = split_sfc(self.SOURCE)
        assert join_sfc(doc, {}) == self.SOURCE

    def test_join_replaces_content(self):
        """Replaced block content lands between the original tags."""
        doc = split_sfc(self.SOURCE)
        joined = join_sfc(doc, {1: "\nconst a = 2\n"})

        assert "<script setup lang=\"ts\">\nconst a = 2\n</script>" in joined
        assert joined.startswith(self.SOURCE[:20])

    def test_comment_is_skipped(self):
        """A commented-out block is not a block."""
        doc = split_sfc("<!-- <script>old()</script> -->\n<template><div/></template>\n")
        assert [b.tag for b in doc.blocks] == ["template"]

    def test_unclosed(self):
        """A block without its closing tag raises ParseError."""
        with pytest.raises(ParseError):
            split_sfc("<script>\nconst a = 1\n")

    def test_attrs(self):
        """Boolean and quoted attributes are parsed."""
        assert parse_attrs(' lang="ts" setup') == {"lang": "ts", "setup": ""}


class TestTemplateParsing:
    """Tests for <template> parsing."""

    def test_mask_keeps_length(self):
        """Masking mustache bodies keeps byte offsets."""
        text = "你{{ a < b }}好"
        masked = mask_mustaches(text)

        assert len(masked) == len(text.encode("utf-8"))
        assert b"<" not in masked

    def test_comparison_in_mustache(self):
        """A < inside a mustache does not break the markup."""
        parsed = parse_template("\n  <p>{{ a < b ? '是' : '否' }}</p>\n")
        assert not parsed.has_error
        assert parsed.print() == "\n  <p>{{ a < b ? '是' : '否' }}</p>\n"
