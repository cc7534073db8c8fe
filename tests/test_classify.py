"""
Classifier and collector tests for i18n-extract.

These tests verify:
- Which literal positions are in scope for extraction
- Translation-call and ignored-method detection
- Key collision handling in the Collector

Run with: pytest tests/test_classify.py -v
"""

import pytest

from i18n_extract.classify import LiteralClassifier, callee_text
from i18n_extract.collector import Collector
from i18n_extract.parsers import Dialect, parse_script


def find_nodes(root, node_type):
    found = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == node_type:
            found.append(node)
        stack.extend(reversed(node.children))
    return found


def classify(source, text, dialect=Dialect.JAVASCRIPT, callees=("t",), ignore=()):
    """Whether the string literal containing text would be extracted."""
    parsed = parse_script(source, dialect)
    node = next(n for n in find_nodes(parsed.root, "string") if text in n.text.decode("utf-8"))
    classifier = LiteralClassifier(callees, ignore)
    return classifier.is_translatable(node, text)


class TestClassifier:
    """Tests for LiteralClassifier."""

    def test_contains_target(self):
        """Only text with Han characters is a target by default."""
        classifier = LiteralClassifier(["t"])
        assert classifier.contains_target("你好 world")
        assert not classifier.contains_target("hello")
        assert not classifier.contains_target("")

    def test_custom_target_pattern(self):
        """target_pattern swaps the script that is extracted."""
        classifier = LiteralClassifier(["t"], target_pattern=r"[ぁ-ん]")
        assert classifier.contains_target("こんにちは")
        assert not classifier.contains_target("你好")

    def test_plain_string(self):
        """A plain Chinese string is extracted."""
        assert classify("const a = '你好'", "你好")

    def test_translation_call_argument(self):
        """An argument of the translation function is already extracted."""
        assert not classify("t('你好')", "你好")

    def test_nested_in_translation_call(self):
        """Literals anywhere inside translation-call arguments are skipped."""
        assert not classify("t('k', { a: '你好' })", "你好")

    def test_member_callee(self):
        """Dotted callees match the qualified name."""
        assert not classify("i18n.t('你好')", "你好", callees=("t", "i18n.t"))
        assert classify("other.t('你好')", "你好", callees=("t", "i18n.t"))

    def test_optional_chaining_callee(self):
        """i18n?.t counts as i18n.t."""
        assert not classify("i18n?.t('你好')", "你好", callees=("i18n.t",))

    def test_ignored_method(self):
        """Arguments of an ignored method are skipped at any depth."""
        source = "console.log(fmt('你好'))"
        assert not classify(source, "你好", ignore=("console.log",))
        assert classify(source, "你好")

    @pytest.mark.parametrize("source", [
        "const m = require('./中文.js')",
        "const p = require.resolve('./中文.js')",
        "const m = import('./中文.js')",
    ])
    def test_module_specifier(self, source):
        """Module paths passed to require() or import() stay literal."""
        assert not classify(source, "./中文.js")

    def test_lone_surrogate(self):
        """Text holding an unpaired surrogate is left as written."""
        classifier = LiteralClassifier(["t"])
        node = find_nodes(parse_script("const a = 'x'", Dialect.JAVASCRIPT).root, "string")[0]
        assert not classifier.is_translatable(node, "中\ud800")
        assert classifier.is_translatable(node, "中\U0001F600")

    def test_object_key(self):
        """Object keys stay literals; values are extracted."""
        source = "const m = { '键': '值' }"
        assert not classify(source, "键")
        assert classify(source, "值")

    def test_import_source(self):
        """Import sources are never extracted."""
        assert not classify("import a from './中文'", "中文")

    def test_literal_type(self):
        """TypeScript literal types are never extracted."""
        assert not classify("type A = '中文'", "中文", dialect=Dialect.TYPESCRIPT)

    def test_enum_member(self):
        """TypeScript enum initializers are never extracted."""
        assert not classify("enum E { A = '中文' }", "中文", dialect=Dialect.TYPESCRIPT)

    def test_subscript_index(self):
        """A computed member index stays a literal."""
        assert not classify("obj['中文']", "中文")

    def test_callee_text_normalization(self):
        """Whitespace and ?. are removed from callee text."""
        parsed = parse_script("this . $t('a'); i18n?.t('b')", Dialect.JAVASCRIPT)
        calls = find_nodes(parsed.root, "call_expression")
        assert [callee_text(c) for c in calls] == ["this.$t", "i18n.t"]


class TestCollector:
    """Tests for the run-wide key map."""

    def test_same_text_same_key(self):
        """Repeated text collapses onto one entry."""
        collector = Collector()
        assert collector.add_occurrence("hello", "你好") == "hello"
        assert collector.add_occurrence("hello", "你好") == "hello"

        assert collector.get_key_map() == {"hello": "你好"}
        assert collector.get_count_of_additions() == 2
        assert collector.collisions == []

    def test_collision_suffix(self):
        """A taken key is suffixed starting at _2."""
        collector = Collector()
        collector.add_occurrence("k", "一")
        assert collector.add_occurrence("k", "二") == "k_2"
        assert collector.add_occurrence("k", "三") == "k_3"

        collision = collector.collisions[0]
        assert (collision.requested_key, collision.resolved_key) == ("k", "k_2")
        assert (collision.existing_text, collision.new_text) == ("一", "二")

    def test_suffix_reused_for_same_text(self):
        """A suffixed key is found again for the same text."""
        collector = Collector()
        collector.add_occurrence("k", "一")
        collector.add_occurrence("k", "二")
        assert collector.add_occurrence("k", "二") == "k_2"
        assert len(collector.collisions) == 1

    def test_current_file_scope(self):
        """Per-file tracking starts fresh for each file."""
        collector = Collector()
        collector.reset_current_file_scope("a.js")
        collector.add_occurrence("a", "甲")
        collector.reset_current_file_scope("b.js")
        collector.add_occurrence("b", "乙")

        assert collector.get_current_file_key_map() == {"b": "乙"}
        assert collector.current_file == "b.js"
        assert len(collector) == 2
        assert "a" in collector

    def test_empty_key(self):
        """An empty key is rejected."""
        with pytest.raises(ValueError):
            Collector().add_occurrence("", "你好")

    def test_reset(self):
        """reset() clears everything."""
        collector = Collector()
        collector.add_occurrence("k", "一")
        collector.add_occurrence("k", "二")
        collector.reset()

        assert collector.get_key_map() == {}
        assert collector.collisions == []
        assert collector.get_count_of_additions() == 0
