"""
Rewriter tests for i18n-extract.

These tests verify per-file rewriting across dialects:
- Plain script and TypeScript string / template literals
- JSX text and attributes
- Vue single-file components (template, script, style)
- Import injection, idempotence and byte-identical no-ops

Run with: pytest tests/test_rewriter.py -v
"""

import pytest

from i18n_extract.collector import Collector
from i18n_extract.config import ScriptRule, VueRule
from i18n_extract.errors import ParseError
from i18n_extract.models import ContainerKind
from i18n_extract.rewriter import Rewriter, build_call

IMPORT = 'import { t } from "i18n"'


def rewrite(source, ext="js", rule=None, collector=None, **kwargs):
    collector = collector if collector is not None else Collector()
    rewriter = Rewriter(collector, **kwargs)
    return rewriter.rewrite(source, ext, rule, file_path=f"src/app.{ext}")


class TestBuildCall:
    """Tests for call expression rendering."""

    def test_plain_call(self):
        """A key without slots renders as a single-argument call."""
        assert build_call("t", "你好") == "t('你好')"

    def test_key_is_escaped(self):
        """Quotes and newlines in keys are escaped."""
        assert build_call("t", "it's\nok") == "t('it\\'s\\nok')"


class TestScriptLiterals:
    """Tests for string and template literals in plain scripts."""

    def test_string_literal(self):
        """A Chinese string becomes a translation call plus one import."""
        result = rewrite("const a = '你好'\n")

        assert result.code == f"{IMPORT}\nconst a = t('你好')\n"
        assert result.changed
        assert result.occurrence_count == 1

    def test_escapes_are_decoded_for_the_key(self):
        """Escape sequences are decoded before the key is built."""
        collector = Collector()
        result = rewrite('const a = "你好\\u0021"\n', collector=collector)

        assert "t('你好!')" in result.code
        assert collector.get_key_map() == {"你好!": "你好!"}

    def test_no_match_is_byte_identical(self):
        """A file with nothing to extract comes back unchanged."""
        source = "const a = 'hello'\n// 中文注释\nfunction f() {  return 1 }\n"
        result = rewrite(source)

        assert result.code is source
        assert not result.changed
        assert result.occurrence_count == 0

    def test_empty_file(self):
        """Whitespace-only files are returned without parsing."""
        result = rewrite("   \n")
        assert result.code == "   \n"
        assert not result.changed

    def test_template_literal_slots_in_order(self):
        """Interpolations become slots in source order."""
        result = rewrite("const s = `你好，${ name }，今天是${day}`\n")

        assert "t('你好，{slot1}，今天是{slot2}', { slot1: name, slot2: day })" in result.code
        occurrence = result.occurrences[0]
        assert [s.source_expression for s in occurrence.slots] == ["name", "day"]
        assert [s.placeholder for s in occurrence.slots] == ["{slot1}", "{slot2}"]

    def test_literals_inside_slots_are_rewritten(self):
        """A literal inside an interpolation is extracted too."""
        collector = Collector()
        result = rewrite("const s = `你好${ok ? '是' : '否'}`\n", collector=collector)

        assert "t('你好{slot1}', { slot1: ok ? t('是') : t('否') })" in result.code
        assert list(collector.get_key_map()) == ["你好{slot1}", "是", "否"]

    def test_template_without_target_text(self):
        """Only the substitutions of a template with no Chinese are touched."""
        result = rewrite("const s = `${a}-${'中文'}`\n")
        assert "`${a}-${t('中文')}`" in result.code

    def test_custom_slot(self):
        """custom_slot controls the placeholder text."""
        rule = ScriptRule(custom_slot=lambda i: f"%{i}")
        result = rewrite("const s = `共${n}条`\n", rule=rule)
        assert "t('共%1条', { slot1: n })" in result.code

    def test_caller(self):
        """A caller prefixes the function name."""
        rule = ScriptRule(caller="i18n", import_declaration="import i18n from '@/i18n'")
        result = rewrite("const a = '你好'\n", rule=rule)

        assert "i18n.t('你好')" in result.code
        assert result.code.startswith("import i18n from '@/i18n'\n")

    def test_customize_key(self):
        """customize_key decides the key when no namer is configured."""
        rule = ScriptRule(customize_key=lambda literal, path=None: f"k{len(literal)}")
        collector = Collector()
        result = rewrite("const a = '你好'\n", rule=rule, collector=collector)

        assert "t('k2')" in result.code
        assert collector.get_key_map() == {"k2": "你好"}

    def test_object_keys_are_kept(self):
        """Object property keys stay literals; their values are extracted."""
        result = rewrite("const m = { '键': '值' }\n")
        assert "{ '键': t('值') }" in result.code

    def test_import_source_is_kept(self):
        """Import sources are never rewritten."""
        source = "import a from './中文'\n"
        assert rewrite(source).code == source

    def test_ignore_methods(self):
        """Arguments of ignored methods are left alone, at any depth."""
        source = "console.log('调试', fmt('信息'))\nconst a = '你好'\n"
        result = rewrite(source, ignore_methods=["console.log"])

        assert "console.log('调试', fmt('信息'))" in result.code
        assert "t('你好')" in result.code

    def test_collision_suffix(self):
        """Different texts mapped to one key are suffixed in encounter order."""
        rule = ScriptRule(customize_key=lambda literal, path=None: "submit")
        collector = Collector()
        result = rewrite("const a = '提交'\nconst b = '确认'\nconst c = '提交'\n", rule=rule, collector=collector)

        assert result.code.count("t('submit')") == 2
        assert "t('submit_2')" in result.code
        assert collector.get_key_map() == {"submit": "提交", "submit_2": "确认"}
        assert len(collector.collisions) == 1

    def test_parse_error(self):
        """Malformed source raises ParseError."""
        with pytest.raises(ParseError):
            rewrite("const = '你好';\n")


class TestImportInjection:
    """Tests for import placement and singularity."""

    def test_single_import_for_many_literals(self):
        """Three literals still produce exactly one import line."""
        result = rewrite("const a = '一'\nconst b = '二'\nconst c = '三'\n")
        assert result.code.count(IMPORT) == 1

    def test_existing_import_is_not_duplicated(self):
        """An import already present is recognized."""
        source = "import { t } from 'i18n';\nconst a = '你好'\n"
        result = rewrite(source)

        assert result.code.count("from 'i18n'") == 1
        assert IMPORT not in result.code

    def test_after_directive_prologue(self):
        """The import goes after a 'use client' directive."""
        result = rewrite("'use client'\nconst a = '你好'\n")
        assert result.code == f"'use client'\n{IMPORT}\nconst a = t('你好')\n"

    def test_force_import(self):
        """force_import adds the import even with nothing extracted."""
        result = rewrite("const a = 1\n", rule=ScriptRule(force_import=True))

        assert result.code == f"{IMPORT}\nconst a = 1\n"
        assert result.changed
        assert result.occurrence_count == 0

    def test_function_snippets(self):
        """function_snippets follow the import."""
        rule = ScriptRule(
            import_declaration="import { useTranslation } from 'react-i18next'",
            function_snippets="const { t } = useTranslation()",
        )
        result = rewrite("const a = '你好'\n", ext="tsx", rule=rule)
        assert result.code.startswith(
            "import { useTranslation } from 'react-i18next'\nconst { t } = useTranslation()\n"
        )

    def test_no_import_declaration(self):
        """An empty import declaration injects nothing."""
        result = rewrite("const a = '你好'\n", rule=ScriptRule(import_declaration=""))
        assert result.code == "const a = t('你好')\n"


class TestIdempotence:
    """Running the rewriter on its own output changes nothing."""

    @pytest.mark.parametrize("ext,source", [
        ("js", "const a = '你好'\nconst s = `共${n}条`\n"),
        ("jsx", "const A = () => <div title=\"标题\">你好 {name}</div>\n"),
        ("ts", "const a: string = '你好'\n"),
    ])
    def test_second_run_is_noop(self, ext, source):
        """Second run: same code, no occurrences, import not repeated."""
        first = rewrite(source, ext=ext)
        second = rewrite(first.code, ext=ext)

        assert first.changed
        assert second.code == first.code
        assert not second.changed
        assert second.occurrence_count == 0


class TestJsx:
    """Tests for JSX and TSX sources."""

    def test_text_and_attribute(self):
        """JSX text and string attributes are wrapped in braces."""
        source = 'const App = () => <div title="标题">\n  你好 世界\n</div>\n'
        result = rewrite(source, ext="jsx")

        assert "<div title={t('标题')}>\n  {t('你好 世界')}\n</div>" in result.code
        kinds = [o.container_kind for o in result.occurrences]
        assert kinds == [ContainerKind.ATTRIBUTE, ContainerKind.JSX_TEXT]

    def test_multiline_text_key(self):
        """Line breaks inside JSX text collapse to a space in the key."""
        collector = Collector()
        rewrite("const A = () => <p>\n  第一行\n  第二行\n</p>\n", ext="jsx", collector=collector)
        assert list(collector.get_key_map()) == ["第一行 第二行"]

    def test_multiline_text_single_call(self):
        """A multi-line text run becomes one call."""
        result = rewrite("const A = () => <p>\n  第一行\n  第二行\n</p>\n", ext="jsx")
        assert result.code == "const A = () => <p>\n  {t('第一行 第二行')}\n</p>\n"

    def test_entity_in_text(self):
        """Character references join the surrounding text and are decoded."""
        collector = Collector()
        result = rewrite("const A = () => <p>你好&amp;再见</p>\n", ext="jsx", collector=collector)

        assert list(collector.get_key_map()) == ["你好&再见"]
        assert result.code.count("t(") == 1

    def test_expression_container(self):
        """A string inside an expression container is rewritten in place."""
        result = rewrite("const A = () => <div>{'你好'}</div>\n", ext="jsx")
        assert "<div>{t('你好')}</div>" in result.code

    def test_tsx(self):
        """TSX uses the TypeScript grammar and keeps literal types."""
        source = "type T = '类型'\nconst A = (p: { a: T }) => <span>文本</span>\n"
        result = rewrite(source, ext="tsx")

        assert "type T = '类型'" in result.code
        assert "<span>{t('文本')}</span>" in result.code


class TestTypeScript:
    """Tests for TypeScript-only positions."""

    def test_literal_types_are_kept(self):
        """String literal types cannot become calls."""
        result = rewrite("type A = '中文'\nconst b: string = '中文字'\n", ext="ts")

        assert "type A = '中文'" in result.code
        assert "const b: string = t('中文字')" in result.code

    def test_enum_values_are_kept(self):
        """Enum initializers must stay constant."""
        source = "enum Color { Red = '红色' }\n"
        assert rewrite(source, ext="ts").code == source


VUE_SOURCE = """<template>
  <div class="box" title="标题">
    <span>{{ name }}，欢迎</span>
    <button @click="notify('已保存')">保存</button>
  </div>
</template>

<script>
export default {
  data() {
    return { label: '标签' }
  }
}
</script>

<style>
.box::after { content: '样式'; }
</style>
"""


class TestVue:
    """Tests for Vue single-file components."""

    def test_template_and_script(self):
        """Template text, attributes, handlers and script literals are rewritten."""
        collector = Collector()
        result = rewrite(VUE_SOURCE, ext="vue", collector=collector)
        code = result.code

        assert ':title="$t(\'标题\')"' in code
        assert "{{ $t('{slot1}，欢迎', { slot1: name }) }}" in code
        assert "<button @click=\"notify($t('已保存'))\">{{ $t('保存') }}</button>" in code
        assert "return { label: this.$t('标签') }" in code
        assert ".box::after { content: '样式'; }" in code
        assert list(collector.get_key_map()) == ["标题", "{slot1}，欢迎", "已保存", "保存", "标签"]

    def test_boundaries_preserved(self):
        """Text between blocks is untouched."""
        result = rewrite(VUE_SOURCE, ext="vue")
        assert "</template>\n\n<script>\n" in result.code
        assert result.code.endswith("</style>\n")

    def test_tag_order(self):
        """tag_order controls processing order, not output order."""
        collector = Collector()
        rule = VueRule(tag_order=("script", "template", "style"))
        result = rewrite(VUE_SOURCE, ext="vue", rule=rule, collector=collector)

        assert list(collector.get_key_map())[0] == "标签"
        assert result.code.index("<template>") < result.code.index("<script>")

    def test_import_goes_into_script(self):
        """A configured import lands at the top of the first script block."""
        rule = VueRule(import_declaration="import i18n from '@/i18n'")
        result = rewrite(VUE_SOURCE, ext="vue", rule=rule)
        assert "<script>\nimport i18n from '@/i18n'\nexport default {" in result.code

    def test_script_lang_ts(self):
        """<script lang="ts"> is parsed as TypeScript."""
        source = '<script lang="ts">\nconst a: string = \'你好\'\n</script>\n'
        result = rewrite(source, ext="vue")
        assert "const a: string = this.$t('你好')" in result.code

    def test_v_for_is_not_touched(self):
        """v-for values are not expressions and are skipped."""
        source = "<template>\n  <li v-for=\"item in ['甲']\">{{ item }}</li>\n</template>\n"
        assert rewrite(source, ext="vue").code == source

    def test_no_match_is_byte_identical(self):
        """A component without Chinese comes back unchanged."""
        source = "<template>\n  <div :a=\"b\">{{ c }}</div>\n</template>\n<script>\nexport default {}\n</script>\n"
        result = rewrite(source, ext="vue")

        assert result.code is source
        assert not result.changed

    def test_second_run_is_noop(self):
        """Rewriting a rewritten component changes nothing."""
        first = rewrite(VUE_SOURCE, ext="vue")
        second = rewrite(first.code, ext="vue")

        assert second.code == first.code
        assert second.occurrence_count == 0

    def test_unclosed_block(self):
        """An unclosed top-level block is a parse error."""
        with pytest.raises(ParseError):
            rewrite("<template>\n  <div>你好</div>\n", ext="vue")

    def test_wrong_rule_kind(self):
        """A .vue file needs a VueRule."""
        with pytest.raises(ValueError):
            rewrite(VUE_SOURCE, ext="vue", rule=ScriptRule())
