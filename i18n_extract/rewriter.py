"""
Rewriter: replaces translatable literals with translation calls.

For one file the rewriter:
1. Parses the source with the grammar for its dialect
2. Walks the tree in document order; every literal the classifier
   accepts becomes a LiteralOccurrence, gets a key from the KeyAssigner
   and is registered in the Collector (which may suffix the key)
3. Records a byte-range edit replacing the literal with a call such as
   ``t('key')`` or ``t('key', { slot1: name })``
4. Inserts the rule's import declaration once, when something was
   rewritten (or the rule forces it) and the import is not already there
5. Prints the tree back; bytes outside the edits are untouched

Rewrite shapes:
    '中文'                 -> t('中文')
    `你好${name}`          -> t('你好{slot1}', { slot1: name })
    <p>中文</p>            -> <p>{t('中文')}</p>
    <a title="中文" />     -> <a title={t('中文')} />
    Vue: <p>中文</p>       -> <p>{{ $t('中文') }}</p>
    Vue: title="中文"      -> :title="$t('中文')"
    Vue script: '中文'     -> this.$t('中文')

A source with nothing to extract (and no forced import) comes back
byte-identical.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from tree_sitter import Node

from i18n_extract.classify import LiteralClassifier
from i18n_extract.collector import Collector
from i18n_extract.config import (
    DEFAULT_TARGET_PATTERN,
    Rule,
    ScriptRule,
    VueRule,
    default_rules,
)
from i18n_extract.models import ContainerKind, FileRewriteResult, LiteralOccurrence, Slot
from i18n_extract.naming.base import KeyAssigner
from i18n_extract.parsers.base import Dialect, SourceEdit, SourceTree, apply_edits, dialect_for_extension
from i18n_extract.parsers.script import parse_expression, parse_script, quote_js, unescape_js
from i18n_extract.parsers.vue import SfcBlock, join_sfc, parse_template, split_sfc

logger = logging.getLogger(__name__)

_MUSTACHE_RE = re.compile(r"\{\{([\s\S]*?)\}\}")
_NEWLINE_RUN_RE = re.compile(r"\s*\n\s*")

# Directive values that are not plain expressions
_NON_EXPRESSION_DIRECTIVES = ("v-for", "v-slot", "v-pre", "v-cloak", "v-once")

_JSX_TEXT_TYPES = ("jsx_text", "html_character_reference")


def build_call(callee: str, key: str, slots: Iterable[Slot] = (), quote: str = "'") -> str:
    """Render ``callee('key')`` or ``callee('key', { slot1: expr })``."""
    args = quote_js(key, quote)
    slots = list(slots)
    if slots:
        members = ", ".join(f"{slot.name}: {slot.source_expression}" for slot in slots)
        args += f", {{ {members} }}"
    return f"{callee}({args})"


def collapse_whitespace(text: str) -> str:
    """Join the lines of markup text with single spaces."""
    return _NEWLINE_RUN_RE.sub(" ", text)


def _normalize_code(code: str) -> str:
    return re.sub(r"[\s;]+", "", code).replace("'", '"')


def import_edit(parsed: SourceTree, declaration: str, snippets: str = "") -> Optional[SourceEdit]:
    """Edit inserting declaration (and snippets) at the top of a script.

    The import goes after any hashbang and directive prologue
    (``'use client'``). Returns None when the declaration is already
    present.
    """
    if not declaration.strip():
        return None
    if _normalize_code(declaration) in _normalize_code(parsed.source.decode("utf-8")):
        return None

    offset = 0
    for child in parsed.root.named_children:
        if child.type == "hashbang_directive":
            offset = child.end_byte
        elif (
            child.type == "expression_statement"
            and child.named_child_count == 1
            and child.named_children[0].type == "string"
        ):
            offset = child.end_byte
        elif child.type != "comment":
            break

    lines = [declaration.strip()]
    if snippets.strip():
        lines.append(snippets.strip())
    block = "\n".join(lines)

    if offset:
        return SourceEdit(offset, offset, "\n" + block)
    # Keep the import on its own line inside a Vue <script> block
    if parsed.source.startswith(b"\r\n"):
        offset = 2
    elif parsed.source.startswith(b"\n"):
        offset = 1
    return SourceEdit(offset, offset, block + "\n")


@dataclass
class _FileState:
    file_path: str
    occurrences: list[LiteralOccurrence] = field(default_factory=list)


class _ScriptWalker:
    """Collects edits for every translatable literal under a node.

    Nodes are visited in document order with an explicit stack, so very
    deep expression trees do not hit the recursion limit.
    """

    def __init__(
        self,
        register: Callable[[str, ContainerKind, list[Slot]], str],
        source: bytes,
        rule: ScriptRule,
        classifier: LiteralClassifier,
        default_kind: ContainerKind = ContainerKind.CALL_ARGUMENT,
        quote: str = "'",
    ):
        self.register = register
        self.source = source
        self.rule = rule
        self.classifier = classifier
        self.default_kind = default_kind
        self.quote = quote
        self._handlers = {
            "string": self._string,
            "template_string": self._template_string,
            "jsx_text": self._jsx_text,
            "html_character_reference": self._jsx_text,
        }

    def _slice(self, start: int, end: int) -> str:
        return self.source[start:end].decode("utf-8")

    def walk(self, node: Node) -> list[SourceEdit]:
        edits: list[SourceEdit] = []
        stack = [node]
        while stack:
            current = stack.pop()
            handler = self._handlers.get(current.type)
            if handler is not None and handler(current, edits):
                continue
            stack.extend(reversed(current.children))
        return edits

    def render(self, start: int, end: int, nodes: Iterable[Node]) -> str:
        """Source of bytes [start, end) with the literals of nodes rewritten."""
        edits = []
        for node in nodes:
            edits.extend(self.walk(node))
        shifted = [edit.shifted(start) for edit in edits]
        return apply_edits(self.source[start:end], shifted).decode("utf-8")

    def _call(self, key: str, slots: list[Slot]) -> str:
        return build_call(self.rule.callee, key, slots, self.quote)

    def _string(self, node: Node, edits: list[SourceEdit]) -> bool:
        raw = self._slice(node.start_byte, node.end_byte)
        if len(raw) < 2:
            return True
        in_jsx_attribute = node.parent is not None and node.parent.type == "jsx_attribute"
        # JSX attribute strings are HTML-like: backslashes are literal
        text = raw[1:-1] if in_jsx_attribute else unescape_js(raw[1:-1])
        if not self.classifier.is_translatable(node, text):
            return True

        kind = ContainerKind.ATTRIBUTE if in_jsx_attribute else self.default_kind
        key = self.register(text, kind, [])
        call = self._call(key, [])
        if in_jsx_attribute:
            call = "{" + call + "}"
        edits.append(SourceEdit(node.start_byte, node.end_byte, call))
        return True

    def _template_string(self, node: Node, edits: list[SourceEdit]) -> bool:
        substitutions = [c for c in node.children if c.type == "template_substitution"]
        statics = []
        pos = node.start_byte + 1
        for sub in substitutions:
            statics.append(unescape_js(self._slice(pos, sub.start_byte)))
            pos = sub.end_byte
        statics.append(unescape_js(self._slice(pos, node.end_byte - 1)))

        if not self.classifier.is_translatable(node, "".join(statics)):
            # Substitutions may still hold literals of their own
            return False

        placeholders = [self.rule.custom_slot(i) for i in range(1, len(substitutions) + 1)]
        parts = [statics[0]]
        for placeholder, static in zip(placeholders, statics[1:]):
            parts.append(placeholder)
            parts.append(static)
        raw_text = "".join(parts)

        # Slots are listed left to right; their own literals are rewritten too
        slots = [
            Slot(name=f"slot{index}", placeholder=placeholder, source_expression="")
            for index, placeholder in enumerate(placeholders, 1)
        ]
        key = self.register(raw_text, self.default_kind, slots)
        for index, sub in enumerate(substitutions):
            expression = self.render(sub.start_byte + 2, sub.end_byte - 1, sub.named_children).strip()
            slots[index] = Slot(slots[index].name, slots[index].placeholder, expression)

        edits.append(SourceEdit(node.start_byte, node.end_byte, self._call(key, slots)))
        return True

    def _jsx_text(self, node: Node, edits: list[SourceEdit]) -> bool:
        # Lines of one text run may be separate nodes; the first one handles the run
        previous = node.prev_sibling
        if previous is not None and previous.type in _JSX_TEXT_TYPES:
            return True
        end = node
        while end.next_sibling is not None and end.next_sibling.type in _JSX_TEXT_TYPES:
            end = end.next_sibling

        raw = self._slice(node.start_byte, end.end_byte)
        stripped = raw.strip()
        if not stripped:
            return True
        text = collapse_whitespace(html.unescape(stripped))
        if not self.classifier.is_translatable(node, text):
            return True

        lead = len(raw[:len(raw) - len(raw.lstrip())].encode("utf-8"))
        trail = len(raw[len(raw.rstrip()):].encode("utf-8"))
        key = self.register(text, ContainerKind.JSX_TEXT, [])
        edits.append(SourceEdit(node.start_byte + lead, end.end_byte - trail, "{" + self._call(key, []) + "}"))
        return True


class _TemplateWalker:
    """Collects edits for a Vue <template> parsed with the HTML grammar."""

    def __init__(
        self,
        register: Callable[[str, ContainerKind, list[Slot]], str],
        source: bytes,
        rule: ScriptRule,
        classifier: LiteralClassifier,
    ):
        self.register = register
        self.source = source
        self.rule = rule
        self.classifier = classifier

    def _slice(self, start: int, end: int) -> str:
        return self.source[start:end].decode("utf-8")

    def walk(self, root: Node) -> list[SourceEdit]:
        edits: list[SourceEdit] = []
        self._visit(root, edits)
        return edits

    def _visit(self, parent: Node, edits: list[SourceEdit]) -> None:
        run: list[Node] = []
        for child in parent.children:
            if child.type in ("text", "entity"):
                run.append(child)
                continue
            if run:
                self._text_run(run, edits)
                run = []
            if child.type in ("start_tag", "self_closing_tag"):
                self._attributes(child, edits)
            elif child.type == "element":
                if self._has_v_pre(child):
                    continue
                self._visit(child, edits)
        if run:
            self._text_run(run, edits)

    def _has_v_pre(self, element: Node) -> bool:
        tag = element.children[0] if element.children else None
        if tag is None or tag.type not in ("start_tag", "self_closing_tag"):
            return False
        for attr in tag.children:
            if attr.type != "attribute" or not attr.children:
                continue
            name = attr.children[0]
            if self._slice(name.start_byte, name.end_byte) == "v-pre":
                return True
        return False

    def rewrite_expression(self, code: str, kind: ContainerKind, quote: str = "'") -> str:
        """Rewrite the literals inside an embedded JavaScript expression.

        Code that does not parse is returned unchanged.
        """
        if not self.classifier.contains_target(code):
            return code
        parsed = parse_expression(code)
        if parsed is None:
            logger.debug("Leaving unparsable template expression unchanged: %r", code)
            return code
        tree, offset = parsed
        walker = _ScriptWalker(self.register, tree.source, self.rule, self.classifier, kind, quote)
        edits = walker.walk(tree.root)
        if not edits:
            return code
        text = apply_edits(tree.source, edits).decode("utf-8")
        return text[1:-2] if offset else text

    def _text_run(self, run: list[Node], edits: list[SourceEdit]) -> None:
        start, end = run[0].start_byte, run[-1].end_byte
        raw = self._slice(start, end)
        if not raw.strip():
            return

        def byte_at(index: int) -> int:
            return start + len(raw[:index].encode("utf-8"))

        mustaches = list(_MUSTACHE_RE.finditer(raw))
        statics = []
        pos = 0
        for match in mustaches:
            statics.append(raw[pos:match.start()])
            pos = match.end()
        statics.append(raw[pos:])

        if not self.classifier.contains_target("".join(statics)):
            # Only the interpolated expressions can hold literals
            for match in mustaches:
                body = match.group(1)
                new = self.rewrite_expression(body.strip(), ContainerKind.VUE_TEMPLATE_TEXT)
                if new != body.strip():
                    lead = len(body) - len(body.lstrip())
                    body_start = match.start(1) + lead
                    edits.append(SourceEdit(byte_at(body_start), byte_at(body_start + len(body.strip())), new))
            return

        statics[0] = statics[0].lstrip()
        statics[-1] = statics[-1].rstrip()
        slots = [
            Slot(name=f"slot{i}", placeholder=self.rule.custom_slot(i), source_expression="")
            for i in range(1, len(mustaches) + 1)
        ]
        parts = [statics[0]]
        for slot, static in zip(slots, statics[1:]):
            parts.append(slot.placeholder)
            parts.append(static)
        raw_text = collapse_whitespace("".join(parts))

        key = self.register(raw_text, ContainerKind.VUE_TEMPLATE_TEXT, slots)
        for index, match in enumerate(mustaches):
            expression = self.rewrite_expression(match.group(1).strip(), ContainerKind.VUE_TEMPLATE_TEXT)
            slots[index] = Slot(slots[index].name, slots[index].placeholder, expression)

        text_start = len(raw) - len(raw.lstrip())
        text_end = len(raw.rstrip())
        call = build_call(self.rule.callee, key, slots)
        edits.append(SourceEdit(byte_at(text_start), byte_at(text_end), f"{{{{ {call} }}}}"))

    def _attributes(self, tag: Node, edits: list[SourceEdit]) -> None:
        for attr in tag.children:
            if attr.type != "attribute":
                continue
            name_node = next((c for c in attr.children if c.type == "attribute_name"), None)
            value_node = next(
                (c for c in attr.children if c.type in ("quoted_attribute_value", "attribute_value")),
                None,
            )
            if name_node is None or value_node is None:
                continue

            name = self._slice(name_node.start_byte, name_node.end_byte)
            if value_node.type == "quoted_attribute_value":
                outer = self._slice(value_node.start_byte, value_node.start_byte + 1)
                value_start, value_end = value_node.start_byte + 1, value_node.end_byte - 1
            else:
                outer = ""
                value_start, value_end = value_node.start_byte, value_node.end_byte
            value = self._slice(value_start, value_end)

            if name.startswith((":", "@", "#", "v-")):
                if name.startswith("#") or name.split(":")[0].split(".")[0] in _NON_EXPRESSION_DIRECTIVES:
                    continue
                inner_quote = '"' if outer == "'" else "'"
                new = self.rewrite_expression(value, ContainerKind.VUE_TEMPLATE_ATTRIBUTE, inner_quote)
                if new == value:
                    continue
                if outer:
                    edits.append(SourceEdit(value_start, value_end, new))
                else:
                    edits.append(SourceEdit(value_start, value_end, f'"{new}"'))
            elif self.classifier.contains_target(value):
                key = self.register(value, ContainerKind.VUE_TEMPLATE_ATTRIBUTE, [])
                call = build_call(self.rule.callee, key).replace('"', "&quot;")
                edits.append(SourceEdit(attr.start_byte, attr.end_byte, f':{name}="{call}"'))


class Rewriter:
    """Rewrites one file at a time against a shared Collector.

    Args:
        collector: Run-wide key map; the final authority on keys
        assigner: Key assigner (identity keys when omitted)
        ignore_methods: Callee texts whose arguments are never extracted
        target_pattern: Regex matching one target-script character

    Usage:
        rewriter = Rewriter(Collector())
        result = rewriter.rewrite("const a = '你好'", "js", ScriptRule())
        # result.code: import { t } from "i18n" + newline + const a = t('你好')
    """

    def __init__(
        self,
        collector: Collector,
        assigner: Optional[KeyAssigner] = None,
        ignore_methods: Iterable[str] = (),
        target_pattern: str = DEFAULT_TARGET_PATTERN,
    ):
        self.collector = collector
        self.assigner = assigner or KeyAssigner()
        self.ignore_methods = list(ignore_methods)
        self.target_pattern = target_pattern

    def _classifier(self, rule: Rule) -> LiteralClassifier:
        return LiteralClassifier(rule.translation_callees(), self.ignore_methods, self.target_pattern)

    def _registrar(self, state: _FileState, rule: Rule) -> Callable[[str, ContainerKind, list[Slot]], str]:
        def register(raw_text: str, kind: ContainerKind, slots: list[Slot]) -> str:
            key = self.assigner.assign(raw_text, state.file_path, rule.customize_key)
            key = self.collector.add_occurrence(key, raw_text)
            state.occurrences.append(LiteralOccurrence(raw_text, state.file_path, kind, slots))
            return key
        return register

    def rewrite(
        self,
        source: str,
        extension: str,
        rule: Optional[Rule] = None,
        file_path: str = "",
    ) -> FileRewriteResult:
        """Rewrite one file.

        Args:
            source: File contents
            extension: File extension selecting the dialect (e.g. "tsx")
            rule: Rule for this extension (the default rule when omitted)
            file_path: Path used for key naming and error messages

        Returns:
            FileRewriteResult with the new code

        Raises:
            ParseError: If the source does not parse
        """
        if not source.strip():
            return FileRewriteResult(code=source)

        ext = extension.lower().lstrip(".")
        dialect = dialect_for_extension(ext)
        if rule is None:
            rule = default_rules()[ext]

        state = _FileState(file_path)
        if dialect is Dialect.VUE:
            if not isinstance(rule, VueRule):
                raise ValueError(f"A .{ext} file needs a VueRule, got {type(rule).__name__}")
            code = self._rewrite_vue(source, rule, state)
        else:
            if not isinstance(rule, ScriptRule):
                raise ValueError(f"A .{ext} file needs a ScriptRule, got {type(rule).__name__}")
            code = self._rewrite_script(source, dialect, rule, state)

        changed = code != source
        return FileRewriteResult(
            code=code if changed else source,
            occurrence_count=len(state.occurrences),
            changed=changed,
            occurrences=state.occurrences,
        )

    def _rewrite_script(self, source: str, dialect: Dialect, rule: ScriptRule, state: _FileState) -> str:
        parsed = parse_script(source, dialect, state.file_path)
        walker = _ScriptWalker(self._registrar(state, rule), parsed.source, rule, self._classifier(rule))
        parsed.edits.extend(walker.walk(parsed.root))

        if state.occurrences or rule.force_import:
            edit = import_edit(parsed, rule.import_declaration, rule.function_snippets)
            if edit is not None:
                parsed.edits.append(edit)
        return parsed.print()

    def _rewrite_vue(self, source: str, rule: VueRule, state: _FileState) -> str:
        doc = split_sfc(source, state.file_path)
        classifier = self._classifier(rule)
        register = self._registrar(state, rule)
        contents: dict[int, str] = {}
        scripts: dict[int, SourceTree] = {}

        for tag in rule.tag_order:
            if tag == "style":
                continue
            for index, block in enumerate(doc.blocks):
                if block.tag != tag or not block.content.strip():
                    continue
                if tag == "template":
                    rewritten = self._rewrite_template(block, rule, classifier, register, state)
                    if rewritten is not None:
                        contents[index] = rewritten
                else:
                    script_rule = rule.script_rule()
                    parsed = parse_script(block.content, block.dialect, state.file_path, block.line - 1)
                    walker = _ScriptWalker(register, parsed.source, script_rule, classifier)
                    parsed.edits.extend(walker.walk(parsed.root))
                    scripts[index] = parsed

        if (state.occurrences or rule.force_import) and rule.import_declaration:
            if scripts:
                edit = import_edit(scripts[min(scripts)], rule.import_declaration)
                if edit is not None:
                    scripts[min(scripts)].edits.append(edit)
            else:
                logger.debug("%s: no <script> block to receive the import", state.file_path)

        for index, parsed in scripts.items():
            contents[index] = parsed.print()
        return join_sfc(doc, contents)

    def _rewrite_template(
        self,
        block: SfcBlock,
        rule: VueRule,
        classifier: LiteralClassifier,
        register: Callable[[str, ContainerKind, list[Slot]], str],
        state: _FileState,
    ) -> Optional[str]:
        if block.lang and block.lang.lower() != "html":
            logger.debug("%s: skipping <template lang=%s>", state.file_path, block.lang)
            return None
        parsed = parse_template(block.content, state.file_path, block.line - 1)
        walker = _TemplateWalker(register, parsed.source, rule.template_rule(), classifier)
        parsed.edits.extend(walker.walk(parsed.root))
        return parsed.print()
