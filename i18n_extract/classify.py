"""
Literal classification: is this node in scope for extraction?

The policy is deliberately small:
1. The text must contain at least one target-script character
2. It must not already be an argument of the translation function
   (so extracted text is never extracted twice)
3. It must not sit inside the arguments of an ignored method
   (e.g. console.log), so call sites like logging can opt out
4. It must not occupy a position where a call expression is illegal
   or changes meaning (object keys, import sources, TS literal types,
   require(...) and dynamic import(...) arguments)
5. Its decoded text must be encodable, so a lone surrogate escape
   leaves the literal as written

The classifier never mutates anything; it only inspects tree-sitter
nodes and their ancestors.
"""

from __future__ import annotations

import re
from typing import Iterable

from tree_sitter import Node

from i18n_extract.config import DEFAULT_TARGET_PATTERN

# (parent type, field name) pairs whose child must stay a plain literal
_LITERAL_ONLY_FIELDS = {
    ("pair", "key"),
    ("pair_pattern", "key"),
    ("method_definition", "name"),
    ("field_definition", "property"),
    ("public_field_definition", "name"),
    ("property_signature", "name"),
    ("method_signature", "name"),
    ("enum_assignment", "name"),
    ("enum_assignment", "value"),
    ("subscript_expression", "index"),
    ("import_statement", "source"),
    ("export_statement", "source"),
    ("call_expression", "arguments"),  # tagged template: tag`...`
}

# Callees whose arguments are module specifiers
_MODULE_LOADERS = {"require", "require.resolve", "import"}

_LONE_SURROGATE_RE = re.compile(r"[\ud800-\udfff]")

# Parent types whose string children must stay plain literals
_LITERAL_ONLY_PARENTS = {
    "literal_type",
    "enum_body",
    "import_require_clause",
    "module",
    "external_module_reference",
}


def is_field(parent: Node, field_name: str, node: Node) -> bool:
    """Whether node is the child stored under field_name of parent."""
    child = parent.child_by_field_name(field_name)
    return (
        child is not None
        and child.start_byte == node.start_byte
        and child.end_byte == node.end_byte
    )


def node_text(node: Node) -> str:
    return node.text.decode("utf-8")


def callee_text(call: Node) -> str:
    """Callee of a call expression with whitespace and ?. removed.

    ``this . $t`` and ``i18n?.t`` normalize to ``this.$t`` and ``i18n.t``.
    """
    func = call.child_by_field_name("function")
    if func is None:
        return ""
    return re.sub(r"\s+", "", node_text(func)).replace("?.", ".")


class LiteralClassifier:
    """Decides whether a literal node should be extracted.

    Args:
        translation_callees: Callee texts of the translation function
            (e.g. {"t", "i18n.t"})
        ignore_methods: Callee texts whose arguments are never extracted
        target_pattern: Regex matching one target-script character
    """

    def __init__(
        self,
        translation_callees: Iterable[str],
        ignore_methods: Iterable[str] = (),
        target_pattern: str = DEFAULT_TARGET_PATTERN,
    ):
        self.translation_callees = frozenset(translation_callees)
        self.ignore_methods = frozenset(m.replace(" ", "") for m in ignore_methods)
        self._pattern = re.compile(target_pattern)

    def contains_target(self, text: str) -> bool:
        return bool(self._pattern.search(text))

    def is_translation_call(self, call: Node) -> bool:
        return callee_text(call) in self.translation_callees

    def is_ignored_call(self, call: Node) -> bool:
        return callee_text(call) in self.ignore_methods

    def in_literal_only_position(self, node: Node) -> bool:
        parent = node.parent
        if parent is None:
            return False
        if parent.type in _LITERAL_ONLY_PARENTS:
            return True
        return any(
            parent.type == parent_type and is_field(parent, field_name, node)
            for parent_type, field_name in _LITERAL_ONLY_FIELDS
        )

    def in_excluded_call(self, node: Node) -> bool:
        """Whether node is inside the arguments of a translation, ignored or module loading call."""
        current = node
        parent = node.parent
        while parent is not None:
            if parent.type == "call_expression" and is_field(parent, "arguments", current):
                if (
                    self.is_translation_call(parent)
                    or self.is_ignored_call(parent)
                    or callee_text(parent) in _MODULE_LOADERS
                ):
                    return True
            current = parent
            parent = parent.parent
        return False

    def is_translatable(self, node: Node, text: str) -> bool:
        """Whether the literal node carrying ``text`` should be extracted.

        Args:
            node: A string, template string, JSX text or attribute node
            text: The literal's static text (slots excluded)
        """
        if not self.contains_target(text):
            return False
        if _LONE_SURROGATE_RE.search(text):
            return False
        if self.in_literal_only_position(node):
            return False
        return not self.in_excluded_call(node)
