"""
Core data model for i18n-extract.

The extraction engine passes a handful of small records between its
components:

- LiteralOccurrence: one located translatable unit (text plus slots)
- Slot: an interpolated sub-expression kept positionally in the literal
- FileRewriteResult: what the rewriter hands back for one file
- KeyCollision: recorded whenever two different texts wanted the same key

Occurrences are ephemeral: they are created while walking a syntax tree,
consumed by the key assigner, and only survive inside the Collector's
key map once the file has been rewritten.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ContainerKind(Enum):
    """Where a literal was found in the source."""
    CALL_ARGUMENT = "call-argument"
    JSX_TEXT = "jsx-text"
    ATTRIBUTE = "attribute"
    VUE_TEMPLATE_TEXT = "vue-template-text"
    VUE_TEMPLATE_ATTRIBUTE = "vue-template-attribute"


@dataclass(frozen=True)
class Slot:
    """An interpolated expression inside a literal.

    Attributes:
        name: Object key used in the slot argument (e.g. "slot1")
        placeholder: Text substituted into the literal (e.g. "{slot1}")
        source_expression: The expression source, already rewritten
    """
    name: str
    placeholder: str
    source_expression: str


@dataclass
class LiteralOccurrence:
    """A located translatable unit.

    raw_text has every slot already replaced by its placeholder, so two
    template literals that differ only in their interpolated expressions
    share the same raw_text (and therefore the same key).
    """
    raw_text: str
    file_path: str
    container_kind: ContainerKind
    slots: list[Slot] = field(default_factory=list)

    @property
    def has_slots(self) -> bool:
        return len(self.slots) > 0


@dataclass
class FileRewriteResult:
    """Result of rewriting a single file."""
    code: str
    occurrence_count: int = 0
    changed: bool = False
    occurrences: list[LiteralOccurrence] = field(default_factory=list)


@dataclass(frozen=True)
class KeyCollision:
    """Two distinct literals asked for the same key.

    The later literal is stored under resolved_key instead.
    """
    requested_key: str
    resolved_key: str
    existing_text: str
    new_text: str
