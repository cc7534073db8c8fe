"""
Shared parser plumbing: dialects, byte-range edits and the parsed-source wrapper.

Every grammar in this package is a tree-sitter grammar. Trees are never
mutated; a rewrite records SourceEdit replacements against the original
utf-8 bytes, and SourceTree.print() applies them. Bytes outside every
edit are copied through unchanged, which is what keeps files with
nothing to extract byte-identical.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from tree_sitter import Node, Tree

from i18n_extract.errors import ParseError


class Dialect(Enum):
    """Grammar used to parse a source region."""
    JAVASCRIPT = "javascript"  # also covers JSX
    TYPESCRIPT = "typescript"
    TSX = "tsx"
    VUE = "vue"
    HTML = "html"


EXTENSION_DIALECTS = {
    "js": Dialect.JAVASCRIPT,
    "mjs": Dialect.JAVASCRIPT,
    "cjs": Dialect.JAVASCRIPT,
    "jsx": Dialect.JAVASCRIPT,
    "ts": Dialect.TYPESCRIPT,
    "tsx": Dialect.TSX,
    "vue": Dialect.VUE,
}

# <script lang="..."> values
LANG_DIALECTS = {
    "js": Dialect.JAVASCRIPT,
    "javascript": Dialect.JAVASCRIPT,
    "jsx": Dialect.JAVASCRIPT,
    "ts": Dialect.TYPESCRIPT,
    "typescript": Dialect.TYPESCRIPT,
    "tsx": Dialect.TSX,
}


def dialect_for_extension(extension: str) -> Dialect:
    ext = extension.lower().lstrip(".")
    try:
        return EXTENSION_DIALECTS[ext]
    except KeyError:
        raise ValueError(f"Unsupported file extension: {extension}")


@dataclass(frozen=True)
class SourceEdit:
    """Replace bytes [start, end) with text (start == end inserts)."""
    start: int
    end: int
    text: str

    def shifted(self, offset: int) -> "SourceEdit":
        return SourceEdit(self.start - offset, self.end - offset, self.text)


def apply_edits(source: bytes, edits: Iterable[SourceEdit]) -> bytes:
    """Apply non-overlapping edits to source.

    Insertions at the same offset keep their given order.

    Raises:
        ValueError: If two replacements overlap
    """
    ordered = sorted(enumerate(edits), key=lambda item: (item[1].start, item[1].end, item[0]))
    out = []
    pos = 0
    for _, edit in ordered:
        if edit.start < pos:
            raise ValueError(f"Overlapping edits at byte {edit.start}")
        out.append(source[pos:edit.start])
        out.append(edit.text.encode("utf-8"))
        pos = edit.end
    out.append(source[pos:])
    return b"".join(out)


def find_error_node(node: Node) -> Optional[Node]:
    """First ERROR or MISSING node in document order."""
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = find_error_node(child)
            if found is not None:
                return found
    return None


@dataclass
class SourceTree:
    """A parsed region plus the edits recorded against it."""
    source: bytes
    tree: Tree
    dialect: Dialect
    edits: list[SourceEdit] = field(default_factory=list)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def has_error(self) -> bool:
        return self.tree.root_node.has_error

    def replace(self, start: int, end: int, text: str) -> None:
        self.edits.append(SourceEdit(start, end, text))

    def insert(self, offset: int, text: str) -> None:
        self.edits.append(SourceEdit(offset, offset, text))

    def print(self) -> str:
        """Source text with every recorded edit applied."""
        if not self.edits:
            return self.source.decode("utf-8")
        return apply_edits(self.source, self.edits).decode("utf-8")

    def raise_if_error(self, file_path: str = "", line_offset: int = 0) -> None:
        """Raise ParseError pointing at the first syntax error, if any."""
        if not self.has_error:
            return
        node = find_error_node(self.root) or self.root
        row, column = node.start_point
        what = f"missing {node.type}" if node.is_missing else "syntax error"
        raise ParseError(
            f"{what} ({self.dialect.value})",
            file_path=file_path,
            line=row + 1 + line_offset,
            column=column + 1,
        )
