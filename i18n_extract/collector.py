"""
Collector: the run-wide key -> literal map.

The collector is the final authority on key uniqueness. A key assigner
may hand out any key it likes; when that key is already taken by a
different literal, the collector suffixes it (_2, _3, ...) in the order
literals are first encountered and records a KeyCollision event.

It also tracks the subset of keys contributed by the file currently
being rewritten, so a per-file customization hook can adjust only those
keys, and a count of additions, so the pipeline knows whether a file
changed at all.

One Collector is created per pipeline run and passed explicitly to the
rewriter; reset() clears every bit of state for a second pass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from i18n_extract.models import KeyCollision

logger = logging.getLogger(__name__)


@dataclass
class Collector:
    """Stores the key map for a run plus per-file bookkeeping."""
    key_map: dict[str, str] = field(default_factory=dict)
    current_file_key_map: dict[str, str] = field(default_factory=dict)
    collisions: list[KeyCollision] = field(default_factory=list)
    count_of_additions: int = 0
    current_file: str = ""

    def add_occurrence(self, key: str, raw_text: str) -> str:
        """Register an occurrence and return the key it is stored under.

        Identical text under the same key collapses to one entry. A key
        already holding different text is suffixed with the first free
        _N (N >= 2), reusing an existing suffix that already holds this
        exact text.
        """
        if not key:
            raise ValueError(f"Empty key for literal {raw_text!r}")

        resolved = key
        n = 2
        while resolved in self.key_map and self.key_map[resolved] != raw_text:
            resolved = f"{key}_{n}"
            n += 1

        if resolved != key and resolved not in self.key_map:
            collision = KeyCollision(
                requested_key=key,
                resolved_key=resolved,
                existing_text=self.key_map[key],
                new_text=raw_text,
            )
            self.collisions.append(collision)
            logger.debug("Key collision: %r -> %r for %r", key, resolved, raw_text)

        self.key_map[resolved] = raw_text
        self.current_file_key_map[resolved] = raw_text
        self.count_of_additions += 1
        return resolved

    def get_key_map(self) -> dict[str, str]:
        return self.key_map

    def set_key_map(self, key_map: dict[str, str]) -> None:
        self.key_map = dict(key_map)

    def get_current_file_key_map(self) -> dict[str, str]:
        return self.current_file_key_map

    def reset_current_file_scope(self, file_path: str = "") -> None:
        """Start tracking a new file's contributions."""
        self.current_file = file_path
        self.current_file_key_map = {}

    def get_count_of_additions(self) -> int:
        return self.count_of_additions

    def reset_count_of_additions(self) -> None:
        self.count_of_additions = 0

    def reset(self) -> None:
        """Clear all state (used between pass 1 and pass 2)."""
        self.key_map = {}
        self.current_file_key_map = {}
        self.collisions = []
        self.count_of_additions = 0
        self.current_file = ""

    def __len__(self) -> int:
        return len(self.key_map)

    def __contains__(self, key: str) -> bool:
        return key in self.key_map
