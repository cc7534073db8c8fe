"""
Re-keying an existing locale file.

optimize_keys() asks a naming backend for a better key for every text
in a locale and returns the re-keyed locale plus an old -> new key map.
Texts stored under several keys collapse to one new key. A text the
backend cannot name keeps its old key.

The old -> new map is saved next to the locale as
``<name>.key-mappings.json`` so call sites can be updated afterwards.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Union

from i18n_extract.errors import NamingError
from i18n_extract.locale import save_locale
from i18n_extract.naming.base import KeyNamer, ensure_unique
from i18n_extract.utils import atomic_write

logger = logging.getLogger(__name__)


@dataclass
class OptimizeResult:
    """Outcome of re-keying a locale."""
    locale: dict[str, str] = field(default_factory=dict)
    mappings: dict[str, str] = field(default_factory=dict)
    failures: list[str] = field(default_factory=list)

    @property
    def changed_keys(self) -> list[str]:
        return list(self.mappings)


def infer_path_from_key(key: str) -> str:
    """Guess a source path from a snake_case key, for module context.

    Example:
        >>> infer_path_from_key("account_management_delete_confirm")
        'pages/AccountManagement'
    """
    segments = [s for s in key.split("_") if s]
    if len(segments) < 3 or not key.isascii():
        return ""
    module = "".join(s.capitalize() for s in segments[:2])
    return f"pages/{module}"


def optimize_keys(
    key_map: dict[str, str],
    namer: KeyNamer,
    progress: Optional[Callable[[int, int], None]] = None,
) -> OptimizeResult:
    """Re-key a flat locale map with a naming backend.

    Args:
        key_map: Flat key -> text map
        namer: Naming backend
        progress: Called with (done, total) after each text

    Raises:
        NamingBatchFailure: If a batched backend fails as a whole
    """
    texts: dict[str, str] = {}  # text -> first old key
    for old_key, text in key_map.items():
        texts.setdefault(text, old_key)

    result = OptimizeResult()
    named: dict[str, str] = {}
    total = len(texts)

    if namer.requires_second_pass:
        for text, old_key in texts.items():
            namer.name_key(text, infer_path_from_key(old_key))
        named = namer.name_keys(list(texts))
        if progress:
            progress(total, total)
    else:
        for done, (text, old_key) in enumerate(texts.items(), 1):
            try:
                named[text] = namer.name_key(text, infer_path_from_key(old_key))
            except NamingError as e:
                logger.debug("%s", e)
            if progress:
                progress(done, total)

    chosen = {}
    for text, old_key in texts.items():
        if text in named:
            chosen[text] = named[text]
        else:
            result.failures.append(old_key)
            chosen[text] = old_key
    chosen = ensure_unique(chosen)

    for old_key, text in key_map.items():
        new_key = chosen[text]
        result.locale[new_key] = text
        if new_key != old_key:
            result.mappings[old_key] = new_key

    logger.info("%d of %d keys changed", len(result.mappings), len(key_map))
    return result


def mappings_path_for(locale_path: Union[str, Path]) -> Path:
    path = Path(locale_path)
    return path.with_name(f"{path.stem}.key-mappings.json")


def save_optimized(
    result: OptimizeResult,
    output_path: Union[str, Path],
    file_type: Optional[str] = None,
) -> tuple[Path, Optional[Path]]:
    """Write the re-keyed locale and, when keys changed, the key mappings.

    Returns:
        (locale path, mappings path or None)
    """
    locale_file = save_locale(result.locale, output_path, file_type)
    if not result.mappings:
        return locale_file, None
    mappings_file = mappings_path_for(locale_file)
    atomic_write(mappings_file, json.dumps(result.mappings, ensure_ascii=False, indent=2) + "\n")
    return locale_file, mappings_file
