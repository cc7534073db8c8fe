"""
Locale file reading and writing.

The key map is flat (``{"user.name": "用户名"}``); on disk it is nested
on dots (``{"user": {"name": "用户名"}}``). Two formats are supported:

- json: a plain JSON object
- js:   ``export default { ... }`` with a JSON object literal

Keys with an empty segment (``"a..b"``, ``"v1."``) are never split.
When one key is a dotted prefix of another (``"a"`` and ``"a.b"``) the
whole map is written flat, so flatten_key_map(nest_key_map(m)) == m
always holds.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional, Union

from i18n_extract.utils import atomic_write

logger = logging.getLogger(__name__)

LOCALE_FILE_TYPES = ("json", "js")

_JS_EXPORT_RE = re.compile(r"^\s*(?:export\s+default|module\.exports\s*=)\s*", re.MULTILINE)


def nest_key_map(key_map: dict[str, str]) -> dict[str, Any]:
    """Turn dotted keys into nested dicts.

    Example:
        >>> nest_key_map({"user.name": "用户名", "user.age": "年龄"})
        {'user': {'name': '用户名', 'age': '年龄'}}
    """
    nested: dict[str, Any] = {}
    for key, value in key_map.items():
        parts = key.split(".")
        if not all(parts):
            nested[key] = value
            continue

        node = nested
        for part in parts[:-1]:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                logger.debug("Key %r clashes with a shorter key; writing the locale flat", key)
                return dict(key_map)
            node = child
        if isinstance(node.get(parts[-1]), dict):
            logger.debug("Key %r clashes with a longer key; writing the locale flat", key)
            return dict(key_map)
        node[parts[-1]] = value
    return nested


def flatten_key_map(nested: dict[str, Any], prefix: str = "") -> dict[str, str]:
    """Reverse of nest_key_map: join nested keys with dots."""
    flat: dict[str, str] = {}
    for key, value in nested.items():
        full = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            flat.update(flatten_key_map(value, full))
        else:
            flat[full] = value if isinstance(value, str) else str(value)
    return flat


def locale_save_path(locale_path: Union[str, Path], file_type: str) -> Path:
    """locale_path with its extension replaced by the file type."""
    if file_type not in LOCALE_FILE_TYPES:
        raise ValueError(f"Unsupported locale file type: {file_type}")
    return Path(locale_path).with_suffix(f".{file_type}")


def load_locale(path: Union[str, Path]) -> dict[str, str]:
    """Read a locale file into a flat key map.

    A missing file yields an empty map.

    Raises:
        ValueError: If the file is not a JSON object (or a js export of one)
    """
    path = Path(path)
    if not path.exists():
        return {}

    text = path.read_text(encoding="utf-8")
    if path.suffix == ".js":
        text = _JS_EXPORT_RE.sub("", text, count=1).strip().rstrip(";")
    if not text.strip():
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid locale file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Locale file {path} must contain an object")
    return flatten_key_map(data)


def dump_locale(key_map: dict[str, str], file_type: str = "json") -> str:
    body = json.dumps(nest_key_map(key_map), ensure_ascii=False, indent=2)
    if file_type == "js":
        return f"export default {body}\n"
    return body + "\n"


def save_locale(
    key_map: dict[str, str],
    path: Union[str, Path],
    file_type: Optional[str] = None,
) -> Path:
    """Write a key map as a locale file.

    Args:
        key_map: Flat key map
        path: Target path; its extension is replaced by file_type
        file_type: 'json' or 'js' (taken from path when omitted)

    Returns:
        The path written
    """
    path = Path(path)
    file_type = file_type or path.suffix.lstrip(".") or "json"
    target = locale_save_path(path, file_type)
    atomic_write(target, dump_locale(key_map, file_type))
    logger.debug("Saved %d keys to %s", len(key_map), target)
    return target
