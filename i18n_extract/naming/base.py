"""
Key naming: turning a literal into a dictionary key.

This module defines:
- KeyNamer: abstract interface every naming backend implements
- IdentityKeyNamer: the key is the literal itself (the default)
- ContextKeyNamer: heuristic snake_case keys from the file path and a
  small phrase table; also serves as the provisional key source while
  a slower backend is still working
- MappingKeyNamer: replays a finished literal -> key mapping (pass 2)
- KeyAssigner: memoising front end the rewriter calls per literal
- create_namer(): factory selecting a backend by name

Namers come in two flavours. Synchronous namers answer name_key()
directly and are used in a single pass. Namers with
requires_second_pass=True only hand out provisional keys from name_key();
their real answer comes from one name_keys() call over the whole literal
set, after which the pipeline rewrites every file again.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Optional, Sequence

from i18n_extract.config import NamingConfig, identity_key
from i18n_extract.errors import NamingError

logger = logging.getLogger(__name__)


# ============================================================================
# Key helpers
# ============================================================================

def to_snake_case(text: str) -> str:
    """ASCII snake_case approximation of text (may be empty for CJK)."""
    ascii_text = unicodedata.normalize("NFKD", text)
    ascii_text = "".join(c for c in ascii_text if not unicodedata.combining(c))
    ascii_text = re.sub(r"[^a-zA-Z0-9]+", " ", ascii_text).strip()
    if not ascii_text:
        return ""
    return "_".join(part.lower() for part in ascii_text.split())


def camel_to_snake(segment: str) -> str:
    """AccountManagement -> account_management"""
    snake = re.sub(r"([A-Z])", r"_\1", segment).lower().lstrip("_")
    snake = re.sub(r"[^a-z0-9_]", "_", snake)
    return re.sub(r"_+", "_", snake).strip("_")


def fallback_key(literal: str, index: int) -> str:
    """Deterministic key used when a backend could not name a literal."""
    return to_snake_case(literal) or f"key_{index}"


def ensure_unique(
    mapping: dict[str, str],
    reserved: Iterable[str] = (),
) -> dict[str, str]:
    """Make every key in a literal -> key mapping unique.

    Keys are processed in mapping order; a key already used (or
    reserved) gets the first free numeric suffix starting at _2.
    """
    used = set(reserved)
    result: dict[str, str] = {}
    for literal, key in mapping.items():
        candidate = key
        n = 2
        while candidate in used:
            candidate = f"{key}_{n}"
            n += 1
        used.add(candidate)
        result[literal] = candidate
    return result


def extract_module_context(file_path: Optional[str]) -> str:
    """Derive a module name from a file path.

    The first directory under ``pages/`` wins; otherwise the first
    segment mentioning Management, Page or Settings.

    Example:
        >>> extract_module_context("src/pages/AccountManagement/index.tsx")
        'account_management'
    """
    if not file_path:
        return ""
    segments = file_path.replace("\\", "/").split("/")

    module = ""
    if "pages" in segments:
        idx = segments.index("pages")
        if idx + 1 < len(segments):
            module = segments[idx + 1]
    if not module:
        module = next((s for s in segments if re.search(r"Management|Page|Settings", s)), "")

    module = re.sub(r"\.(tsx|ts|jsx|js|vue|mjs|cjs)$", "", module, flags=re.IGNORECASE)
    return camel_to_snake(module)


# Common UI phrases, longest match wins
PHRASE_TABLE = {
    "加载中": "loading",
    "确认": "confirm",
    "取消": "cancel",
    "保存": "save",
    "删除": "delete",
    "编辑": "edit",
    "添加": "add",
    "创建": "create",
    "更新": "update",
    "成功": "success",
    "失败": "failed",
    "错误": "error",
    "警告": "warning",
    "提示": "tip",
    "提交": "submit",
    "设置": "setting",
    "管理": "management",
    "账户": "account",
    "账号": "account",
    "项目": "project",
    "授权": "authorization",
    "选择": "select",
    "请选择": "select",
    "请输入": "enter",
    "主体": "entity",
    "客户": "customer",
    "客户主体": "entity",
    "搜索": "search",
    "查找": "search",
    "筛选": "filter",
    "关联": "associate",
    "移除": "remove",
    "禁用": "disable",
    "启用": "enable",
    "刷新": "refresh",
    "详情": "detail",
    "列表": "list",
}


# ============================================================================
# Namer interface
# ============================================================================

class KeyNamer(ABC):
    """Abstract base class for key naming backends.

    Implementations must provide:
    - name: a short backend identifier
    - name_key(): a key for one literal found in one file

    name_keys() names a whole, deduplicated literal set at once. The
    default implementation calls name_key() per literal; literals that
    raise NamingError are left out of the returned mapping so the caller
    can apply its own fallback and report them.
    """

    # True when name_key() only returns provisional keys
    requires_second_pass: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (e.g. 'identity', 'context', 'openai')."""
        pass

    @abstractmethod
    def name_key(self, literal: str, file_path: str = "") -> str:
        """Return a key for literal found in file_path."""
        pass

    def name_keys(
        self,
        literals: Sequence[str],
        reserved: Iterable[str] = (),
    ) -> dict[str, str]:
        """Name every distinct literal, never reusing a reserved key."""
        mapping: dict[str, str] = {}
        for literal in dict.fromkeys(literals):
            try:
                mapping[literal] = self.name_key(literal)
            except NamingError as e:
                logger.warning("%s", e)
        return ensure_unique(mapping, reserved)

    def close(self) -> None:
        """Release any resources held by the backend."""


class IdentityKeyNamer(KeyNamer):
    """The literal is its own key."""

    @property
    def name(self) -> str:
        return "identity"

    def name_key(self, literal: str, file_path: str = "") -> str:
        return literal

    def name_keys(self, literals, reserved=()):
        return {literal: literal for literal in dict.fromkeys(literals)}


class ContextKeyNamer(KeyNamer):
    """Heuristic {module}_{phrase} keys without any network call.

    The module comes from the file path (see extract_module_context) and
    the phrase from the longest PHRASE_TABLE entry found in the literal.
    Literals matching no phrase become ``{module}_text`` or
    ``generated_text``; the collector suffixes repeats.
    """

    def __init__(self, phrases: Optional[dict[str, str]] = None):
        table = phrases if phrases is not None else PHRASE_TABLE
        self._phrases = sorted(table.items(), key=lambda item: len(item[0]), reverse=True)

    @property
    def name(self) -> str:
        return "context"

    def name_key(self, literal: str, file_path: str = "") -> str:
        context = extract_module_context(file_path)
        parts = [context] if context else []

        remaining = re.sub(r"[^一-龥a-zA-Z0-9\s]", "", literal).strip()
        for phrase, english in self._phrases:
            if phrase in remaining:
                parts.append(english)
                break

        if not parts:
            parts = ["generated", "text"]
        elif len(parts) == 1 and context:
            parts.append("text")

        key = "_".join(p for p in parts if p).lower()
        key = re.sub(r"[^a-z0-9_]", "", key)
        key = re.sub(r"_+", "_", key).strip("_")
        if not re.match(r"^[a-z]", key):
            key = f"key_{key}"
        return key


class MappingKeyNamer(KeyNamer):
    """Replays a finished literal -> key mapping.

    Used by the second rewrite pass; a literal missing from the mapping
    is a programming error because pass 2 sees the same literals as
    pass 1.
    """

    def __init__(self, mapping: dict[str, str]):
        self.mapping = dict(mapping)

    @property
    def name(self) -> str:
        return "mapping"

    def name_key(self, literal: str, file_path: str = "") -> str:
        try:
            return self.mapping[literal]
        except KeyError:
            raise NamingError(literal, "literal was not seen during the naming pass")


# ============================================================================
# Key assigner
# ============================================================================

KeyStrategy = Callable[..., str]


class KeyAssigner:
    """Front end the rewriter asks for one key per literal.

    With a namer configured, keys come from the namer; otherwise from the
    rule's customize_key strategy. Results are memoised per
    (literal, file_path) so repeated occurrences within a naming pass
    always get the same key.
    """

    def __init__(self, namer: Optional[KeyNamer] = None):
        self.namer = namer
        self._memo: dict[tuple[str, str], str] = {}

    def assign(
        self,
        literal: str,
        file_path: str,
        customize_key: KeyStrategy = identity_key,
    ) -> str:
        memo_key = (literal, file_path)
        if memo_key in self._memo:
            return self._memo[memo_key]

        if self.namer is not None:
            key = self.namer.name_key(literal, file_path)
        else:
            key = customize_key(literal, file_path)

        if not key:
            raise NamingError(literal, "key strategy returned an empty key")
        self._memo[memo_key] = key
        return key

    def reset(self) -> None:
        self._memo.clear()


# ============================================================================
# Factory
# ============================================================================

def create_namer(config: NamingConfig) -> Optional[KeyNamer]:
    """Factory function to create a key namer from configuration.

    Supported backends and aliases:
        - none: no namer, the rule's customize_key decides (returns None)
        - identity: literal is the key
        - context, heuristic: path + phrase table heuristics
        - openai, gpt: OpenAI chat models (batched naming)
        - deepseek, ds: DeepSeek chat models (batched naming)

    With ``config.concurrent`` set, LLM backends name literals one by
    one in a thread pool (ConcurrentKeyNamer) instead of in one batch.
    """
    backend = (config.backend or "none").lower().replace("_", "-")

    if backend in ("none", ""):
        return None

    elif backend == "identity":
        return IdentityKeyNamer()

    elif backend in ("context", "heuristic"):
        return ContextKeyNamer()

    elif backend in ("openai", "gpt", "deepseek", "ds"):
        from i18n_extract.naming.llm import (
            LLMConfig,
            OpenAIKeyNamer,
            DeepSeekKeyNamer,
            OpenAIKeyGenerator,
        )
        is_deepseek = backend in ("deepseek", "ds")
        default_model = "deepseek-chat" if is_deepseek else "gpt-4o-mini"
        llm_config = LLMConfig(
            model=config.model or default_model,
            api_key=config.api_key,
            base_url=config.base_url or (DeepSeekKeyNamer.DEFAULT_BASE_URL if is_deepseek else None),
        )
        service = "deepseek" if is_deepseek else "openai"

        if config.concurrent:
            from i18n_extract.naming.concurrent import ConcurrentKeyNamer
            generator = OpenAIKeyGenerator(config=llm_config, service=service)
            return ConcurrentKeyNamer(generator, max_workers=config.max_workers)

        if is_deepseek:
            return DeepSeekKeyNamer(config=llm_config)
        return OpenAIKeyNamer(config=llm_config)

    else:
        available = ["none", "identity", "context", "openai", "deepseek"]
        raise ValueError(
            f"Unknown naming backend: {config.backend}. "
            f"Available backends: {', '.join(available)}"
        )
