"""
LLM-based key naming backends.

This module provides:
- OpenAIKeyNamer: names the whole literal set in one chat request
- DeepSeekKeyNamer: the same against DeepSeek's OpenAI-compatible API
- OpenAIKeyGenerator: names one literal at a time as {module}_{description},
  meant to be driven by ConcurrentKeyNamer

The batched namers only produce provisional (heuristic) keys from
name_key(); the real keys arrive from name_keys() during the naming
pass, after which every file is rewritten with them.

A request that fails outright raises NamingBatchFailure: the pipeline
must not quietly fall back to heuristic keys for the whole dictionary.
Individual literals the model skipped or answered with an unusable key
are left out of the mapping and reported by the pipeline.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from i18n_extract.credentials import get_key
from i18n_extract.errors import NamingBatchFailure, NamingError
from i18n_extract.naming.base import (
    ContextKeyNamer,
    KeyNamer,
    ensure_unique,
    extract_module_context,
)

logger = logging.getLogger(__name__)

VALID_KEY_RE = re.compile(r"^[a-z][a-z0-9_]*[a-z0-9]$")

BATCH_SYSTEM_PROMPT = (
    "You generate concise, descriptive, unique snake_case keys in English "
    "from Chinese UI strings."
)

BATCH_RULES = """Rules:
- Output ONLY a JSON object mapping each original Chinese string to an English snake_case key.
- Keys must be short, semantic, and suitable for i18n dictionaries.
- Use lowercase letters, digits, and underscores only. Start with a letter if possible.
- Ensure uniqueness. If collisions occur, append a numeric suffix starting at 2.
- Never use a reserved key.
- Do not translate variable placeholders like {slot1}; reflect them in the key meaning (e.g., add "by_name" etc.)"""

SINGLE_SYSTEM_PROMPT = """You are an i18n key generator. Output ONE key in snake_case using ONLY lowercase English letters, numbers, and underscores.

FORMAT:
- {module}_{description}

RULES:
1. Use only [a-z0-9_]; no Chinese, spaces, or special characters
2. The module should be derived from the provided module context (if given); otherwise infer a concise module from the text
3. The description should capture the core meaning of the Chinese text using concise nouns/verbs; omit politeness like "please"
4. Avoid generic or UI-specific prefixes such as: column, status, action, field, validation, placeholder, drawer_title
5. Do not repeat words already present in the module within the description

Return ONLY the key."""


@dataclass
class LLMConfig:
    """Configuration for LLM naming backends."""
    model: str = "gpt-4o-mini"
    temperature: float = 0.0
    max_tokens: int = 4096
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout: float = 60.0


def normalize_key(key: str) -> str:
    """Lowercase snake_case with only [a-z0-9_]."""
    cleaned = key.strip().lower()
    cleaned = re.sub(r"[\s\-]+", "_", cleaned)
    cleaned = re.sub(r"[^a-z0-9_]", "_", cleaned)
    return re.sub(r"_+", "_", cleaned).strip("_")


def parse_json_object(content: str) -> Optional[dict]:
    """Parse a JSON object from a model reply, tolerating code fences."""
    text = content.strip()
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        match = re.search(r"\{[\s\S]*\}", text)
        if not match:
            return None
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
    return parsed if isinstance(parsed, dict) else None


class BaseLLMKeyNamer(KeyNamer, ABC):
    """Base class for OpenAI-compatible naming backends.

    Provides:
    - Lazy client construction
    - A single chat-completion helper
    - Heuristic provisional keys for pass 1
    """

    SERVICE = "openai"
    DEFAULT_BASE_URL: Optional[str] = None

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        api_key: Optional[str] = None,
        service: Optional[str] = None,
    ):
        self.config = config or LLMConfig()
        self.service = service or self.SERVICE
        self.api_key = api_key or self.config.api_key or get_key(self.service)
        self._client = None
        self._provisional = ContextKeyNamer()

    def _get_client(self):
        """Lazy initialization of the OpenAI client."""
        if self._client is None:
            try:
                from openai import OpenAI
            except ImportError:
                raise ImportError(
                    "OpenAI library required. Install with: pip install openai"
                )

            if not self.api_key:
                raise ValueError(
                    f"API key required for {self.service} key naming. "
                    f"Set {self.service.upper()}_API_KEY or run: i18n-extract keys set {self.service}"
                )

            kwargs = {"api_key": self.api_key, "timeout": self.config.timeout}
            base_url = self.config.base_url or self.DEFAULT_BASE_URL
            if base_url:
                kwargs["base_url"] = base_url
            self._client = OpenAI(**kwargs)

        return self._client

    def _chat(self, system_prompt: str, user_prompt: str) -> str:
        client = self._get_client()
        response = client.chat.completions.create(
            model=self.config.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )
        return response.choices[0].message.content or ""

    def provisional_key(self, literal: str, file_path: str = "") -> str:
        return self._provisional.name_key(literal, file_path)


class OpenAIKeyNamer(BaseLLMKeyNamer):
    """Batched semantic key naming with an OpenAI chat model.

    Usage:
        namer = OpenAIKeyNamer(config=LLMConfig(model="gpt-4o-mini"))
        mapping = namer.name_keys(["提交", "取消"], reserved={"submit"})
    """

    requires_second_pass = True

    @property
    def name(self) -> str:
        return f"{self.service}-{self.config.model}"

    def name_key(self, literal: str, file_path: str = "") -> str:
        return self.provisional_key(literal, file_path)

    def build_user_prompt(self, literals: Sequence[str], reserved: Sequence[str]) -> str:
        return (
            f"Original strings (JSON array):\n{json.dumps(list(literals), ensure_ascii=False, indent=2)}\n"
            f"Reserved keys (JSON array):\n{json.dumps(list(reserved), ensure_ascii=False, indent=2)}\n"
            f"{BATCH_RULES}"
        )

    def name_keys(
        self,
        literals: Sequence[str],
        reserved: Iterable[str] = (),
    ) -> dict[str, str]:
        literals = list(dict.fromkeys(literals))
        reserved = sorted(set(reserved))
        if not literals:
            return {}

        try:
            content = self._chat(BATCH_SYSTEM_PROMPT, self.build_user_prompt(literals, reserved))
        except Exception as e:
            raise NamingBatchFailure(f"{self.name} key naming request failed: {e}") from e

        parsed = parse_json_object(content)
        if parsed is None:
            raise NamingBatchFailure(f"{self.name} returned no JSON object: {content[:200]!r}")

        mapping: dict[str, str] = {}
        for literal in literals:
            value = parsed.get(literal)
            key = normalize_key(value) if isinstance(value, str) else ""
            if key and re.match(r"^[a-z]", key):
                mapping[literal] = key
            else:
                logger.warning("%s gave no usable key for %r", self.name, literal)

        return ensure_unique(mapping, reserved)


class DeepSeekKeyNamer(OpenAIKeyNamer):
    """Batched key naming against DeepSeek's OpenAI-compatible API."""

    SERVICE = "deepseek"
    DEFAULT_BASE_URL = "https://api.deepseek.com/v1"

    def __init__(self, config: Optional[LLMConfig] = None, api_key: Optional[str] = None):
        super().__init__(config or LLMConfig(model="deepseek-chat"), api_key=api_key)


class OpenAIKeyGenerator(BaseLLMKeyNamer):
    """Names one literal per request as {module}_{description}.

    The module comes from the file path; it is prefixed to the model's
    answer when missing. Keys failing validation raise NamingError.
    """

    @property
    def name(self) -> str:
        return f"{self.service}-single-{self.config.model}"

    def build_user_prompt(self, literal: str, context: str) -> str:
        prompt = f'Chinese text: "{literal}"'
        if context:
            prompt += f"\nModule context: {context}"
        return prompt

    def sanitize_key(self, key: str, context: str) -> str:
        cleaned = normalize_key(key)
        if context:
            safe_context = normalize_key(context)
            if cleaned and not cleaned.startswith(f"{safe_context}_") and cleaned != safe_context:
                cleaned = f"{safe_context}_{cleaned}"
            elif not cleaned:
                cleaned = safe_context
        if not re.match(r"^[a-z]", cleaned):
            cleaned = f"key_{cleaned}"
        return cleaned

    @staticmethod
    def is_valid_key(key: str) -> bool:
        return bool(VALID_KEY_RE.match(key)) and len(key) > 3

    def name_key(self, literal: str, file_path: str = "") -> str:
        context = extract_module_context(file_path)
        try:
            content = self._chat(SINGLE_SYSTEM_PROMPT, self.build_user_prompt(literal, context))
        except Exception as e:
            raise NamingError(literal, f"request failed: {e}") from e

        generated = content.strip()
        if not generated:
            raise NamingError(literal, "empty key returned")

        key = self.sanitize_key(generated, context)
        if not self.is_valid_key(key):
            raise NamingError(literal, f"generated key {generated!r} normalized to invalid {key!r}")
        logger.debug("Generated key %s for %r", key, literal)
        return key
