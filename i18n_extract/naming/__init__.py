"""
Key naming backends.

Available namers:
- IdentityKeyNamer: literal is the key
- ContextKeyNamer: path and phrase-table heuristics (no network)
- OpenAIKeyNamer / DeepSeekKeyNamer: batched semantic keys from an LLM
- ConcurrentKeyNamer: per-literal LLM naming on a thread pool
"""

from i18n_extract.naming.base import (
    KeyNamer,
    IdentityKeyNamer,
    ContextKeyNamer,
    MappingKeyNamer,
    KeyAssigner,
    create_namer,
    ensure_unique,
    fallback_key,
    extract_module_context,
)

__all__ = [
    "KeyNamer",
    "IdentityKeyNamer",
    "ContextKeyNamer",
    "MappingKeyNamer",
    "KeyAssigner",
    "create_namer",
    "ensure_unique",
    "fallback_key",
    "extract_module_context",
]
