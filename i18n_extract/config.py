"""
Project configuration and per-dialect rule sets.

This module defines:
- ScriptRule / VueRule: tagged rule variants, one per file extension
- NamingConfig: which key-naming backend to use and how to reach it
- ExtractConfig: everything one extraction run needs
- load_config(): overlay a JSON config file on the defaults
- fetch_reserved_keys(): keys the naming backend must never hand out

Rule sets are immutable input for a run. Required fields differ by
variant and are checked when the rule is constructed, so a typo in a
config file fails early instead of half way through a batch.

Example:
    >>> from i18n_extract.config import ExtractConfig, ScriptRule
    >>> config = ExtractConfig()
    >>> config.rules["tsx"] = ScriptRule(caller="i18n", import_declaration="import i18n from '@/i18n'")
    >>> config.rule_for("tsx").callee
    'i18n.t'
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, ClassVar, Optional, Union

logger = logging.getLogger(__name__)

# Han ideographs, the range the original tool scanned for
DEFAULT_TARGET_PATTERN = r"[一-龥]"

SCRIPT_EXTENSIONS = ("js", "mjs", "cjs", "ts", "jsx", "tsx")
VUE_EXTENSIONS = ("vue",)
SUPPORTED_EXTENSIONS = SCRIPT_EXTENSIONS + VUE_EXTENSIONS

VUE_TAGS = ("template", "script", "style")

# Signature of the per-file customization hook
AdjustKeyMap = Callable[[dict, dict, str], dict]

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*$")
_CALLER_RE = re.compile(r"^[A-Za-z_$][\w$]*(\.[A-Za-z_$][\w$]*)*$")


def default_custom_slot(index: int) -> str:
    """Placeholder for the index-th interpolated expression (1-based)."""
    return f"{{slot{index}}}"


def identity_key(literal: str, path: Optional[str] = None) -> str:
    """Default key strategy: the literal is its own key."""
    return literal


def _check_function_name(name: str, label: str) -> None:
    if not name or not _IDENTIFIER_RE.match(name):
        raise ValueError(f"{label} must be a JavaScript identifier, got {name!r}")


def _check_caller(caller: str) -> None:
    if caller and not _CALLER_RE.match(caller):
        raise ValueError(f"caller must be a dotted identifier, got {caller!r}")


def qualified(caller: str, function_name: str) -> str:
    """Join a caller expression and function name into callee text."""
    return f"{caller}.{function_name}" if caller else function_name


@dataclass(frozen=True)
class ScriptRule:
    """Rule for plain script, TypeScript, JSX and TSX files."""
    caller: str = ""
    function_name: str = "t"
    import_declaration: str = 'import { t } from "i18n"'
    custom_slot: Callable[[int], str] = default_custom_slot
    customize_key: Callable[..., str] = identity_key
    force_import: bool = False
    # Extra code inserted right after the import (e.g. a hook call)
    function_snippets: str = ""

    kind: ClassVar[str] = "script"

    def __post_init__(self):
        _check_function_name(self.function_name, "function_name")
        _check_caller(self.caller)

    @property
    def callee(self) -> str:
        return qualified(self.caller, self.function_name)

    def translation_callees(self) -> frozenset[str]:
        """Callee texts that mark a literal as already extracted."""
        return frozenset({self.function_name, self.callee})


@dataclass(frozen=True)
class VueRule:
    """Rule for Vue single-file components."""
    caller: str = "this"
    function_name_in_script: str = "$t"
    function_name_in_template: str = "$t"
    import_declaration: str = ""
    custom_slot: Callable[[int], str] = default_custom_slot
    customize_key: Callable[..., str] = identity_key
    tag_order: tuple[str, ...] = VUE_TAGS
    force_import: bool = False

    kind: ClassVar[str] = "vue"

    def __post_init__(self):
        _check_function_name(self.function_name_in_script, "function_name_in_script")
        _check_function_name(self.function_name_in_template, "function_name_in_template")
        _check_caller(self.caller)
        order = tuple(self.tag_order)
        if len(set(order)) != len(order) or not set(order) <= set(VUE_TAGS):
            raise ValueError(f"tag_order must be an ordering of {VUE_TAGS}, got {order!r}")
        object.__setattr__(self, "tag_order", order)

    def script_rule(self) -> ScriptRule:
        """The ScriptRule applied to the component's <script> blocks."""
        return ScriptRule(
            caller=self.caller,
            function_name=self.function_name_in_script,
            import_declaration=self.import_declaration,
            custom_slot=self.custom_slot,
            customize_key=self.customize_key,
            force_import=self.force_import,
        )

    def template_rule(self) -> ScriptRule:
        """The ScriptRule applied to expressions inside <template>."""
        return ScriptRule(
            caller="",
            function_name=self.function_name_in_template,
            import_declaration="",
            custom_slot=self.custom_slot,
            customize_key=self.customize_key,
        )

    def translation_callees(self) -> frozenset[str]:
        return frozenset({
            self.function_name_in_script,
            self.function_name_in_template,
            qualified(self.caller, self.function_name_in_script),
            qualified(self.caller, self.function_name_in_template),
        })


Rule = Union[ScriptRule, VueRule]


def default_rules() -> dict[str, Rule]:
    """Default rule table, keyed by file extension."""
    rules: dict[str, Rule] = {ext: ScriptRule() for ext in SCRIPT_EXTENSIONS}
    rules["vue"] = VueRule()
    return rules


@dataclass
class NamingConfig:
    """Configuration of the key-naming backend.

    backend:
        'none'     keys are produced by the rule's customize_key (identity)
        'context'  heuristic snake_case keys from path + phrase table
        'openai'   semantic keys from an OpenAI-compatible chat model
        'deepseek' same, against the DeepSeek endpoint
    """
    backend: str = "none"
    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    # Name literals one by one in a thread pool instead of one batched call
    concurrent: bool = False
    max_workers: int = 4

    @property
    def enabled(self) -> bool:
        return self.backend.lower() not in ("none", "", "identity")


@dataclass
class ExtractConfig:
    """Configuration for a whole extraction run."""
    input: str = "src"
    output: str = ""
    exclude: list[str] = field(default_factory=lambda: ["**/node_modules/**"])
    rules: dict[str, Rule] = field(default_factory=default_rules)
    locale_path: str = "./locales/zh-CN.json"
    locale_file_type: str = "json"
    incremental: bool = True
    ignore_methods: list[str] = field(default_factory=list)
    target_pattern: str = DEFAULT_TARGET_PATTERN
    naming: NamingConfig = field(default_factory=NamingConfig)
    existed_keys: list[str] = field(default_factory=list)
    existed_url: str = ""
    map_field_to_key: str = "key"
    adjust_key_map: Optional[AdjustKeyMap] = None

    def rule_for(self, extension: str) -> Rule:
        ext = extension.lower().lstrip(".")
        if ext not in self.rules:
            raise ValueError(f"No rule configured for extension: {extension}")
        return self.rules[ext]

    def to_dict(self) -> dict:
        """Serialize config for logging/debugging."""
        return {
            "input": self.input,
            "output": self.output,
            "exclude": list(self.exclude),
            "extensions": sorted(self.rules),
            "locale_path": self.locale_path,
            "locale_file_type": self.locale_file_type,
            "incremental": self.incremental,
            "ignore_methods": list(self.ignore_methods),
            "naming_backend": self.naming.backend,
        }


# ============================================================================
# Config file loading
# ============================================================================

def _snake(name: str) -> str:
    """functionNameInTemplate -> function_name_in_template"""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _rule_from_dict(base: Rule, data: dict[str, Any]) -> Rule:
    known = {f.name for f in fields(base)}
    updates = {}
    for raw_key, value in data.items():
        key = _snake(raw_key)
        if key == "force_import":
            updates[key] = bool(value)
        elif key == "tag_order":
            updates[key] = tuple(value)
        elif key in known and key not in ("custom_slot", "customize_key"):
            updates[key] = value
        else:
            logger.warning("Ignoring unsupported rule option: %s", raw_key)
    return replace(base, **updates)


def config_from_dict(data: dict[str, Any]) -> ExtractConfig:
    """Build an ExtractConfig from a (camelCase or snake_case) mapping."""
    config = ExtractConfig()
    simple = {"input", "output", "exclude", "locale_path", "locale_file_type",
              "incremental", "ignore_methods", "target_pattern", "existed_keys",
              "existed_url", "map_field_to_key"}

    for raw_key, value in data.items():
        key = _snake(raw_key)
        if key in simple:
            setattr(config, key, value)
        elif key == "rules":
            for ext, rule_data in value.items():
                ext = ext.lower().lstrip(".")
                base = config.rules.get(ext) or (VueRule() if ext in VUE_EXTENSIONS else ScriptRule())
                config.rules[ext] = _rule_from_dict(base, rule_data)
        elif key == "global_rule":
            config.ignore_methods = list(value.get("ignoreMethods", value.get("ignore_methods", [])))
        elif key == "naming":
            config.naming = NamingConfig(**{_snake(k): v for k, v in value.items()})
        elif key == "openai":
            # Legacy shape: {"baseUrl", "apiKey", "model", "enableKeyGeneration"}
            if value.get("enableKeyGeneration", True):
                config.naming = NamingConfig(
                    backend="openai",
                    model=value.get("model"),
                    base_url=value.get("baseUrl"),
                    api_key=value.get("apiKey") or None,
                    concurrent=bool(value.get("concurrent", False)),
                )
        elif key == "existed_config":
            config.existed_keys = list(value.get("existedKeys", []))
            config.existed_url = value.get("getExistedUrl", "")
            config.map_field_to_key = value.get("mapFieldToKey", "key")
        else:
            logger.warning("Ignoring unsupported config option: %s", raw_key)

    if config.locale_file_type not in ("json", "js"):
        raise ValueError(f"locale_file_type must be 'json' or 'js', got {config.locale_file_type!r}")
    re.compile(config.target_pattern)
    return config


def load_config(path: Union[str, Path]) -> ExtractConfig:
    """Load a JSON config file and overlay it on the defaults.

    Args:
        path: Path to the JSON config file

    Returns:
        ExtractConfig with file values applied

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid JSON or has invalid values
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")
    logger.debug("Loaded config from %s", path)
    return config_from_dict(data)


def fetch_reserved_keys(config: ExtractConfig, timeout: float = 10.0) -> set[str]:
    """Collect keys the naming backend must not reuse.

    Local ``existed_keys`` are always included. When ``existed_url`` is
    set, it is fetched and expected to return a JSON array of objects;
    the ``map_field_to_key`` field of each object is a reserved key.
    A failed fetch is logged and contributes nothing.
    """
    reserved = set(config.existed_keys)
    if not config.existed_url:
        return reserved

    import requests

    try:
        response = requests.get(config.existed_url, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning("Could not fetch reserved keys from %s: %s", config.existed_url, e)
        return reserved

    if isinstance(data, list):
        for item in data:
            if isinstance(item, dict) and isinstance(item.get(config.map_field_to_key), str):
                reserved.add(item[config.map_field_to_key])
    return reserved
