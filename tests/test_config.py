"""
Configuration tests for i18n-extract.

These tests verify:
- Rule construction and validation
- Loading JSON config files (camelCase and legacy shapes)
- Fetching reserved keys

Run with: pytest tests/test_config.py -v
"""

import json
from unittest.mock import Mock, patch

import pytest
import requests

from i18n_extract.config import (
    ExtractConfig,
    ScriptRule,
    VueRule,
    default_rules,
    fetch_reserved_keys,
    load_config,
)


class TestRules:
    """Tests for rule variants."""

    def test_script_defaults(self):
        """The default script rule calls t() imported from i18n."""
        rule = ScriptRule()
        assert rule.callee == "t"
        assert rule.import_declaration == 'import { t } from "i18n"'
        assert rule.custom_slot(2) == "{slot2}"
        assert rule.customize_key("你好", "a.js") == "你好"

    def test_caller(self):
        """A caller qualifies the callee."""
        rule = ScriptRule(caller="i18n")
        assert rule.callee == "i18n.t"
        assert rule.translation_callees() == {"t", "i18n.t"}

    def test_vue_rules(self):
        """Vue rules derive script and template rules."""
        rule = VueRule()
        assert rule.script_rule().callee == "this.$t"
        assert rule.template_rule().callee == "$t"
        assert "this.$t" in rule.translation_callees()

    @pytest.mark.parametrize("kwargs", [
        {"function_name": ""},
        {"function_name": "t t"},
        {"caller": "a..b"},
    ])
    def test_invalid_script_rule(self, kwargs):
        """Malformed names are rejected at construction."""
        with pytest.raises(ValueError):
            ScriptRule(**kwargs)

    @pytest.mark.parametrize("order", [
        ("script", "script", "style"),
        ("template", "script", "markup"),
    ])
    def test_invalid_tag_order(self, order):
        """tag_order must be an ordering of the known tags."""
        with pytest.raises(ValueError):
            VueRule(tag_order=order)

    def test_default_rules(self):
        """Every supported extension has a rule of the right kind."""
        rules = default_rules()
        assert set(rules) == {"js", "mjs", "cjs", "ts", "jsx", "tsx", "vue"}
        assert isinstance(rules["vue"], VueRule)
        assert isinstance(rules["tsx"], ScriptRule)

    def test_rule_for(self):
        """Lookup is by extension, with or without a dot."""
        config = ExtractConfig()
        assert config.rule_for(".TSX") is config.rules["tsx"]
        with pytest.raises(ValueError):
            config.rule_for("py")


class TestLoadConfig:
    """Tests for load_config()."""

    def write(self, tmp_path, data):
        path = tmp_path / "i18n.config.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    def test_camel_case(self, tmp_path):
        """camelCase options map onto the config."""
        path = self.write(tmp_path, {
            "input": "app",
            "localePath": "./lang/zh.json",
            "localeFileType": "js",
            "rules": {
                "tsx": {"caller": "i18n", "importDeclaration": "import i18n from '@/i18n'", "forceImport": 1},
                "vue": {"functionNameInTemplate": "t", "tagOrder": ["script", "template", "style"]},
            },
            "globalRule": {"ignoreMethods": ["console.log"]},
            "existedConfig": {"existedKeys": ["a"], "getExistedUrl": "http://x", "mapFieldToKey": "id"},
        })
        config = load_config(path)

        assert config.input == "app"
        assert config.locale_path == "./lang/zh.json"
        assert config.locale_file_type == "js"
        assert config.rules["tsx"].callee == "i18n.t"
        assert config.rules["tsx"].force_import is True
        assert config.rules["vue"].function_name_in_template == "t"
        assert config.rules["vue"].tag_order == ("script", "template", "style")
        assert config.rules["js"] == ScriptRule()
        assert config.ignore_methods == ["console.log"]
        assert (config.existed_keys, config.existed_url, config.map_field_to_key) == (["a"], "http://x", "id")

    def test_naming_section(self, tmp_path):
        """The naming section configures the backend."""
        path = self.write(tmp_path, {"naming": {"backend": "deepseek", "maxWorkers": 8, "concurrent": True}})
        naming = load_config(path).naming

        assert naming.backend == "deepseek"
        assert naming.max_workers == 8
        assert naming.concurrent
        assert naming.enabled

    def test_legacy_openai_section(self, tmp_path):
        """The legacy openai section enables OpenAI naming."""
        path = self.write(tmp_path, {"openai": {"baseUrl": "http://llm", "apiKey": "sk", "model": "m"}})
        naming = load_config(path).naming

        assert (naming.backend, naming.base_url, naming.api_key, naming.model) == ("openai", "http://llm", "sk", "m")

    def test_legacy_openai_disabled(self, tmp_path):
        """enableKeyGeneration=false leaves naming off."""
        path = self.write(tmp_path, {"openai": {"enableKeyGeneration": False}})
        assert not load_config(path).naming.enabled

    def test_invalid_rule_value(self, tmp_path):
        """Invalid rule values fail the load."""
        path = self.write(tmp_path, {"rules": {"js": {"functionName": "not valid"}}})
        with pytest.raises(ValueError):
            load_config(path)

    def test_invalid_locale_type(self, tmp_path):
        """Only json and js locales are supported."""
        path = self.write(tmp_path, {"localeFileType": "yaml"})
        with pytest.raises(ValueError):
            load_config(path)

    def test_missing_file(self, tmp_path):
        """A missing config file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "none.json")

    def test_invalid_json(self, tmp_path):
        """Malformed JSON raises ValueError."""
        path = tmp_path / "bad.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid JSON"):
            load_config(path)

    def test_unknown_options_ignored(self, tmp_path):
        """Unknown options are ignored with a warning."""
        path = self.write(tmp_path, {"somethingElse": 1})
        assert load_config(path).input == "src"


class TestReservedKeys:
    """Tests for fetch_reserved_keys()."""

    def test_local_only(self):
        """Without a URL only local keys are reserved."""
        config = ExtractConfig(existed_keys=["a", "b"])
        assert fetch_reserved_keys(config) == {"a", "b"}

    def test_remote(self):
        """Remote keys are read from the configured field."""
        config = ExtractConfig(existed_keys=["a"], existed_url="http://keys", map_field_to_key="id")
        response = Mock()
        response.json.return_value = [{"id": "b"}, {"id": 3}, {"other": "c"}, "d"]

        with patch("requests.get", return_value=response) as get:
            assert fetch_reserved_keys(config) == {"a", "b"}
        get.assert_called_once_with("http://keys", timeout=10.0)

    def test_remote_failure(self):
        """A failed fetch reserves only the local keys."""
        config = ExtractConfig(existed_keys=["a"], existed_url="http://keys")
        with patch("requests.get", side_effect=requests.ConnectionError("down")):
            assert fetch_reserved_keys(config) == {"a"}
