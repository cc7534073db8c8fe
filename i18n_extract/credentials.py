"""
API key storage for the LLM naming backends.

Keys are looked up in this order:
1. Environment variable (OPENAI_API_KEY, DEEPSEEK_API_KEY)
2. OS keychain via keyring
3. Local config file (~/.i18n-extract/keys.json)

Usage:
    from i18n_extract.credentials import KeyManager

    km = KeyManager()
    km.set_key("openai", "sk-...")
    key = km.get_key("openai")
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Supported services and their env var names
SERVICES = {
    "openai": "OPENAI_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
}


@dataclass
class KeyInfo:
    """Information about an API key."""
    service: str
    is_set: bool
    source: str  # 'env', 'keyring', 'config', 'none'
    masked_value: str


def env_var_for(service: str) -> str:
    return SERVICES.get(service, f"{service.upper()}_API_KEY")


class KeyManager:
    """Manage naming-service API keys.

    Priority order for key retrieval:
    1. Environment variable
    2. OS keychain (via keyring)
    3. Local config file
    """

    SERVICE_NAME = "i18n-extract"
    CONFIG_DIR = Path.home() / ".i18n-extract"
    CONFIG_FILE = CONFIG_DIR / "keys.json"

    def __init__(self, config_file: Optional[Path] = None):
        if config_file is not None:
            self.CONFIG_FILE = Path(config_file)
            self.CONFIG_DIR = self.CONFIG_FILE.parent
        self._keyring_available = self._check_keyring()

    def _check_keyring(self) -> bool:
        try:
            import keyring
            from keyring.backends import fail

            return not isinstance(keyring.get_keyring(), fail.Keyring)
        except Exception as e:
            logger.debug("keyring unavailable: %s", e)
            return False

    def _read_config(self) -> dict:
        if not self.CONFIG_FILE.exists():
            return {}
        try:
            data = json.loads(self.CONFIG_FILE.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable key file %s: %s", self.CONFIG_FILE, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_config(self, config: dict) -> None:
        self.CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        self.CONFIG_FILE.write_text(json.dumps(config, indent=2), encoding="utf-8")
        self.CONFIG_FILE.chmod(0o600)

    def _keyring_get(self, service: str) -> Optional[str]:
        if not self._keyring_available:
            return None
        import keyring
        from keyring.errors import KeyringError

        try:
            return keyring.get_password(self.SERVICE_NAME, service)
        except KeyringError as e:
            logger.debug("keyring lookup for %s failed: %s", service, e)
            return None

    def _lookup(self, service: str) -> tuple[Optional[str], str]:
        service = service.lower()
        if env_val := os.getenv(env_var_for(service)):
            return env_val, "env"
        if key := self._keyring_get(service):
            return key, "keyring"
        if key := self._read_config().get(service):
            return key, "config"
        return None, "none"

    def get_key(self, service: str) -> Optional[str]:
        """Get API key for a service, or None if not found."""
        return self._lookup(service)[0]

    def set_key(self, service: str, key: str, use_keyring: bool = True) -> str:
        """Store API key for a service.

        Returns:
            Storage location used ('keyring' or 'config')
        """
        service = service.lower()

        if use_keyring and self._keyring_available:
            import keyring
            from keyring.errors import KeyringError

            try:
                keyring.set_password(self.SERVICE_NAME, service, key)
                return "keyring"
            except KeyringError as e:
                logger.warning("keyring write failed, using config file: %s", e)

        config = self._read_config()
        config[service] = key
        self._write_config(config)
        return "config"

    def delete_key(self, service: str) -> bool:
        """Delete stored API key for a service."""
        service = service.lower()
        deleted = False

        if self._keyring_available:
            import keyring
            from keyring.errors import PasswordDeleteError

            try:
                keyring.delete_password(self.SERVICE_NAME, service)
                deleted = True
            except PasswordDeleteError:
                # Not stored in the keychain
                pass

        config = self._read_config()
        if service in config:
            del config[service]
            self._write_config(config)
            deleted = True

        return deleted

    def get_key_info(self, service: str) -> KeyInfo:
        """Get information about a stored key."""
        service = service.lower()
        key, source = self._lookup(service)
        return KeyInfo(
            service=service,
            is_set=key is not None,
            source=source,
            masked_value=self._mask_key(key) if key else "",
        )

    def list_keys(self) -> list[KeyInfo]:
        """List all supported services and their key status."""
        return [self.get_key_info(service) for service in SERVICES]

    def _mask_key(self, key: str) -> str:
        """Mask a key for display (show first 4 and last 4 chars)."""
        if len(key) <= 12:
            return "*" * len(key)
        return f"{key[:4]}...{key[-4:]}"


def get_key(service: str) -> Optional[str]:
    """Convenience function to get an API key."""
    return KeyManager().get_key(service)
