from pathlib import Path
import json
from typing import Any, Dict, List

# Package defaults (bundled with code)
PACKAGE_CONFIG_DIR = Path(__file__).parent / "defaults"

# User configs (in project root, gitignored)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent
USER_CONFIG_DIR = PROJECT_ROOT / "config"

DEFAULT_PAYDAY = 25


class ConfigLoader:
    """Load configuration with user overrides"""

    @staticmethod
    def load_config(config_name: str) -> Dict[str, Any]:
        """
        Load config with fallback: user config -> default config

        Args:
            config_name: Name of the config file (e.g., 'parsers.json')

        Raises:
            FileNotFoundError: If no config file was found

        Returns:
            Parsed JSON configuration
        """
        user_config_path = USER_CONFIG_DIR / config_name
        if user_config_path.exists():
            with open(user_config_path, encoding="utf-8") as f:
                return json.load(f)

        default_config_path = PACKAGE_CONFIG_DIR / config_name
        if default_config_path.exists():
            with open(default_config_path, encoding="utf-8") as f:
                return json.load(f)

        raise FileNotFoundError(
            f"Config file '{config_name}' not found in:\n"
            f" - {user_config_path}\n"
            f" - {default_config_path}"
        )

    @staticmethod
    def load_parsers_config() -> Dict[str, Any]:
        """Load parsers registry configuration"""
        return ConfigLoader.load_config('parsers.json')

    @staticmethod
    def load_rules_config() -> Dict[str, Any]:
        """Load categorization rules, or an empty rule set if none exist"""
        try:
            return ConfigLoader.load_config('categorization_rules.json')
        except FileNotFoundError:
            return {"rules": []}

    @staticmethod
    def load_accounts_config() -> List[Dict[str, Any]]:
        """Load the account list, or an empty list if none exists"""
        try:
            return ConfigLoader.load_config('accounts.json').get("accounts", [])
        except FileNotFoundError:
            return []

    @staticmethod
    def load_settings() -> Dict[str, Any]:
        """
        Load application settings.

        Keys: payday, database_path, log_level, default_format.
        Missing keys fall back to built-in defaults.
        """
        settings = {
            "payday": DEFAULT_PAYDAY,
            "database_path": "data/ledger.db",
            "log_level": "WARNING",
            "default_format": "semicolon",
        }
        try:
            settings.update(ConfigLoader.load_config('settings.json'))
        except FileNotFoundError:
            pass
        return settings
