"""
Configuration management for the AI Write Check service.
Handles loading, validating, and providing access to application settings.

Precedence: built-in defaults, then ``writecheck_config.json``, then
environment variables.
"""

import os
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "writecheck_config.json"


@dataclass
class LLMConfig:
    """LLM configuration settings."""
    provider: str
    api_key: str
    base_url: str
    model: str
    max_tokens: int
    temperature: float
    max_input_char: int


@dataclass
class AppConfig:
    """Application configuration settings."""
    host: str
    port: int
    debug: bool
    admin_user_ids: list[str]


@dataclass
class SubmissionConfig:
    """Submission pipeline settings."""
    min_text_length: int
    scorer_timeout_seconds: float
    strict_quota: bool
    scorer: str


@dataclass
class QuotaSettings:
    """Plan tier and monthly limit settings."""
    tier_policy: str
    free_limit: int
    standard_limit: int
    standard_users: list[str] = field(default_factory=list)
    premium_users: list[str] = field(default_factory=list)


@dataclass
class PathsConfig:
    """Path configuration settings."""
    data_dir: str
    submissions_dir: str
    prompts_dir: str


def _env_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class ConfigManager:
    """Manages application configuration loading and access."""

    def __init__(self, config_file: str = DEFAULT_CONFIG_FILE):
        self.config_file = Path(config_file)
        self._config: Optional[Dict[str, Any]] = None
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file and environment variables."""
        # Start with default config
        self._config = self._get_default_config()

        # Load base config from file
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    file_config = json.load(f)
                self._merge_config(file_config)
            except json.JSONDecodeError as e:
                logger.warning(f"Ignoring invalid config file {self.config_file}: {e}")

        # Override with environment variables
        self._override_with_env()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "llm": {
                "provider": "deepseek",
                "api_key": "",
                "base_url": "https://api.deepseek.com/v1",
                "model": "deepseek-chat",
                "max_tokens": 2000,
                "temperature": 0.1,
                "max_input_char": 20000
            },
            "app": {
                "host": "0.0.0.0",
                "port": 22582,
                "debug": False,
                "admin_user_ids": []
            },
            "submission": {
                "min_text_length": 100,
                "scorer_timeout_seconds": 60,
                "strict_quota": False,
                "scorer": "placeholder"
            },
            "quota": {
                "tier_policy": "derived",
                "free_limit": 20,
                "standard_limit": 50,
                "standard_users": [],
                "premium_users": []
            },
            "paths": {
                "data_dir": "data",
                "submissions_dir": "submissions",
                "prompts_dir": "prompts"
            }
        }

    def _merge_config(self, file_config: Dict[str, Any]) -> None:
        """Merge file configuration with current config."""
        for section, values in file_config.items():
            if section in self._config and isinstance(values, dict):
                self._config[section].update(values)
            else:
                self._config[section] = values

    def _override_with_env(self) -> None:
        """Override configuration with environment variables."""
        # LLM settings
        if os.getenv("LLM_PROVIDER"):
            self._config["llm"]["provider"] = os.getenv("LLM_PROVIDER")

        if os.getenv("DEEPSEEK_API_KEY"):
            self._config["llm"]["api_key"] = os.getenv("DEEPSEEK_API_KEY")

        if os.getenv("OPENAI_API_BASE"):
            self._config["llm"]["base_url"] = os.getenv("OPENAI_API_BASE")

        if os.getenv("LLM_MODEL"):
            self._config["llm"]["model"] = os.getenv("LLM_MODEL")

        # App settings
        if os.getenv("APP_HOST"):
            self._config["app"]["host"] = os.getenv("APP_HOST")

        if os.getenv("APP_PORT"):
            self._config["app"]["port"] = int(os.getenv("APP_PORT"))

        if os.getenv("APP_DEBUG"):
            self._config["app"]["debug"] = _env_bool(os.getenv("APP_DEBUG"))

        if os.getenv("ADMIN_USER_IDS"):
            self._config["app"]["admin_user_ids"] = _env_list(os.getenv("ADMIN_USER_IDS"))

        # Submission settings
        if os.getenv("MIN_TEXT_LENGTH"):
            self._config["submission"]["min_text_length"] = int(os.getenv("MIN_TEXT_LENGTH"))

        if os.getenv("SCORER_TIMEOUT_SECONDS"):
            self._config["submission"]["scorer_timeout_seconds"] = float(os.getenv("SCORER_TIMEOUT_SECONDS"))

        if os.getenv("STRICT_QUOTA"):
            self._config["submission"]["strict_quota"] = _env_bool(os.getenv("STRICT_QUOTA"))

        if os.getenv("SCORER"):
            self._config["submission"]["scorer"] = os.getenv("SCORER")

        # Quota settings
        if os.getenv("TIER_POLICY"):
            self._config["quota"]["tier_policy"] = os.getenv("TIER_POLICY")

        if os.getenv("PREMIUM_USERS"):
            self._config["quota"]["premium_users"] = _env_list(os.getenv("PREMIUM_USERS"))

        if os.getenv("STANDARD_USERS"):
            self._config["quota"]["standard_users"] = _env_list(os.getenv("STANDARD_USERS"))

    def get_llm_config(self) -> LLMConfig:
        """Get LLM configuration."""
        llm_config = self._config["llm"]
        return LLMConfig(
            provider=llm_config["provider"],
            api_key=llm_config["api_key"],
            base_url=llm_config["base_url"],
            model=llm_config["model"],
            max_tokens=llm_config["max_tokens"],
            temperature=llm_config["temperature"],
            max_input_char=llm_config["max_input_char"]
        )

    def get_app_config(self) -> AppConfig:
        """Get application configuration."""
        app_config = self._config["app"]
        return AppConfig(
            host=app_config["host"],
            port=app_config["port"],
            debug=app_config["debug"],
            admin_user_ids=app_config["admin_user_ids"]
        )

    def get_submission_config(self) -> SubmissionConfig:
        """Get submission pipeline configuration."""
        sub_config = self._config["submission"]
        return SubmissionConfig(
            min_text_length=int(sub_config["min_text_length"]),
            scorer_timeout_seconds=float(sub_config["scorer_timeout_seconds"]),
            strict_quota=bool(sub_config["strict_quota"]),
            scorer=sub_config["scorer"]
        )

    def get_quota_settings(self) -> QuotaSettings:
        """Get quota configuration."""
        quota_config = self._config["quota"]
        return QuotaSettings(
            tier_policy=quota_config["tier_policy"],
            free_limit=int(quota_config["free_limit"]),
            standard_limit=int(quota_config["standard_limit"]),
            standard_users=list(quota_config.get("standard_users", [])),
            premium_users=list(quota_config.get("premium_users", []))
        )

    def get_paths_config(self) -> PathsConfig:
        """Get paths configuration."""
        paths_config = self._config["paths"]
        return PathsConfig(
            data_dir=paths_config["data_dir"],
            submissions_dir=paths_config["submissions_dir"],
            prompts_dir=paths_config["prompts_dir"]
        )

    def get_config(self) -> Dict[str, Any]:
        """Get raw configuration dictionary."""
        return self._config.copy()

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    def save_config(self) -> None:
        """Save current configuration to file."""
        with open(self.config_file, 'w', encoding='utf-8') as f:
            json.dump(self._config, f, indent=2, ensure_ascii=False)

