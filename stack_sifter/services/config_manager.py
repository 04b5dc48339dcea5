"""
Configuration management for Stack Sifter.
"""

import json
import os
from typing import Any, Dict, List, Optional

import yaml

from ..models.config import ClassifierSettings, Config, NotificationTarget, Rule
from ..utils.error_handling import ConfigurationError
from ..utils.logging import get_logger

logger = get_logger("config_manager")


class ConfigurationManager:
    """Loads and validates the sifting configuration."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file. If None, uses default paths.
        """
        self.config_path = str(config_path) if config_path else self._find_config_file()
        self._config: Optional[Config] = None

    def _find_config_file(self) -> str:
        """Find the configuration file in standard locations."""
        possible_paths = [
            "stack-sifter.yaml",
            "stack-sifter.yml",
            "config/stack-sifter.yaml",
            "config/config.yaml",
            "config.yaml",
            "config.yml",
            "config.json",
        ]

        for path in possible_paths:
            if os.path.exists(path):
                return path

        raise ConfigurationError(
            "No configuration file found. Please create a configuration file "
            "at one of these locations: " + ", ".join(possible_paths)
        )

    def load_config(self) -> Config:
        """
        Load configuration from file.

        Returns:
            Validated Config

        Raises:
            FileNotFoundError: If the configuration file doesn't exist
            ConfigurationError: If the file cannot be parsed or is invalid
        """
        if not os.path.exists(self.config_path):
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, "r", encoding="utf-8") as f:
            text = f.read()

        if self.config_path.endswith(".json"):
            try:
                raw_config = json.loads(text)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Invalid JSON in configuration file: {e}", cause=e) from e
        else:
            raw_config = self._parse_yaml(text)

        config = self.build_config(raw_config)
        self._config = config

        logger.info(
            "Configuration loaded",
            extra={
                "config_path": self.config_path,
                "feeds": len(config.feeds),
                "rules": len(config.rules),
            },
        )
        return config

    @classmethod
    def load_from_yaml(cls, text: str) -> Config:
        """Parse and validate configuration from a YAML string."""
        return cls.build_config(cls._parse_yaml(text))

    @staticmethod
    def _parse_yaml(text: str) -> Any:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}", cause=e) from e

    @classmethod
    def build_config(cls, raw_config: Any) -> Config:
        """Expand environment variables, build the Config and validate it."""
        if not isinstance(raw_config, dict):
            raise ConfigurationError("Configuration must be a mapping")

        raw_config = cls._expand_env_vars(raw_config)
        config = cls._parse_config(raw_config)
        config.validate()
        return config

    @classmethod
    def _expand_env_vars(cls, obj: Any) -> Any:
        """Recursively expand ${VAR_NAME} values from the environment."""
        if isinstance(obj, dict):
            return {key: cls._expand_env_vars(value) for key, value in obj.items()}
        elif isinstance(obj, list):
            return [cls._expand_env_vars(item) for item in obj]
        elif isinstance(obj, str):
            if obj.startswith("${") and obj.endswith("}"):
                var_name = obj[2:-1]
                env_value = os.getenv(var_name)
                if env_value is None:
                    raise ConfigurationError(f"Environment variable '{var_name}' not found")
                return env_value
            return obj
        else:
            return obj

    @classmethod
    def _parse_config(cls, raw_config: Dict[str, Any]) -> Config:
        """Parse a raw configuration dictionary into a Config."""
        feeds = raw_config.get("feeds") or []
        if not isinstance(feeds, list):
            raise ConfigurationError("'feeds' must be a list of URLs")

        raw_rules = raw_config.get("rules") or []
        if not isinstance(raw_rules, list):
            raise ConfigurationError("'rules' must be a list")

        rules = [cls._parse_rule(index, raw_rule) for index, raw_rule in enumerate(raw_rules)]

        classifier_data = raw_config.get("classifier") or {}
        if not isinstance(classifier_data, dict):
            raise ConfigurationError("'classifier' must be a mapping")

        defaults = ClassifierSettings()
        classifier = ClassifierSettings(
            model=classifier_data.get("model", defaults.model),
            endpoint=classifier_data.get("endpoint", defaults.endpoint),
            max_tokens=classifier_data.get("max_tokens", defaults.max_tokens),
            timeout=classifier_data.get("timeout", defaults.timeout),
            max_concurrency=classifier_data.get("max_concurrency"),
        )

        return Config(
            feeds=list(feeds),
            rules=rules,
            poll_interval_minutes=raw_config.get("poll_interval_minutes"),
            classifier=classifier,
        )

    @staticmethod
    def _parse_rule(index: int, raw_rule: Any) -> Rule:
        if not isinstance(raw_rule, dict):
            raise ConfigurationError(f"Rule {index} must be a mapping")

        raw_targets = raw_rule.get("notify") or []
        if not isinstance(raw_targets, list):
            raise ConfigurationError(f"Rule {index}: 'notify' must be a list")

        targets: List[NotificationTarget] = []
        for target_index, raw_target in enumerate(raw_targets):
            if not isinstance(raw_target, dict):
                raise ConfigurationError(
                    f"Rule {index}: notification target {target_index} must be a mapping"
                )
            targets.append(
                NotificationTarget(
                    slack=raw_target.get("slack"),
                    email=raw_target.get("email"),
                    webhook=raw_target.get("webhook"),
                )
            )

        try:
            return Rule(
                prompt=raw_rule.get("prompt") or "",
                notify_targets=targets,
                tags=raw_rule.get("tags"),
                sifter_type=raw_rule.get("sifter_type") or "llm",
            )
        except ConfigurationError as e:
            raise ConfigurationError(f"Rule {index}: {e.message}") from e

    def get_config(self) -> Config:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            return self.load_config()
        return self._config

    def get_config_template(self) -> Dict[str, Any]:
        """
        Get a template configuration dictionary.

        Returns:
            Dictionary with example configuration structure.
        """
        return {
            "feeds": [
                "https://stackoverflow.com/feeds/tag/oauth",
                "https://stackoverflow.com/feeds/tag/performance",
            ],
            "poll_interval_minutes": 60,
            "classifier": {
                "model": "gpt-3.5-turbo",
                "max_concurrency": 8,
            },
            "rules": [
                {
                    "prompt": "Questions about authentication or authorization",
                    "notify": [{"slack": "#auth-team"}, {"email": "security@example.com"}],
                },
                {
                    "prompt": "Every new post",
                    "sifter_type": "all",
                    "notify": [{"webhook": "https://example.com/hooks/stack-sifter"}],
                },
            ],
        }
