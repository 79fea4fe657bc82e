"""Optional YAML file with bot content (extra canned responses)."""

import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# ${VAR} or ${VAR:-default}
ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")
CANNED_RULE_KEYS = ("pattern", "answer", "response_id")


def expand_env(content: str) -> str:
    """Replace ${VAR} / ${VAR:-default} with environment values.

    Unset variables without a default are left untouched.
    """
    def replace(match: re.Match) -> str:
        name, default = match.group(1), match.group(2)
        value = os.environ.get(name)
        if value is not None:
            return value
        return default if default is not None else match.group(0)

    return ENV_PATTERN.sub(replace, content)


class BotConfig:
    """Read-only view of `config/config.yaml`.

    A missing or unparsable file yields an empty config; the bot runs on its
    built-in content in that case.
    """

    def __init__(self, config_path: str = "config/config.yaml"):
        self.config_path = Path(config_path)
        self._data: dict[str, Any] = {}
        self.reload()

    def reload(self):
        if not self.config_path.exists():
            logger.warning(f"Config file not found at {self.config_path}, using built-in content only")
            self._data = {}
            return

        content = expand_env(self.config_path.read_text(encoding="utf-8"))
        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML config {self.config_path}: {e}")
            data = {}
        if not isinstance(data, dict):
            logger.error(f"Config {self.config_path} must be a mapping, got {type(data).__name__}")
            data = {}
        self._data = data
        logger.info(f"Loaded config from {self.config_path}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-separated key (`slack.channels.support`)."""
        value: Any = self._data
        for part in key.split("."):
            if not isinstance(value, dict) or value.get(part) is None:
                return default
            value = value[part]
        return value

    def canned_responses(self) -> list[dict[str, str]]:
        """Canned response rules with all required keys present."""
        rules = self.get("canned_responses", [])
        if not isinstance(rules, list):
            logger.warning("`canned_responses` must be a list, ignoring it")
            return []

        valid = []
        for rule in rules:
            if isinstance(rule, dict) and all(rule.get(k) for k in CANNED_RULE_KEYS):
                valid.append({k: str(rule[k]) for k in CANNED_RULE_KEYS})
            else:
                logger.warning(f"Ignoring canned response without {', '.join(CANNED_RULE_KEYS)}: {rule!r}")
        return valid


@lru_cache
def get_bot_config(config_path: str = "config/config.yaml") -> BotConfig:
    """Get cached bot config instance."""
    return BotConfig(config_path)
