"""
Configuration

Loads config.yaml over built-in defaults, then applies environment
overrides (including values from a local .env file).

Access uses dotted keys, matching how every component reads settings:

    config.get("llm.router.url")
    config.get("router.semantic_threshold", 0.75)
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger("valet.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"

DEFAULTS = {
    "llm": {
        "router": {
            "model": "qwen3:0.6b",
            "url": "http://localhost:11434/v1",
            "max_tokens": 100,
        },
        "fast": {
            "model": "qwen3:7b",
            "url": "http://localhost:11434/v1",
            "max_tokens": 4096,
        },
        "thinking": {
            "model": "qwen3:32b",
            "url": "http://localhost:11434/v1",
            "max_tokens": 8192,
        },
        "health_timeout": 35.0,      # seconds; also bounds classification
        "request_timeout": 120.0,    # seconds; fast/thinking chat calls
        "agent_max_iterations": 10,
        "api": {
            "provider": "anthropic",
            "model": "claude-sonnet-4-20250514",
            "api_key_env": "ANTHROPIC_API_KEY",
            "fallback_enabled": False,
        },
    },
    "embeddings": {
        "backend": "http",           # "http" or "local"
        "url": "http://localhost:11434/v1",
        "model": "nomic-embed-text",
        "local_model": "all-MiniLM-L6-v2",
        "timeout": 10.0,
        "cache_size": 1000,
    },
    "router": {
        "keyword_threshold": 0.7,
        "semantic_threshold": 0.75,
    },
    "logging": {
        "level": "INFO",
        "file": "./logs/valet.log",
        "console": True,
    },
}

# env var -> (dotted key, type)
ENV_OVERRIDES = {
    "ROUTER_MODEL": ("llm.router.model", str),
    "ROUTER_URL": ("llm.router.url", str),
    "ROUTER_MAX_TOKENS": ("llm.router.max_tokens", int),
    "FAST_MODEL": ("llm.fast.model", str),
    "FAST_URL": ("llm.fast.url", str),
    "FAST_MAX_TOKENS": ("llm.fast.max_tokens", int),
    "THINKING_MODEL": ("llm.thinking.model", str),
    "THINKING_URL": ("llm.thinking.url", str),
    "THINKING_MAX_TOKENS": ("llm.thinking.max_tokens", int),
    "HEALTH_TIMEOUT": ("llm.health_timeout", float),
    "AGENT_MAX_ITERATIONS": ("llm.agent_max_iterations", int),
    "EMBEDDINGS_BACKEND": ("embeddings.backend", str),
    "EMBEDDINGS_URL": ("embeddings.url", str),
    "EMBEDDINGS_MODEL": ("embeddings.model", str),
    "SEMANTIC_THRESHOLD": ("router.semantic_threshold", float),
    "LOG_LEVEL": ("logging.level", str),
    "LOG_FILE": ("logging.file", str),
    "LOG_CONSOLE": ("logging.console", lambda v: v.lower() != "false"),
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Dotted-key view over the merged configuration tree."""

    def __init__(self, data: Optional[dict] = None, env: Optional[dict] = None):
        self._data = _deep_merge(DEFAULTS, data or {})
        self._env = os.environ if env is None else env
        self._apply_env_overrides()

    def _apply_env_overrides(self):
        for env_name, (key, cast) in ENV_OVERRIDES.items():
            raw = self._env.get(env_name)
            if raw is None or raw == "":
                continue
            try:
                self.set(key, cast(raw))
            except ValueError:
                logger.warning(f"Ignoring invalid value for {env_name}: {raw!r}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dotted key, returning default if any part is missing."""
        node = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any):
        """Set a value by dotted key, creating intermediate sections."""
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = value

    def get_env(self, name: Optional[str], default: Optional[str] = None) -> Optional[str]:
        """Read a secret or setting from the environment."""
        if not name:
            return default
        return self._env.get(name, default)

    def as_dict(self) -> dict:
        return copy.deepcopy(self._data)


def load_config(path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML and the environment

    Args:
        path: Path to a YAML file (defaults to config.yaml at the repo root)

    Returns:
        Config instance
    """
    load_dotenv()

    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    data = {}
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
    elif path:
        raise FileNotFoundError(f"Config file not found: {config_path}")

    return Config(data)
