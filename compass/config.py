"""
Config loader for compass.
Reads config.yaml once at startup. All other modules import from here.
${ENV_VAR} references are resolved from the environment (and .env).
"""

import os
import re
import yaml
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

_CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"

_config: dict | None = None

DEFAULTS = {
    "server": {"host": "0.0.0.0", "port": 3000},
    "backend": {
        "url": "https://api.openai.com/v1",
        "api_key": "${OPENAI_API_KEY}",
        "model": "gpt-3.5-turbo",
        "timeout": 120,
    },
    "logging": {"level": "INFO"},
}


def _resolve_env_vars(value: str) -> str:
    """Replace ${ENV_VAR} patterns with actual environment variable values."""
    return re.sub(r"\$\{(\w+)\}", lambda m: os.environ.get(m.group(1), ""), value)


def _walk_and_resolve(obj):
    """Recursively resolve env vars in all string values."""
    if isinstance(obj, dict):
        return {k: _walk_and_resolve(v) for k, v in obj.items()}
    elif isinstance(obj, str):
        return _resolve_env_vars(obj)
    return obj


def _merge_defaults(raw: dict) -> dict:
    """Fill in missing top-level sections and keys from DEFAULTS."""
    merged = {}
    for section, defaults in DEFAULTS.items():
        merged[section] = {**defaults, **(raw.get(section) or {})}
    for key, value in raw.items():
        merged.setdefault(key, value)
    return merged


def load_config(path: Path | None = None) -> dict:
    """Load and cache config from YAML file."""
    global _config
    if _config is not None:
        return _config

    config_path = path or _CONFIG_PATH
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    _config = _walk_and_resolve(_merge_defaults(raw))
    return _config


def get_config() -> dict:
    """Return cached base config, loading if necessary."""
    if _config is None:
        return load_config()
    return _config


def reset_config():
    """Drop the cached config so the next get_config() reloads it."""
    global _config
    _config = None
