"""
Parser Configuration.

Loads cellexpr parser settings. Environment variables always take
precedence over config file values.

Config file location (in order of precedence):
1. CELLEXPR_CONFIG_DIR/cellexpr.json (if CELLEXPR_CONFIG_DIR is set)
2. CWD/cellexpr.json

Supported settings in cellexpr.json:
{
    "grammar_path": "path/to/grammar.lark",   // -> CELLEXPR_GRAMMAR_PATH
    "parser_debug": false,                    // -> CELLEXPR_PARSER_DEBUG
    "parser_cache": false                     // -> CELLEXPR_PARSER_CACHE
}
"""

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "cellexpr.json"
DEFAULT_GRAMMAR_PATH = Path(__file__).parent / "grammar.lark"
DEFAULT_START_RULE = "start"

# Mapping from cellexpr.json keys to environment variable names
CONFIG_KEY_TO_ENV = {
    "grammar_path": "CELLEXPR_GRAMMAR_PATH",
    "parser_debug": "CELLEXPR_PARSER_DEBUG",
    "parser_cache": "CELLEXPR_PARSER_CACHE",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ParserConfig:
    """Settings for the Lark front end.

    Frozen so that it can key the compiled-parser cache.
    """
    grammar_path: Path = DEFAULT_GRAMMAR_PATH
    debug: bool = False
    cache: bool = False
    start: str = DEFAULT_START_RULE

    def with_overrides(self, **kwargs) -> "ParserConfig":
        """Create a new config with some fields replaced."""
        return replace(self, **kwargs)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def _config_file_path() -> Path:
    config_dir = os.getenv("CELLEXPR_CONFIG_DIR")
    if config_dir:
        return Path(config_dir) / CONFIG_FILENAME
    return Path.cwd() / CONFIG_FILENAME


def _read_config_file(path: Path) -> Dict[str, Any]:
    """Read cellexpr.json; a missing or unreadable file yields no settings."""
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring config file {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring config file {path}: expected a JSON object")
        return {}
    return data


def load_config(config_path: Optional[Path] = None) -> ParserConfig:
    """
    Build a ParserConfig from defaults, cellexpr.json and the environment.

    Priority: Environment variables > cellexpr.json > defaults

    Args:
        config_path: Explicit config file. If None, uses CELLEXPR_CONFIG_DIR or CWD.

    Returns:
        The merged ParserConfig
    """
    settings = _read_config_file(Path(config_path) if config_path else _config_file_path())

    for key, env_var in CONFIG_KEY_TO_ENV.items():
        env_value = os.getenv(env_var)
        if env_value is not None and env_value != "":
            settings[key] = env_value

    config = ParserConfig()
    if settings.get("grammar_path"):
        config = config.with_overrides(grammar_path=Path(settings["grammar_path"]))
    if "parser_debug" in settings:
        config = config.with_overrides(debug=_as_bool(settings["parser_debug"]))
    if "parser_cache" in settings:
        config = config.with_overrides(cache=_as_bool(settings["parser_cache"]))
    return config
