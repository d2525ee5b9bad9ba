"""Load ``StakeholdConfig`` from YAML.

String values may reference environment variables as ``${NAME}``; unset
variables expand to an empty string. With no file anywhere on the search
path every section takes its defaults.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from stakehold.config.schema import StakeholdConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "STAKEHOLD_CONFIG"

SEARCH_PATHS = (
    Path("config.yaml"),
    Path("~/.stakehold/config.yaml"),
)

_ENV_REF = re.compile(r"\$\{(\w+)\}")


def _expand_env_vars(value: Any) -> Any:
    if isinstance(value, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {key: _expand_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    return value


def locate_config(path: str | Path | None = None) -> Path | None:
    """Config file to read, or None to run on defaults.

    An explicit path (argument, then ``$STAKEHOLD_CONFIG``) is the only
    candidate when given; a missing explicit file is logged and falls back
    to defaults rather than to the search path.
    """
    explicit = path if path is not None else os.environ.get(CONFIG_ENV_VAR) or None
    if explicit is not None:
        candidate = Path(explicit).expanduser()
        if candidate.is_file():
            return candidate
        logger.warning("Config file not found: %s", candidate)
        return None

    for candidate in SEARCH_PATHS:
        candidate = candidate.expanduser()
        if candidate.is_file():
            return candidate
    return None


def load_config(path: str | Path | None = None) -> StakeholdConfig:
    """Read, expand and validate the configuration.

    Raises ``yaml.YAMLError`` for unparseable files and
    ``pydantic.ValidationError`` for values the schema rejects.
    """
    config_path = locate_config(path)
    raw: dict[str, Any] = {}
    if config_path is None:
        logger.info("No config file, using defaults")
    else:
        logger.info("Loading config from %s", config_path)
        raw = _expand_env_vars(yaml.safe_load(config_path.read_text()) or {})

    config = StakeholdConfig.model_validate(raw)
    logger.debug(
        "Config v%d: database=%s oversell_policy=%s",
        config.version, config.database.path, config.ledger.oversell_policy,
    )
    return config


def resolve_path(path_str: str) -> Path | str:
    """Absolute path for a configured file; ``:memory:`` passes through."""
    if path_str == ":memory:":
        return path_str
    return Path(path_str).expanduser().resolve()
