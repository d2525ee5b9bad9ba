"""Configuration loading, validation, and defaults."""

from stakehold.config.loader import load_config
from stakehold.config.schema import StakeholdConfig

__all__ = ["load_config", "StakeholdConfig"]
