"""Configuration module for mtaa."""

from mtaa.config.loader import get_config_path, load_config, save_config
from mtaa.config.schema import ApiConfig, Config

__all__ = ["ApiConfig", "Config", "get_config_path", "load_config", "save_config"]
