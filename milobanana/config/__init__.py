"""Configuration module for milobanana."""

from milobanana.config.loader import load_config, get_config_path, save_config
from milobanana.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path", "save_config"]
