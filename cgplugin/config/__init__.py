"""Configuration module for cgplugin."""

from cgplugin.config.loader import load_config, get_config_path, resolve_host_keys
from cgplugin.config.schema import ClientConfig, Config, HostConfig

__all__ = ["ClientConfig", "Config", "HostConfig", "load_config", "get_config_path", "resolve_host_keys"]
