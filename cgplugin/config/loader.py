"""Configuration loading utilities."""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from cgplugin.config.schema import Config, HostConfig
from cgplugin.utils.exceptions import ConfigurationError, sanitize_error_message


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".cgplugin" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Environment variables (CGPLUGIN_CLIENT__TIMEOUT_MS, ...) fill fields the
    file leaves unset.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("top-level JSON value must be an object")
            return Config(**convert_keys(data))
        except (json.JSONDecodeError, ValidationError, ValueError) as e:
            raise ConfigurationError(
                f"Failed to load config from {path}: {sanitize_error_message(str(e))}. "
                "Fix the file or remove it to use defaults."
            ) from e

    return Config()


def resolve_host_keys(host: HostConfig) -> tuple[str, str]:
    """Return (private_pem, public_pem), reading key files where inline PEM is absent."""
    private_pem = host.private_key or _read_key_file(host.private_key_path, "private_key_path")
    public_pem = host.public_key or _read_key_file(host.public_key_path, "public_key_path")
    return private_pem, public_pem


def _read_key_file(path: str, field: str) -> str:
    if not path:
        raise ConfigurationError(f"host.{field} or inline key is required", field=field)
    key_path = Path(path).expanduser()
    try:
        return key_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"cannot read key file {key_path}: {e}", field=field) from e


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)
