"""Configuration schema using Pydantic.

Defaults mirror the protocol constants; a JSON file (see loader) or
CGPLUGIN_* environment variables override them.
"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientConfig(BaseModel):
    """Plugin-side dispatcher configuration."""
    iframe_uid: str = ""  # Passed to the plugin as the "iframeUid" URL parameter
    sign_url: str = ""  # Request-signing route operated by the plugin author
    public_key: str = ""  # SPKI PEM matching the host private key
    timeout_ms: int = Field(default=2000, gt=0)  # Wait per attempt before re-sending
    max_attempts: int = Field(default=3, ge=1)
    max_requests_per_minute: int = Field(default=100, ge=1)
    rate_window_seconds: float = Field(default=60.0, gt=0)
    sign_timeout_seconds: float = Field(default=10.0, gt=0)


class HostConfig(BaseModel):
    """Host-side signer configuration."""
    private_key: str = ""  # PKCS#8 PEM; wins over private_key_path
    public_key: str = ""  # SPKI PEM; wins over public_key_path
    private_key_path: str = ""
    public_key_path: str = ""
    allowed_plugin_ids: list[str] = Field(default_factory=list)  # Empty = sign for any plugin
    listen_host: str = "127.0.0.1"
    listen_port: int = 8787


class Config(BaseSettings):
    """Root configuration for cgplugin."""
    client: ClientConfig = Field(default_factory=ClientConfig)
    host: HostConfig = Field(default_factory=HostConfig)

    model_config = SettingsConfigDict(
        env_prefix="CGPLUGIN_",
        env_nested_delimiter="__",
    )
