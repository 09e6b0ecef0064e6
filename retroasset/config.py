"""Asset server configuration, Pydantic BaseSettings loaded from env / .env."""

from __future__ import annotations

import socket
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_LISTEN = ":5164"
RETROARCH_ORIGIN = "http://buildbot.libretro.com/assets/"


def split_listen_address(value: str) -> tuple[str, int]:
    """Split ``host:port`` into its parts.

    An empty host means all interfaces. IPv6 hosts must be bracketed.
    """
    host, sep, port_str = value.strip().rpartition(":")
    if not sep:
        raise ValueError(f"missing port in listen address {value!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        raise ValueError(f"IPv6 listen address must be bracketed: {value!r}")
    try:
        port = int(port_str)
    except ValueError:
        raise ValueError(f"invalid port in listen address {value!r}") from None
    if not 0 <= port <= 65535:
        raise ValueError(f"port out of range in listen address {value!r}")
    return host, port


class Settings(BaseSettings):
    """Server settings; the CLI passes its flags as init overrides."""

    app_name: str = "retroarch-asset-server"
    log_level: str = "INFO"

    # Network
    listen: str = DEFAULT_LISTEN

    # Local asset roots, empty = proxy to remote_origin
    frontend_path: str = ""
    system_path: str = ""
    rom_path: str = ""

    # Upstream
    remote_origin: str = RETROARCH_ORIGIN
    proxy_timeout: float = 30.0  # seconds per network operation

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RETROASSET_",
        extra="ignore",
    )

    @field_validator("listen")
    @classmethod
    def _check_listen(cls, value: str) -> str:
        host, port = split_listen_address(value)
        if host:
            try:
                socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
            except socket.gaierror as exc:
                raise ValueError(f"cannot resolve listen host {host!r}: {exc}") from None
        return value.strip()

    @field_validator("frontend_path", "system_path", "rom_path")
    @classmethod
    def _check_asset_dir(cls, value: str) -> str:
        if not value:
            return ""
        path = Path(value).expanduser()
        if not path.is_dir():
            raise ValueError(f"asset directory does not exist: {value}")
        return str(path.resolve())

    @field_validator("remote_origin")
    @classmethod
    def _check_origin(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"remote origin must be an http(s) URL: {value}")
        return value if value.endswith("/") else value + "/"

    @property
    def listen_host(self) -> str:
        return split_listen_address(self.listen)[0]

    @property
    def listen_port(self) -> int:
        return split_listen_address(self.listen)[1]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
