"""
Port requirements of a service selection.

The ports that must be reachable from outside the host depend on which
service groups run together; a tunnel makes all of them unnecessary.
"""

from __future__ import annotations

from pathlib import Path

import structlog
from pydantic import BaseModel, Field, ValidationError

from stackup.config.environment import read_env_values
from stackup.core.selection import ServiceSelection

logger = structlog.get_logger(__name__)

N8N_PORT = 5678
REALTIME_PORT = 4000
PROXY_MANAGER_PORTS = (80, 81, 443)

# Supabase .env keys that override the defaults below
PORT_ENV_KEYS: dict[str, str] = {
    "postgres_port": "POSTGRES_PORT",
    "pooler_proxy_port_transaction": "POOLER_PROXY_PORT_TRANSACTION",
    "kong_http_port": "KONG_HTTP_PORT",
    "kong_https_port": "KONG_HTTPS_PORT",
}


class PortConfig(BaseModel):
    """Externally configurable Supabase ports."""

    model_config = {"frozen": True}

    postgres_port: int = Field(default=5432, ge=1, le=65535)
    pooler_proxy_port_transaction: int = Field(default=6543, ge=1, le=65535)
    kong_http_port: int = Field(default=8000, ge=1, le=65535)
    kong_https_port: int = Field(default=8443, ge=1, le=65535)

    @classmethod
    def from_env_file(cls, path: Path) -> PortConfig:
        """
        Load port overrides from the Supabase .env file.

        A missing file yields the defaults; an invalid value is logged and
        its default kept.
        """
        values = read_env_values(path)
        overrides: dict[str, str] = {}
        for field_name, env_key in PORT_ENV_KEYS.items():
            raw = values.get(env_key, "").strip()
            if not raw:
                continue
            try:
                cls.model_validate({field_name: raw})
            except ValidationError:
                logger.warning("invalid_port_override", key=env_key, value=raw, path=str(path))
                continue
            overrides[field_name] = raw
        return cls.model_validate(overrides)


def required_ports(selection: ServiceSelection, config: PortConfig | None = None) -> tuple[int, ...]:
    """
    Compute the TCP ports the selection needs reachable from outside.

    Rules are checked in order and the first match wins:
    cloudflared → nothing; npm → 80/81/443; supabase → database, pooler,
    realtime and Kong ports (+ n8n); n8n alone → n8n plus its own
    database ports.

    Returns:
        Sorted, de-duplicated port numbers.
    """
    config = config or PortConfig()
    ports: list[int] = []

    if selection.cloudflared:
        ports = []
    elif selection.npm:
        ports = list(PROXY_MANAGER_PORTS)
    elif selection.supabase:
        ports = [
            config.postgres_port,
            config.pooler_proxy_port_transaction,
            REALTIME_PORT,
            config.kong_http_port,
            config.kong_https_port,
        ]
        if selection.n8n:
            ports.append(N8N_PORT)
    elif selection.n8n:
        ports = [
            N8N_PORT,
            config.postgres_port,
            config.pooler_proxy_port_transaction,
            REALTIME_PORT,
        ]

    return tuple(sorted(set(ports)))
