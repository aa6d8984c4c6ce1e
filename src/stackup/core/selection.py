"""
Service groups and the operator's selection of them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class Service(str, Enum):
    """Selectable service groups, in menu order."""

    N8N = "n8n"
    SUPABASE = "supabase"
    NPM = "npm"
    CLOUDFLARED = "cloudflared"
    PORTAINER = "portainer"

    @property
    def label(self) -> str:
        return SERVICE_LABELS[self]

    @property
    def question(self) -> str:
        """Yes/no question used when no checklist tool is installed."""
        return f"Start {self.label}?"


SERVICE_LABELS: dict[Service, str] = {
    Service.N8N: "n8n",
    Service.SUPABASE: "Supabase (full stack)",
    Service.NPM: "Nginx Proxy Manager",
    Service.CLOUDFLARED: "Cloudflared Tunnel",
    Service.PORTAINER: "Portainer",
}

# Checklist item descriptions
SERVICE_DESCRIPTIONS: dict[Service, str] = {
    Service.N8N: "n8n workflow automation",
    Service.SUPABASE: "Supabase (full stack)",
    Service.NPM: "Nginx Proxy Manager",
    Service.CLOUDFLARED: "Cloudflared Tunnel",
    Service.PORTAINER: "Portainer",
}

# Lines of the "Selected Services" summary
SERVICE_SUMMARIES: dict[Service, str] = {
    Service.N8N: "n8n (+ independent Postgres: n8n-db)",
    Service.SUPABASE: "Supabase (full stack)",
    Service.NPM: "Nginx Proxy Manager",
    Service.CLOUDFLARED: "Cloudflared Tunnel",
    Service.PORTAINER: "Portainer",
}


@dataclass(frozen=True)
class ServiceSelection:
    """Which service groups the operator chose for this run."""

    n8n: bool = False
    supabase: bool = False
    npm: bool = False
    cloudflared: bool = False
    portainer: bool = False

    @classmethod
    def from_services(cls, services: Iterable[Service | str]) -> ServiceSelection:
        """Build a selection from service names; unknown names are ignored."""
        chosen: set[Service] = set()
        for item in services:
            try:
                chosen.add(Service(item))
            except ValueError:
                continue
        return cls(**{service.value: service in chosen for service in Service})

    def is_selected(self, service: Service) -> bool:
        return bool(getattr(self, service.value))

    @property
    def services(self) -> list[Service]:
        """Selected services in menu order."""
        return [service for service in Service if self.is_selected(service)]

    @property
    def is_empty(self) -> bool:
        return not self.services
