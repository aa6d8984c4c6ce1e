"""
stackup: interactive startup for the local n8n stack.

This package checks the Docker environment, lets the operator pick which
service groups to launch (n8n, Supabase, Nginx Proxy Manager, Cloudflared,
Portainer), negotiates the host ports and firewall rules they need, and
brings them up through docker compose in a fixed, staggered order.
"""

from importlib.metadata import version

__version__ = version("stackup")
__all__ = ["__version__"]
