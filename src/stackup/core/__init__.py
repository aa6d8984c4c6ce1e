"""
stackup Core Package.

Core functionality including:
- Service selection model and the interactive selector
- Port requirements of a selection
- Port and firewall negotiation
- Container health waiting
- Phased startup sequencing
"""

from stackup.core.selection import (
    SERVICE_LABELS,
    Service,
    ServiceSelection,
)
from stackup.core.commands import CommandRunner
from stackup.core.ports import PortConfig, required_ports
from stackup.core.health import HealthWaiter
from stackup.core.firewall import (
    FirewallManager,
    NegotiationReport,
    PortNegotiator,
    PortProbe,
    detect_firewall,
    select_port_probe,
)
from stackup.core.selector import ChecklistUI, ServiceSelector
from stackup.core.sequencer import (
    ServiceGroup,
    SequenceReport,
    StartupPhase,
    StartupSequencer,
    supabase_phases,
)

__all__ = [
    # Selection
    "Service",
    "ServiceSelection",
    "SERVICE_LABELS",
    "ServiceSelector",
    "ChecklistUI",
    # Commands
    "CommandRunner",
    # Ports
    "PortConfig",
    "required_ports",
    "PortNegotiator",
    "NegotiationReport",
    "PortProbe",
    "FirewallManager",
    "detect_firewall",
    "select_port_probe",
    # Startup
    "HealthWaiter",
    "ServiceGroup",
    "SequenceReport",
    "StartupPhase",
    "StartupSequencer",
    "supabase_phases",
]
