"""OpenStack cluster comprehensive cleanup."""

from .compute import delete_servers, delete_server_groups
from .ports import (
    clean_vips_ports,
    delete_ports_by_filter,
    delete_ports_by_network,
    delete_trunks,
)
from .loadbalancer import delete_load_balancers, delete_leftover_load_balancers
from .network import (
    delete_security_groups,
    delete_subnets,
    delete_networks,
    delete_floating_ips,
    untag_primary_network,
)
from .routers import clear_router_interfaces, delete_routers
from .storage import delete_containers
from .volumes import delete_volumes, delete_volume_snapshots
from .shares import delete_shares
from .images import delete_images
from .validation import validate_cloud
from .orchestrator import ClusterUninstaller

__all__ = [
    "delete_servers",
    "delete_server_groups",
    "clean_vips_ports",
    "delete_ports_by_filter",
    "delete_ports_by_network",
    "delete_trunks",
    "delete_load_balancers",
    "delete_leftover_load_balancers",
    "delete_security_groups",
    "delete_subnets",
    "delete_networks",
    "delete_floating_ips",
    "untag_primary_network",
    "clear_router_interfaces",
    "delete_routers",
    "delete_containers",
    "delete_volumes",
    "delete_volume_snapshots",
    "delete_shares",
    "delete_images",
    "validate_cloud",
    "ClusterUninstaller",
]
