"""OpenStack routers and their interfaces."""

from __future__ import annotations
from typing import Iterable

from ..models import Filter
from ..utils import get_logger, report_stuck
from ..utils.errors import PROVIDER_ERRORS, is_not_found
from .provider import ClientOptions, connect

logger = get_logger()

ROUTER_GATEWAY_OWNER = "network:router_gateway"


def is_cluster_router(cluster_tag: str, tags: Iterable[str] | None) -> bool:
    """True when the router was created by the installer for this cluster."""
    return cluster_tag in (tags or [])


def _dissociate_router_fips(conn, router_id: str, fips) -> bool:
    for fip in fips:
        logger.debug(
            "Dissociating floating IP", extra={"floating_ip_id": fip.id, "router_id": router_id}
        )
        try:
            conn.network.update_ip(fip, port_id=None)
        except PROVIDER_ERRORS as e:
            if is_not_found(e):
                continue
            logger.error(
                "Updating floating IP for router failed",
                extra={"floating_ip_id": fip.id, "router_id": router_id, "error": str(e)},
            )
            return False
    return True


def delete_routers(opts: ClientOptions, cluster_filter: Filter) -> bool:
    """Delete cluster routers after releasing their floating IPs, gateway and interfaces.

    Runs after every other task has finished. Interfaces the parallel phase
    could not reach are detached here, with the same rules as
    ``remove_router_interfaces``.
    """
    logger.debug("Deleting openstack routers")
    try:
        conn = connect(opts)
        all_routers = list(conn.network.routers(any_tags=cluster_filter.query()))
    except PROVIDER_ERRORS as e:
        logger.error(f"Error listing routers: {e}")
        return False

    deleted = 0
    stuck: list[str] = []
    for router in all_routers:
        try:
            fips = list(conn.network.ips(router_id=router.id))
        except PROVIDER_ERRORS as e:
            logger.error(f"Error listing floating IPs of router {router.id}: {e}")
            return False

        # User-provisioned floating IPs survive the router, so only dissociate them
        if not _dissociate_router_fips(conn, router.id, fips):
            stuck.append(router.id)
            continue

        try:
            conn.network.update_router(router, external_gateway_info={})
        except PROVIDER_ERRORS as e:
            logger.error(
                "Clearing router gateway failed",
                extra={"resource_id": router.id, "error": str(e)},
            )

        try:
            interfaces_removed = remove_router_interfaces(conn, cluster_filter, router)
        except PROVIDER_ERRORS as e:
            logger.error(
                "Listing router interfaces failed",
                extra={"resource_id": router.id, "error": str(e)},
            )
            interfaces_removed = False
        if not interfaces_removed:
            stuck.append(router.id)
            continue

        logger.debug("Deleting router", extra={"resource_id": router.id})
        try:
            conn.network.delete_router(router.id, ignore_missing=False)
        except PROVIDER_ERRORS as e:
            if not is_not_found(e):
                logger.warning(
                    "Deleting router failed",
                    extra={"resource_id": router.id, "error": str(e)},
                )
                stuck.append(router.id)
                continue
        else:
            logger.info("DELETE router", extra={"resource_id": router.id})
        deleted += 1
    report_stuck("router", stuck)
    return deleted == len(all_routers)


def get_router_interfaces(conn, networks) -> list:
    """Find the port holding the gateway IP of a cluster network.

    The first network whose first subnet has a gateway IP decides; its
    gateway port belongs to the router the cluster is attached to. Provider
    errors propagate.
    """
    for network in networks:
        subnet_ids = list(network.subnet_ids or [])
        if not subnet_ids:
            continue
        subnet = conn.network.get_subnet(subnet_ids[0])
        if not subnet.gateway_ip:
            continue
        router_ports = list(
            conn.network.ports(
                fixed_ips=[
                    f"subnet_id={subnet_ids[0]}",
                    f"ip_address={subnet.gateway_ip}",
                ]
            )
        )
        if router_ports:
            logger.debug(
                "Found port connected to router",
                extra={"port_id": router_ports[0].id, "router_id": router_ports[0].device_id},
            )
            return router_ports
    return []


def remove_router_interfaces(conn, cluster_filter: Filter, router) -> bool:
    """Detach cluster subnets from a router.

    A cluster-owned router loses every interface. A foreign router only
    loses interfaces into cluster-tagged subnets; its other interfaces are
    left alone and not counted. Each subnet is detached once.
    """
    router_ports = list(conn.network.ports(device_id=router.id))
    cluster_subnet_ids = {
        subnet.id for subnet in conn.network.subnets(any_tags=cluster_filter.query())
    }
    cluster_router = is_cluster_router(cluster_filter.cluster_tag(), router.tags)

    to_remove: list[str] = []
    for port in router_ports:
        if port.device_owner == ROUTER_GATEWAY_OWNER:
            continue
        for fixed_ip in port.fixed_ips or []:
            subnet_id = fixed_ip.get("subnet_id")
            if not cluster_router and subnet_id not in cluster_subnet_ids:
                logger.debug(
                    "Found custom interface on router",
                    extra={"port_id": port.id, "router_id": router.id},
                )
                continue
            if subnet_id and subnet_id not in to_remove:
                to_remove.append(subnet_id)

    removed_subnets: set[str] = set()
    for subnet_id in to_remove:
        logger.debug(
            "Removing subnet from router",
            extra={"subnet_id": subnet_id, "router_id": router.id},
        )
        try:
            conn.network.remove_interface_from_router(router, subnet_id=subnet_id)
        except PROVIDER_ERRORS as e:
            if not is_not_found(e):
                # still in use by ports on the subnet
                logger.debug(
                    "Removing subnet from router failed",
                    extra={"subnet_id": subnet_id, "router_id": router.id, "error": str(e)},
                )
                return False
        removed_subnets.add(subnet_id)
    return len(removed_subnets) == len(to_remove)


def clear_router_interfaces(opts: ClientOptions, cluster_filter: Filter) -> bool:
    """Detach the cluster networks from the router they are plugged into."""
    logger.debug("Removing interfaces from router")
    try:
        conn = connect(opts)
        all_networks = list(conn.network.networks(tags=cluster_filter.query()))
        router_ports = get_router_interfaces(conn, all_networks)
        if not router_ports:
            return True
        router = conn.network.get_router(router_ports[0].device_id)
        return remove_router_interfaces(conn, cluster_filter, router)
    except PROVIDER_ERRORS as e:
        logger.debug(f"Error removing router interfaces: {e}")
        return False
