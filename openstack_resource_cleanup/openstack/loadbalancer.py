"""OpenStack load balancers (Octavia)."""

from __future__ import annotations

from ..models import Filter
from ..models.config import LEFTOVER_LB_DESCRIPTION_PREFIX
from ..utils import get_logger, report_stuck
from ..utils.errors import PROVIDER_ERRORS, is_not_found, is_service_unavailable
from .common import delete_each
from .provider import ClientOptions, connect

logger = get_logger()


def _delete_load_balancer(conn, lb_id: str) -> None:
    conn.load_balancer.delete_load_balancer(lb_id, ignore_missing=False, cascade=True)


def delete_load_balancers(opts: ClientOptions, cluster_filter: Filter) -> bool:
    """Cascade-delete load balancers whose description contains the cluster ID.

    Tags are not used: the only tag cloud-provider-openstack sets mirrors the
    name, while the description reliably names the cluster.
    """
    logger.debug("Deleting openstack load balancers")

    cluster_id = cluster_filter.cluster_id
    if not cluster_id:
        logger.warning("No cluster ID in filter, skipping load balancer deletion")
        return True

    try:
        conn = connect(opts)
        all_lbs = list(conn.load_balancer.load_balancers())
    except PROVIDER_ERRORS as e:
        if is_service_unavailable(e):
            logger.debug("Skip load balancer deletion because Octavia endpoint is not found")
            return True
        logger.error(f"Error listing load balancers: {e}")
        return False

    to_delete = [lb.id for lb in all_lbs if cluster_id in (lb.description or "")]
    deleted = delete_each(
        "load balancer", to_delete, lambda lb_id: _delete_load_balancer(conn, lb_id)
    )
    return deleted == len(to_delete)


def delete_port_fips(conn, port_id: str) -> bool:
    """Delete the floating IPs bound to a port; False if any is left."""
    try:
        fips = list(conn.network.ips(port_id=port_id))
    except PROVIDER_ERRORS as e:
        logger.error(f"Error listing floating IPs of port {port_id}: {e}")
        return False

    deleted = delete_each(
        "floating IP",
        [fip.id for fip in fips],
        lambda fip_id: conn.network.delete_ip(fip_id, ignore_missing=False),
    )
    return deleted == len(fips)


def delete_leftover_load_balancers(
    opts: ClientOptions,
    network_id: str,
    description_prefix: str = LEFTOVER_LB_DESCRIPTION_PREFIX,
) -> bool:
    """Delete the Kubernetes service load balancers still holding a network.

    Returns True only when no load balancer is left on the network; ports of
    the network must not be touched otherwise or floating IP associations of
    the remaining load balancers are lost.
    """
    try:
        conn = connect(opts)
        all_lbs = list(conn.load_balancer.load_balancers(vip_network_id=network_id))
    except PROVIDER_ERRORS as e:
        if is_service_unavailable(e):
            logger.debug("Skip load balancer deletion because Octavia endpoint is not found")
            return True
        logger.error(f"Error listing load balancers of network {network_id}: {e}")
        return False

    deleted = 0
    stuck: list[str] = []
    for lb in all_lbs:
        if not (lb.description or "").startswith(description_prefix):
            logger.debug(
                "Not deleting load balancer",
                extra={"resource_id": lb.id, "description": lb.description},
            )
            stuck.append(lb.id)
            continue

        # Cascade delete does not release the VIP floating IP
        if lb.vip_port_id and not delete_port_fips(conn, lb.vip_port_id):
            logger.warning(
                "Keeping load balancer whose floating IP could not be deleted",
                extra={"resource_id": lb.id, "port_id": lb.vip_port_id},
            )
            stuck.append(lb.id)
            continue

        try:
            _delete_load_balancer(conn, lb.id)
        except PROVIDER_ERRORS as e:
            if not is_not_found(e):
                logger.warning(
                    "Deleting load balancer failed",
                    extra={"resource_id": lb.id, "error": str(e)},
                )
                stuck.append(lb.id)
                continue
        else:
            logger.info(
                "DELETE load_balancer",
                extra={"resource_id": lb.id, "network_id": network_id},
            )
        deleted += 1

    if deleted != len(all_lbs):
        logger.warning(
            f"Only deleted {deleted} of {len(all_lbs)} load balancers",
            extra={"network_id": network_id},
        )
        report_stuck("load balancer", stuck)
        return False
    return True
