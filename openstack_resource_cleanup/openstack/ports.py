"""OpenStack ports, trunks and user-provided VIP ports."""

from __future__ import annotations
import re
import threading

from ..models import Filter
from ..models.config import MANAGED_SG_NAME_PATTERN, PORT_WORKERS, VIPS_PORT_TAG_SUFFIX
from ..utils import get_logger, report_stuck, run_worker_pool
from ..utils.errors import PROVIDER_ERRORS, is_conflict, is_not_found
from .common import delete_each
from .provider import ClientOptions, connect

logger = get_logger()


def get_fips_by_port(conn) -> dict:
    """Prefetch floating IPs keyed by the port they are bound to."""
    return {fip.port_id: fip for fip in conn.network.ips() if fip.port_id}


def get_sgs_by_id(conn) -> dict:
    """Prefetch security groups keyed by ID."""
    return {group.id: group for group in conn.network.security_groups()}


def delete_associated_trunk(conn, port_id: str) -> None:
    """Delete the trunks whose parent is ``port_id``.

    A port that is the parent of a trunk cannot be deleted until the trunk
    is gone. Failures are logged; the port is retried on the next pass.
    """
    logger.debug("Deleting associated trunk", extra={"port_id": port_id})
    try:
        trunks = list(conn.network.trunks(port_id=port_id))
    except PROVIDER_ERRORS as e:
        if is_not_found(e):
            logger.debug("Skip trunk deletion because the cloud doesn't support trunk ports")
        else:
            logger.error(f"Error listing trunks of port {port_id}: {e}")
        return

    delete_each(
        "trunk",
        [trunk.id for trunk in trunks],
        lambda trunk_id: conn.network.delete_trunk(trunk_id, ignore_missing=False),
    )


def delete_ports(
    opts: ClientOptions,
    list_query: dict,
    workers: int = PORT_WORKERS,
    managed_sg_pattern: str = MANAGED_SG_NAME_PATTERN,
) -> bool:
    """Delete the ports returned by ``list_query`` through a worker pool.

    Per port: dissociate its floating IP, detach every security group and
    delete the detached ones created by cloud-provider-openstack, then delete
    the port. A port that cannot be deleted gets its parent trunk removed and
    is left for the next pass.
    """
    logger.debug("Deleting openstack ports", extra={"query": list_query})
    try:
        conn = connect(opts)
        all_ports = list(conn.network.ports(**list_query))
        fip_by_port = get_fips_by_port(conn)
        sg_by_id = get_sgs_by_id(conn)
    except PROVIDER_ERRORS as e:
        logger.error(f"Error listing ports: {e}")
        return False

    managed_sg = re.compile(managed_sg_pattern)

    def _delete_port(port) -> bool:
        fip = fip_by_port.get(port.id)
        if fip is not None:
            logger.debug(
                "Dissociating floating IP",
                extra={"floating_ip_id": fip.id, "port_id": port.id},
            )
            try:
                conn.network.update_ip(fip, port_id=None)
            except PROVIDER_ERRORS as e:
                if not is_not_found(e):
                    logger.error(
                        "Dissociating floating IP failed, skipping port",
                        extra={
                            "floating_ip_id": fip.id,
                            "port_id": port.id,
                            "error": str(e),
                        },
                    )
                    return False

        assigned_sgs = list(port.security_group_ids or [])
        if assigned_sgs:
            try:
                conn.network.update_port(port, security_group_ids=[])
            except PROVIDER_ERRORS as e:
                logger.debug(
                    "Detaching security groups failed",
                    extra={"port_id": port.id, "error": str(e)},
                )
        for group_id in assigned_sgs:
            group = sg_by_id.get(group_id)
            if group is None or not managed_sg.match(group.name or ""):
                continue
            logger.debug(
                "Deleting cloud-provider-openstack security group",
                extra={"security_group_id": group_id, "port_id": port.id},
            )
            try:
                conn.network.delete_security_group(group_id, ignore_missing=False)
            except PROVIDER_ERRORS as e:
                # the last port holding the group is expected to succeed
                if not (is_not_found(e) or is_conflict(e)):
                    logger.error(
                        "Deleting security group failed, it might get orphaned",
                        extra={
                            "security_group_id": group_id,
                            "port_id": port.id,
                            "error": str(e),
                        },
                    )

        try:
            conn.network.delete_port(port, ignore_missing=False)
        except PROVIDER_ERRORS as e:
            if is_not_found(e):
                return True
            logger.warning(
                "Deleting port failed",
                extra={"resource_id": port.id, "error": str(e)},
            )
            delete_associated_trunk(conn, port.id)
            return False
        logger.info("DELETE port", extra={"resource_id": port.id})
        return True

    stuck: list[str] = []
    stuck_lock = threading.Lock()

    def _delete_or_record(port) -> bool:
        if _delete_port(port):
            return True
        with stuck_lock:
            stuck.append(port.id)
        return False

    deleted = run_worker_pool(all_ports, _delete_or_record, workers)
    report_stuck("port", stuck)
    return deleted == len(all_ports)


def delete_ports_by_filter(
    opts: ClientOptions,
    cluster_filter: Filter,
    workers: int = PORT_WORKERS,
    managed_sg_pattern: str = MANAGED_SG_NAME_PATTERN,
) -> bool:
    """Delete every port tagged with any of the filter tags."""
    return delete_ports(
        opts, {"any_tags": cluster_filter.query()}, workers, managed_sg_pattern
    )


def delete_ports_by_network(
    opts: ClientOptions,
    network_id: str,
    workers: int = PORT_WORKERS,
    managed_sg_pattern: str = MANAGED_SG_NAME_PATTERN,
) -> bool:
    """Delete every port of a network, tagged or not."""
    return delete_ports(
        opts, {"network_id": network_id}, workers, managed_sg_pattern
    )


def delete_trunks(opts: ClientOptions, cluster_filter: Filter) -> bool:
    logger.debug("Deleting openstack trunks")
    try:
        conn = connect(opts)
        all_trunks = list(conn.network.trunks(any_tags=cluster_filter.query()))
    except PROVIDER_ERRORS as e:
        if is_not_found(e):
            logger.debug("Skip trunk deletion because the cloud doesn't support trunk ports")
            return True
        logger.error(f"Error listing trunks: {e}")
        return False

    deleted = delete_each(
        "trunk",
        [trunk.id for trunk in all_trunks],
        lambda trunk_id: conn.network.delete_trunk(trunk_id, ignore_missing=False),
    )
    return deleted == len(all_trunks)


def clean_vips_ports(
    opts: ClientOptions,
    cluster_filter: Filter,
    vips_port_tag_suffix: str = VIPS_PORT_TAG_SUFFIX,
) -> bool:
    """Release user-provided API and Ingress VIP ports without deleting them.

    The cluster's security groups and floating IP are removed from each port,
    then the port loses the tag that marks it as used by the cluster.
    """
    logger.debug("Cleaning provided ports for API and Ingress VIPs")

    cluster_id = cluster_filter.cluster_id
    if not cluster_id:
        logger.warning("No cluster ID in filter, skipping VIP port cleanup")
        return True
    tag = cluster_id + vips_port_tag_suffix

    try:
        conn = connect(opts)
        vip_ports = list(conn.network.ports(any_tags=tag))
        if not vip_ports:
            return True
        cluster_sg_ids = {
            group.id
            for group in conn.network.security_groups(any_tags=cluster_filter.query())
        }
        fip_by_port = get_fips_by_port(conn)
    except PROVIDER_ERRORS as e:
        logger.error(f"Error listing VIP ports: {e}")
        return False

    for port in vip_ports:
        kept_sgs = [
            group_id
            for group_id in port.security_group_ids or []
            if group_id not in cluster_sg_ids
        ]
        try:
            logger.debug("Updating security groups", extra={"port_id": port.id})
            conn.network.update_port(port, security_group_ids=kept_sgs)

            fip = fip_by_port.get(port.id)
            if fip is not None:
                logger.debug(
                    "Dissociating floating IP",
                    extra={"floating_ip_id": fip.id, "port_id": port.id},
                )
                try:
                    conn.network.update_ip(fip, port_id=None)
                except PROVIDER_ERRORS as e:
                    if not is_not_found(e):
                        raise
                    logger.debug(
                        "Cannot find floating ip. It's probably already been deleted.",
                        extra={"floating_ip_id": fip.id},
                    )

            logger.debug("Deleting tag", extra={"port_id": port.id, "tag": tag})
            conn.network.remove_tag(port, tag)
        except PROVIDER_ERRORS as e:
            logger.warning(
                "Cleaning VIP port failed",
                extra={"resource_id": port.id, "error": str(e)},
            )
            report_stuck("vips port", [port.id])
            return False
        logger.info("UNTAG vips port", extra={"resource_id": port.id, "tag": tag})
    return True
