"""OpenStack networking resources (networks, subnets, security groups, floating IPs)."""

from __future__ import annotations

from ..models import Filter
from ..models.config import (
    LEFTOVER_LB_DESCRIPTION_PREFIX,
    MANAGED_SG_NAME_PATTERN,
    PORT_WORKERS,
    PRIMARY_NETWORK_TAG_SUFFIX,
)
from ..utils import get_logger, report_stuck
from ..utils.errors import PROVIDER_ERRORS, UnrecoverableError, is_not_found
from .common import delete_each
from .loadbalancer import delete_leftover_load_balancers
from .ports import delete_ports_by_network
from .provider import ClientOptions, connect

logger = get_logger()


def delete_security_groups(opts: ClientOptions, cluster_filter: Filter) -> bool:
    logger.debug("Deleting openstack security groups")
    try:
        conn = connect(opts)
        all_groups = list(conn.network.security_groups(any_tags=cluster_filter.query()))
    except PROVIDER_ERRORS as e:
        logger.error(f"Error listing security groups: {e}")
        return False

    # Groups still used by servers fail with a conflict until the servers are gone
    deleted = delete_each(
        "security group",
        [group.id for group in all_groups],
        lambda group_id: conn.network.delete_security_group(
            group_id, ignore_missing=False
        ),
    )
    return deleted == len(all_groups)


def delete_subnets(opts: ClientOptions, cluster_filter: Filter) -> bool:
    logger.debug("Deleting openstack subnets")
    try:
        conn = connect(opts)
        all_subnets = list(conn.network.subnets(any_tags=cluster_filter.query()))
    except PROVIDER_ERRORS as e:
        logger.error(f"Error listing subnets: {e}")
        return False

    deleted = delete_each(
        "subnet",
        [subnet.id for subnet in all_subnets],
        lambda subnet_id: conn.network.delete_subnet(subnet_id, ignore_missing=False),
    )
    return deleted == len(all_subnets)


def delete_floating_ips(opts: ClientOptions, cluster_filter: Filter) -> bool:
    logger.debug("Deleting openstack floating ips")
    try:
        conn = connect(opts)
        all_fips = list(conn.network.ips(any_tags=cluster_filter.query()))
    except PROVIDER_ERRORS as e:
        logger.error(f"Error listing floating ips: {e}")
        return False

    deleted = delete_each(
        "floating IP",
        [fip.id for fip in all_fips],
        lambda fip_id: conn.network.delete_ip(fip_id, ignore_missing=False),
    )
    return deleted == len(all_fips)


def delete_networks(
    opts: ClientOptions,
    cluster_filter: Filter,
    port_workers: int = PORT_WORKERS,
    managed_sg_pattern: str = MANAGED_SG_NAME_PATTERN,
    leftover_lb_description_prefix: str = LEFTOVER_LB_DESCRIPTION_PREFIX,
) -> bool:
    """Delete cluster networks, clearing what still holds them on failure.

    A network that cannot be deleted first loses its leftover Kubernetes
    service load balancers and, only once none is left, every remaining
    port. The network itself is retried on the next pass.
    """
    logger.debug("Deleting openstack networks")
    try:
        conn = connect(opts)
        all_networks = list(conn.network.networks(any_tags=cluster_filter.query()))
    except PROVIDER_ERRORS as e:
        logger.error(f"Error listing networks: {e}")
        return False

    deleted = 0
    stuck: list[str] = []
    for network in all_networks:
        logger.debug("Deleting network", extra={"resource_id": network.id})
        try:
            conn.network.delete_network(network.id, ignore_missing=False)
        except PROVIDER_ERRORS as e:
            if is_not_found(e):
                logger.debug(
                    "Cannot find network. It's probably already been deleted.",
                    extra={"resource_id": network.id},
                )
                deleted += 1
                continue
            stuck.append(network.id)
            logger.warning(
                "Deleting network failed",
                extra={"resource_id": network.id, "error": str(e)},
            )

            # Load balancers go before ports or their floating IP associations are lost
            if not delete_leftover_load_balancers(
                opts, network.id, leftover_lb_description_prefix
            ):
                continue
            delete_ports_by_network(
                opts, network.id, port_workers, managed_sg_pattern
            )
            continue
        logger.info("DELETE network", extra={"resource_id": network.id})
        deleted += 1
    report_stuck("network", stuck)
    return deleted == len(all_networks)


def untag_primary_network(
    opts: ClientOptions,
    infra_id: str,
    primary_network_tag_suffix: str = PRIMARY_NETWORK_TAG_SUFFIX,
) -> bool:
    """Remove the primary-network tag from the user-provided machines network.

    The network is not owned by the cluster and is never deleted. More than
    one network carrying the tag is an invariant violation.
    """
    network_tag = infra_id + primary_network_tag_suffix
    logger.debug("Removing tag from openstack networks", extra={"tag": network_tag})

    try:
        conn = connect(opts)
        tagged = list(conn.network.networks(tags=network_tag))
    except PROVIDER_ERRORS as e:
        logger.debug(f"Error listing networks tagged {network_tag}: {e}")
        return False

    if len(tagged) > 1:
        raise UnrecoverableError(f"more than one network with tag {network_tag}")
    if not tagged:
        # already deleted or untagged
        return True

    network = tagged[0]
    try:
        conn.network.remove_tag(network, network_tag)
    except PROVIDER_ERRORS as e:
        if is_not_found(e):
            return True
        logger.warning(
            "Removing primary network tag failed",
            extra={"resource_id": network.id, "tag": network_tag, "error": str(e)},
        )
        report_stuck("tagged network", [network.id])
        return False
    logger.info("UNTAG network", extra={"resource_id": network.id, "tag": network_tag})
    return True
