"""OpenStack compute resources (servers, server groups)."""

from __future__ import annotations

from ..models import Filter, ResourceHandle, filter_objects
from ..utils import get_logger
from ..utils.errors import PROVIDER_ERRORS
from .common import delete_each
from .provider import ClientOptions, connect

logger = get_logger()


def delete_servers(opts: ClientOptions, cluster_filter: Filter) -> bool:
    """Delete servers whose metadata carries every filter tag.

    Nova cannot filter on several metadata keys at once, so the full list is
    narrowed client-side.
    """
    logger.debug("Deleting openstack servers")
    try:
        conn = connect(opts)
        all_servers = list(conn.compute.servers(details=True))
    except PROVIDER_ERRORS as e:
        logger.error(f"Error listing servers: {e}")
        return False

    handles = [
        ResourceHandle(id=server.id, tags=server.metadata or {})
        for server in all_servers
    ]
    filtered = filter_objects(handles, cluster_filter)

    deleted = delete_each(
        "server",
        [handle.id for handle in filtered],
        lambda server_id: conn.compute.delete_server(server_id, ignore_missing=False),
    )
    return deleted == len(filtered)


def delete_server_groups(opts: ClientOptions, cluster_filter: Filter) -> bool:
    """Delete server groups whose name starts with the cluster ID."""
    logger.debug("Deleting openstack server groups")

    cluster_id = cluster_filter.cluster_id
    if not cluster_id:
        logger.warning("No cluster ID in filter, skipping server group deletion")
        return True

    try:
        conn = connect(opts)
        all_groups = list(conn.compute.server_groups())
    except PROVIDER_ERRORS as e:
        logger.error(f"Error listing server groups: {e}")
        return False

    filtered = [g.id for g in all_groups if (g.name or "").startswith(cluster_id)]
    deleted = delete_each(
        "server group",
        filtered,
        lambda group_id: conn.compute.delete_server_group(
            group_id, ignore_missing=False
        ),
    )
    return deleted == len(filtered)
