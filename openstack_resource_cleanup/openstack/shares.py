"""OpenStack shared file systems (Manila shares and snapshots)."""

from __future__ import annotations

from ..models import Filter
from ..models.config import MANILA_CSI_CLUSTER_ID_KEY
from ..utils import get_logger
from ..utils.errors import PROVIDER_ERRORS, is_service_unavailable
from .common import delete_each
from .provider import ClientOptions, connect

logger = get_logger()


def delete_share_snapshots(conn, share_id: str) -> bool:
    """Delete the snapshots of one share; False if any is left."""
    logger.debug("Deleting OpenStack snapshots for share", extra={"share_id": share_id})
    try:
        snapshots = list(
            conn.shared_file_system.share_snapshots(details=True, share_id=share_id)
        )
    except PROVIDER_ERRORS as e:
        logger.error(f"Error listing snapshots of share {share_id}: {e}")
        return False

    deleted = delete_each(
        "share snapshot",
        [snapshot.id for snapshot in snapshots],
        lambda snapshot_id: conn.shared_file_system.delete_share_snapshot(
            snapshot_id, ignore_missing=False
        ),
    )
    return deleted == len(snapshots)


def delete_shares(
    opts: ClientOptions,
    cluster_filter: Filter,
    csi_cluster_id_key: str = MANILA_CSI_CLUSTER_ID_KEY,
) -> bool:
    """Delete shares provisioned by the Manila CSI driver for the cluster.

    A share is only deleted once all of its snapshots are gone; a share with
    remaining snapshots ends the pass.
    """
    logger.debug("Deleting OpenStack shares")

    cluster_id = cluster_filter.cluster_id
    if not cluster_id:
        logger.warning("No cluster ID in filter, skipping share deletion")
        return True

    try:
        conn = connect(opts)
        all_shares = list(conn.shared_file_system.shares(details=True))
    except PROVIDER_ERRORS as e:
        if is_service_unavailable(e):
            logger.debug("Skip share deletion because Manila endpoint is not found")
            return True
        logger.error(f"Error listing shares: {e}")
        return False

    cluster_shares = [
        share.id
        for share in all_shares
        if (share.metadata or {}).get(csi_cluster_id_key) == cluster_id
    ]

    def _delete_share(share_id: str) -> None:
        conn.shared_file_system.delete_share(share_id, ignore_missing=False)

    deleted = 0
    for share_id in cluster_shares:
        if not delete_share_snapshots(conn, share_id):
            return False
        deleted += delete_each("share", [share_id], _delete_share)
    return deleted == len(cluster_shares)
