"""OpenStack block storage (Cinder volumes and snapshots)."""

from __future__ import annotations

from ..models import Filter
from ..models.config import CINDER_CSI_CLUSTER_ID_KEY
from ..utils import get_logger
from ..utils.errors import PROVIDER_ERRORS
from .common import delete_each, unique
from .provider import ClientOptions, connect

logger = get_logger()


def delete_volumes(
    opts: ClientOptions,
    cluster_filter: Filter,
    csi_cluster_id_key: str = CINDER_CSI_CLUSTER_ID_KEY,
) -> bool:
    """Delete volumes of the in-tree provisioner and of the Cinder CSI driver.

    In-tree volumes are named after the cluster ID; CSI volumes carry it in
    their metadata.
    """
    logger.debug("Deleting OpenStack volumes")

    cluster_id = cluster_filter.cluster_id
    if not cluster_id:
        logger.warning("No cluster ID in filter, skipping volume deletion")
        return True

    try:
        conn = connect(opts)
        all_volumes = list(conn.block_storage.volumes(details=True))
    except PROVIDER_ERRORS as e:
        logger.error(f"Error listing volumes: {e}")
        return False

    volume_ids = unique(
        volume.id
        for volume in all_volumes
        if (volume.name or "").startswith(cluster_id)
        or (volume.metadata or {}).get(csi_cluster_id_key) == cluster_id
    )
    deleted = delete_each(
        "volume",
        volume_ids,
        lambda volume_id: conn.block_storage.delete_volume(
            volume_id, ignore_missing=False
        ),
    )
    return deleted == len(volume_ids)


def delete_volume_snapshots(
    opts: ClientOptions,
    cluster_filter: Filter,
    csi_cluster_id_key: str = CINDER_CSI_CLUSTER_ID_KEY,
) -> bool:
    logger.debug("Deleting OpenStack volume snapshots")

    cluster_id = cluster_filter.cluster_id
    if not cluster_id:
        logger.warning("No cluster ID in filter, skipping volume snapshot deletion")
        return True

    try:
        conn = connect(opts)
        all_snapshots = list(conn.block_storage.snapshots(details=True))
    except PROVIDER_ERRORS as e:
        logger.error(f"Error listing volume snapshots: {e}")
        return False

    # Only snapshots taken by the CSI driver carry the cluster ID
    snapshot_ids = [
        snapshot.id
        for snapshot in all_snapshots
        if (snapshot.metadata or {}).get(csi_cluster_id_key) == cluster_id
    ]
    deleted = delete_each(
        "volume snapshot",
        snapshot_ids,
        lambda snapshot_id: conn.block_storage.delete_snapshot(
            snapshot_id, ignore_missing=False
        ),
    )
    return deleted == len(snapshot_ids)
