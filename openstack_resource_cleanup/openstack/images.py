"""OpenStack images (Glance)."""

from __future__ import annotations

from ..models import Filter
from ..utils import get_logger
from ..utils.errors import PROVIDER_ERRORS
from .common import delete_each
from .provider import ClientOptions, connect

logger = get_logger()


def delete_images(opts: ClientOptions, cluster_filter: Filter) -> bool:
    """Delete the cluster's base image (all filter tags must be present)."""
    logger.debug("Deleting openstack base image")
    try:
        conn = connect(opts)
        all_images = list(conn.image.images(tag=cluster_filter.tag_strings()))
    except PROVIDER_ERRORS as e:
        logger.error(f"Error listing images: {e}")
        return False

    # Images still used by servers fail until the servers are gone
    deleted = delete_each(
        "image",
        [image.id for image in all_images],
        lambda image_id: conn.image.delete_image(image_id, ignore_missing=False),
    )
    return deleted == len(all_images)
