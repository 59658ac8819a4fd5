"""OpenStack object storage containers (Swift)."""

from __future__ import annotations
from functools import partial

from ..models import Filter
from ..models.config import OBJECT_DELETE_WORKERS
from ..utils import get_logger, report_stuck, run_bounded
from ..utils.errors import (
    PROVIDER_ERRORS,
    BulkDeleteError,
    ObjectDeleteError,
    is_not_found,
    is_service_unavailable,
    status_code,
)
from .provider import ClientOptions, bulk_delete_objects, connect, object_name_pages

logger = get_logger()

# Swift's default container listing limit
OBJECT_PAGE_SIZE = 10000


def _bulk_delete_page(conn, container: str, names: list[str]) -> None:
    """Bulk-delete one page of object names until none is left.

    Some clouds accept fewer names per bulk request than they return per
    listing page and silently ignore the rest, so the processed names are
    dropped and the remainder is sent again.
    """
    while names:
        logger.debug(
            "Initiating bulk deletion of objects",
            extra={"container": container, "count": len(names)},
        )
        result = bulk_delete_objects(conn, container, names)
        if result.errors:
            logger.debug(
                "Terminating object deletion with errors",
                extra={
                    "container": container,
                    "deleted": result.number_deleted,
                    "total": len(names),
                },
            )
            raise BulkDeleteError(
                container,
                [ObjectDeleteError(name, message) for name, message in result.errors],
            )

        processed = result.number_deleted + result.number_not_found
        if processed <= 0:
            raise BulkDeleteError(
                container,
                [ObjectDeleteError(names[0], "bulk delete made no progress")],
            )
        names = names[processed:]


def delete_container_objects(
    conn,
    container: str,
    page_size: int = OBJECT_PAGE_SIZE,
    workers: int = OBJECT_DELETE_WORKERS,
) -> None:
    """Delete every object of a container, ``workers`` pages at a time.

    Raises BulkDeleteError aggregating the failures of all pages.
    """
    units = (
        partial(_bulk_delete_page, conn, container, page)
        for page in object_name_pages(conn, container, page_size)
    )
    failures = run_bounded(units, workers)

    errors: list[Exception] = []
    for failure in failures:
        if isinstance(failure, BulkDeleteError):
            errors.extend(failure.errors)
        else:
            errors.append(failure)
    if errors:
        raise BulkDeleteError(container, errors)


def _container_matches(metadata, cluster_filter: Filter) -> bool:
    # Swift mangles the case of metadata keys
    lowered = {str(k).lower(): v for k, v in (metadata or {}).items()}
    return any(lowered.get(key.lower()) == value for key, value in cluster_filter.items())


def delete_containers(
    opts: ClientOptions,
    cluster_filter: Filter,
    workers: int = OBJECT_DELETE_WORKERS,
    page_size: int = OBJECT_PAGE_SIZE,
) -> bool:
    """Empty and delete the containers whose metadata names the cluster."""
    logger.debug("Deleting openstack containers")
    try:
        conn = connect(opts)
        all_containers = [c.name for c in conn.object_store.containers()]
    except PROVIDER_ERRORS as e:
        if is_service_unavailable(e):
            logger.debug("Skip container deletion because Swift endpoint is not found")
            return True
        # 403 with Keystone, 401 with internal Swauth
        if status_code(e) in (401, 403):
            logger.debug(
                "Skip container deletion because the user doesn't have the `swiftoperator` role"
            )
            return True
        logger.error(f"Error listing containers: {e}")
        return False

    for container in all_containers:
        try:
            metadata = conn.object_store.get_container_metadata(container).metadata
        except PROVIDER_ERRORS as e:
            if is_not_found(e):
                # deleted since it was listed
                continue
            logger.error(f"Error reading metadata of container {container}: {e}")
            return False

        if not _container_matches(metadata, cluster_filter):
            continue

        try:
            delete_container_objects(conn, container, page_size, workers)
        except BulkDeleteError as e:
            logger.warning(str(e), extra={"resource_id": container})
            report_stuck("container", [container])
            return False
        except PROVIDER_ERRORS as e:
            if not is_not_found(e):
                logger.error(
                    "Bulk deletion of container objects failed",
                    extra={"resource_id": container, "error": str(e)},
                )
                report_stuck("container", [container])
                return False

        logger.debug("Deleting container", extra={"resource_id": container})
        try:
            conn.object_store.delete_container(container, ignore_missing=False)
        except PROVIDER_ERRORS as e:
            if not is_not_found(e):
                logger.error(
                    "Deleting container failed",
                    extra={"resource_id": container, "error": str(e)},
                )
                report_stuck("container", [container])
                return False
            logger.debug(
                "Cannot find container. It's probably already been deleted.",
                extra={"resource_id": container},
            )
        else:
            logger.info("DELETE container", extra={"resource_id": container})
    return True
