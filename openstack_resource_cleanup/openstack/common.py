"""Helpers shared by the per-kind deletion tasks."""

from __future__ import annotations
from typing import Callable, Iterable

from ..utils import get_logger, report_stuck
from ..utils.errors import PROVIDER_ERRORS, ErrorKind, classify_error

logger = get_logger()


def delete_each(
    kind: str, resource_ids: Iterable[str], delete: Callable[[str], object]
) -> int:
    """Delete resources one by one and return how many are gone.

    Not-found counts as deleted. Any other provider failure is logged, the
    resource is reported as stuck and left for the next invocation of the task.
    """
    deleted = 0
    stuck: list[str] = []
    for resource_id in resource_ids:
        logger.debug(f"Deleting {kind}", extra={"resource_id": resource_id})
        try:
            delete(resource_id)
        except PROVIDER_ERRORS as e:
            kind_of_error = classify_error(e)
            if kind_of_error is not ErrorKind.NOT_FOUND:
                logger.warning(
                    f"Deleting {kind} failed",
                    extra={
                        "resource_id": resource_id,
                        "error_kind": kind_of_error.value,
                        "error": str(e),
                    },
                )
                stuck.append(resource_id)
                continue
            logger.debug(
                f"Cannot find {kind}. It's probably already been deleted.",
                extra={"resource_id": resource_id},
            )
        else:
            logger.info(f"DELETE {kind}", extra={"resource_id": resource_id})
        deleted += 1
    report_stuck(kind, stuck)
    return deleted


def unique(ids: Iterable[str]) -> list[str]:
    """Drop duplicates, keeping the first occurrence order."""
    seen: set[str] = set()
    result = []
    for resource_id in ids:
        if resource_id not in seen:
            seen.add(resource_id)
            result.append(resource_id)
    return result
