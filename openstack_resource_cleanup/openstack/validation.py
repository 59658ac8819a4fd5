"""Checks that the target cloud supports a safe teardown."""

from __future__ import annotations
from typing import Iterable

from ..models.config import REQUIRED_NETWORK_EXTENSIONS
from ..utils import get_logger
from ..utils.errors import PROVIDER_ERRORS, CloudValidationError
from .provider import ClientOptions, connect

logger = get_logger()


def validate_cloud(
    opts: ClientOptions,
    required_extensions: Iterable[str] = REQUIRED_NETWORK_EXTENSIONS,
) -> None:
    """Raise CloudValidationError unless the network service supports tagging.

    Without tag support the tag queries are ignored by the server and would
    match resources the cluster does not own.
    """
    logger.debug("Validating network extensions")
    try:
        conn = connect(opts)
        available = {ext.alias for ext in conn.network.extensions()}
    except PROVIDER_ERRORS as e:
        raise CloudValidationError(f"failed to fetch network extensions: {e}") from e

    missing = sorted(set(required_extensions) - available)
    if missing:
        raise CloudValidationError(
            f"the network service lacks required extensions: {', '.join(missing)}"
        )
    logger.debug("Cloud validated", extra={"extensions": sorted(required_extensions)})
