"""Error taxonomy for cluster teardown.

Provider failures are classified into a small set of kinds so that every
deletion task decides between "skip", "retry later" and "abort" the same way.
"""

from __future__ import annotations
from enum import Enum

from keystoneauth1 import exceptions as ksa_exceptions
from openstack import exceptions as os_exceptions

# Anything the SDK or its auth layer raises for a failed call
PROVIDER_ERRORS = (os_exceptions.SDKException, ksa_exceptions.ClientException)

# Raised when a service has no endpoint in the catalog
SERVICE_UNAVAILABLE_ERRORS = (
    os_exceptions.EndpointNotFound,
    os_exceptions.ServiceDisabledException,
    os_exceptions.ServiceDiscoveryException,
    ksa_exceptions.EndpointNotFound,
)


class ErrorKind(Enum):
    """How a provider error affects the task that hit it."""

    TRANSIENT = "transient"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    FATAL = "fatal"


class CleanupError(Exception):
    """Base class for teardown errors."""


class UnrecoverableError(CleanupError):
    """Invariant violation that retrying cannot resolve."""


class RetryTimeoutError(CleanupError):
    """A task kept reporting partial progress until its retry budget ran out.

    ``stuck_resources`` lists what the last attempt failed to delete.
    """

    def __init__(self, task_name: str, attempts: int, stuck_resources=()):
        self.task_name = task_name
        self.attempts = attempts
        self.stuck_resources = list(stuck_resources)
        message = f"task {task_name} did not complete after {attempts} attempts"
        if self.stuck_resources:
            message += f"; stuck resources: {', '.join(self.stuck_resources)}"
        super().__init__(message)


class TeardownAborted(CleanupError):
    """Raised inside a retry loop once another task has failed fatally."""


class TeardownError(CleanupError):
    """A named task failed fatally; the whole teardown stops."""

    def __init__(self, task_name: str, cause: BaseException):
        self.task_name = task_name
        self.cause = cause
        super().__init__(f"Unrecoverable error/timed out in {task_name}: {cause}")


class ObjectDeleteError(CleanupError):
    """Swift refused to delete one object of a bulk request."""

    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(f"cannot delete object {name!r}: {message}")


class BulkDeleteError(CleanupError):
    """Aggregated failures from concurrent bulk object deletion."""

    def __init__(self, container: str, errors: list[Exception]):
        self.container = container
        self.errors = list(errors)
        details = "; ".join(str(e) for e in self.errors)
        super().__init__(
            f"{len(self.errors)} error(s) occurred during bulk deletion of the "
            f"objects of container {container!r}: [{details}]"
        )


class CloudValidationError(CleanupError):
    """The target cloud lacks a capability the teardown relies on."""


class MetadataError(CleanupError):
    """Cluster metadata is missing or malformed."""


def status_code(exc: BaseException) -> int | None:
    """HTTP status carried by a provider exception, if any."""
    code = getattr(exc, "status_code", None)
    if code is None:
        code = getattr(exc, "http_status", None)
    return code


def classify_error(exc: BaseException) -> ErrorKind:
    """Map an exception raised by a provider call to an ErrorKind."""
    if not isinstance(exc, PROVIDER_ERRORS):
        return ErrorKind.FATAL
    if isinstance(exc, os_exceptions.NotFoundException) or status_code(exc) == 404:
        return ErrorKind.NOT_FOUND
    if isinstance(exc, os_exceptions.ConflictException) or status_code(exc) == 409:
        return ErrorKind.CONFLICT
    return ErrorKind.TRANSIENT


def is_not_found(exc: BaseException) -> bool:
    return classify_error(exc) is ErrorKind.NOT_FOUND


def is_conflict(exc: BaseException) -> bool:
    return classify_error(exc) is ErrorKind.CONFLICT


def is_service_unavailable(exc: BaseException) -> bool:
    """True when the error means the optional service is not deployed."""
    return isinstance(exc, SERVICE_UNAVAILABLE_ERRORS)
