"""Connections to the OpenStack cloud and calls not covered by proxies."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator
from urllib.parse import quote

import openstack


@dataclass(frozen=True)
class ClientOptions:
    """Where to connect: a clouds.yaml entry and an optional region."""

    cloud: str
    region_name: str | None = None


@dataclass(frozen=True)
class BulkDeleteResult:
    """Parsed response of a Swift bulk-delete call."""

    number_deleted: int
    number_not_found: int
    errors: list[tuple[str, str]]


def connect(opts: ClientOptions):
    """Open a new connection; every task invocation uses its own."""
    kwargs = {"cloud": opts.cloud}
    if opts.region_name:
        kwargs["region_name"] = opts.region_name
    return openstack.connect(**kwargs)


def bulk_delete_objects(conn, container: str, names: list[str]) -> BulkDeleteResult:
    """Delete objects of one container with a single bulk-delete request."""
    body = "\n".join(
        quote(f"{container}/{name}", safe="/") for name in names
    )
    # The SDK's own bulk delete returns no counts, and shrinking batches needs them
    response = conn.object_store.post(
        "?bulk-delete",
        data=body.encode("utf-8"),
        headers={"Content-Type": "text/plain", "Accept": "application/json"},
    )
    payload = response.json()
    return BulkDeleteResult(
        number_deleted=int(payload.get("Number Deleted", 0)),
        number_not_found=int(payload.get("Number Not Found", 0)),
        errors=[(str(e[0]), str(e[1])) for e in payload.get("Errors") or []],
    )


def object_name_pages(conn, container: str, page_size: int) -> Iterator[list[str]]:
    """Yield the object names of a container in pages of ``page_size``."""
    page: list[str] = []
    for obj in conn.object_store.objects(container):
        page.append(obj.name)
        if len(page) >= page_size:
            yield page
            page = []
    if page:
        yield page
