"""Fixtures specific to unit tests."""

from __future__ import annotations
from contextlib import ExitStack
from unittest.mock import patch

import pytest

# Modules that open their own connection through provider.connect
TASK_MODULES = [
    "compute",
    "images",
    "loadbalancer",
    "network",
    "ports",
    "routers",
    "shares",
    "storage",
    "volumes",
]


@pytest.fixture(autouse=True)
def _mark_as_unit(request):
    """Automatically mark all tests in unit/ as unit tests."""
    request.node.add_marker(pytest.mark.unit)


@pytest.fixture
def patched_connect(conn):
    """Every task module connects to the same mocked cloud.

    Tasks that reach into other modules (networks clearing ports and load
    balancers, for instance) then share one connection to assert against.
    """
    with ExitStack() as stack:
        for module in TASK_MODULES:
            stack.enter_context(
                patch(
                    f"openstack_resource_cleanup.openstack.{module}.connect",
                    return_value=conn,
                )
            )
        yield conn
