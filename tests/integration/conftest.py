"""Fixtures specific to integration tests.

Integration tests drive ClusterUninstaller end to end with fake tasks, or with
real tasks over a mocked connection.
"""

from __future__ import annotations
import threading
from types import SimpleNamespace
from unittest.mock import patch

import pytest

ORCHESTRATOR = "openstack_resource_cleanup.openstack.orchestrator"


@pytest.fixture(autouse=True)
def _mark_as_integration(request):
    """Automatically mark all tests in integration/ as integration tests."""
    request.node.add_marker(pytest.mark.integration)


class Recorder:
    """Thread-safe log of task invocations."""

    def __init__(self):
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def record(self, name: str) -> None:
        with self._lock:
            self.calls.append(name)

    def task(self, name: str, results=None):
        """Fake deletion task returning ``results`` in turn, then True."""
        pending = list(results or [])

        def _task(opts, cluster_filter):
            self.record(name)
            return pending.pop(0) if pending else True

        return _task


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def no_validation():
    """Skip the cloud capability checks that precede the teardown."""
    with patch(f"{ORCHESTRATOR}.validate_cloud") as validate:
        yield validate


@pytest.fixture
def sequential(recorder):
    """Record the router and untag phases instead of calling the cloud."""
    with patch(
        f"{ORCHESTRATOR}.delete_routers",
        side_effect=lambda opts, f: recorder.record("delete_routers") or True,
    ) as routers, patch(
        f"{ORCHESTRATOR}.untag_primary_network",
        side_effect=lambda opts, infra_id, suffix: recorder.record("untag_primary_network") or True,
    ) as untag:
        yield SimpleNamespace(routers=routers, untag=untag)
