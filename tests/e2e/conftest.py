"""Fixtures specific to end-to-end tests.

End-to-end tests go through ``handler.main`` with an installer-written
metadata.json, either with a mocked ClusterUninstaller or with every task
running against an empty cloud.
"""

from __future__ import annotations
import json
from types import SimpleNamespace
from typing import Callable
from unittest.mock import MagicMock, patch

import pytest

INFRA_ID = "mycluster-x7k2p"


@pytest.fixture(autouse=True)
def _mark_as_e2e(request):
    """Automatically mark all tests in e2e/ as e2e tests."""
    request.node.add_marker(pytest.mark.e2e)


@pytest.fixture
def installer_metadata() -> Callable[..., dict]:
    """Factory for the metadata.json content the installer writes."""

    def _make(cloud: str = "test-cloud") -> dict:
        return {
            "clusterName": "mycluster",
            "clusterID": "2b4f9d7e-0a6c-4c57-9a45-6f7e1b3c8d21",
            "infraID": INFRA_ID,
            "openstack": {
                "cloud": cloud,
                "identifier": {"openshiftClusterID": INFRA_ID},
            },
        }

    return _make


@pytest.fixture
def metadata_file(tmp_path, installer_metadata):
    path = tmp_path / "metadata.json"
    path.write_text(json.dumps(installer_metadata()))
    return path


@pytest.fixture
def mock_uninstaller():
    """ClusterUninstaller as seen by the handler, reporting a short teardown."""
    with patch("openstack_resource_cleanup.handler.ClusterUninstaller") as cls:
        cls.from_metadata.return_value.run.return_value = {
            "cloud": "test-cloud",
            "cluster_id": INFRA_ID,
            "infra_id": INFRA_ID,
            "tasks": ["delete_servers", "delete_routers"],
            "duration_seconds": 0.1,
        }
        yield cls


@pytest.fixture
def empty_cloud():
    """Every openstack.connect call returns a connection holding no resources."""
    conn = MagicMock(name="connection")
    conn.network.extensions.return_value = [SimpleNamespace(alias="standard-attr-tag")]
    with patch(
        "openstack_resource_cleanup.openstack.provider.openstack.connect",
        return_value=conn,
    ) as connect:
        yield SimpleNamespace(conn=conn, connect=connect)
