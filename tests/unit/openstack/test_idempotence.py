"""Every task is a no-op that reports completion on an already clean cloud."""

from __future__ import annotations

import pytest

from openstack_resource_cleanup.models import Filter
from openstack_resource_cleanup.openstack.network import untag_primary_network
from openstack_resource_cleanup.openstack.orchestrator import ClusterUninstaller
from openstack_resource_cleanup.openstack.routers import delete_routers

MUTATING_PREFIXES = ("delete_", "remove_", "update_", "post")


def _task_names():
    uninstaller = ClusterUninstaller("test-cloud", Filter({"openshiftClusterID": "c"}), "c")
    return sorted(uninstaller.delete_funcs())


def _mutating_calls(conn) -> list[str]:
    names = [c[0] for c in conn.mock_calls]
    return [n for n in names if n.split(".")[-1].startswith(MUTATING_PREFIXES)]


@pytest.mark.openstack
@pytest.mark.parametrize("task_name", _task_names())
def test_parallel_task_on_clean_cloud(patched_connect, cluster_filter, client_options, task_name):
    """
    GIVEN a cloud with no resource left for the cluster
    WHEN a parallel-phase task runs
    THEN it reports completion without mutating anything
    """
    uninstaller = ClusterUninstaller("test-cloud", cluster_filter, "mycluster-x7k2p")
    task = uninstaller.delete_funcs()[task_name]

    assert task(client_options, cluster_filter) is True
    assert _mutating_calls(patched_connect) == []


@pytest.mark.openstack
def test_sequential_tasks_on_clean_cloud(patched_connect, cluster_filter, client_options):
    assert delete_routers(client_options, cluster_filter) is True
    assert untag_primary_network(client_options, "mycluster-x7k2p") is True
    assert _mutating_calls(patched_connect) == []
