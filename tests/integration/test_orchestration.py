"""Integration tests for the two-phase teardown orchestration."""

from __future__ import annotations
from unittest.mock import patch

import pytest

from openstack_resource_cleanup.models import Filter
from openstack_resource_cleanup.openstack.compute import delete_servers
from openstack_resource_cleanup.openstack.orchestrator import ClusterUninstaller
from openstack_resource_cleanup.utils.errors import (
    RetryTimeoutError,
    TeardownError,
    UnrecoverableError,
)

ORCHESTRATOR = "openstack_resource_cleanup.openstack.orchestrator"
INFRA_ID = "mycluster-x7k2p"

PARALLEL_TASKS = {
    "clean_vips_ports",
    "delete_servers",
    "delete_server_groups",
    "delete_trunks",
    "delete_load_balancers",
    "delete_ports",
    "delete_security_groups",
    "clear_router_interfaces",
    "delete_subnets",
    "delete_networks",
    "delete_containers",
    "delete_volumes",
    "delete_shares",
    "delete_volume_snapshots",
    "delete_floating_ips",
    "delete_images",
}


@pytest.fixture
def uninstaller(cluster_filter, fast_config):
    return ClusterUninstaller("test-cloud", cluster_filter, INFRA_ID, config=fast_config)


class TestDeleteFuncs:
    def test_all_parallel_tasks_are_registered(self, uninstaller):
        assert set(uninstaller.delete_funcs()) == PARALLEL_TASKS

    def test_configuration_is_bound(self, uninstaller, fast_config):
        funcs = uninstaller.delete_funcs()

        assert funcs["delete_ports"].keywords["workers"] == fast_config.port_workers
        assert funcs["delete_networks"].keywords["port_workers"] == fast_config.port_workers
        assert (
            funcs["delete_volumes"].keywords["csi_cluster_id_key"]
            == fast_config.cinder_csi_cluster_id_key
        )

    def test_empty_filter_is_rejected(self):
        with pytest.raises(UnrecoverableError, match="empty filter"):
            ClusterUninstaller("test-cloud", Filter(), INFRA_ID)


class TestRun:
    def test_sequential_phase_runs_after_parallel_phase(
        self, uninstaller, recorder, no_validation, sequential
    ):
        """
        GIVEN sixteen parallel tasks, one of which needs three attempts
        WHEN the teardown runs
        THEN routers are deleted only after every parallel task completed and
             the primary network is untagged last
        """
        fakes = {name: recorder.task(name) for name in PARALLEL_TASKS}
        fakes["delete_servers"] = recorder.task("delete_servers", [False, False])

        with patch.object(ClusterUninstaller, "delete_funcs", return_value=fakes):
            summary = uninstaller.run()

        assert recorder.calls[-2:] == ["delete_routers", "untag_primary_network"]
        assert set(recorder.calls[:-2]) == PARALLEL_TASKS
        assert recorder.calls.count("delete_servers") == 3
        no_validation.assert_called_once()
        assert summary["cluster_id"] == uninstaller.filter.cluster_id
        assert summary["tasks"][-2:] == ["delete_routers", "untag_primary_network"]

    def test_untag_skipped_without_infra_id(
        self, cluster_filter, fast_config, recorder, no_validation, sequential
    ):
        uninstaller = ClusterUninstaller("test-cloud", cluster_filter, "", config=fast_config)
        fakes = {"delete_servers": recorder.task("delete_servers")}

        with patch.object(ClusterUninstaller, "delete_funcs", return_value=fakes):
            summary = uninstaller.run()

        sequential.untag.assert_not_called()
        assert summary["tasks"] == ["delete_servers", "delete_routers"]

    def test_fatal_task_aborts_the_teardown(
        self, uninstaller, fast_config, recorder, no_validation, sequential
    ):
        """
        GIVEN a task that raises an unrecoverable error while another task
              keeps reporting partial progress
        WHEN the teardown runs
        THEN TeardownError names the failed task, the looping task stops early
             and the sequential phase never starts
        """
        fast_config.task_backoff_seconds = 0.05
        fast_config.task_backoff_steps = 1000

        def fatal(opts, cluster_filter):
            raise UnrecoverableError("more than one network")

        fakes = {
            "delete_networks": fatal,
            "delete_ports": recorder.task("delete_ports", [False] * 1000),
        }

        with patch.object(ClusterUninstaller, "delete_funcs", return_value=fakes):
            with pytest.raises(TeardownError) as excinfo:
                uninstaller.run()

        assert excinfo.value.task_name == "delete_networks"
        assert isinstance(excinfo.value.cause, UnrecoverableError)
        assert recorder.calls.count("delete_ports") < 1000
        sequential.routers.assert_not_called()
        sequential.untag.assert_not_called()

    def test_exhausted_retries_abort_the_teardown(
        self, uninstaller, recorder, no_validation, sequential
    ):
        fakes = {"delete_images": recorder.task("delete_images", [False] * 10)}

        with patch.object(ClusterUninstaller, "delete_funcs", return_value=fakes):
            with pytest.raises(TeardownError) as excinfo:
                uninstaller.run()

        assert excinfo.value.task_name == "delete_images"
        assert isinstance(excinfo.value.cause, RetryTimeoutError)
        assert recorder.calls.count("delete_images") == 3
        sequential.routers.assert_not_called()

    def test_router_failure_stops_before_untag(
        self, uninstaller, recorder, no_validation, sequential
    ):
        sequential.routers.side_effect = lambda opts, f: False
        fakes = {"delete_servers": recorder.task("delete_servers")}

        with patch.object(ClusterUninstaller, "delete_funcs", return_value=fakes):
            with pytest.raises(TeardownError) as excinfo:
                uninstaller.run()

        assert excinfo.value.task_name == "delete_routers"
        assert sequential.routers.call_count == 3
        sequential.untag.assert_not_called()

    def test_two_primary_networks(
        self, uninstaller, recorder, conn, no_validation, make_resource
    ):
        """
        GIVEN two networks tagged as the cluster's primary network
        WHEN the teardown reaches the untag phase
        THEN it fails on untag_primary_network without untagging either one
        """
        tag = f"{INFRA_ID}-primaryClusterNetwork"
        conn.network.networks.return_value = [
            make_resource(id="n1", tags=[tag]),
            make_resource(id="n2", tags=[tag]),
        ]
        fakes = {"delete_servers": recorder.task("delete_servers")}

        with patch.object(ClusterUninstaller, "delete_funcs", return_value=fakes), \
                patch(f"{ORCHESTRATOR}.delete_routers", return_value=True), \
                patch("openstack_resource_cleanup.openstack.network.connect", return_value=conn):
            with pytest.raises(TeardownError) as excinfo:
                uninstaller.run()

        assert excinfo.value.task_name == "untag_primary_network"
        assert isinstance(excinfo.value.cause, UnrecoverableError)
        conn.network.networks.assert_called_once_with(tags=tag)
        conn.network.remove_tag.assert_not_called()

    def test_fatal_diagnostic_names_stuck_resource(
        self, uninstaller, conn, make_resource, no_validation, sequential, conflict
    ):
        """
        GIVEN a cluster server whose deletion always conflicts
        WHEN delete_servers runs out of retries
        THEN the TeardownError names both the task and the stuck server
        """
        conn.compute.servers.return_value = [
            make_resource(
                id="stuck-server-42", metadata={"openshiftClusterID": INFRA_ID}
            ),
        ]
        conn.compute.delete_server.side_effect = conflict()
        fakes = {"delete_servers": delete_servers}

        with patch.object(ClusterUninstaller, "delete_funcs", return_value=fakes), \
                patch("openstack_resource_cleanup.openstack.compute.connect", return_value=conn):
            with pytest.raises(TeardownError) as excinfo:
                uninstaller.run()

        assert excinfo.value.task_name == "delete_servers"
        assert excinfo.value.cause.stuck_resources == ["server stuck-server-42"]
        assert "delete_servers" in str(excinfo.value)
        assert "stuck-server-42" in str(excinfo.value)
        assert conn.compute.delete_server.call_count == 3
        sequential.routers.assert_not_called()
