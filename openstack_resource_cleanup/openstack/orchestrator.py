"""OpenStack cluster destruction orchestration.

Every resource kind is deleted by its own retrying task; the tasks run in
parallel since each one re-lists the world on every attempt and simply
reports False while something it depends on is still around. Routers and the
primary network tag are handled afterwards, one after the other.
"""

from __future__ import annotations
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from functools import partial
from typing import Callable

from ..models import ClusterMetadata, Config, Filter
from ..utils import RetryPolicy, get_logger, run_with_backoff
from ..utils.errors import TeardownAborted, TeardownError, UnrecoverableError
from .compute import delete_server_groups, delete_servers
from .images import delete_images
from .loadbalancer import delete_load_balancers
from .network import (
    delete_floating_ips,
    delete_networks,
    delete_security_groups,
    delete_subnets,
    untag_primary_network,
)
from .ports import clean_vips_ports, delete_ports_by_filter, delete_trunks
from .provider import ClientOptions
from .routers import clear_router_interfaces, delete_routers
from .shares import delete_shares
from .storage import delete_containers
from .validation import validate_cloud
from .volumes import delete_volume_snapshots, delete_volumes

logger = get_logger()

DeleteFunc = Callable[[ClientOptions, Filter], bool]


class ClusterUninstaller:
    """Deletes every OpenStack resource tagged for one cluster."""

    def __init__(
        self,
        cloud: str,
        cluster_filter: Filter,
        infra_id: str,
        config: Config | None = None,
        region_name: str | None = None,
    ):
        if not cluster_filter:
            raise UnrecoverableError("refusing to tear down with an empty filter")
        self.config = config or Config()
        self.opts = ClientOptions(
            cloud=cloud, region_name=region_name or self.config.region_name or None
        )
        self.filter = cluster_filter
        self.infra_id = infra_id

    @classmethod
    def from_metadata(
        cls,
        metadata: ClusterMetadata,
        config: Config | None = None,
        region_name: str | None = None,
    ) -> "ClusterUninstaller":
        return cls(
            cloud=metadata.cloud,
            cluster_filter=metadata.filter,
            infra_id=metadata.infra_id,
            config=config,
            region_name=region_name,
        )

    @property
    def task_policy(self) -> RetryPolicy:
        return RetryPolicy(
            initial_delay=self.config.task_backoff_seconds,
            factor=self.config.task_backoff_factor,
            steps=self.config.task_backoff_steps,
        )

    @property
    def untag_policy(self) -> RetryPolicy:
        return RetryPolicy(
            initial_delay=self.config.untag_backoff_seconds,
            factor=1.0,
            steps=self.config.untag_backoff_steps,
        )

    def delete_funcs(self) -> dict[str, DeleteFunc]:
        """Parallel-phase tasks keyed by name, with configuration bound in."""
        cfg = self.config
        return {
            "clean_vips_ports": partial(
                clean_vips_ports, vips_port_tag_suffix=cfg.vips_port_tag_suffix
            ),
            "delete_servers": delete_servers,
            "delete_server_groups": delete_server_groups,
            "delete_trunks": delete_trunks,
            "delete_load_balancers": delete_load_balancers,
            "delete_ports": partial(
                delete_ports_by_filter,
                workers=cfg.port_workers,
                managed_sg_pattern=cfg.managed_sg_name_pattern,
            ),
            "delete_security_groups": delete_security_groups,
            "clear_router_interfaces": clear_router_interfaces,
            "delete_subnets": delete_subnets,
            "delete_networks": partial(
                delete_networks,
                port_workers=cfg.port_workers,
                managed_sg_pattern=cfg.managed_sg_name_pattern,
                leftover_lb_description_prefix=cfg.leftover_lb_description_prefix,
            ),
            "delete_containers": partial(
                delete_containers, workers=cfg.object_delete_workers
            ),
            "delete_volumes": partial(
                delete_volumes, csi_cluster_id_key=cfg.cinder_csi_cluster_id_key
            ),
            "delete_shares": partial(
                delete_shares, csi_cluster_id_key=cfg.manila_csi_cluster_id_key
            ),
            "delete_volume_snapshots": partial(
                delete_volume_snapshots,
                csi_cluster_id_key=cfg.cinder_csi_cluster_id_key,
            ),
            "delete_floating_ips": delete_floating_ips,
            "delete_images": delete_images,
        }

    def run(self) -> dict:
        """Tear the cluster down.

        Returns:
            Summary of the completed teardown

        Raises:
            CloudValidationError: the cloud cannot be torn down safely
            TeardownError: a task failed or ran out of retries
        """
        started = time.monotonic()
        logger.info(
            "Starting OpenStack cluster cleanup",
            extra={
                "cloud": self.opts.cloud,
                "cluster_id": self.filter.cluster_id,
                "infra_id": self.infra_id,
                "filter": dict(self.filter),
            },
        )

        validate_cloud(self.opts, self.config.required_network_extensions)

        tasks = self.delete_funcs()
        self._run_parallel_phase(tasks)

        completed_sequential = ["delete_routers"]
        self._run_sequential(
            "delete_routers",
            lambda: delete_routers(self.opts, self.filter),
            self.task_policy,
        )
        if self.infra_id:
            self._run_sequential(
                "untag_primary_network",
                lambda: untag_primary_network(
                    self.opts, self.infra_id, self.config.primary_network_tag_suffix
                ),
                self.untag_policy,
            )
            completed_sequential.append("untag_primary_network")
        else:
            logger.warning("No infra ID given, skipping primary network untagging")

        duration = round(time.monotonic() - started, 2)
        logger.info(
            "OpenStack cluster cleanup complete",
            extra={"cluster_id": self.filter.cluster_id, "duration_seconds": duration},
        )
        return {
            "cloud": self.opts.cloud,
            "cluster_id": self.filter.cluster_id,
            "infra_id": self.infra_id,
            "tasks": list(tasks) + completed_sequential,
            "duration_seconds": duration,
        }

    def _run_parallel_phase(self, tasks: dict[str, DeleteFunc]) -> None:
        abort = threading.Event()
        policy = self.task_policy
        failure: TeardownError | None = None

        with ThreadPoolExecutor(max_workers=len(tasks)) as executor:
            futures = {
                executor.submit(
                    run_with_backoff,
                    name,
                    partial(func, self.opts, self.filter),
                    policy,
                    abort,
                ): name
                for name, func in tasks.items()
            }
            for future in as_completed(futures):
                name = futures[future]
                try:
                    future.result()
                except TeardownAborted:
                    logger.info("Task stopped after another task failed", extra={"task": name})
                except Exception as e:
                    logger.error(
                        "Unrecoverable error/timed out",
                        extra={
                            "task": name,
                            "error": str(e),
                            "stuck_resources": getattr(e, "stuck_resources", []),
                        },
                    )
                    if failure is None:
                        failure = TeardownError(name, e)
                        abort.set()
                else:
                    logger.info("Exiting deletion routine", extra={"task": name})

        if failure is not None:
            raise failure

    def _run_sequential(self, name: str, condition: Callable[[], bool], policy: RetryPolicy) -> None:
        logger.info("Starting sequential task", extra={"task": name})
        try:
            run_with_backoff(name, condition, policy)
        except Exception as e:
            logger.error(
                "Unrecoverable error/timed out",
                extra={
                    "task": name,
                    "error": str(e),
                    "stuck_resources": getattr(e, "stuck_resources", []),
                },
            )
            raise TeardownError(name, e) from e
        logger.info("Exiting sequential task", extra={"task": name})
