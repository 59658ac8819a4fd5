"""Command-line entry point for OpenStack cluster cleanup."""

from __future__ import annotations
import argparse
import json
import sys

from .models import CLUSTER_ID_KEY, ClusterMetadata, Config
from .openstack import ClusterUninstaller
from .utils import get_logger, set_log_level
from .utils.errors import CleanupError, MetadataError, TeardownError

logger = get_logger()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="openstack-resources-cleanup",
        description="Delete every OpenStack resource tagged for one cluster.",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--dir", help="Installation directory holding the cluster's metadata.json"
    )
    source.add_argument("--metadata", help="Path to a metadata.json file")
    parser.add_argument(
        "--cloud", help="clouds.yaml entry to use (default: $OS_CLOUD)"
    )
    parser.add_argument("--region", help="Region of the cloud to clean up")
    parser.add_argument(
        "--infra-id", help="Infrastructure ID, used to untag the primary network"
    )
    parser.add_argument(
        "--cluster-id", help=f"Value of the {CLUSTER_ID_KEY} tag of the cluster"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Log level (default: $LOG_LEVEL)",
    )
    return parser.parse_args(argv)


def load_metadata(args: argparse.Namespace, config: Config) -> ClusterMetadata:
    """Build the cluster metadata from a file and/or command-line overrides."""
    path = args.metadata or args.dir
    if path:
        metadata = ClusterMetadata.from_file(path)
    elif args.cluster_id:
        metadata = ClusterMetadata(infra_id="", cloud="", identifier={})
    else:
        raise MetadataError("one of --dir, --metadata or --cluster-id is required")

    if args.cloud:
        metadata.cloud = args.cloud
    if args.infra_id:
        metadata.infra_id = args.infra_id
    if args.cluster_id:
        identifier = {
            k: v
            for k, v in metadata.identifier.items()
            if k.lower() != CLUSTER_ID_KEY.lower()
        }
        identifier[CLUSTER_ID_KEY] = args.cluster_id
        metadata.identifier = identifier
    if not metadata.cloud:
        metadata.cloud = config.cloud
    return metadata


def main(argv: list[str] | None = None) -> int:
    """Run the teardown and return the process exit status.

    0 on completion, 1 when a task failed or the cloud is unsuitable, 2 when
    the cluster metadata cannot be loaded.
    """
    args = parse_args(argv)
    config = Config()
    set_log_level(args.log_level or config.log_level)

    try:
        metadata = load_metadata(args, config)
    except MetadataError as e:
        logger.error(f"Cannot load cluster metadata: {e}")
        return 2

    try:
        uninstaller = ClusterUninstaller.from_metadata(
            metadata, config=config, region_name=args.region
        )
        summary = uninstaller.run()
    except TeardownError as e:
        logger.error(
            str(e),
            extra={
                "task": e.task_name,
                "error": str(e.cause),
                "cluster_name": metadata.cluster_name,
            },
        )
        return 1
    except CleanupError as e:
        logger.error(
            f"Cluster cleanup failed: {e}",
            extra={"cluster_name": metadata.cluster_name},
        )
        return 1

    logger.info("Cluster cleanup finished", extra=summary)
    print(json.dumps(summary))
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
