"""Configuration from environment variables."""

import os

# Cloud selection (clouds.yaml entry and optional region override)
OS_CLOUD = os.environ.get("OS_CLOUD", "openstack")
OS_REGION_NAME = os.environ.get("OS_REGION_NAME", "")

# Retry budget for parallel-phase and router tasks
TASK_BACKOFF_SECONDS = float(os.environ.get("TASK_BACKOFF_SECONDS", "15"))
TASK_BACKOFF_FACTOR = float(os.environ.get("TASK_BACKOFF_FACTOR", "1.3"))
TASK_BACKOFF_STEPS = int(os.environ.get("TASK_BACKOFF_STEPS", "25"))

# Retry budget for primary network untagging (constant delay)
UNTAG_BACKOFF_SECONDS = float(os.environ.get("UNTAG_BACKOFF_SECONDS", "10"))
UNTAG_BACKOFF_STEPS = int(os.environ.get("UNTAG_BACKOFF_STEPS", "25"))

# Intra-task worker pools
PORT_WORKERS = int(os.environ.get("PORT_WORKERS", "10"))
OBJECT_DELETE_WORKERS = int(os.environ.get("OBJECT_DELETE_WORKERS", "3"))

# Security groups created by cloud-provider-openstack for load balancers
MANAGED_SG_NAME_PATTERN = os.environ.get(
    "MANAGED_SG_NAME_PATTERN",
    r"^lb-sg-[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}",
)

# Logging configuration
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Metadata keys and naming conventions used by the installer and CSI drivers
CINDER_CSI_CLUSTER_ID_KEY = "cinder.csi.openstack.org/cluster"
MANILA_CSI_CLUSTER_ID_KEY = "manila.csi.openstack.org/cluster"
LEFTOVER_LB_DESCRIPTION_PREFIX = "Kubernetes external service"
PRIMARY_NETWORK_TAG_SUFFIX = "-primaryClusterNetwork"
VIPS_PORT_TAG_SUFFIX = "-dual-stack-vips-port"
REQUIRED_NETWORK_EXTENSIONS = ("standard-attr-tag",)


class Config:
    """Configuration snapshot for one teardown run."""

    def __init__(self):
        self.cloud = OS_CLOUD
        self.region_name = OS_REGION_NAME
        self.task_backoff_seconds = TASK_BACKOFF_SECONDS
        self.task_backoff_factor = TASK_BACKOFF_FACTOR
        self.task_backoff_steps = TASK_BACKOFF_STEPS
        self.untag_backoff_seconds = UNTAG_BACKOFF_SECONDS
        self.untag_backoff_steps = UNTAG_BACKOFF_STEPS
        self.port_workers = PORT_WORKERS
        self.object_delete_workers = OBJECT_DELETE_WORKERS
        self.managed_sg_name_pattern = MANAGED_SG_NAME_PATTERN
        self.log_level = LOG_LEVEL
        self.cinder_csi_cluster_id_key = CINDER_CSI_CLUSTER_ID_KEY
        self.manila_csi_cluster_id_key = MANILA_CSI_CLUSTER_ID_KEY
        self.leftover_lb_description_prefix = LEFTOVER_LB_DESCRIPTION_PREFIX
        self.primary_network_tag_suffix = PRIMARY_NETWORK_TAG_SUFFIX
        self.vips_port_tag_suffix = VIPS_PORT_TAG_SUFFIX
        self.required_network_extensions = REQUIRED_NETWORK_EXTENSIONS
