"""Data models for OpenStack cluster cleanup."""

from .filter import Filter, ResourceHandle, filter_objects, CLUSTER_ID_KEY
from .cluster_metadata import ClusterMetadata
from .config import Config

__all__ = [
    "Filter",
    "ResourceHandle",
    "filter_objects",
    "CLUSTER_ID_KEY",
    "ClusterMetadata",
    "Config",
]
