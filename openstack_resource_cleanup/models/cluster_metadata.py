"""Cluster metadata written by the installer."""

from __future__ import annotations
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..utils.errors import MetadataError
from .filter import Filter

METADATA_FILENAME = "metadata.json"


@dataclass
class ClusterMetadata:
    """What the teardown needs to know about one cluster."""

    infra_id: str
    cloud: str
    identifier: dict[str, str]
    cluster_name: str = ""

    @property
    def filter(self) -> Filter:
        return Filter(self.identifier)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClusterMetadata:
        """Build from the installer's metadata.json layout.

        Expected shape::

            {"clusterName": "...", "infraID": "...",
             "openstack": {"cloud": "...", "identifier": {"openshiftClusterID": "..."}}}
        """
        platform = data.get("openstack")
        if not isinstance(platform, dict):
            raise MetadataError("metadata has no openstack platform section")

        infra_id = data.get("infraID", "")
        if not infra_id:
            raise MetadataError("metadata has no infraID")

        identifier = platform.get("identifier") or {}
        if not identifier:
            raise MetadataError("metadata has no openstack identifier tags")

        identifier = {str(k): str(v) for k, v in identifier.items()}
        try:
            Filter(identifier)
        except ValueError as e:
            raise MetadataError(str(e)) from e

        return cls(
            infra_id=infra_id,
            cloud=platform.get("cloud", ""),
            identifier=identifier,
            cluster_name=data.get("clusterName", ""),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> ClusterMetadata:
        """Load metadata from a file, or from metadata.json inside a directory."""
        path = Path(path)
        if path.is_dir():
            path = path / METADATA_FILENAME
        try:
            data = json.loads(path.read_text())
        except FileNotFoundError as e:
            raise MetadataError(f"metadata file {path} not found") from e
        except json.JSONDecodeError as e:
            raise MetadataError(f"metadata file {path} is not valid JSON: {e}") from e
        return cls.from_dict(data)
