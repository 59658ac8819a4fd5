"""Pytest configuration and shared fixtures for OpenStack resource cleanup tests.

This file contains:
1. PortBuilder - Builder pattern for creating test Neutron ports
2. Fixture factories - Reusable functions for creating fake provider resources
3. Connection fixtures - MagicMock connections whose listings are empty by default
4. Error factories - Real openstacksdk exceptions with the status codes tasks inspect
"""

from __future__ import annotations
from types import SimpleNamespace
from typing import Any, Callable
from unittest.mock import MagicMock

import pytest
from openstack import exceptions as os_exceptions

from openstack_resource_cleanup.models import Config, Filter
from openstack_resource_cleanup.openstack.provider import ClientOptions

CLUSTER_ID = "mycluster-x7k2p"
INFRA_ID = "mycluster-x7k2p"


class PortBuilder:
    """Builder pattern for creating test ports.

    Ports are plain namespaces: ``Mock(name=...)`` would not give a usable
    ``name`` attribute.
    """

    def __init__(self):
        self._port = {
            "id": "port-1",
            "name": "",
            "network_id": "net-1",
            "device_id": "",
            "device_owner": "",
            "security_group_ids": [],
            "fixed_ips": [],
            "tags": [],
        }

    def with_id(self, port_id: str) -> PortBuilder:
        """Set port ID."""
        self._port["id"] = port_id
        return self

    def with_security_groups(self, *group_ids: str) -> PortBuilder:
        """Attach security groups."""
        self._port["security_group_ids"] = list(group_ids)
        return self

    def with_fixed_ip(self, subnet_id: str, ip_address: str = "10.0.0.1") -> PortBuilder:
        """Add a fixed IP on a subnet."""
        self._port["fixed_ips"].append(
            {"subnet_id": subnet_id, "ip_address": ip_address}
        )
        return self

    def with_device(self, device_id: str, device_owner: str = "") -> PortBuilder:
        """Set the device (server, router) the port is plugged into."""
        self._port["device_id"] = device_id
        self._port["device_owner"] = device_owner
        return self

    def with_tag(self, tag: str) -> PortBuilder:
        """Add a Neutron tag."""
        self._port["tags"].append(tag)
        return self

    def build(self) -> SimpleNamespace:
        """Build and return the port."""
        return SimpleNamespace(**self._port)


@pytest.fixture
def port_builder() -> Callable[[], PortBuilder]:
    """Factory for port builders."""
    return PortBuilder


@pytest.fixture
def make_resource() -> Callable[..., SimpleNamespace]:
    """Factory for generic provider resources.

    Example:
        network = make_resource(id="net-1", subnet_ids=["sub-1"])
    """

    def _make(**attrs: Any) -> SimpleNamespace:
        attrs.setdefault("id", "resource-1")
        attrs.setdefault("name", "")
        attrs.setdefault("tags", [])
        return SimpleNamespace(**attrs)

    return _make


@pytest.fixture
def cluster_filter() -> Filter:
    """Filter the installer writes for a cluster."""
    return Filter({"openshiftClusterID": CLUSTER_ID})


@pytest.fixture
def client_options() -> ClientOptions:
    return ClientOptions(cloud="test-cloud")


@pytest.fixture
def conn() -> MagicMock:
    """Connection whose every listing is empty until a test says otherwise."""
    return MagicMock(name="connection")


@pytest.fixture
def fast_config() -> Config:
    """Config with backoff short enough for tests."""
    config = Config()
    config.task_backoff_seconds = 0.01
    config.task_backoff_factor = 1.0
    config.task_backoff_steps = 3
    config.untag_backoff_seconds = 0.01
    config.untag_backoff_steps = 3
    config.port_workers = 2
    return config


@pytest.fixture
def not_found() -> Callable[[], Exception]:
    return lambda: os_exceptions.NotFoundException("resource not found")


@pytest.fixture
def conflict() -> Callable[[], Exception]:
    return lambda: os_exceptions.ConflictException("resource in use")


@pytest.fixture
def http_error() -> Callable[[int], Exception]:
    """Factory for HTTP errors with an arbitrary status code."""
    return lambda status: os_exceptions.HttpException(
        "request failed", http_status=status
    )
