"""Cluster ownership filter and client-side tag matching."""

from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from ..utils.tag_helpers import format_tag

CLUSTER_ID_KEY = "openshiftClusterID"


class Filter(Mapping):
    """Immutable tag key/value set identifying the resources of one cluster.

    The cluster ID is looked up once, case-insensitively, when the filter is
    built. A filter carrying more than one case-variant of the cluster ID key
    is ambiguous and rejected.
    """

    def __init__(self, tags: Mapping[str, str] | None = None, **kwargs: str):
        data = dict(tags or {})
        data.update(kwargs)
        self._tags = data

        id_keys = [k for k in data if k.lower() == CLUSTER_ID_KEY.lower()]
        if len(id_keys) > 1:
            raise ValueError(
                f"filter has more than one cluster ID key: {sorted(id_keys)}"
            )
        self._cluster_id = data[id_keys[0]] if id_keys else ""

    @property
    def cluster_id(self) -> str:
        """Value of the openshiftClusterID entry, empty when absent."""
        return self._cluster_id

    def __getitem__(self, key: str) -> str:
        return self._tags[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tags)

    def __len__(self) -> int:
        return len(self._tags)

    def __hash__(self) -> int:
        return hash(frozenset(self._tags.items()))

    def __repr__(self) -> str:
        return f"Filter({self._tags!r})"

    def tag_strings(self) -> list[str]:
        """``key=value`` strings, sorted for stable queries."""
        return sorted(format_tag(k, v) for k, v in self._tags.items())

    def query(self) -> str:
        """Comma-joined tag list for Neutron ``tags``/``tags-any`` queries."""
        return ",".join(self.tag_strings())

    def cluster_tag(self) -> str:
        """The exact tag the installer puts on resources it owns."""
        return format_tag(CLUSTER_ID_KEY, self._cluster_id)

    def matches(self, tags: Mapping[str, str] | None) -> bool:
        """True when ``tags`` holds every filter key with an equal value."""
        tags = tags or {}
        return all(key in tags and tags[key] == value for key, value in self.items())


@dataclass(frozen=True)
class ResourceHandle:
    """Kind-independent projection of a provider resource for tag matching."""

    id: str
    tags: Mapping[str, str] = field(default_factory=dict)


def filter_objects(
    objects: Iterable[ResourceHandle], cluster_filter: Filter
) -> list[ResourceHandle]:
    """Keep the objects whose tags match every entry of the filter."""
    return [obj for obj in objects if cluster_filter.matches(obj.tags)]
