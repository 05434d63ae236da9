"""Tagging collaborators.

Tags are markers: the tag string is written as the key with an empty
value, so lineage membership is key presence. Each (resource, tag) pair
is one call; there is no batching and no atomicity across calls.
"""

from __future__ import annotations

from typing import Protocol

from cloud.inventory import InventoryClient
from cloud.provider import invoke
from cloud.regions import RegionRegistry
from core.logging_config import get_logger
from core.types import Region

_LOGGER = get_logger(__name__)


class TagWriter(Protocol):
    """Stamps one marker tag onto one resource."""

    def set_tag(self, resource_id: str, resource_kind: str, tag: str, region: Region) -> None:
        """Apply ``tag`` to the resource."""


class Ec2TagWriter:
    """Writes marker tags through the region's EC2 client."""

    def __init__(self, registry: RegionRegistry) -> None:
        self._registry = registry

    def set_tag(self, resource_id: str, resource_kind: str, tag: str, region: Region) -> None:
        """Create the tag key on a volume or snapshot.

        Raises:
            ConductorProviderError: If the request fails.
        """
        invoke(
            self._registry.client(region),
            "create_tags",
            region,
            Resources=[resource_id],
            Tags=[{"Key": tag, "Value": ""}],
        )
        _LOGGER.info(
            "tag_applied",
            resource_id=resource_id,
            resource_kind=resource_kind,
            tag=tag,
            region=region,
        )


class FanoutTagWriter:
    """Applies each tag to the provider and then to the inventory."""

    def __init__(self, provider_writer: TagWriter, inventory: InventoryClient | None) -> None:
        self._provider_writer = provider_writer
        self._inventory = inventory

    def set_tag(self, resource_id: str, resource_kind: str, tag: str, region: Region) -> None:
        """Apply the tag to every configured target."""
        self._provider_writer.set_tag(resource_id, resource_kind, tag, region)
        if self._inventory is not None:
            self._inventory.add_tag(resource_kind, resource_id, tag)
