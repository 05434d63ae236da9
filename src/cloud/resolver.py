"""Lineage resolver.

This module maps instance ids, volume ids and lineage names to concrete
resources across the region registry. Lineage membership is the presence
of the ``lineage=<name>`` tag key, queried through the provider's
``tag-key`` filter in each region with wildcards escaped, and rechecked
against the returned tag keys. Results are never cached; two calls
with no intervening change return identical results.
"""

from __future__ import annotations

from typing import Any

from cloud.provider import paginate
from cloud.regions import RegionRegistry
from cloud.resources import instance_from_payload, snapshot_from_payload, volume_from_payload
from core.constants import SNAPSHOT_OWNER_SELF
from core.errors import InstanceNotFoundError, VolumeNotFoundError
from core.types import InstanceRef, Region, SnapshotRef, VolumeRef, lineage_tag


class LineageResolver:
    """Tag-driven resource lookup over every registered region."""

    def __init__(self, registry: RegionRegistry) -> None:
        self._registry = registry

    def find_instance(self, instance_id: str) -> InstanceRef | None:
        """Find an instance by id in any region.

        Args:
            instance_id: Provider instance id.

        Returns:
            First matching instance, or None when no region knows the id.
        """
        for region in self._registry.regions():
            instance = self.get_instance(instance_id, region)
            if instance is not None:
                return instance
        return None

    def get_instance(self, instance_id: str, region: Region) -> InstanceRef | None:
        """Describe one instance in one region."""
        client = self._registry.client(region)
        reservations = paginate(
            client,
            "describe_instances",
            "Reservations",
            region,
            Filters=[_filter("instance-id", instance_id)],
        )
        for reservation in reservations:
            for payload in reservation.get("Instances", []):
                return instance_from_payload(payload, region)
        return None

    def require_instance(self, instance_id: str) -> InstanceRef:
        """Find an instance or fail.

        Raises:
            InstanceNotFoundError: If no region knows the id.
        """
        instance = self.find_instance(instance_id)
        if instance is None:
            raise InstanceNotFoundError(
                f"Instance {instance_id} was not found in any of {len(self._registry)} regions."
            )
        return instance

    def find_volume(self, volume_id: str, region: Region | None = None) -> VolumeRef | None:
        """Find a volume by id.

        Args:
            volume_id: Provider volume id.
            region: When given, only this region is queried.

        Returns:
            Matching volume, or None.
        """
        regions = (region,) if region is not None else self._registry.regions()
        for candidate in regions:
            items = self._describe_volumes(candidate, [_filter("volume-id", volume_id)])
            if items:
                return items[0]
        return None

    def require_volume(self, volume_id: str, region: Region | None = None) -> VolumeRef:
        """Find a volume or fail.

        Raises:
            VolumeNotFoundError: If the searched regions do not know the id.
        """
        volume = self.find_volume(volume_id, region)
        if volume is None:
            scope = f"region {region}" if region is not None else "any region"
            raise VolumeNotFoundError(f"Volume {volume_id} was not found in {scope}.")
        return volume

    def find_volumes_by_lineage(self, lineage: str) -> dict[Region, tuple[VolumeRef, ...]]:
        """Find every volume tagged with a lineage, grouped by region.

        Every registered region appears in the result; regions without
        matches map to an empty tuple.
        """
        tag = lineage_tag(lineage)
        tag_filter = [_filter("tag-key", _escape_filter_value(tag))]
        return {
            region: tuple(
                item for item in self._describe_volumes(region, tag_filter) if tag in item.tag_keys
            )
            for region in self._registry.regions()
        }

    def find_snapshots_by_lineage(
        self,
        lineage: str,
        region: Region | None = None,
    ) -> dict[Region, tuple[SnapshotRef, ...]]:
        """Find snapshots tagged with a lineage, grouped by region.

        Args:
            lineage: Lineage name.
            region: When given, only this region is queried.

        Returns:
            Snapshots per queried region in provider order.
        """
        regions = (region,) if region is not None else self._registry.regions()
        tag = lineage_tag(lineage)
        tag_filter = [_filter("tag-key", _escape_filter_value(tag))]
        return {
            candidate: tuple(
                item
                for item in self._describe_snapshots(candidate, tag_filter)
                if tag in item.tag_keys
            )
            for candidate in regions
        }

    def latest_snapshot(self, lineage: str, region: Region) -> SnapshotRef | None:
        """Return the newest lineage snapshot in one region, if any."""
        snapshots = self.find_snapshots_by_lineage(lineage, region)[region]
        if not snapshots:
            return None
        return sorted(snapshots, key=lambda item: item.created_at, reverse=True)[0]

    def _describe_volumes(self, region: Region, filters: list[dict[str, Any]]) -> tuple[VolumeRef, ...]:
        client = self._registry.client(region)
        items = paginate(client, "describe_volumes", "Volumes", region, Filters=filters)
        return tuple(volume_from_payload(item, region) for item in items)

    def _describe_snapshots(
        self,
        region: Region,
        filters: list[dict[str, Any]],
    ) -> tuple[SnapshotRef, ...]:
        client = self._registry.client(region)
        items = paginate(
            client,
            "describe_snapshots",
            "Snapshots",
            region,
            OwnerIds=[SNAPSHOT_OWNER_SELF],
            Filters=filters,
        )
        return tuple(snapshot_from_payload(item, region) for item in items)


def _filter(name: str, value: str) -> dict[str, Any]:
    return {"Name": name, "Values": [value]}


def _escape_filter_value(value: str) -> str:
    """Escape EC2 filter wildcards so the value matches literally."""
    return value.replace("\\", "\\\\").replace("*", "\\*").replace("?", "\\?")
