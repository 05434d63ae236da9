"""Lineage conductor SDK client.

This module exposes the high-level API that owns the region registry and
collaborators and runs the provisioning and snapshot workflows.
"""

from __future__ import annotations

from typing import Any

from cloud.inventory import InventoryClient, build_inventory_client
from cloud.regions import RegionRegistry
from cloud.resolver import LineageResolver
from cloud.tagging import Ec2TagWriter, FanoutTagWriter, TagWriter
from core.config import ConductorConfig
from core.polling import BackoffPoller
from core.types import (
    AttachRequest,
    Region,
    SnapshotLineageResult,
    SnapshotRef,
    SnapshotRequest,
    VolumeRef,
)
from lineage.context import WorkflowContext
from lineage.locks import LineageLocks
from lineage.provisioning import attach_from_lineage
from lineage.retention import prune_lineage_history
from lineage.snapshotting import snapshot_lineage

_UNSET: Any = object()


class LineageConductor:
    """Primary SDK entry point for lineage workflows."""

    def __init__(
        self,
        config: ConductorConfig | None = None,
        registry: RegionRegistry | None = None,
        tag_writer: TagWriter | None = None,
        inventory: InventoryClient | None = _UNSET,
        poller: BackoffPoller | None = None,
    ) -> None:
        """Create the conductor and its collaborators.

        Args:
            config: Optional runtime configuration; read from env when omitted.
            registry: Optional prebuilt registry; discovered from AWS when omitted.
            tag_writer: Optional tag writer; EC2 plus inventory when omitted.
            inventory: Optional inventory client; built from config when omitted.
                Pass None explicitly to disable the inventory.
            poller: Optional readiness poller.

        Raises:
            ConductorProviderError: If regions cannot be enumerated.
        """
        self._config = config or ConductorConfig.from_env()
        active_registry = registry or RegionRegistry.discover(self._config)
        self._owned_inventory = build_inventory_client(self._config) if inventory is _UNSET else None
        active_inventory = self._owned_inventory if inventory is _UNSET else inventory
        active_writer = tag_writer or FanoutTagWriter(
            Ec2TagWriter(active_registry),
            active_inventory,
        )
        self._context = WorkflowContext(
            registry=active_registry,
            resolver=LineageResolver(active_registry),
            tag_writer=active_writer,
            poller=poller or BackoffPoller(),
            inventory=active_inventory,
        )
        self._locks = LineageLocks()

    def close(self) -> None:
        """Release the inventory client the conductor built, if any."""
        if self._owned_inventory is not None:
            self._owned_inventory.close()

    def __enter__(self) -> "LineageConductor":
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()

    @property
    def config(self) -> ConductorConfig:
        """Runtime configuration in use."""
        return self._config

    def regions(self) -> tuple[Region, ...]:
        """Registered region names."""
        return self._context.registry.regions()

    def attach_from_lineage(
        self,
        instance_id: str,
        lineage: str,
        size_gb: int,
        device: str,
        snapshot_id: str | None = None,
        timeout_seconds: int | None = None,
        tags: tuple[str, ...] = (),
    ) -> str:
        """Attach a new volume continuing a lineage to an instance.

        Args:
            instance_id: Target instance id.
            lineage: Lineage name.
            size_gb: New volume size in GB.
            device: Device path for the attachment.
            snapshot_id: Optional explicit source snapshot.
            timeout_seconds: Optional wait budget; config default when omitted.
            tags: Extra tags applied after the lineage tag.

        Returns:
            New volume id.
        """
        request = AttachRequest(
            instance_id=instance_id,
            lineage=lineage,
            size_gb=size_gb,
            device=device,
            snapshot_id=snapshot_id,
            timeout_seconds=self._timeout(timeout_seconds),
            tags=tuple(tags),
        )
        return attach_from_lineage(request, self._context)

    def snapshot_lineage(
        self,
        lineage: str,
        volume_id: str | None = None,
        history_to_keep: int | None = None,
        timeout_seconds: int | None = None,
        tags: tuple[str, ...] = (),
    ) -> SnapshotLineageResult:
        """Snapshot a lineage and optionally prune its history.

        Supplying ``volume_id`` snapshots that volume under ``lineage`` even
        when the volume is tagged with a different lineage.

        Raises:
            ConductorLineageBusyError: If the lineage is already being processed.
        """
        request = SnapshotRequest(
            lineage=lineage,
            volume_id=volume_id,
            timeout_seconds=self._timeout(timeout_seconds),
            tags=tuple(tags),
            history_to_keep=history_to_keep,
        )
        with self._locks.hold(lineage):
            return snapshot_lineage(request, self._context)

    def prune_history(self, lineage: str, history_to_keep: int) -> dict[Region, tuple[str, ...]]:
        """Delete all but the newest ``history_to_keep`` snapshots per region."""
        with self._locks.hold(lineage):
            return prune_lineage_history(lineage, history_to_keep, self._context)

    def lineage_volumes(self, lineage: str) -> dict[Region, tuple[VolumeRef, ...]]:
        """List lineage volumes by region."""
        return self._context.resolver.find_volumes_by_lineage(lineage)

    def lineage_snapshots(
        self,
        lineage: str,
        region: Region | None = None,
    ) -> dict[Region, tuple[SnapshotRef, ...]]:
        """List lineage snapshots by region, newest first."""
        found = self._context.resolver.find_snapshots_by_lineage(lineage, region)
        return {
            name: tuple(sorted(items, key=lambda item: item.created_at, reverse=True))
            for name, items in found.items()
        }

    def _timeout(self, timeout_seconds: int | None) -> int:
        if timeout_seconds is None:
            return self._config.default_timeout_seconds
        return timeout_seconds
