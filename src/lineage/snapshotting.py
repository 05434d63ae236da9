"""Snapshot workflow for a lineage.

Every resolved volume is snapshotted independently. Volumes that are not
``available`` or ``in-use`` are skipped with a warning, which is not a
failure. The lineage argument always decides the snapshot's lineage tag,
even when an explicit volume already belongs to another lineage; this is
how a lineage is started from an untagged volume or forked from another.
"""

from __future__ import annotations

from typing import Mapping

from cloud.provider import invoke
from core.constants import RESOURCE_KIND_SNAPSHOT, SNAPSHOT_ELIGIBLE_VOLUME_STATES
from core.errors import ConductorRequestError
from core.logging_config import get_logger
from core.types import (
    Region,
    SnapshotLineageResult,
    SnapshotRequest,
    VolumeRef,
    lineage_tag,
)
from lineage.context import WorkflowContext
from lineage.retention import prune_lineage_history, validate_history_to_keep

_LOGGER = get_logger(__name__)


def snapshot_lineage(request: SnapshotRequest, context: WorkflowContext) -> SnapshotLineageResult:
    """Snapshot a lineage's volumes and optionally prune old snapshots.

    Args:
        request: Snapshot request.
        context: Workflow collaborators.

    Returns:
        Created, skipped and deleted resources.

    Raises:
        ConductorRequestError: If the request is invalid.
        VolumeNotFoundError: If an explicit volume id cannot be resolved.
        ConductorTimeoutError: If the inventory does not list the snapshots in time.
        ConductorProviderError: If a provider request fails.
    """
    _validate_snapshot_request(request)
    targets = resolve_target_volumes(request, context)
    snapshot_tags = (lineage_tag(request.lineage), *request.tags)
    created: dict[Region, tuple[str, ...]] = {}
    skipped: list[str] = []
    for region, volumes in targets.items():
        region_snapshot_ids: list[str] = []
        for volume in volumes:
            if volume.state not in SNAPSHOT_ELIGIBLE_VOLUME_STATES:
                _LOGGER.warning(
                    "snapshot_skipped",
                    volume_id=volume.volume_id,
                    region=region,
                    state=volume.state,
                    lineage=request.lineage,
                )
                skipped.append(volume.volume_id)
                continue
            region_snapshot_ids.append(_create_snapshot(volume, request.lineage, context))
        created[region] = tuple(region_snapshot_ids)

    _wait_for_inventory(created, request, context)
    for region, snapshot_ids in created.items():
        for snapshot_id in snapshot_ids:
            for tag in snapshot_tags:
                context.tag_writer.set_tag(snapshot_id, RESOURCE_KIND_SNAPSHOT, tag, region)

    deleted: dict[Region, tuple[str, ...]] = {}
    if request.history_to_keep is not None:
        deleted = prune_lineage_history(request.lineage, request.history_to_keep, context)
    return SnapshotLineageResult(
        lineage=request.lineage,
        created=created,
        skipped_volume_ids=tuple(skipped),
        deleted=deleted,
    )


def resolve_target_volumes(
    request: SnapshotRequest,
    context: WorkflowContext,
) -> dict[Region, tuple[VolumeRef, ...]]:
    """Resolve the explicit volume or every volume tagged with the lineage."""
    if request.volume_id:
        volume = context.resolver.require_volume(request.volume_id)
        return {volume.region: (volume,)}
    return context.resolver.find_volumes_by_lineage(request.lineage)


def snapshot_description(lineage: str, volume: VolumeRef) -> str:
    """Human-readable description noting the volume's attachment state."""
    instance_id = volume.attached_instance_id
    attachment = f"attached to {instance_id}" if instance_id else "detached"
    return (
        f"Created by lineage conductor for the ({lineage}) lineage "
        f"while the volume was {attachment}"
    )


def _create_snapshot(volume: VolumeRef, lineage: str, context: WorkflowContext) -> str:
    other_lineages = [name for name in volume.lineages() if name != lineage]
    if other_lineages:
        _LOGGER.warning(
            "lineage_override",
            volume_id=volume.volume_id,
            region=volume.region,
            lineage=lineage,
            volume_lineages=other_lineages,
        )
    response = invoke(
        context.registry.client(volume.region),
        "create_snapshot",
        volume.region,
        VolumeId=volume.volume_id,
        Description=snapshot_description(lineage, volume),
    )
    snapshot_id = str(response["SnapshotId"])
    _LOGGER.info(
        "snapshot_created",
        snapshot_id=snapshot_id,
        volume_id=volume.volume_id,
        region=volume.region,
        lineage=lineage,
    )
    return snapshot_id


def _wait_for_inventory(
    created: Mapping[Region, tuple[str, ...]],
    request: SnapshotRequest,
    context: WorkflowContext,
) -> None:
    inventory = context.inventory
    if inventory is None:
        return
    snapshot_ids = [snapshot_id for ids in created.values() for snapshot_id in ids]
    if not snapshot_ids:
        return

    def records_pending() -> bool:
        return not all(
            inventory.has_record(RESOURCE_KIND_SNAPSHOT, snapshot_id) for snapshot_id in snapshot_ids
        )

    timeout_message = (
        f"Timed out waiting for snapshots {snapshot_ids} to appear in the inventory. "
        f"Elapsed time was {request.timeout_seconds} seconds"
    )
    context.poller.wait_until_satisfied(records_pending, request.timeout_seconds, timeout_message)


def _validate_snapshot_request(request: SnapshotRequest) -> None:
    if not request.lineage:
        raise ConductorRequestError("Lineage name must not be empty.")
    if request.history_to_keep is not None:
        validate_history_to_keep(request.history_to_keep)
    if request.timeout_seconds <= 0:
        raise ConductorRequestError(
            f"Timeout must be a positive number of seconds, got {request.timeout_seconds}."
        )
