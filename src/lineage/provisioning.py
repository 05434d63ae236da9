"""Provisioning workflow: attach a volume that continues a lineage.

The source of the new volume is, in order of preference, the caller's
explicit snapshot, the newest lineage snapshot in the instance's own
region, or nothing (a blank volume). Snapshots are region-local, so a
newer snapshot in another region is never used.

Once the volume has been requested this workflow does not roll back: a
failure while waiting or tagging leaves the volume in place and logs it
as orphaned.
"""

from __future__ import annotations

from typing import Any

from cloud.provider import invoke
from core.constants import (
    ATTACHMENT_ATTACHED_STATE,
    RESOURCE_KIND_VOLUME,
    TERMINAL_VOLUME_STATES,
    VOLUME_AVAILABLE_STATE,
    VOLUME_IN_USE_STATE,
)
from core.errors import ConductorError, ConductorFatalStateError, ConductorRequestError
from core.logging_config import get_logger
from core.types import AttachRequest, InstanceRef, lineage_tag
from lineage.context import WorkflowContext

_LOGGER = get_logger(__name__)


def attach_from_lineage(request: AttachRequest, context: WorkflowContext) -> str:
    """Create, attach and tag a volume continuing ``request.lineage``.

    Args:
        request: Attach request.
        context: Workflow collaborators.

    Returns:
        New volume id.

    Raises:
        ConductorRequestError: If the request is invalid.
        InstanceNotFoundError: If the instance is unknown to every region.
        ConductorTimeoutError: If the volume is not attached in time.
        ConductorFatalStateError: If the volume or instance disappears while waiting.
        ConductorProviderError: If a provider request fails.
    """
    _validate_attach_request(request)
    instance = context.resolver.require_instance(request.instance_id)
    snapshot_id = select_source_snapshot(request, instance, context)
    client = context.registry.client(instance.region)
    volume_id = _create_volume(client, instance, request, snapshot_id)
    try:
        _attach_when_available(client, instance, volume_id, request, context)
        _tag_volume(volume_id, instance, request, context)
    except ConductorError as error:
        _LOGGER.error(
            "volume_orphaned",
            volume_id=volume_id,
            instance_id=instance.instance_id,
            region=instance.region,
            lineage=request.lineage,
            error=str(error),
        )
        raise
    _LOGGER.info(
        "volume_attached",
        volume_id=volume_id,
        instance_id=instance.instance_id,
        region=instance.region,
        lineage=request.lineage,
        source_snapshot_id=snapshot_id,
    )
    return volume_id


def select_source_snapshot(
    request: AttachRequest,
    instance: InstanceRef,
    context: WorkflowContext,
) -> str | None:
    """Choose the snapshot a new volume is created from.

    Args:
        request: Attach request.
        instance: Resolved target instance.
        context: Workflow collaborators.

    Returns:
        Snapshot id, or None for a blank volume.
    """
    if request.snapshot_id:
        return request.snapshot_id
    latest = context.resolver.latest_snapshot(request.lineage, instance.region)
    if latest is None:
        return None
    return latest.snapshot_id


def _create_volume(
    client: Any,
    instance: InstanceRef,
    request: AttachRequest,
    snapshot_id: str | None,
) -> str:
    params: dict[str, Any] = {
        "AvailabilityZone": instance.availability_zone,
        "Size": request.size_gb,
    }
    if snapshot_id:
        params["SnapshotId"] = snapshot_id
    response = invoke(client, "create_volume", instance.region, **params)
    volume_id = str(response["VolumeId"])
    _LOGGER.info(
        "volume_created",
        volume_id=volume_id,
        region=instance.region,
        availability_zone=instance.availability_zone,
        size_gb=request.size_gb,
        source_snapshot_id=snapshot_id,
    )
    return volume_id


def _attach_when_available(
    client: Any,
    instance: InstanceRef,
    volume_id: str,
    request: AttachRequest,
    context: WorkflowContext,
) -> None:
    poller = context.poller
    started_at = poller.clock()
    timeout_message = (
        f"Timed out waiting for volume {volume_id} to be created and attached to "
        f"({instance.instance_id}). Elapsed time was {request.timeout_seconds} seconds"
    )

    def volume_pending() -> bool:
        volume = context.resolver.find_volume(volume_id, instance.region)
        if volume is None:
            return True
        if volume.state in TERMINAL_VOLUME_STATES:
            raise ConductorFatalStateError(
                f"Volume {volume_id} entered state '{volume.state}' before it could be attached."
            )
        return volume.state != VOLUME_AVAILABLE_STATE

    poller.wait_until_satisfied(volume_pending, request.timeout_seconds, timeout_message)
    invoke(
        client,
        "attach_volume",
        instance.region,
        VolumeId=volume_id,
        InstanceId=instance.instance_id,
        Device=request.device,
    )

    def attachment_pending() -> bool:
        current = context.resolver.get_instance(instance.instance_id, instance.region)
        if current is None:
            raise ConductorFatalStateError(
                f"Instance {instance.instance_id} disappeared while attaching volume {volume_id}."
            )
        volume = context.resolver.find_volume(volume_id, instance.region)
        if volume is None or volume.state in TERMINAL_VOLUME_STATES:
            state = "absent" if volume is None else volume.state
            raise ConductorFatalStateError(
                f"Volume {volume_id} is {state} while waiting for it to attach to "
                f"{instance.instance_id}."
            )
        attached = (
            current.block_devices.get(volume_id) == ATTACHMENT_ATTACHED_STATE
            and volume.state == VOLUME_IN_USE_STATE
            and volume.attached_instance_id == instance.instance_id
        )
        return not (attached and _inventory_has(context, volume_id))

    remaining = request.timeout_seconds - (poller.clock() - started_at)
    poller.wait_until_satisfied(attachment_pending, max(remaining, 0), timeout_message)


def _inventory_has(context: WorkflowContext, volume_id: str) -> bool:
    if context.inventory is None:
        return True
    return context.inventory.has_record(RESOURCE_KIND_VOLUME, volume_id)


def _tag_volume(
    volume_id: str,
    instance: InstanceRef,
    request: AttachRequest,
    context: WorkflowContext,
) -> None:
    for tag in (lineage_tag(request.lineage), *request.tags):
        context.tag_writer.set_tag(volume_id, RESOURCE_KIND_VOLUME, tag, instance.region)


def _validate_attach_request(request: AttachRequest) -> None:
    if not request.lineage:
        raise ConductorRequestError("Lineage name must not be empty.")
    if isinstance(request.size_gb, bool) or not isinstance(request.size_gb, int):
        raise ConductorRequestError(
            f"Volume size must be an integer number of GB, got {request.size_gb!r}."
        )
    if request.size_gb <= 0:
        raise ConductorRequestError(f"Volume size must be positive, got {request.size_gb} GB.")
    if request.timeout_seconds <= 0:
        raise ConductorRequestError(
            f"Timeout must be a positive number of seconds, got {request.timeout_seconds}."
        )
