"""Conversion of EC2 describe payloads into typed resource models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from core.types import InstanceRef, Region, SnapshotRef, VolumeAttachment, VolumeRef


def instance_from_payload(payload: Mapping[str, Any], region: Region) -> InstanceRef:
    """Build an instance model from one ``describe_instances`` item."""
    block_devices = {
        str(mapping["Ebs"]["VolumeId"]): str(mapping["Ebs"].get("Status", ""))
        for mapping in payload.get("BlockDeviceMappings", [])
        if "Ebs" in mapping
    }
    return InstanceRef(
        instance_id=str(payload["InstanceId"]),
        region=region,
        availability_zone=str(payload.get("Placement", {}).get("AvailabilityZone", "")),
        state=str(payload.get("State", {}).get("Name", "")),
        block_devices=block_devices,
    )


def volume_from_payload(payload: Mapping[str, Any], region: Region) -> VolumeRef:
    """Build a volume model from one ``describe_volumes`` item."""
    attachments = tuple(
        VolumeAttachment(
            instance_id=str(item["InstanceId"]),
            device=str(item.get("Device", "")),
            state=str(item.get("State", "")),
        )
        for item in payload.get("Attachments", [])
    )
    return VolumeRef(
        volume_id=str(payload["VolumeId"]),
        region=region,
        availability_zone=str(payload.get("AvailabilityZone", "")),
        state=str(payload.get("State", "")),
        size_gb=int(payload.get("Size", 0)),
        attachments=attachments,
        tag_keys=_tag_keys(payload),
    )


def snapshot_from_payload(payload: Mapping[str, Any], region: Region) -> SnapshotRef:
    """Build a snapshot model from one ``describe_snapshots`` item."""
    start_time = payload["StartTime"]
    if not isinstance(start_time, datetime):
        start_time = datetime.fromisoformat(str(start_time))
    return SnapshotRef(
        snapshot_id=str(payload["SnapshotId"]),
        region=region,
        volume_id=str(payload.get("VolumeId", "")),
        state=str(payload.get("State", "")),
        created_at=start_time,
        description=str(payload.get("Description", "")),
        tag_keys=_tag_keys(payload),
    )


def _tag_keys(payload: Mapping[str, Any]) -> frozenset[str]:
    return frozenset(str(tag["Key"]) for tag in payload.get("Tags", []))
