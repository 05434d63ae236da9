"""Shared typed models.

This module defines immutable resource and request models used by the
resolver, workflows, SDK and CLI layers to keep interfaces explicit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping

from core.constants import DEFAULT_TIMEOUT_SECONDS, LINEAGE_TAG_PREFIX

Region = str


def lineage_tag(lineage: str) -> str:
    """Return the tag key marking membership in a lineage.

    Both the tagging and the lookup paths call this so the key matches exactly.

    Args:
        lineage: Lineage name.

    Returns:
        Tag key in the form ``lineage=<name>``.
    """
    return f"{LINEAGE_TAG_PREFIX}{lineage}"


@dataclass(frozen=True)
class InstanceRef:
    """Compute instance located in one region.

    Attributes:
        instance_id: Provider-assigned instance id.
        region: Region the instance lives in.
        availability_zone: Placement zone used for new volumes.
        state: Provider lifecycle state name.
        block_devices: Volume attachment status keyed by volume id.
    """

    instance_id: str
    region: Region
    availability_zone: str
    state: str
    block_devices: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class VolumeAttachment:
    """One volume attachment record."""

    instance_id: str
    device: str
    state: str


@dataclass(frozen=True)
class VolumeRef:
    """Block volume located in one region.

    Attributes:
        volume_id: Provider-assigned volume id.
        region: Region the volume lives in.
        availability_zone: Zone the volume lives in.
        state: Lifecycle state (creating, available, in-use, deleting, ...).
        size_gb: Volume size in gigabytes.
        attachments: Current attachment records.
        tag_keys: Keys of every tag on the volume.
    """

    volume_id: str
    region: Region
    availability_zone: str
    state: str
    size_gb: int
    attachments: tuple[VolumeAttachment, ...] = ()
    tag_keys: frozenset[str] = frozenset()

    @property
    def attached_instance_id(self) -> str | None:
        """Instance the volume is attached to, if any."""
        if not self.attachments:
            return None
        return self.attachments[0].instance_id

    def lineages(self) -> tuple[str, ...]:
        """Lineage names the volume is tagged with."""
        return tuple(
            sorted(
                key.removeprefix(LINEAGE_TAG_PREFIX)
                for key in self.tag_keys
                if key.startswith(LINEAGE_TAG_PREFIX)
            )
        )


@dataclass(frozen=True)
class SnapshotRef:
    """Point-in-time snapshot located in its source volume's region."""

    snapshot_id: str
    region: Region
    volume_id: str
    state: str
    created_at: datetime
    description: str = ""
    tag_keys: frozenset[str] = frozenset()


@dataclass(frozen=True)
class AttachRequest:
    """Request to provision a volume continuing a lineage.

    Attributes:
        instance_id: Instance receiving the new volume.
        lineage: Lineage the new volume continues.
        size_gb: Size of the new volume in gigabytes.
        device: Provider device path for the attachment.
        snapshot_id: Optional explicit source snapshot.
        timeout_seconds: Readiness wait budget.
        tags: Extra tags applied after the lineage tag.
    """

    instance_id: str
    lineage: str
    size_gb: int
    device: str
    snapshot_id: str | None = None
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class SnapshotRequest:
    """Request to snapshot a lineage and optionally prune its history.

    Attributes:
        lineage: Lineage to snapshot; always wins over the volume's own tags.
        volume_id: Optional explicit source volume.
        timeout_seconds: Readiness wait budget.
        tags: Extra tags applied after the lineage tag.
        history_to_keep: Snapshots retained per region; None keeps everything.
    """

    lineage: str
    volume_id: str | None = None
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    tags: tuple[str, ...] = ()
    history_to_keep: int | None = None


@dataclass(frozen=True)
class SnapshotLineageResult:
    """Outcome of one snapshot and retention run.

    Attributes:
        lineage: Lineage that was snapshotted.
        created: New snapshot ids by region.
        skipped_volume_ids: Volumes not eligible for snapshotting.
        deleted: Pruned snapshot ids by region.
    """

    lineage: str
    created: Mapping[Region, tuple[str, ...]]
    skipped_volume_ids: tuple[str, ...] = ()
    deleted: Mapping[Region, tuple[str, ...]] = field(default_factory=dict)

    @property
    def snapshot_ids(self) -> tuple[str, ...]:
        """All created snapshot ids across regions."""
        return tuple(snapshot_id for ids in self.created.values() for snapshot_id in ids)
