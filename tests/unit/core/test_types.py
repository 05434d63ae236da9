"""Unit tests for shared resource models."""

from __future__ import annotations

from core.types import VolumeAttachment, VolumeRef, lineage_tag


def test_lineage_tag_uses_key_marker_format() -> None:
    """Lineage tags should be ``lineage=<name>`` keys."""
    assert lineage_tag("database-data") == "lineage=database-data"


def test_volume_reports_lineages_and_attachment() -> None:
    """Volume helpers should expose lineage names and the attached instance."""
    volume = VolumeRef(
        volume_id="vol-1",
        region="us-east-1",
        availability_zone="us-east-1a",
        state="in-use",
        size_gb=10,
        attachments=(VolumeAttachment(instance_id="i-1", device="/dev/sdf", state="attached"),),
        tag_keys=frozenset({"lineage=db", "team=ops", "lineage=app-config"}),
    )

    assert volume.lineages() == ("app-config", "db")
    assert volume.attached_instance_id == "i-1"
