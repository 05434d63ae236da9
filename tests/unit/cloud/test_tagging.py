"""Unit tests for tagging collaborators."""

from __future__ import annotations

from cloud.regions import RegionRegistry
from cloud.tagging import Ec2TagWriter, FanoutTagWriter
from tests.fake_ec2 import FakeEc2Client, FakeInventory


def test_ec2_writer_stores_tag_string_as_key() -> None:
    """Tags should be written as keys with empty values in the resource's region."""
    client = FakeEc2Client("eu-west-1")
    client.add_volume("vol-1")
    writer = Ec2TagWriter(RegionRegistry({"eu-west-1": client}))

    writer.set_tag("vol-1", "volume", "lineage=db", "eu-west-1")

    assert client.calls_for("create_tags") == [
        {"Resources": ["vol-1"], "Tags": [{"Key": "lineage=db", "Value": ""}]}
    ]


def test_fanout_writer_tags_inventory_after_provider() -> None:
    """Fan-out should tag the provider and then the inventory."""
    client = FakeEc2Client("us-east-1")
    client.add_volume("vol-1")
    inventory = FakeInventory()
    writer = FanoutTagWriter(Ec2TagWriter(RegionRegistry({"us-east-1": client})), inventory)

    writer.set_tag("vol-1", "volume", "lineage=db", "us-east-1")

    assert len(client.calls_for("create_tags")) == 1
    assert inventory.tags == [("volume", "vol-1", "lineage=db")]


def test_fanout_writer_without_inventory_only_tags_provider() -> None:
    """A missing inventory should be skipped."""
    client = FakeEc2Client("us-east-1")
    client.add_snapshot("snap-1", minutes=1)
    writer = FanoutTagWriter(Ec2TagWriter(RegionRegistry({"us-east-1": client})), None)

    writer.set_tag("snap-1", "snapshot", "team=ops", "us-east-1")

    assert client.snapshots["snap-1"]["Tags"] == [{"Key": "team=ops", "Value": ""}]
