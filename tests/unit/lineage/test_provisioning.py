"""Unit tests for the provisioning workflow."""

from __future__ import annotations

import pytest

from core.errors import (
    ConductorFatalStateError,
    ConductorProviderError,
    ConductorRequestError,
    ConductorTimeoutError,
    InstanceNotFoundError,
)
from tests.fake_ec2 import FakeClock, FakeEc2Client, FakeInventory, build_conductor


def _regions() -> dict[str, FakeEc2Client]:
    east = FakeEc2Client("us-east")
    west = FakeEc2Client("us-west")
    east.add_instance("i-1", zone="us-east-1c")
    return {"us-east": east, "us-west": west}


def test_attach_creates_blank_volume_when_lineage_has_no_snapshots() -> None:
    """A lineage without snapshots should get a blank, tagged, attached volume."""
    clients = _regions()
    conductor = build_conductor(clients)

    volume_id = conductor.attach_from_lineage("i-1", "db", 10, "/dev/sdf")

    east = clients["us-east"]
    assert east.calls_for("create_volume") == [{"AvailabilityZone": "us-east-1c", "Size": 10}]
    assert east.calls_for("attach_volume") == [
        {"VolumeId": volume_id, "InstanceId": "i-1", "Device": "/dev/sdf"}
    ]
    assert east.volumes[volume_id]["State"] == "in-use"
    assert east.volumes[volume_id]["Tags"] == [{"Key": "lineage=db", "Value": ""}]


def test_attach_uses_newest_snapshot_in_instance_region() -> None:
    """Source selection should take the newest in-region snapshot, never another region's."""
    clients = _regions()
    clients["us-east"].add_snapshot("snap-s1", minutes=10, tags=("lineage=db",))
    clients["us-east"].add_snapshot("snap-s2", minutes=20, tags=("lineage=db",))
    clients["us-west"].add_snapshot("snap-s3", minutes=30, tags=("lineage=db",))
    conductor = build_conductor(clients)

    conductor.attach_from_lineage("i-1", "db", 10, "/dev/sdf")

    assert clients["us-east"].calls_for("create_volume")[0]["SnapshotId"] == "snap-s2"


def test_attach_prefers_explicit_snapshot() -> None:
    """An explicit snapshot id should override lineage lookup."""
    clients = _regions()
    clients["us-east"].add_snapshot("snap-s2", minutes=20, tags=("lineage=db",))
    conductor = build_conductor(clients)

    conductor.attach_from_lineage("i-1", "db", 10, "/dev/sdf", snapshot_id="snap-pinned")

    assert clients["us-east"].calls_for("create_volume")[0]["SnapshotId"] == "snap-pinned"
    assert clients["us-east"].calls_for("describe_snapshots") == []


def test_attach_applies_lineage_tag_before_extra_tags() -> None:
    """Lineage tag should be written first, then each extra tag separately."""
    clients = _regions()
    conductor = build_conductor(clients)

    volume_id = conductor.attach_from_lineage(
        "i-1", "db", 10, "/dev/sdf", tags=("role=primary", "team=ops")
    )

    tag_calls = clients["us-east"].calls_for("create_tags")
    assert [call["Tags"][0]["Key"] for call in tag_calls] == [
        "lineage=db",
        "role=primary",
        "team=ops",
    ]
    assert all(call["Resources"] == [volume_id] for call in tag_calls)


def test_attach_with_tied_snapshot_times_picks_a_newest_one() -> None:
    """Equal timestamps may resolve either way, but only to a newest snapshot."""
    clients = _regions()
    clients["us-east"].add_snapshot("snap-old", minutes=5, tags=("lineage=db",))
    clients["us-east"].add_snapshot("snap-a", minutes=20, tags=("lineage=db",))
    clients["us-east"].add_snapshot("snap-b", minutes=20, tags=("lineage=db",))
    conductor = build_conductor(clients)

    conductor.attach_from_lineage("i-1", "db", 10, "/dev/sdf")

    assert clients["us-east"].calls_for("create_volume")[0]["SnapshotId"] in {"snap-a", "snap-b"}


def test_attach_raises_for_unknown_instance() -> None:
    """Unknown instances should fail before any volume is created."""
    clients = _regions()
    conductor = build_conductor(clients)

    with pytest.raises(InstanceNotFoundError):
        conductor.attach_from_lineage("i-missing", "db", 10, "/dev/sdf")

    assert clients["us-east"].calls_for("create_volume") == []


@pytest.mark.parametrize("size_gb", [0, -5])
def test_attach_rejects_non_positive_size(size_gb: int) -> None:
    """Volume size must be a positive number of GB."""
    conductor = build_conductor(_regions())

    with pytest.raises(ConductorRequestError):
        conductor.attach_from_lineage("i-1", "db", size_gb, "/dev/sdf")


def test_attach_aborts_when_volume_enters_deleting_state() -> None:
    """A volume deleted while attaching should abort without waiting out the timeout."""
    clients = _regions()
    clients["us-east"].volume_state_after_attach = "deleting"
    clock = FakeClock()
    conductor = build_conductor(clients, clock=clock)

    with pytest.raises(ConductorFatalStateError, match="deleting"):
        conductor.attach_from_lineage("i-1", "db", 10, "/dev/sdf", timeout_seconds=3600)

    assert clock.now == 0
    assert clients["us-east"].calls_for("create_tags") == []


def test_attach_aborts_when_volume_fails_during_creation() -> None:
    """A volume that errors before becoming available should never be attached."""
    clients = _regions()
    clients["us-east"].volume_state_after_create = "error"
    conductor = build_conductor(clients)

    with pytest.raises(ConductorFatalStateError, match="error"):
        conductor.attach_from_lineage("i-1", "db", 10, "/dev/sdf")

    assert clients["us-east"].calls_for("attach_volume") == []


def test_attach_waits_for_inventory_record() -> None:
    """With an inventory configured the wait should also require its record."""
    clients = _regions()
    clock = FakeClock()
    inventory = FakeInventory(lookups_until_visible=2)
    conductor = build_conductor(clients, inventory=inventory, clock=clock)

    volume_id = conductor.attach_from_lineage("i-1", "db", 10, "/dev/sdf")

    assert clock.sleeps == [2, 5]
    assert inventory.lookups[-1] == ("volume", volume_id)
    assert ("volume", volume_id, "lineage=db") in inventory.tags


def test_attach_times_out_when_inventory_never_lists_volume() -> None:
    """A record that never appears should raise a timeout naming the instance."""
    clients = _regions()
    clock = FakeClock()
    inventory = FakeInventory(lookups_until_visible=10_000)
    conductor = build_conductor(clients, inventory=inventory, clock=clock)

    with pytest.raises(ConductorTimeoutError, match=r"\(i-1\)\. Elapsed time was 30 seconds"):
        conductor.attach_from_lineage("i-1", "db", 10, "/dev/sdf", timeout_seconds=30)

    assert clock.now == 30


def test_attach_surfaces_tagging_failure_after_attachment() -> None:
    """Tagging failures should propagate and leave the attached volume in place."""
    clients = _regions()
    clients["us-east"].failing_operations.add("create_tags")
    conductor = build_conductor(clients)

    with pytest.raises(ConductorProviderError, match="create_tags"):
        conductor.attach_from_lineage("i-1", "db", 10, "/dev/sdf")

    [volume] = clients["us-east"].volumes.values()
    assert volume["State"] == "in-use" and volume["Tags"] == []


def test_attach_aborts_when_volume_vanishes_after_attach() -> None:
    """A volume that disappears after the attach request should abort immediately."""
    clients = _regions()
    east = clients["us-east"]
    attach = east.attach_volume

    def attach_then_delete(**params):
        response = attach(**params)
        del east.volumes[params["VolumeId"]]
        return response

    east.attach_volume = attach_then_delete
    clock = FakeClock()
    conductor = build_conductor(clients, clock=clock)

    with pytest.raises(ConductorFatalStateError, match="absent"):
        conductor.attach_from_lineage("i-1", "db", 10, "/dev/sdf", timeout_seconds=3600)

    assert clock.now == 0


def test_attach_aborts_when_instance_disappears() -> None:
    """An instance that is gone after the attach request should abort immediately."""
    clients = _regions()
    east = clients["us-east"]
    attach = east.attach_volume

    def attach_then_terminate(**params):
        response = attach(**params)
        del east.instances[params["InstanceId"]]
        return response

    east.attach_volume = attach_then_terminate
    conductor = build_conductor(clients)

    with pytest.raises(ConductorFatalStateError, match="i-1 disappeared"):
        conductor.attach_from_lineage("i-1", "db", 10, "/dev/sdf", timeout_seconds=3600)

    assert east.calls_for("create_tags") == []


def test_attach_rejects_explicit_zero_timeout() -> None:
    """An explicit zero timeout should be rejected, not replaced by the default."""
    clients = _regions()
    conductor = build_conductor(clients)

    with pytest.raises(ConductorRequestError, match="Timeout"):
        conductor.attach_from_lineage("i-1", "db", 10, "/dev/sdf", timeout_seconds=0)

    assert clients["us-east"].calls_for("create_volume") == []
