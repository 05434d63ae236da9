"""Unit tests for the conductor SDK client."""

from __future__ import annotations

import pytest

from cloud.regions import RegionRegistry
from core.config import ConductorConfig
from core.errors import ConductorLineageBusyError, ConductorRequestError
from lineage.conductor import LineageConductor
from tests.fake_ec2 import FakeEc2Client, FakeInventory, build_conductor


class _ReentrantInventory(FakeInventory):
    """Inventory that starts another lineage run from inside the readiness wait."""

    def __init__(self, run) -> None:
        super().__init__()
        self.run = run
        self.errors: list[ConductorLineageBusyError] = []

    def has_record(self, resource_kind: str, resource_id: str) -> bool:
        if not self.errors:
            try:
                self.run()
            except ConductorLineageBusyError as error:
                self.errors.append(error)
        return super().has_record(resource_kind, resource_id)


class _ClosingInventory(FakeInventory):
    def __init__(self) -> None:
        super().__init__()
        self.closed = False

    def close(self) -> None:
        self.closed = True


def _clients() -> dict[str, FakeEc2Client]:
    east = FakeEc2Client("us-east")
    east.add_volume("vol-db", state="in-use", tags=("lineage=db",), instance_id="i-1")
    east.add_snapshot("snap-1", minutes=1, tags=("lineage=db",))
    return {"us-east": east}


def test_concurrent_snapshot_of_same_lineage_is_rejected() -> None:
    """A second snapshot run started mid-wait should fail fast."""
    holder: dict[str, LineageConductor] = {}
    inventory = _ReentrantInventory(lambda: holder["conductor"].snapshot_lineage("db"))
    clients = _clients()
    holder["conductor"] = build_conductor(clients, inventory=inventory)

    result = holder["conductor"].snapshot_lineage("db")

    assert len(inventory.errors) == 1 and "db" in str(inventory.errors[0])
    assert len(clients["us-east"].calls_for("create_snapshot")) == 1
    assert len(result.snapshot_ids) == 1


def test_prune_during_snapshot_of_same_lineage_is_rejected() -> None:
    """Retention for a lineage being snapshotted should fail fast and delete nothing."""
    holder: dict[str, LineageConductor] = {}
    inventory = _ReentrantInventory(lambda: holder["conductor"].prune_history("db", 0))
    clients = _clients()
    holder["conductor"] = build_conductor(clients, inventory=inventory)

    holder["conductor"].snapshot_lineage("db")

    assert len(inventory.errors) == 1
    assert clients["us-east"].calls_for("delete_snapshot") == []


def test_other_lineage_runs_during_snapshot() -> None:
    """Locks should not serialize unrelated lineages."""
    holder: dict[str, LineageConductor] = {}
    inventory = _ReentrantInventory(lambda: holder["conductor"].prune_history("app", 0))
    holder["conductor"] = build_conductor(_clients(), inventory=inventory)

    holder["conductor"].snapshot_lineage("db")

    assert inventory.errors == []


def test_lineage_is_released_after_snapshot() -> None:
    """A finished run should let the next one proceed."""
    conductor = build_conductor(_clients())

    conductor.snapshot_lineage("db")
    deleted = conductor.prune_history("db", 1)

    assert deleted == {"us-east": ("snap-1",)}


def test_snapshot_rejects_explicit_zero_timeout() -> None:
    """An explicit zero timeout should be rejected, not replaced by the default."""
    clients = _clients()
    conductor = build_conductor(clients)

    with pytest.raises(ConductorRequestError, match="Timeout"):
        conductor.snapshot_lineage("db", timeout_seconds=0)

    assert clients["us-east"].calls_for("create_snapshot") == []


def test_omitted_timeout_uses_configured_default(monkeypatch: pytest.MonkeyPatch) -> None:
    """Requests without a timeout should carry the configured default."""
    seen = []
    monkeypatch.setattr(
        "lineage.conductor.attach_from_lineage",
        lambda request, context: seen.append(request) or "vol-new",
    )
    conductor = LineageConductor(
        config=ConductorConfig(default_timeout_seconds=45),
        registry=RegionRegistry(_clients()),
        inventory=None,
    )

    conductor.attach_from_lineage("i-1", "db", 10, "/dev/sdf")

    assert seen[0].timeout_seconds == 45


def test_context_manager_closes_built_inventory(monkeypatch: pytest.MonkeyPatch) -> None:
    """The conductor should close the inventory client it built."""
    inventory = _ClosingInventory()
    monkeypatch.setattr("lineage.conductor.build_inventory_client", lambda config: inventory)

    with LineageConductor(config=ConductorConfig(), registry=RegionRegistry(_clients())):
        assert not inventory.closed

    assert inventory.closed


def test_close_leaves_injected_inventory_open() -> None:
    """Caller-owned inventory clients should not be closed by the conductor."""
    inventory = _ClosingInventory()

    with LineageConductor(
        config=ConductorConfig(),
        registry=RegionRegistry(_clients()),
        inventory=inventory,
    ):
        pass

    assert not inventory.closed
