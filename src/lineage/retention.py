"""Per-region snapshot retention for a lineage.

Each region keeps its own ``history_to_keep`` newest snapshots; regions
never influence one another's counts.
"""

from __future__ import annotations

from typing import Sequence

from cloud.provider import invoke
from core.errors import ConductorRequestError
from core.logging_config import get_logger
from core.types import Region, SnapshotRef
from lineage.context import WorkflowContext

_LOGGER = get_logger(__name__)


def select_expired(
    snapshots: Sequence[SnapshotRef],
    history_to_keep: int,
) -> tuple[SnapshotRef, ...]:
    """Return the snapshots that fall outside the retention window.

    Args:
        snapshots: Snapshots of one lineage in one region.
        history_to_keep: Number of newest snapshots to retain.

    Returns:
        Oldest snapshots beyond the newest ``history_to_keep``, oldest first.
    """
    ordered = sorted(snapshots, key=lambda item: item.created_at)
    excess = len(ordered) - history_to_keep
    if excess <= 0:
        return ()
    return tuple(ordered[:excess])


def prune_lineage_history(
    lineage: str,
    history_to_keep: int,
    context: WorkflowContext,
) -> dict[Region, tuple[str, ...]]:
    """Delete old lineage snapshots in every region.

    Args:
        lineage: Lineage name.
        history_to_keep: Snapshots retained per region.
        context: Workflow collaborators.

    Returns:
        Deleted snapshot ids by region; every region is present.

    Raises:
        ConductorRequestError: If ``history_to_keep`` is negative.
        ConductorProviderError: If a query or deletion fails.
    """
    validate_history_to_keep(history_to_keep)
    deleted: dict[Region, tuple[str, ...]] = {}
    for region in context.registry.regions():
        snapshots = context.resolver.find_snapshots_by_lineage(lineage, region)[region]
        expired = select_expired(snapshots, history_to_keep)
        client = context.registry.client(region)
        for snapshot in expired:
            invoke(client, "delete_snapshot", region, SnapshotId=snapshot.snapshot_id)
            _LOGGER.info(
                "snapshot_deleted",
                snapshot_id=snapshot.snapshot_id,
                region=region,
                lineage=lineage,
                created_at=snapshot.created_at.isoformat(),
            )
        deleted[region] = tuple(snapshot.snapshot_id for snapshot in expired)
    return deleted


def validate_history_to_keep(history_to_keep: int) -> None:
    """Reject retention counts that are not non-negative integers."""
    if isinstance(history_to_keep, bool) or not isinstance(history_to_keep, int):
        raise ConductorRequestError(
            f"history_to_keep must be an integer, got {history_to_keep!r}."
        )
    if history_to_keep < 0:
        raise ConductorRequestError(
            f"history_to_keep must be zero or greater, got {history_to_keep}."
        )
