"""Shared collaborators handed to every lineage workflow."""

from __future__ import annotations

from dataclasses import dataclass

from cloud.inventory import InventoryClient
from cloud.regions import RegionRegistry
from cloud.resolver import LineageResolver
from cloud.tagging import TagWriter
from core.polling import BackoffPoller


@dataclass(frozen=True)
class WorkflowContext:
    """Read-only collaborators owned by one conductor instance.

    Attributes:
        registry: Region to client mapping.
        resolver: Tag-driven resource lookup.
        tag_writer: Marker tag writer.
        poller: Readiness poller.
        inventory: Optional secondary inventory.
    """

    registry: RegionRegistry
    resolver: LineageResolver
    tag_writer: TagWriter
    poller: BackoffPoller
    inventory: InventoryClient | None = None
