"""Public SDK surface for the lineage conductor.

This module provides a stable import path for SDK users.
It re-exports the primary client, typed models and error types.
"""

from __future__ import annotations

from core.config import ConductorConfig
from core.errors import (
    ConductorError,
    ConductorFatalStateError,
    ConductorLineageBusyError,
    ConductorNotFoundError,
    ConductorTimeoutError,
    InstanceNotFoundError,
    VolumeNotFoundError,
)
from core.polling import BackoffPoller, wait_until_satisfied
from core.types import (
    AttachRequest,
    SnapshotLineageResult,
    SnapshotRef,
    SnapshotRequest,
    VolumeRef,
    lineage_tag,
)
from lineage.conductor import LineageConductor

__all__ = [
    "AttachRequest",
    "BackoffPoller",
    "ConductorConfig",
    "ConductorError",
    "ConductorFatalStateError",
    "ConductorLineageBusyError",
    "ConductorNotFoundError",
    "ConductorTimeoutError",
    "InstanceNotFoundError",
    "LineageConductor",
    "SnapshotLineageResult",
    "SnapshotRef",
    "SnapshotRequest",
    "VolumeNotFoundError",
    "VolumeRef",
    "lineage_tag",
    "wait_until_satisfied",
]
