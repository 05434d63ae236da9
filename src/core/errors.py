"""Lineage conductor exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each workflow stage raises a specific error type for debuggability.
"""

from __future__ import annotations


class ConductorError(Exception):
    """Base exception for all lineage conductor failures."""


class ConductorConfigError(ConductorError):
    """Raised for invalid runtime configuration."""


class ConductorRequestError(ConductorError):
    """Raised for invalid workflow arguments."""


class ConductorNotFoundError(ConductorError):
    """Raised when a resource id cannot be resolved in any searched region."""


class InstanceNotFoundError(ConductorNotFoundError):
    """Raised when an instance id is unknown to every region."""


class VolumeNotFoundError(ConductorNotFoundError):
    """Raised when a volume id is unknown to the searched regions."""


class ConductorTimeoutError(ConductorError):
    """Raised when a readiness wait exceeds its deadline."""


class ConductorFatalStateError(ConductorError):
    """Raised when a waited-on resource enters a terminal state."""


class ConductorProviderError(ConductorError):
    """Raised when a cloud provider or inventory request fails."""


class ConductorLineageBusyError(ConductorError):
    """Raised when another invocation already holds a lineage lock."""


class ConductorDependencyError(ConductorError):
    """Raised when an optional runtime dependency is missing."""
