"""Core constants used across conductor modules.

This module centralizes provider state names, tag formats and wait budgets.
Keeping values here avoids magic literals in workflow logic.
"""

from __future__ import annotations

LINEAGE_TAG_PREFIX = "lineage="
DEFAULT_BOOTSTRAP_REGION = "us-east-1"
DEFAULT_TIMEOUT_SECONDS = 5 * 60
TIMEOUT_BACKOFF_SECONDS = (2, 5, 10, 15)
EC2_SERVICE_NAME = "ec2"
SNAPSHOT_ELIGIBLE_VOLUME_STATES = ("available", "in-use")
TERMINAL_VOLUME_STATES = ("deleting", "deleted", "error")
VOLUME_AVAILABLE_STATE = "available"
VOLUME_IN_USE_STATE = "in-use"
ATTACHMENT_ATTACHED_STATE = "attached"
RESOURCE_KIND_VOLUME = "volume"
RESOURCE_KIND_SNAPSHOT = "snapshot"
SNAPSHOT_OWNER_SELF = "self"
INVENTORY_API_VERSION = "1.0"
INVENTORY_REQUEST_TIMEOUT_SECONDS = 30.0
INVENTORY_RESOURCE_PATHS = {
    RESOURCE_KIND_VOLUME: "ec2_ebs_volumes",
    RESOURCE_KIND_SNAPSHOT: "ec2_ebs_snapshots",
}
