"""Secondary inventory collaborator.

The inventory is an optional management system that mirrors provider
resources. Workflows use it only as an additional readiness signal (a
record for the new volume or snapshot exists) and as a second tagging
target. It is constructed with explicit credentials; when it is not
configured, readiness checks against it are treated as satisfied.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from core.config import ConductorConfig
from core.constants import (
    INVENTORY_API_VERSION,
    INVENTORY_REQUEST_TIMEOUT_SECONDS,
    INVENTORY_RESOURCE_PATHS,
)
from core.errors import ConductorProviderError, ConductorRequestError


class InventoryClient(Protocol):
    """Read-mostly view of the secondary inventory."""

    def has_record(self, resource_kind: str, resource_id: str) -> bool:
        """Whether the inventory has a record for a provider resource id."""

    def add_tag(self, resource_kind: str, resource_id: str, tag: str) -> None:
        """Attach one tag to the inventory record of a provider resource."""


class HttpInventoryClient:
    """HTTP client for the inventory REST API."""

    def __init__(
        self,
        base_url: str,
        account: str,
        user: str,
        password: str,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Create an inventory client.

        Args:
            base_url: API root, e.g. ``https://inventory.example.com/api``.
            account: Account number scoping every request.
            user: Basic-auth user.
            password: Basic-auth password.
            transport: Optional httpx transport override.
        """
        self._account = account
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            auth=(user, password),
            headers={"X-API-VERSION": INVENTORY_API_VERSION},
            timeout=INVENTORY_REQUEST_TIMEOUT_SECONDS,
            transport=transport,
        )

    def has_record(self, resource_kind: str, resource_id: str) -> bool:
        """Whether a record with ``aws_id == resource_id`` exists.

        Raises:
            ConductorProviderError: If the request fails.
        """
        path = f"/acct/{self._account}/{_resource_path(resource_kind)}"
        payload = self._request("GET", path, params={"filter": f"aws_id=={resource_id}"})
        if not isinstance(payload, list):
            raise ConductorProviderError(
                f"Inventory returned unexpected payload for {path}: expected a list of records."
            )
        return any(isinstance(item, dict) and item.get("aws_id") == resource_id for item in payload)

    def add_tag(self, resource_kind: str, resource_id: str, tag: str) -> None:
        """Set one tag on the inventory record of a resource.

        Raises:
            ConductorProviderError: If the request fails.
        """
        self._request(
            "POST",
            f"/acct/{self._account}/tags/set",
            json={
                "resource_type": _resource_path(resource_kind),
                "aws_id": resource_id,
                "tags": [tag],
            },
        )

    def close(self) -> None:
        """Release pooled HTTP connections."""
        self._client.close()

    def __enter__(self) -> "HttpInventoryClient":
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as error:
            raise ConductorProviderError(
                f"Inventory request {method} {path} failed: {error}. "
                "Check inventory credentials and availability, then retry."
            ) from error
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as error:
            raise ConductorProviderError(
                f"Inventory response for {method} {path} is not valid JSON: {error}."
            ) from error


def build_inventory_client(config: ConductorConfig) -> HttpInventoryClient | None:
    """Build the inventory client when it is fully configured.

    Args:
        config: Runtime config.

    Returns:
        Inventory client, or None when the inventory is disabled.
    """
    if not config.inventory_enabled:
        return None
    return HttpInventoryClient(
        base_url=str(config.inventory_url),
        account=str(config.inventory_account),
        user=str(config.inventory_user),
        password=str(config.inventory_password),
    )


def _resource_path(resource_kind: str) -> str:
    try:
        return INVENTORY_RESOURCE_PATHS[resource_kind]
    except KeyError as error:
        raise ConductorRequestError(
            f"Unsupported inventory resource kind '{resource_kind}'. "
            f"Supported kinds: {', '.join(sorted(INVENTORY_RESOURCE_PATHS))}."
        ) from error
