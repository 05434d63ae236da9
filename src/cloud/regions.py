"""Per-region EC2 client registry.

This module enumerates the regions visible to the configured credentials
and builds one boto3 EC2 client per region. The registry is built once by
its owner and is read-only afterwards.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterator, Mapping

import boto3

from cloud.provider import invoke
from core.config import ConductorConfig
from core.constants import EC2_SERVICE_NAME
from core.errors import ConductorConfigError, ConductorRequestError
from core.logging_config import get_logger
from core.types import Region

_LOGGER = get_logger(__name__)


def create_session(config: ConductorConfig) -> boto3.session.Session:
    """Create a boto3 session from explicit config values.

    Args:
        config: Runtime config with optional profile and credentials.

    Returns:
        Boto3 session.
    """
    session_kwargs: dict[str, str] = {}
    if config.aws_profile:
        session_kwargs["profile_name"] = config.aws_profile
    if config.aws_access_key_id and config.aws_secret_access_key:
        session_kwargs["aws_access_key_id"] = config.aws_access_key_id
        session_kwargs["aws_secret_access_key"] = config.aws_secret_access_key
    return boto3.session.Session(**session_kwargs)


class RegionRegistry:
    """Immutable mapping of region name to EC2 client."""

    def __init__(self, clients: Mapping[Region, Any]) -> None:
        if not clients:
            raise ConductorConfigError(
                "Region registry is empty. Check credentials and CONDUCTOR_REGIONS."
            )
        self._clients: Mapping[Region, Any] = MappingProxyType(dict(clients))

    @classmethod
    def discover(
        cls,
        config: ConductorConfig,
        session: boto3.session.Session | None = None,
    ) -> "RegionRegistry":
        """Enumerate regions and build one client per region.

        Args:
            config: Runtime config.
            session: Optional prebuilt boto3 session.

        Returns:
            Fully populated registry.

        Raises:
            ConductorProviderError: If regions cannot be enumerated.
            ConductorConfigError: If the allow-list names unknown regions.
        """
        active_session = session or create_session(config)
        bootstrap_client = active_session.client(
            EC2_SERVICE_NAME, region_name=config.bootstrap_region
        )
        response = invoke(bootstrap_client, "describe_regions", config.bootstrap_region)
        available = [str(item["RegionName"]) for item in response.get("Regions", [])]
        selected = _select_regions(available, config.allowed_regions)
        clients = {
            region: active_session.client(EC2_SERVICE_NAME, region_name=region)
            for region in selected
        }
        _LOGGER.info("region_registry_built", regions=sorted(clients))
        return cls(clients)

    def clients(self) -> Mapping[Region, Any]:
        """Return the read-only region to client mapping."""
        return self._clients

    def client(self, region: Region) -> Any:
        """Return the client for one region.

        Raises:
            ConductorRequestError: If the region is not registered.
        """
        try:
            return self._clients[region]
        except KeyError as error:
            raise ConductorRequestError(
                f"Region '{region}' is not registered. Known regions: {', '.join(self.regions())}."
            ) from error

    def regions(self) -> tuple[Region, ...]:
        """Return registered region names in registration order."""
        return tuple(self._clients)

    def items(self) -> Iterator[tuple[Region, Any]]:
        """Iterate over (region, client) pairs."""
        return iter(self._clients.items())

    def __contains__(self, region: object) -> bool:
        return region in self._clients

    def __len__(self) -> int:
        return len(self._clients)


def _select_regions(
    available: list[Region],
    allowed: tuple[Region, ...] | None,
) -> list[Region]:
    if allowed is None:
        return available
    unknown = [region for region in allowed if region not in available]
    if unknown:
        raise ConductorConfigError(
            f"Configured regions are not available to these credentials: {', '.join(unknown)}. "
            f"Available regions: {', '.join(available)}."
        )
    return [region for region in available if region in allowed]
