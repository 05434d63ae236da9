"""Provider call helpers.

This module wraps boto3 client calls so botocore failures surface as
conductor errors naming the operation and region.
"""

from __future__ import annotations

from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from core.errors import ConductorProviderError


def invoke(client: Any, operation: str, region: str, **params: Any) -> dict[str, Any]:
    """Call one EC2 API operation.

    Args:
        client: Boto3 EC2 client for ``region``.
        operation: Client method name, e.g. ``create_volume``.
        region: Region name for error context.
        **params: Operation parameters.

    Returns:
        Raw response payload.

    Raises:
        ConductorProviderError: If the request fails.
    """
    try:
        return getattr(client, operation)(**params)
    except (BotoCoreError, ClientError) as error:
        raise ConductorProviderError(
            f"EC2 {operation} failed in {region}: {error}. "
            "Check AWS credentials and permissions, then retry."
        ) from error


def paginate(
    client: Any,
    operation: str,
    result_key: str,
    region: str,
    **params: Any,
) -> list[dict[str, Any]]:
    """Collect every item of a paginated EC2 describe call.

    Args:
        client: Boto3 EC2 client for ``region``.
        operation: Paginated describe operation name.
        result_key: Response key holding the item list.
        region: Region name for error context.
        **params: Operation parameters.

    Returns:
        Items from all pages in provider order.

    Raises:
        ConductorProviderError: If any page request fails.
    """
    items: list[dict[str, Any]] = []
    try:
        paginator = client.get_paginator(operation)
        for page in paginator.paginate(**params):
            items.extend(page.get(result_key, []))
    except (BotoCoreError, ClientError) as error:
        raise ConductorProviderError(
            f"EC2 {operation} failed in {region}: {error}. "
            "Check AWS credentials and permissions, then retry."
        ) from error
    return items
