"""Filtered retrieval with a deterministic item order."""

import logging
from typing import Optional

from ..api.models import Item, RetrieveFilter
from ..api.pocket_client import PocketClient
from ..errors import APIError, RetrievalFailed

logger = logging.getLogger(__name__)


def sort_items(items: list[Item]) -> list[Item]:
    """Order items by ascending ``sort_id``; ties keep their response order."""
    return sorted(items, key=lambda item: item.sort_id)


def retrieve(client: PocketClient, options: Optional[RetrieveFilter] = None) -> list[Item]:
    """Fetch items matching ``options`` and return them sorted.

    Args:
        client: Authorized Pocket client
        options: Filter passed through to the API unchanged

    Returns:
        Items in ascending ``sort_id`` order

    Raises:
        RetrievalFailed: If the remote call fails.
    """
    options = options or RetrieveFilter()
    try:
        items = client.retrieve(options)
    except APIError as e:
        raise RetrievalFailed(
            f"Could not retrieve items: {e}",
            status_code=e.status_code,
            error_code=e.error_code,
        ) from e

    logger.debug("Retrieved %d items with %s", len(items), options.to_params())
    return sort_items(items)
