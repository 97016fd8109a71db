"""Command orchestration that wires credentials, the API client and the exporter."""

import logging
import sys
from pathlib import Path
from typing import Any, Optional, TextIO, Union

from ..api.models import AddOption, ArchiveAction, Item, ItemState, RetrieveFilter
from ..api.pocket_client import PocketClient
from ..auth.flow import ensure_access_credential
from ..config import get_config_dir
from ..export.spotlight import SpotlightExporter, check_visible
from ..state.credentials import CredentialStore
from ..ui.formatting import ItemFormatter
from .retrieval import retrieve

logger = logging.getLogger(__name__)


class PocketApp:
    """Authenticated session that runs the client's commands."""

    def __init__(
        self,
        config_dir: Optional[Union[str, Path]] = None,
        prompt_for_key: bool = True,
    ):
        """Initialize the session, authorizing with Pocket if needed.

        Args:
            config_dir: Configuration root; defaults to ``POCKET_CONFIG_DIR`` or ``~/.config/pocket``
            prompt_for_key: Ask for the consumer key on stdin when none is stored
        """
        self.credential_store = CredentialStore(get_config_dir(config_dir))
        consumer_key = self.credential_store.load_consumer_key(prompt=prompt_for_key)

        self.client = PocketClient(consumer_key)
        credential = ensure_access_credential(self.credential_store, self.client)
        self.client.access_token = credential.access_token
        self.username = credential.username

    def list_items(
        self,
        options: Optional[RetrieveFilter] = None,
        template: Optional[str] = None,
        out: Optional[TextIO] = None,
    ) -> list[Item]:
        """Print matching items, one rendered line each, in ``sort_id`` order."""
        out = out or sys.stdout
        formatter = ItemFormatter(template)
        items = retrieve(self.client, options)
        for item in items:
            print(formatter.format(item), file=out)
        return items

    def archive(self, item_id: int) -> dict[str, Any]:
        """Move an item to the archive."""
        result = self.client.modify(ArchiveAction(item_id))
        logger.info("Archived item %s", item_id)
        return result

    def add(self, url: str, title: Optional[str] = None, tags: Optional[str] = None) -> None:
        """Save a new URL to the user's list."""
        self.client.add(AddOption(url=url, title=title, tags=tags))
        logger.info("Added %s", url)

    def spotlight(
        self,
        index_dir: Union[str, Path],
        filename_policy: str = "title",
        include_title: bool = False,
    ) -> list[Path]:
        """Export every item, read or unread, into ``index_dir`` for Spotlight.

        Raises:
            ExportIOError: If the directory is hidden or any export step fails.
        """
        index_dir = Path(index_dir).expanduser().absolute()
        check_visible(index_dir)

        items = retrieve(self.client, RetrieveFilter(state=ItemState.ALL))
        exporter = SpotlightExporter(
            filename_policy=filename_policy, include_title=include_title
        )
        return exporter.export(items, index_dir)
