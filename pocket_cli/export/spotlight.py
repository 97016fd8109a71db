"""Export items as Spotlight-indexable ``.webloc`` bookmark files."""

import hashlib
import html
import logging
import os
import re
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, Sequence, Union

from ..api.models import Item
from ..errors import ExportIOError

logger = logging.getLogger(__name__)

MAX_FILENAME = 127
WEBLOC_EXT = ".webloc"
MAX_TITLE = MAX_FILENAME - len(WEBLOC_EXT)

FILENAME_POLICIES = ("title", "hash")

PLUTIL_COMMAND = ("/usr/bin/plutil", "-convert", "binary1")
MDIMPORT_COMMAND = ("/usr/bin/mdimport",)

_BAD_CHARS = re.compile(r"[^a-zA-Z0-9'\". _\-|()\[\]]")
_REPEAT_SPACE = re.compile(r"\s+")
_LEADING_NOISE = re.compile(r"^[ \t_.-]+")
_TRAILING_NOISE = re.compile(r"[ \t_-]+$")

_PLIST_HEADER = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
"""
_PLIST_ENTRY = """    <key>{key}</key>
    <string>{value}</string>
"""
_PLIST_FOOTER = """</dict>
</plist>
"""


def sanitize_title(title: str, max_length: int = MAX_TITLE) -> str:
    """Turn an item title into a safe filename stem.

    Drops characters outside the allow-list, collapses whitespace, trims
    leading and trailing separators and truncates to ``max_length`` code
    points. Leading dots are trimmed too, so the file is never hidden. May
    return an empty string.
    """
    name = _BAD_CHARS.sub("", title)
    name = _REPEAT_SPACE.sub(" ", name)
    name = _LEADING_NOISE.sub("", name)
    name = _TRAILING_NOISE.sub("", name)
    return name[:max_length]


def hashed_name(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


def descriptor_filename(item: Item, policy: str = "title") -> str:
    """Return the descriptor filename for ``item`` under ``policy``.

    Untitled items, or titles made only of disallowed characters, are named
    after their item id.
    """
    if policy == "hash":
        stem = hashed_name(item.url)
    elif policy == "title":
        stem = sanitize_title(item.title) or str(item.item_id)
    else:
        raise ValueError(f"Unknown filename policy: {policy}")
    return f"{stem}{WEBLOC_EXT}"


def render_webloc(item: Item, include_title: bool = False) -> str:
    """Render the XML property list for one bookmark."""
    entries = [_PLIST_ENTRY.format(key="URL", value=html.escape(item.url))]
    if include_title:
        entries.append(_PLIST_ENTRY.format(key="Name", value=html.escape(item.title)))
    return _PLIST_HEADER + "".join(entries) + _PLIST_FOOTER


def check_visible(target_dir: Path) -> None:
    """Reject directories Spotlight would never index.

    Raises:
        ExportIOError: If any path component is hidden.
    """
    for part in target_dir.parts:
        if part.startswith(".") and part not in (".", ".."):
            raise ExportIOError(
                f"{target_dir} contains the hidden directory '{part}'; "
                "Spotlight does not index hidden paths"
            )


class SpotlightExporter:
    """Writes one ``.webloc`` per item into a freshly reset directory and reindexes it."""

    def __init__(
        self,
        filename_policy: str = "title",
        include_title: bool = False,
        converter: Sequence[str] = PLUTIL_COMMAND,
        indexer: Sequence[str] = MDIMPORT_COMMAND,
    ):
        """Initialize the exporter.

        Args:
            filename_policy: ``"title"`` for sanitized titles, ``"hash"`` for SHA-256 of the URL
            include_title: Embed the title next to the URL in each descriptor
            converter: Command converting a written file to binary form; the path is appended
            indexer: Command re-indexing the export directory; the path is appended
        """
        if filename_policy not in FILENAME_POLICIES:
            raise ValueError(f"Unknown filename policy: {filename_policy}")
        self.filename_policy = filename_policy
        self.include_title = include_title
        self.converter = tuple(converter)
        self.indexer = tuple(indexer)

    def export(self, items: Iterable[Item], target_dir: Union[str, Path]) -> list[Path]:
        """Replace the contents of ``target_dir`` with descriptors for ``items``.

        Items are written and converted one at a time in the given order; the
        directory is re-indexed once at the end.

        Returns:
            Paths written, in item order (a path repeats on a name collision)

        Raises:
            ExportIOError: On the first filesystem or external tool failure.
        """
        target_dir = Path(target_dir).expanduser().absolute()
        self.reset_directory(target_dir)

        written: list[Path] = []
        seen: dict[Path, int] = {}
        for item in items:
            path = target_dir / descriptor_filename(item, self.filename_policy)
            if path in seen:
                logger.warning(
                    "Item %s overwrites %s written for item %s",
                    item.item_id,
                    path.name,
                    seen[path],
                )
            seen[path] = item.item_id

            self.write_descriptor(item, path)
            self._run(self.converter + (str(path),), f"Converting {path.name}")
            written.append(path)

        self._run(self.indexer + (str(target_dir),), f"Indexing {target_dir}")
        logger.info("Exported %d bookmarks to %s", len(seen), target_dir)
        return written

    def reset_directory(self, target_dir: Path) -> None:
        """Delete ``target_dir`` recursively and recreate it owner-only."""
        try:
            if target_dir.exists() or target_dir.is_symlink():
                if target_dir.is_dir() and not target_dir.is_symlink():
                    shutil.rmtree(target_dir)
                else:
                    target_dir.unlink()
            target_dir.mkdir(mode=0o700, parents=True)
            os.chmod(target_dir, 0o700)
        except OSError as e:
            raise ExportIOError(f"Cannot reset {target_dir}: {e}") from e

    def write_descriptor(self, item: Item, path: Path) -> None:
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(render_webloc(item, self.include_title))
        except OSError as e:
            raise ExportIOError(f"Cannot write {path}: {e}") from e

    def _run(self, command: Sequence[str], action: str) -> None:
        logger.debug("Running %s", " ".join(command))
        try:
            result = subprocess.run(
                list(command),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as e:
            raise ExportIOError(f"{action} failed: {e}") from e

        if result.returncode != 0:
            raise ExportIOError(
                f"{action} failed with exit status {result.returncode}: {result.stdout}",
                output=result.stdout or "",
            )
