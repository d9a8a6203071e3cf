"""Mirroring of the printer's file list into ``files.<identity key>`` channels.

How to use the most important parts:
- `flatten_files`: Depth-first walk of the recursive listing, yielding one `FileRecord` per local
  G-code file.
- `FileTreeReconciler.reconcile`: Creates/updates nodes for every record and deletes channels of
  files that disappeared upstream.
"""

import collections.abc

import structlog

from octoprint_bridge import consts, nodes
from octoprint_bridge.models import FileEntry, FileListing, FileRecord, sanitize_identity
from octoprint_bridge.models import tree as spec
from octoprint_bridge.store import StateTreeAdapter

__all__ = ["FileTreeReconciler", "flatten_files", "sanitize_identity"]

logger = structlog.get_logger(__name__)


def flatten_files(
    entries: collections.abc.Iterable[FileEntry], with_thumbnails: bool = False
) -> collections.abc.Iterator[FileRecord]:
    """Yield every local machine-code file below ``entries``, folders expanded in place."""
    for entry in entries:
        if entry.is_local_machinecode:
            yield FileRecord.from_entry(entry, with_thumbnail=with_thumbnails)
        elif entry.is_folder:
            yield from flatten_files(entry.children, with_thumbnails)


class FileTreeReconciler:
    """Keeps the ``files`` namespace in line with the upstream listing."""

    def __init__(self, tree: StateTreeAdapter, base_url: str, thumbnails: bool = False):
        """Initialize the reconciler.

        Args:
            tree: The state tree.
            base_url: OctoPrint root URL, used to build absolute thumbnail URLs.
            thumbnails: Mirror slicer thumbnail URLs (Slicer Thumbnails plugin).
        """
        self._tree = tree
        self._base_url = base_url.rstrip("/")
        self._thumbnails = thumbnails

    async def known_files(self) -> set[str]:
        """Ids of existing file channels.

        Channels without a stored path come from an older layout and are deleted here so they
        get recreated.
        """
        known = set()
        for child in await self._tree.list_children(consts.FILES_NAMESPACE):
            if not child.spec.native.get("path"):
                await self._tree.delete_subtree(child.id)
                logger.debug("Deleted file channel without stored path", id=child.id)
            else:
                known.add(child.id)
        return known

    async def reconcile(self, listing: FileListing) -> list[FileRecord]:
        """Apply a listing to the tree.

        Returns:
            The records now mirrored, in listing order.
        """
        known = await self.known_files()
        records = list(flatten_files(listing.files, self._thumbnails))
        logger.debug("Reconciling files", count=len(records))

        keep = set()
        for record in records:
            node_id = f"{consts.FILES_NAMESPACE}.{record.identity_key}"
            keep.add(node_id)
            await self._write_record(node_id, record)

        for node_id in sorted(known - keep):
            await self._tree.delete_subtree(node_id)
            logger.debug("File deleted", id=node_id)

        return records

    async def _write_record(self, node_id: str, record: FileRecord) -> None:
        await self._tree.ensure_node(node_id, spec.channel(record.display_name, path=record.path))
        await nodes.apply_fields(self._tree, node_id, nodes.FILE_FIELDS, record)

        if not self._thumbnails:
            await self._tree.delete_subtree(f"{node_id}.thumbnail")
            return

        await self._tree.ensure_node(f"{node_id}.thumbnail", nodes.THUMBNAIL_CHANNEL)
        await self._tree.ensure_node(f"{node_id}.thumbnail.url", nodes.THUMBNAIL_URL)
        # binary thumbnail states are no longer supported
        await self._tree.delete_subtree(f"{node_id}.thumbnail.png")
        if record.thumbnail:
            await self._tree.write_if_changed(f"{node_id}.thumbnail.url", f"{self._base_url}/{record.thumbnail}")
