"""OctoPrint-PrusaSlicerThumbnails integration.

File channels carry ``thumbnail.url`` (written by the file reconciler); this module resolves the
thumbnail of the running job and downloads thumbnail images to a local directory.
"""

import pathlib

import structlog

from octoprint_bridge import consts, exceptions
from octoprint_bridge.executor import RequestExecutor
from octoprint_bridge.store import StateTreeAdapter

logger = structlog.get_logger(__name__)


async def find_job_thumbnail(tree: StateTreeAdapter, job_path: str) -> str | None:
    """Thumbnail URL of the file channel whose stored path is ``job_path``."""
    for child in await tree.list_children(consts.FILES_NAMESPACE):
        if child.spec.native.get("path") == job_path:
            logger.debug("Found file of current job", id=child.id)
            url = await tree.read_value(f"{child.id}.thumbnail.url")
            return url or None
    logger.debug("Unable to find file which matches current job file", path=job_path)
    return None


async def download_thumbnails(tree: StateTreeAdapter, executor: RequestExecutor, target_dir: pathlib.Path) -> int:
    """Download missing thumbnails as ``<target_dir>/<file id>.png``.

    Files already on disk are skipped; failed downloads are logged and skipped.

    Returns:
        Number of thumbnails downloaded.
    """
    downloaded = 0
    for child in await tree.list_children(consts.FILES_NAMESPACE):
        url = await tree.read_value(f"{child.id}.thumbnail.url")
        if not url:
            continue

        target = target_dir / f"{child.name}.png"
        if target.exists():
            logger.debug("Skipping thumbnail download - already exists", path=str(target))
            continue

        try:
            data = await executor.fetch_binary(url)
        except exceptions.BridgeError as e:
            logger.debug("Thumbnail download failed", url=url, error=str(e))
            continue

        if not data:
            logger.debug("Thumbnail response was empty", url=url)
            continue

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            logger.warning("Failed to save thumbnail", path=str(target), error=str(e))
            continue

        logger.debug("Saved thumbnail", path=str(target), url=url)
        downloaded += 1
    return downloaded
