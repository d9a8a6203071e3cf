"""Integrations with third-party OctoPrint plugins.

- `display_layer_progress`: layer/feedrate/fan values from OctoPrint-DisplayLayerProgress.
- `slicer_thumbnails`: thumbnail lookup and download for OctoPrint-PrusaSlicerThumbnails.
"""

from octoprint_bridge.plugins import display_layer_progress, slicer_thumbnails

__all__ = ["display_layer_progress", "slicer_thumbnails"]
