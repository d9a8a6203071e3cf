import asyncio

import pytest

from octoprint_bridge.models import tree as spec
from octoprint_bridge.plugins import display_layer_progress, slicer_thumbnails


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("39", 39),
        ("69%", 69),
        ("953.8", 953),
        (63, 63),
        (12.7, 12),
        ("-", None),
        ("", None),
        (None, None),
        (True, None),
    ],
)
def test_parse_value(raw, expected):
    assert display_layer_progress.parse_value(raw) == expected


def test_unknown_values_keep_previous_state(tree, api, fake_executor):
    asyncio.run(display_layer_progress.refresh(tree, api))
    fake_executor.route(
        "GET",
        "/plugin/DisplayLayerProgress/values",
        {"fanSpeed": "-", "feedrate": "-", "layer": {"current": "-", "total": "-"}},
    )
    asyncio.run(display_layer_progress.refresh(tree, api))

    assert tree.get_state("plugins.displayLayerProgress.layer.current").val == 39
    assert tree.get_state("plugins.displayLayerProgress.fanSpeed").val == 69


async def add_file(tree, key, path, url=None):
    await tree.ensure_node(f"files.{key}", spec.channel(key, path=path))
    await tree.ensure_node(f"files.{key}.thumbnail.url", spec.text("Thumbnail URL", role="url"))
    if url:
        await tree.write_if_changed(f"files.{key}.thumbnail.url", url)


def test_find_job_thumbnail(tree):
    async def scenario():
        await add_file(tree, "local_a", "local/a.gcode", "http://octopi/a.png")
        await add_file(tree, "local_b", "local/b.gcode")
        return (
            await slicer_thumbnails.find_job_thumbnail(tree, "local/a.gcode"),
            await slicer_thumbnails.find_job_thumbnail(tree, "local/b.gcode"),
            await slicer_thumbnails.find_job_thumbnail(tree, "local/c.gcode"),
        )

    assert asyncio.run(scenario()) == ("http://octopi/a.png", None, None)


def test_download_thumbnails(tree, fake_executor, tmp_path):
    fake_executor.binaries["http://octopi/a.png"] = b"A"
    (tmp_path / "local_c.png").write_bytes(b"old")

    async def scenario():
        await add_file(tree, "local_a", "local/a.gcode", "http://octopi/a.png")
        await add_file(tree, "local_b", "local/b.gcode", "http://octopi/missing.png")
        await add_file(tree, "local_c", "local/c.gcode", "http://octopi/c.png")
        await add_file(tree, "local_d", "local/d.gcode")
        return await slicer_thumbnails.download_thumbnails(tree, fake_executor, tmp_path)

    assert asyncio.run(scenario()) == 1
    assert (tmp_path / "local_a.png").read_bytes() == b"A"
    assert not (tmp_path / "local_b.png").exists()
    assert (tmp_path / "local_c.png").read_bytes() == b"old"
    assert fake_executor.downloads == ["http://octopi/a.png", "http://octopi/missing.png"]
