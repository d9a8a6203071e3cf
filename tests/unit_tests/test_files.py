"""Tests for flattening and reconciling the file list."""

import asyncio

import pytest

from octoprint_bridge.files import FileTreeReconciler, flatten_files
from octoprint_bridge.models import FileListing
from octoprint_bridge.models import tree as spec

BASE_URL = "http://octopi.local:80"


def entry(path, **kwargs):
    return {
        "name": path.rsplit("/", 1)[-1],
        "path": path,
        "type": "machinecode",
        "origin": "local",
        "size": 1024,
        "date": 1700000000,
        **kwargs,
    }


def listing(*entries):
    return FileListing.model_validate({"files": list(entries)})


def reconcile(reconciler, files):
    return asyncio.run(reconciler.reconcile(files))


@pytest.fixture
def reconciler(tree):
    return FileTreeReconciler(tree, BASE_URL)


def test_flatten_descends_into_folders():
    files = listing(
        entry("top.gcode"),
        {
            "name": "a",
            "path": "a",
            "type": "folder",
            "children": [
                {"name": "b", "path": "a/b", "type": "folder", "children": [entry("a/b/deep.gcode")]},
                entry("a/model.stl", type="model"),
            ],
        },
        entry("sd.gcode", origin="sdcard"),
    )

    assert [record.path for record in flatten_files(files.files)] == ["local/top.gcode", "local/a/b/deep.gcode"]


def test_records_are_created(reconciler, tree):
    records = reconcile(reconciler, listing(entry("Test File (v2).gcode", display="Test File (v2).gcode")))

    assert [record.identity_key for record in records] == ["local_Test_File_v2"]
    prefix = "files.local_Test_File_v2"
    assert tree.get_spec(prefix).name == "Test File (v2).gcode"
    assert tree.get_state(f"{prefix}.name").val == "Test File (v2).gcode"
    assert tree.get_state(f"{prefix}.path").val == "local/Test File (v2).gcode"
    assert tree.get_state(f"{prefix}.size").val == 1
    assert tree.get_state(f"{prefix}.date").val == 1700000000000
    assert f"{prefix}.select" in tree
    assert f"{prefix}.print" in tree
    assert tree.get_state(f"{prefix}.print") is None


def test_vanished_files_are_deleted(reconciler, tree):
    reconcile(reconciler, listing(entry("A.gcode"), entry("B.gcode"), entry("C.gcode")))
    writes, creates = tree.writes, tree.creates

    reconcile(reconciler, listing(entry("A.gcode"), entry("C.gcode")))

    assert "files.local_B" not in tree
    assert "files.local_B.name" not in tree
    assert tree.get_state("files.local_B.name") is None
    assert "files.local_A" in tree
    assert "files.local_C" in tree
    assert (tree.writes, tree.creates) == (writes, creates)
    assert tree.deletes == 7


def test_changed_values_are_updated(reconciler, tree):
    reconcile(reconciler, listing(entry("A.gcode")))
    writes = tree.writes

    reconcile(reconciler, listing(entry("A.gcode", size=4096)))

    assert tree.get_state("files.local_A.size").val == 4
    assert tree.writes == writes + 1


def test_channels_without_path_are_recreated(reconciler, tree):
    async def legacy():
        await tree.ensure_node("files.local_A", spec.channel("A.gcode"))
        await tree.ensure_node("files.local_A.name", spec.text("File name"))
        await tree.write_if_changed("files.local_A.name", "A.gcode")
        await tree.ensure_node("files.gone", spec.channel("gone.gcode"))

    asyncio.run(legacy())

    reconcile(reconciler, listing(entry("A.gcode")))

    assert tree.get_spec("files.local_A").native == {"path": "local/A.gcode"}
    assert "files.gone" not in tree


A_THUMBNAIL = "plugin/prusaslicerthumbnails/thumbnail/A.png"


def test_thumbnails(tree):
    reconciler = FileTreeReconciler(tree, f"{BASE_URL}/", thumbnails=True)
    asyncio.run(tree.ensure_node("files.local_A.thumbnail.png", spec.text("Thumbnail")))

    reconcile(
        reconciler,
        listing(
            entry("A.gcode", thumbnail=A_THUMBNAIL, thumbnail_src="prusaslicerthumbnails"),
            entry("B.gcode", thumbnail="plugin/other/B.png", thumbnail_src="other"),
        ),
    )

    assert tree.get_state("files.local_A.thumbnail.url").val == f"{BASE_URL}/{A_THUMBNAIL}"
    assert "files.local_A.thumbnail.png" not in tree
    assert "files.local_B.thumbnail.url" in tree
    assert tree.get_state("files.local_B.thumbnail.url") is None


def test_thumbnails_disabled_removes_nodes(tree):
    files = listing(
        entry("A.gcode", thumbnail=A_THUMBNAIL, thumbnail_src="prusaslicerthumbnails")
    )
    reconcile(FileTreeReconciler(tree, BASE_URL, thumbnails=True), files)

    reconcile(FileTreeReconciler(tree, BASE_URL, thumbnails=False), files)

    assert "files.local_A.thumbnail" not in tree
    assert "files.local_A.thumbnail.url" not in tree
    assert "files.local_A.name" in tree
