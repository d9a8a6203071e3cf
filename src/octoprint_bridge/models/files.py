"""File models for the OctoPrint bridge."""

import re
import typing

import pydantic

from octoprint_bridge import consts

from .common import ApiModel

_UNDERSCORES = re.compile(r"_+")


def sanitize_identity(value: str) -> str:
    """Turn a file path into a node name: letters and digits joined by single underscores.

    Not guaranteed to be injective: ``a-b`` and ``a b`` both become ``a_b``.
    """
    cleaned = "".join(c if c.isalpha() or c.isdecimal() else "_" for c in value.strip())
    return _UNDERSCORES.sub("_", cleaned).strip("_")


class FileEntry(ApiModel):
    """A node of the recursive ``GET /api/files?recursive=true`` listing."""

    name: str
    display: str | None = None
    path: str = ""
    type: str | None = None
    origin: str | None = None
    size: int | None = None
    date: int | None = None
    thumbnail: str | None = None
    thumbnail_src: str | None = None
    children: list["FileEntry"] = pydantic.Field(default_factory=list)

    @property
    def is_folder(self) -> bool:
        """True for folder nodes."""
        return self.type == "folder"

    @property
    def is_local_machinecode(self) -> bool:
        """True for printable files stored on the OctoPrint host."""
        return self.type == "machinecode" and self.origin == "local"


class FileListing(ApiModel):
    """Response of ``GET /api/files?recursive=true``."""

    files: list[FileEntry] = pydantic.Field(default_factory=list)
    free: int | None = None
    total: int | None = None


class FileRecord(pydantic.BaseModel):
    """One printable file, flattened out of the folder tree."""

    display_name: str
    path: str
    size_kib: float = 0
    date: int = 0
    thumbnail: str | None = None

    @property
    def identity_key(self) -> str:
        """Stable node name of this file below ``files``."""
        return sanitize_identity(self.path.removesuffix(".gcode").replace("/", " ", 1))

    @classmethod
    def from_entry(cls, entry: FileEntry, with_thumbnail: bool = False) -> "FileRecord":
        """Build a record from a listing entry."""
        kwargs: dict[str, typing.Any] = {
            "display_name": entry.display or entry.name,
            "path": f"{entry.origin}/{entry.path}",
            "date": entry.date * 1000 if entry.date else 0,
            "size_kib": round(entry.size / 1024) if entry.size else 0,
        }
        if with_thumbnail and entry.thumbnail_src == consts.THUMBNAIL_SOURCE:
            kwargs["thumbnail"] = entry.thumbnail
        return cls(**kwargs)
