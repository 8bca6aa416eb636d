"""Image size tags and cached image file identity."""

import os
from dataclasses import dataclass
from enum import Enum

from gamemeta.domain.models.common import FilePath, ImageId


class ImageSize(Enum):
    """Upstream image sizes.

    The tag doubles as the URL size segment (``t_<tag>``) and as the local
    cache subdirectory name.
    """

    cover_small = ("cover_small", "90x128 Fit")
    cover_big = ("cover_big", "264x374 Fit")
    screenshot_med = ("screenshot_med", "589x320 Lfill, Centre gravity")
    screenshot_big = ("screenshot_big", "889x500 Lfill, Centre gravity")
    screenshot_huge = ("screenshot_huge", "1280x720 Lfill, Centre gravity")
    logo_med = ("logo_med", "284x160 Fit")
    thumb = ("thumb", "90x90 Thumb, Centre gravity")
    micro = ("micro", "35x35 Thumb, Centre gravity")
    r720p = ("720p", "1280x720 Fit, Centre gravity")
    r1080p = ("1080p", "1920x1080 Fit, Centre gravity")
    original = ("original", "The originally uploaded image")

    def __init__(self, tag: str, description: str):
        self.tag = tag
        self.description = description

    def __str__(self) -> str:
        return self.tag

    @classmethod
    def from_tag(cls, tag: str) -> "ImageSize":
        """Accepts either the tag ('720p') or the member name ('r720p')."""
        for member in cls:
            if tag in (member.tag, member.name):
                return member
        raise ValueError(f"Unknown image size: {tag!r}")


IMAGE_EXTENSION = ".jpg"


@dataclass(frozen=True)
class CachedImageFile:
    """A cached image, identified by (image id, size)."""

    image_id: ImageId
    size: ImageSize

    @property
    def file_name(self) -> str:
        return f"{self.image_id}{IMAGE_EXTENSION}"

    def path_under(self, image_root: str) -> FilePath:
        """Deterministic location: <root>/<size-tag>/<image_id>.jpg"""
        return FilePath(os.path.join(image_root, self.size.tag, self.file_name))
