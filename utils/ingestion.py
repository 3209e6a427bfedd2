from __future__ import annotations

import base64
import logging
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Union

log = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class ImageFile:
    name: str
    data: str  # data URI


def image_mime_type(path: PathLike) -> str:
    """Guessed MIME type for an image path, or "" when it is not an image."""
    mime, _ = mimetypes.guess_type(str(path))
    if mime and mime.startswith("image/"):
        return mime
    return ""


def to_data_uri(path: PathLike) -> str:
    mime = image_mime_type(path) or "application/octet-stream"
    with open(path, "rb") as f:
        encoded = base64.b64encode(f.read()).decode("ascii")
    return f"data:{mime};base64,{encoded}"


def walk_images(root: PathLike) -> List[Path]:
    """All image files below `root`, depth-first in sorted order."""
    found: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            if image_mime_type(path):
                found.append(path)
    return found


def harvest_images(paths: Iterable[PathLike]) -> List[ImageFile]:
    """
    Turn files and folders into an ordered list of encoded images.

    Folders are walked recursively; non-image files are skipped. Order
    follows `paths`, then sorted order inside each folder.
    """
    images: List[ImageFile] = []
    for path in map(Path, paths):
        if path.is_dir():
            candidates = walk_images(path)
        elif path.is_file() and image_mime_type(path):
            candidates = [path]
        else:
            log.warning("Skipping %s: not an image file or folder", path)
            continue

        for candidate in candidates:
            images.append(ImageFile(name=candidate.name, data=to_data_uri(candidate)))

    log.info("Harvested %d images", len(images))
    return images
