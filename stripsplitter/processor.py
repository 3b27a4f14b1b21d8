"""Merging a folder of page images into one strip and cutting it into slices."""

from __future__ import annotations

import base64
import io
import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional

from PIL import Image

DEFAULT_MAX_SLICE_HEIGHT = 12000
SUPPORTED_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".webp", ".bmp"})
RAW_DIR = "Raw"
TMP_DIR = "tmp"
SPLIT_DIR = "Split"

ProgressCallback = Callable[[float, str], None]

_CHUNK = re.compile(r"[0-9]+|[^0-9]+")


class ProcessingError(Exception):
    """Raised when images cannot be loaded, sliced or saved."""


@dataclass(frozen=True)
class ImageSlice:
    """A horizontal band of the merged strip."""

    index: int
    start_y: int
    end_y: int
    width: int
    height: int


@dataclass
class ImageData:
    """Dimensions of the merged strip and how it is sliced."""

    total_width: int = 0
    total_height: int = 0
    slices: list[ImageSlice] = field(default_factory=list)

    def copy(self) -> "ImageData":
        return ImageData(self.total_width, self.total_height, list(self.slices))


def natural_key(name: str) -> tuple:
    """Sort key that orders runs of digits by their numeric value."""
    key = []
    for chunk in _CHUNK.findall(name):
        if chunk[0] in "0123456789":
            key.append((0, int(chunk), ""))
        else:
            key.append((1, 0, chunk))
    return tuple(key)


def _crop(image: Image.Image, y: int, height: int) -> Image.Image:
    """Crop a full-width band, clamped to the image bounds."""
    width, total = image.size
    y = min(y, total)
    height = min(height, total - y)
    return image.crop((0, y, width, y + height))


def _save(image: Image.Image, target, description: str, fmt: Optional[str] = None) -> None:
    if image.width == 0 or image.height == 0:
        raise ProcessingError(f"failed to save {description}: empty image")
    try:
        image.save(target, format=fmt)
    except (OSError, ValueError, KeyError) as exc:
        raise ProcessingError(f"failed to save {description}: {exc}") from exc


class ImageProcessor:
    """Loads the pages of a chapter into one tall image and slices it."""

    def __init__(self, chapter_path, max_slice_height: int = DEFAULT_MAX_SLICE_HEIGHT):
        self.chapter_path = Path(chapter_path)
        self.max_slice_height = max_slice_height
        self.big_image: Optional[Image.Image] = None
        self.image_data = ImageData()

    def _try_load_cached_slices(self) -> Optional[ImageData]:
        tmp_path = self.chapter_path / TMP_DIR
        if not tmp_path.exists():
            return None

        slices: list[ImageSlice] = []
        images: list[Image.Image] = []
        total_height = 0
        width = 0
        index = 1
        while (slice_path := tmp_path / f"{index}.png").exists():
            try:
                with Image.open(slice_path) as opened:
                    img = opened.convert("RGBA")
            except (OSError, ValueError):
                return None
            w, h = img.size
            if width == 0:
                width = w
            elif width != w:
                return None
            slices.append(ImageSlice(index, total_height, total_height + h, w, h))
            images.append(img)
            total_height += h
            index += 1

        if not slices:
            return None

        big_image = Image.new("RGBA", (width, total_height))
        y_offset = 0
        for img in images:
            big_image.paste(img, (0, y_offset))
            y_offset += img.height
        self.big_image = big_image
        return ImageData(width, total_height, slices)

    def _raw_files(self) -> list[Path]:
        raw_path = self.chapter_path / RAW_DIR
        try:
            entries = list(raw_path.iterdir())
        except OSError as exc:
            raise ProcessingError(f"failed to read folder: {exc}") from exc
        files = [entry for entry in entries if entry.suffix.lower() in SUPPORTED_EXTENSIONS]
        files.sort(key=lambda entry: natural_key(entry.name))
        return files

    def load_images(self, progress: Optional[ProgressCallback] = None) -> ImageData:
        """Merge the chapter's images (or its cached slices) and compute slices."""
        cached = self._try_load_cached_slices()
        if cached is not None:
            self.image_data = cached
            return self.image_data.copy()

        files = self._raw_files()
        total = len(files)
        width = 0
        total_height = 0
        images: list[Image.Image] = []

        for position, path in enumerate(files, start=1):
            try:
                with Image.open(path) as opened:
                    image = opened.convert("RGBA")
            except (OSError, ValueError) as exc:
                raise ProcessingError(f"failed to open image: {exc}") from exc
            w, h = image.size
            if width == 0:
                width = w
            elif w != width:
                raise ProcessingError("all images in the folder must have the same width")
            total_height += h
            images.append(image)
            if progress is not None:
                percent = position / total * 100.0
                progress(percent * 0.48, f"Processing image {position}/{total}")

        if not images:
            raise ProcessingError(f"no images found in the {RAW_DIR} folder")

        big_image = Image.new("RGBA", (width, total_height))
        y_offset = 0
        for image in images:
            big_image.paste(image, (0, y_offset))
            y_offset += image.height

        self.big_image = big_image
        self.image_data.total_width = width
        self.image_data.total_height = total_height
        self._calculate_slices()

        if progress is not None:
            progress(50.0, "Images merged.")
        return self.image_data.copy()

    def _calculate_slices(self) -> None:
        height = self.image_data.total_height
        width = self.image_data.total_width

        if height < self.max_slice_height:
            self.image_data.slices = [ImageSlice(0, 0, height, width, height)]
            return

        count = math.ceil(height / self.max_slice_height)
        slice_height = height // count
        slices = []
        for i in range(count):
            start_y = i * slice_height
            end_y = height if i == count - 1 else (i + 1) * slice_height
            slices.append(ImageSlice(i, start_y, end_y, width, end_y - start_y))
        self.image_data.slices = slices

    def _require_image(self) -> Image.Image:
        if self.big_image is None:
            raise ProcessingError("no merged image")
        return self.big_image

    def get_slice_as_bytes(self, slice_index: int) -> bytes:
        """Return the given slice encoded as PNG."""
        big_image = self._require_image()
        if not 0 <= slice_index < len(self.image_data.slices):
            raise ProcessingError("invalid slice index")
        info = self.image_data.slices[slice_index]
        buffer = io.BytesIO()
        _save(_crop(big_image, info.start_y, info.height), buffer, f"slice {slice_index}", "PNG")
        return buffer.getvalue()

    def get_slice_as_base64(self, slice_index: int) -> str:
        """Return the given slice as base64-encoded PNG."""
        return base64.b64encode(self.get_slice_as_bytes(slice_index)).decode("ascii")

    def save_slice_to_tmp(self) -> list[str]:
        """Write every slice as PNG into the chapter's tmp folder."""
        big_image = self._require_image()
        tmp_path = self.chapter_path / TMP_DIR
        try:
            tmp_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ProcessingError(f"failed to create tmp directory: {exc}") from exc

        paths = []
        for info in self.image_data.slices:
            slice_path = tmp_path / f"{info.index}.png"
            _save(_crop(big_image, info.start_y, info.height), slice_path, f"slice {info.index}")
            paths.append(str(slice_path))
        return paths

    def export_slices(self, separators: Iterable[int], extension: str) -> None:
        """Cut the strip at the given y positions and write the parts to Split."""
        big_image = self._require_image()
        width, height = big_image.size
        split_path = self.chapter_path / SPLIT_DIR
        try:
            split_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ProcessingError(f"failed to create export folder: {exc}") from exc

        start_y = 0
        index = 1
        for separator in separators:
            end_y = min(separator, height)
            if end_y < start_y:
                raise ProcessingError(
                    f"separator {separator} lies above the previous cut at {start_y}"
                )
            part = _crop(big_image, start_y, end_y - start_y)
            _save(part, split_path / f"{index}.{extension}", f"part {index}.{extension}")
            start_y = end_y
            index += 1

        if start_y < height:
            part = _crop(big_image, start_y, height - start_y)
            _save(part, split_path / f"{index}.{extension}", f"part {index}.{extension}")