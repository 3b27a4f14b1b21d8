"""Session state around an image processor, and the command-line entry point."""

from __future__ import annotations

import argparse
import json
import sys
import threading
from dataclasses import asdict, dataclass, field
from typing import Optional

from stripsplitter.processor import (
    ImageProcessor,
    ImageSlice,
    ProcessingError,
    ProgressCallback,
)

CANVAS_LIMIT = 32000
DATA_URL_PREFIX = "data:image/png;base64,"


@dataclass
class LoadedImageInfo:
    """Summary of a loaded chapter."""

    total_width: int
    total_height: int
    slices: list[ImageSlice] = field(default_factory=list)
    needs_slicing: bool = False


class ImageService:
    """Holds the currently loaded chapter and serves slices of it."""

    def __init__(self):
        self._lock = threading.Lock()
        self._processor: Optional[ImageProcessor] = None

    def _loaded(self) -> ImageProcessor:
        if self._processor is None:
            raise ProcessingError("images not loaded")
        return self._processor

    def load_images(self, chapter_path, progress: Optional[ProgressCallback] = None) -> LoadedImageInfo:
        """Load a chapter and make it the current one."""
        processor = ImageProcessor(chapter_path)
        data = processor.load_images(progress)
        needs_slicing = data.total_height > CANVAS_LIMIT or data.total_width > CANVAS_LIMIT
        with self._lock:
            self._processor = processor
        return LoadedImageInfo(data.total_width, data.total_height, list(data.slices), needs_slicing)

    def get_image_slice_bytes(self, slice_index: int) -> str:
        """Return a slice as a PNG data URL."""
        with self._lock:
            return DATA_URL_PREFIX + self._loaded().get_slice_as_base64(slice_index)

    def get_image_slice_base64(self, slice_index: int) -> str:
        """Return a slice as a PNG data URL for direct use in HTML."""
        with self._lock:
            return DATA_URL_PREFIX + self._loaded().get_slice_as_base64(slice_index)

    def save_slices_to_files(self) -> list[str]:
        """Write the slices into the chapter's tmp folder."""
        with self._lock:
            return self._loaded().save_slice_to_tmp()

    def get_image_slices(self) -> list[ImageSlice]:
        """Write the slices to tmp and return their descriptions."""
        with self._lock:
            processor = self._loaded()
            processor.save_slice_to_tmp()
            return list(processor.image_data.slices)

    def export_images(self, separators, extension: str) -> None:
        """Export the strip cut at the given separators."""
        with self._lock:
            self._loaded().export_slices(separators, extension)

    def get_full_image_bytes(self) -> bytes:
        """Return the whole strip as PNG when it fits in one slice."""
        with self._lock:
            processor = self._loaded()
            data = processor.image_data
            if data.total_height > CANVAS_LIMIT or data.total_width > CANVAS_LIMIT:
                raise ProcessingError("image is too large to transfer whole; use slices")
            if len(data.slices) != 1:
                raise ProcessingError("image was split into parts; use get_image_slice_bytes")
            return processor.get_slice_as_bytes(0)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stripsplitter",
        description="Merge a chapter's page images into one strip and split it.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    info = commands.add_parser("info", help="load a chapter and print its slices as JSON")
    info.add_argument("chapter")

    slices = commands.add_parser("slices", help="write the slices into the tmp folder")
    slices.add_argument("chapter")

    export = commands.add_parser("export", help="cut the strip and write the parts to Split")
    export.add_argument("chapter")
    export.add_argument("separators", nargs="*", type=int)
    export.add_argument("--extension", default="png")
    return parser


def _print_progress(percentage: float, message: str) -> None:
    print(f"{percentage:6.2f}% {message}", file=sys.stderr)


def main(argv=None) -> int:
    """Run the command line and return the exit status."""
    args = _build_parser().parse_args(argv)
    service = ImageService()
    try:
        info = service.load_images(args.chapter, _print_progress)
        if args.command == "info":
            print(json.dumps(asdict(info), indent=2))
        elif args.command == "slices":
            for path in service.save_slices_to_files():
                print(path)
        else:
            service.export_images(args.separators, args.extension)
    except ProcessingError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())