# stripsplitter

stripsplitter takes a chapter folder of page images and stacks them top to
bottom into one tall RGBA strip. It can then cut that strip into preview
slices or export it as separate files, split at the heights you choose.

## Folder layout

A chapter folder contains:

- `Raw/`: the input pages. Files ending in `.png`, `.jpg`, `.jpeg`, `.webp` or
  `.bmp` are read, and the case of the ending does not matter. Pages are sorted
  in natural order, so `2.png` comes before `10.png`. Every page must have the
  same width.
- `tmp/`: preview slices. `save_slice_to_tmp` writes each slice as
  `<index>.png`, with indices starting at 0. When loading, if `tmp/` exists and
  holds `1.png`, `2.png`, … in an unbroken run of the same width, those files
  are stacked into the strip and `Raw/` is not read. In that case the slices
  are those files as they stand and are not recalculated.
- `Split/`: where exported parts are written, as `1.<ext>`, `2.<ext>`, …

## Installation

```
pip install .
```

## Command line

```
stripsplitter info CHAPTER_DIR
stripsplitter slices CHAPTER_DIR
stripsplitter export CHAPTER_DIR [SEPARATOR ...] [--extension EXT]
```

- `info` loads the chapter and prints its width, height, slices and
  `needs_slicing` flag as JSON.
- `slices` writes the preview slices into `tmp/` and prints their paths.
- `export` cuts the strip at each separator, given in pixels from the top, and
  writes the parts to `Split/`. The default `--extension` is `png`. The file
  format follows the extension.

Loading progress is printed to standard error. On a `ProcessingError` the
command prints `error: …` to standard error and exits with status 1.

## Library use

```python
from stripsplitter.processor import ImageProcessor

processor = ImageProcessor("chapters/ch01", 12000)
data = processor.load_images(lambda pct, msg: print(f"{pct:5.1f}% {msg}"))
print(data.total_width, data.total_height, len(data.slices))

png_bytes = processor.get_slice_as_bytes(0)
processor.export_slices([1500, 3200], "png")
```

The progress callback receives a percentage and a message. The percentage
rises to 48 while pages are read, and the callback is called with 50 once the
pages have been merged.

A strip shorter than `max_slice_height` (default 12000) is one slice.
Otherwise it is divided into `ceil(height / max_slice_height)` slices of equal
height, and the last slice takes the remainder.

`export_slices` works as follows:

- Separators larger than the strip height are clamped to it.
- A separator above the previous cut raises `ProcessingError`, and so does a
  cut that would produce an empty part.
- Whatever lies below the last separator is written as a final part.

`natural_key` is the sort key used to order page file names.

`ImageService` in `stripsplitter.service` holds one loaded chapter at a time.
Its `load_images` returns a `LoadedImageInfo`, whose `needs_slicing` is true
when the strip is wider or taller than 32000 pixels. Its other calls are:

- `get_image_slice_bytes` and `get_image_slice_base64` both return a
  `data:image/png;base64,` URL.
- `save_slices_to_files` writes the slices to `tmp/` and returns their paths.
- `get_image_slices` writes the slices to `tmp/` and returns their
  descriptions.
- `export_images` exports the strip in parts.
- `get_full_image_bytes` returns the whole strip as PNG, but only when it is
  within 32000 pixels and forms a single slice.

Every failure raises `ProcessingError`, including calls made before any
chapter is loaded.

## What it does not do

There is no graphical interface for viewing the strip or for placing
separators interactively. Separator heights must be worked out beforehand and
passed to `export` or `export_slices`.

## Tests

```
pip install .[test]
pytest
```