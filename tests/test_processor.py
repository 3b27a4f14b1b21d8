import base64
import io

import pytest
from PIL import Image

from stripsplitter.processor import (
    ImageData,
    ImageProcessor,
    ImageSlice,
    ProcessingError,
    natural_key,
)

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)
GREEN = (0, 255, 0, 255)


def _write(path, size, color):
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGBA", size, color).save(path)


@pytest.fixture
def chapter(tmp_path):
    raw = tmp_path / "Raw"
    _write(raw / "10.png", (10, 7), BLUE)
    _write(raw / "2.png", (10, 5), RED)
    (raw / "notes.txt").write_text("not an image")
    return tmp_path


def _open(data):
    return Image.open(io.BytesIO(data)).convert("RGBA")


def test_natural_key_orders_numbers_numerically():
    assert natural_key("1.png") < natural_key("2.png")
    assert natural_key("2.png") < natural_key("10.png")
    keys = {name: natural_key(name) for name in ["10.png", "2.png", "1.png"]}
    ordered = sorted(keys, key=keys.__getitem__)
    assert ordered == ["1.png", "2.png", "10.png"]


def test_natural_key_mixed_prefixes():
    assert natural_key("cover") < natural_key("page3")
    assert natural_key("page3") < natural_key("page12")
    keys = {name: natural_key(name) for name in ["page12", "page3", "cover"]}
    ordered = sorted(keys, key=keys.__getitem__)
    assert ordered == ["cover", "page3", "page12"]


def test_load_merges_in_natural_order(chapter):
    processor = ImageProcessor(chapter)
    data = processor.load_images()
    assert data.total_width == 10
    assert data.total_height == 12
    assert data.slices == [ImageSlice(0, 0, 12, 10, 12)]
    merged = _open(processor.get_slice_as_bytes(0))
    assert merged.size == (10, 12)
    assert merged.getpixel((0, 0)) == RED
    assert merged.getpixel((0, 5)) == BLUE


def test_load_returns_copy(chapter):
    processor = ImageProcessor(chapter)
    data = processor.load_images()
    data.slices.clear()
    assert len(processor.image_data.slices) == 1


def test_progress_reports(chapter):
    calls = []
    ImageProcessor(chapter).load_images(lambda pct, msg: calls.append((pct, msg)))
    assert len(calls) == 3
    percents = [pct for pct, _ in calls[:-1]]
    assert percents == sorted(percents)
    assert all(pct <= 48.0 for pct in percents)
    assert calls[-1][0] == 50.0


def test_width_mismatch(tmp_path):
    _write(tmp_path / "Raw" / "1.png", (10, 5), RED)
    _write(tmp_path / "Raw" / "2.png", (11, 5), RED)
    with pytest.raises(ProcessingError):
        ImageProcessor(tmp_path).load_images()


def test_missing_raw_folder(tmp_path):
    with pytest.raises(ProcessingError):
        ImageProcessor(tmp_path).load_images()


def test_raw_without_images(tmp_path):
    (tmp_path / "Raw").mkdir()
    (tmp_path / "Raw" / "readme.txt").write_text("x")
    with pytest.raises(ProcessingError):
        ImageProcessor(tmp_path).load_images()


def test_uppercase_extension_accepted(tmp_path):
    _write(tmp_path / "Raw" / "1.PNG", (4, 3), GREEN)
    data = ImageProcessor(tmp_path).load_images()
    assert (data.total_width, data.total_height) == (4, 3)


def test_slices_cover_whole_height(tmp_path):
    _write(tmp_path / "Raw" / "1.png", (3, 25), GREEN)
    processor = ImageProcessor(tmp_path, max_slice_height=10)
    data = processor.load_images()
    assert len(data.slices) == 3
    assert data.slices[0].start_y == 0
    assert data.slices[-1].end_y == 25
    for previous, current in zip(data.slices, data.slices[1:]):
        assert current.start_y == previous.end_y
    assert [s.index for s in data.slices] == list(range(len(data.slices)))
    assert all(s.height == s.end_y - s.start_y for s in data.slices)
    assert sum(_open(processor.get_slice_as_bytes(s.index)).height for s in data.slices) == 25


def test_height_equal_to_limit_is_one_slice(tmp_path):
    _write(tmp_path / "Raw" / "1.png", (3, 10), GREEN)
    data = ImageProcessor(tmp_path, max_slice_height=10).load_images()
    assert data.slices == [ImageSlice(0, 0, 10, 3, 10)]


def test_invalid_slice_index(chapter):
    processor = ImageProcessor(chapter)
    processor.load_images()
    with pytest.raises(ProcessingError):
        processor.get_slice_as_bytes(5)


def test_operations_need_loaded_image(tmp_path):
    processor = ImageProcessor(tmp_path)
    with pytest.raises(ProcessingError):
        processor.get_slice_as_bytes(0)
    with pytest.raises(ProcessingError):
        processor.save_slice_to_tmp()
    with pytest.raises(ProcessingError):
        processor.export_slices([1], "png")


def test_base64_round_trip(chapter):
    processor = ImageProcessor(chapter)
    processor.load_images()
    encoded = processor.get_slice_as_base64(0)
    assert base64.b64decode(encoded) == processor.get_slice_as_bytes(0)


def test_save_slice_to_tmp(tmp_path):
    _write(tmp_path / "Raw" / "1.png", (3, 25), GREEN)
    processor = ImageProcessor(tmp_path, max_slice_height=10)
    data = processor.load_images()
    paths = processor.save_slice_to_tmp()
    assert [p.rsplit("/", 1)[-1].rsplit("\\", 1)[-1] for p in paths] == [
        f"{s.index}.png" for s in data.slices
    ]
    for path, info in zip(paths, data.slices):
        with Image.open(path) as img:
            assert img.size == (info.width, info.height)


def test_cached_slices_are_used(tmp_path):
    _write(tmp_path / "tmp" / "1.png", (6, 4), RED)
    _write(tmp_path / "tmp" / "2.png", (6, 3), BLUE)
    processor = ImageProcessor(tmp_path)
    data = processor.load_images()
    assert data == ImageData(6, 7, [ImageSlice(1, 0, 4, 6, 4), ImageSlice(2, 4, 7, 6, 3)])
    assert processor.big_image.getpixel((0, 4)) == BLUE


def test_inconsistent_cache_falls_back_to_raw(tmp_path):
    _write(tmp_path / "tmp" / "1.png", (6, 4), RED)
    _write(tmp_path / "tmp" / "2.png", (5, 3), BLUE)
    _write(tmp_path / "Raw" / "1.png", (8, 2), GREEN)
    data = ImageProcessor(tmp_path).load_images()
    assert (data.total_width, data.total_height) == (8, 2)


def test_export_slices(chapter):
    processor = ImageProcessor(chapter)
    processor.load_images()
    processor.export_slices([4, 9], "png")
    split = chapter / "Split"
    sizes = []
    for name in ("1.png", "2.png", "3.png"):
        with Image.open(split / name) as img:
            sizes.append(img.size)
    assert not (split / "4.png").exists()
    assert sizes[0] == (10, 4)
    assert sum(h for _, h in sizes) == 12
    assert all(w == 10 for w, _ in sizes)


def test_export_clamps_separator(chapter):
    processor = ImageProcessor(chapter)
    processor.load_images()
    processor.export_slices([100], "png")
    with Image.open(chapter / "Split" / "1.png") as img:
        assert img.size == (10, 12)
    assert not (chapter / "Split" / "2.png").exists()


def test_export_decreasing_separators(chapter):
    processor = ImageProcessor(chapter)
    processor.load_images()
    with pytest.raises(ProcessingError):
        processor.export_slices([8, 3], "png")