import cv2
import numpy as np
import pytest

from colorseeker.config import SamplingConfig
from colorseeker.errors import ImageDecodeFailed, TemplateTooLarge
from colorseeker.vision import Frame, TemplateMatcher, color_match, find_color, load_image


def _paste(base: Frame, template: Frame, x: int, y: int) -> Frame:
    pixels = np.array(base.pixels)
    pixels[y:y + template.height, x:x + template.width] = template.pixels
    return Frame(pixels, left=base.left, top=base.top)


def _gradient(width=200, height=150) -> Frame:
    xs, ys = np.meshgrid(np.arange(width), np.arange(height))
    pixels = np.stack([xs % 256, ys % 256, (xs + ys) // 2], axis=-1).astype(np.uint8)
    return Frame(pixels)


# ── Frame ─────────────────────────────────────────────────────────────────────

def test_frame_is_read_only_but_source_array_is_not():
    src = np.zeros((4, 5, 3), dtype=np.uint8)
    frame = Frame(src, left=10, top=20)

    assert frame.width == 5 and frame.height == 4
    assert not frame.pixels.flags.writeable
    src[0, 0] = (1, 2, 3)
    assert frame.pixel(10, 20) == (1, 2, 3)


def test_frame_rejects_non_rgb_arrays():
    with pytest.raises(ValueError):
        Frame(np.zeros((4, 5), dtype=np.uint8))
    with pytest.raises(ValueError):
        Frame(np.zeros((4, 5, 4), dtype=np.uint8))


def test_frame_contains_uses_screen_coordinates():
    frame = Frame(np.zeros((10, 10, 3), dtype=np.uint8), left=100, top=50)
    assert frame.contains(100, 50)
    assert frame.contains(109, 59)
    assert not frame.contains(110, 50)
    assert not frame.contains(5, 5)


# ── Color sampler ─────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "p, q, tolerance, expected",
    [
        ((0x77, 0x60, 0x4B), (0x77, 0x60, 0x4B), 0, True),
        ((0x78, 0x61, 0x4C), (0x77, 0x60, 0x4B), 1, True),
        ((0x78, 0x61, 0x4C), (0x77, 0x60, 0x4B), 0, False),
        ((100, 100, 100), (110, 90, 100), 10, True),
        ((100, 100, 100), (111, 100, 100), 10, False),
        ((100, 100, 100), (100, 100, 89), 10, False),
        ((0, 0, 0), (255, 255, 255), 255, True),
    ],
)
def test_color_match_is_per_channel_and_symmetric(p, q, tolerance, expected):
    assert color_match(p, q, tolerance) is expected
    assert color_match(q, p, tolerance) is expected


def _column_frame(rows, column=3, width=20, height=30, color=(0x77, 0x60, 0x4B)):
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    for y in rows:
        pixels[y, column] = color
    return Frame(pixels)


def test_find_color_returns_lowest_matching_row():
    frame = _column_frame([5, 9, 12])
    sampling = SamplingConfig(column=3, y_start=0, y_end=20, target_color=0x77604B, tolerance=0)
    assert find_color(frame, sampling) == 5


def test_find_color_respects_range_start_and_end():
    frame = _column_frame([5, 9, 12])
    assert find_color(frame, SamplingConfig(column=3, y_start=6, y_end=20, tolerance=0)) == 9
    assert find_color(frame, SamplingConfig(column=3, y_start=12, y_end=12, tolerance=0)) == 12
    assert find_color(frame, SamplingConfig(column=3, y_start=13, y_end=29, tolerance=0)) is None


def test_find_color_without_match_is_none():
    frame = _column_frame([])
    assert find_color(frame, SamplingConfig(column=3, y_start=0, y_end=29)) is None


def test_find_color_only_scans_the_first_column():
    # Match sits in column 4; column_end covering it must not widen the scan
    frame = _column_frame([7], column=4)
    sampling = SamplingConfig(column=3, column_end=4, y_start=0, y_end=29, tolerance=0)
    assert find_color(frame, sampling) is None


def test_find_color_skips_rows_and_columns_outside_the_frame():
    frame = _column_frame([25])
    assert find_color(frame, SamplingConfig(column=3, y_start=-10, y_end=400, tolerance=0)) == 25
    assert find_color(frame, SamplingConfig(column=500, y_start=0, y_end=29, tolerance=0)) is None


def test_find_color_handles_offset_frames():
    pixels = np.zeros((50, 50, 3), dtype=np.uint8)
    pixels[30, 11] = (0x78, 0x61, 0x4C)
    frame = Frame(pixels, left=0, top=400)
    sampling = SamplingConfig(column=11, y_start=420, y_end=440, tolerance=10)
    assert find_color(frame, sampling) == 430


# ── Template matcher ──────────────────────────────────────────────────────────

@pytest.mark.parametrize("stride", [1, 2, 4, 5, 10, 20])
def test_locate_recovers_exact_copy(noise_frame, stride):
    template = noise_frame(24, 16)
    frame = _paste(noise_frame(160, 120), template, 40, 60)

    result = TemplateMatcher().locate(frame, template, stride, stride)

    assert (result.x, result.y) == (40, 60)
    assert result.score == 1.0
    assert result.center == (52, 68)


def test_locate_refines_off_grid_position():
    frame = _gradient()
    template = Frame(np.array(frame.pixels[67:83, 43:67]))

    result = TemplateMatcher().locate(frame, template, stride=16, radius=24)

    assert (result.x, result.y) == (43, 67)
    assert result.score == 1.0
    assert result.coarse_score < 1.0


def test_locate_never_regresses_from_coarse(noise_frame):
    frame = noise_frame(160, 120)
    template = noise_frame(20, 12)

    for stride, radius in [(16, 0), (16, 4), (7, 24), (3, 2)]:
        result = TemplateMatcher().locate(frame, template, stride, radius)
        assert result.score >= result.coarse_score
        assert 0.0 <= result.score <= 1.0


def test_locate_ties_go_to_first_in_row_major_order():
    frame = Frame(np.zeros((64, 64, 3), dtype=np.uint8))
    template = Frame(np.zeros((8, 8, 3), dtype=np.uint8))

    result = TemplateMatcher().locate(frame, template, stride=4, radius=4)

    assert (result.x, result.y) == (0, 0)
    assert result.score == 1.0


def test_locate_reports_screen_space_position(noise_frame):
    template = noise_frame(10, 10)
    base = noise_frame(100, 80, left=1920, top=30)
    frame = _paste(base, template, 40, 60)

    result = TemplateMatcher().locate(frame, template, stride=20, radius=20)

    assert (result.x, result.y) == (1960, 90)


def test_locate_scores_every_coarse_and_refine_position():
    frame = Frame(np.zeros((64, 64, 3), dtype=np.uint8))
    template = Frame(np.zeros((16, 16, 3), dtype=np.uint8))
    matcher = TemplateMatcher()

    matcher.locate(frame, template, stride=16, radius=0)

    # 4 x 4 coarse grid + the single refine position
    assert matcher.comparisons == 17


def test_score_is_normalized_pixel_difference():
    frame = Frame(np.zeros((4, 4, 3), dtype=np.uint8))
    template = Frame(np.full((4, 4, 3), 51, dtype=np.uint8))

    result = TemplateMatcher().locate(frame, template, stride=1, radius=0)

    assert result.score == pytest.approx(0.8)


@pytest.mark.parametrize("size", [(60, 10), (10, 60), (51, 51)])
def test_oversized_template_is_rejected_without_comparisons(size):
    width, height = size
    frame = Frame(np.zeros((50, 50, 3), dtype=np.uint8))
    template = Frame(np.zeros((height, width, 3), dtype=np.uint8))
    matcher = TemplateMatcher()
    matcher.comparisons = 99

    with pytest.raises(TemplateTooLarge):
        matcher.locate(frame, template)
    assert matcher.comparisons == 0


def test_template_as_large_as_frame_is_fine(noise_frame):
    frame = noise_frame(30, 20)
    result = TemplateMatcher().locate(frame, frame, stride=16, radius=24)
    assert (result.x, result.y, result.score) == (0, 0, 1.0)


# ── Image decoding ────────────────────────────────────────────────────────────

def test_load_image_returns_rgb(tmp_path):
    bgr = np.zeros((6, 8, 3), dtype=np.uint8)
    bgr[:, :] = (0x4B, 0x60, 0x77)
    path = tmp_path / "Good.png"
    assert cv2.imwrite(str(path), bgr)

    frame = load_image(path)

    assert (frame.width, frame.height) == (8, 6)
    assert (frame.left, frame.top) == (0, 0)
    assert frame.pixel(0, 0) == (0x77, 0x60, 0x4B)


def test_load_image_missing_file(tmp_path):
    with pytest.raises(ImageDecodeFailed) as err:
        load_image(tmp_path / "nope.png")
    assert "nope.png" in err.value.context["path"]


def test_load_image_garbage(tmp_path):
    path = tmp_path / "bad.png"
    path.write_bytes(b"definitely not a png")
    with pytest.raises(ImageDecodeFailed):
        load_image(path)
