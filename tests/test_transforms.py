from pathlib import Path

import pytest
from PIL import Image, ImageCms, ImageStat

from image_converter.codec import decode
from image_converter.transforms import (
    AutoOrient,
    Grayscale,
    Resize,
    Rotate,
    ToSRGB,
    TransformError,
    TransformSpec,
    apply_plan,
    plan,
    resize_target,
    rotated_size,
)


def test_plan_without_options_is_empty() -> None:
    assert plan(TransformSpec(), (640, 427)) == ()


def test_width_only_derives_height() -> None:
    assert resize_target(TransformSpec(width=150), (640, 427)) == (150, round(427 * 150 / 640))


def test_height_only_derives_width() -> None:
    assert resize_target(TransformSpec(height=120), (640, 427)) == (round(640 * 120 / 427), 120)


def test_derived_dimension_rounds_half_up() -> None:
    assert resize_target(TransformSpec(width=320), (640, 427)) == (320, 214)


def test_enlargement_allowed_by_default() -> None:
    image = Image.new("RGB", (64, 48))
    result = apply_plan(image, plan(TransformSpec(width=164), image.size))
    assert result.size == (164, 123)


def test_no_enlargement_keeps_source_size() -> None:
    image = Image.new("RGB", (64, 48))
    spec = TransformSpec(width=164, allow_enlargement=False)
    assert plan(spec, image.size) == ()
    assert apply_plan(image, plan(spec, image.size)).size == (64, 48)


def test_no_enlargement_leaves_equal_or_smaller_targets_alone() -> None:
    assert resize_target(TransformSpec(width=64, allow_enlargement=False), (64, 48)) is None
    assert resize_target(TransformSpec(width=32, allow_enlargement=False), (64, 48)) == (32, 24)


def test_both_dimensions_crop_to_exact_size() -> None:
    image = Image.new("RGB", (640, 427))
    operations = plan(TransformSpec(width=100, height=80), image.size)
    assert operations == (Resize(100, 80, crop=True),)
    assert apply_plan(image, operations).size == (100, 80)


def test_explicit_rotation_swaps_dimensions() -> None:
    image = Image.new("RGB", (100, 50))
    operations = plan(TransformSpec(rotate_degrees=90), image.size)
    assert operations == (Rotate(90),)
    assert apply_plan(image, operations).size == (50, 100)


def test_rotation_is_clockwise() -> None:
    image = Image.new("RGB", (2, 1), (0, 0, 0))
    image.putpixel((0, 0), (255, 0, 0))
    rotated = Rotate(90).apply(image)
    assert rotated.getpixel((0, 0)) == (255, 0, 0)
    assert rotated.getpixel((0, 1)) == (0, 0, 0)


def test_explicit_rotation_replaces_auto_orient() -> None:
    operations = plan(TransformSpec(rotate_degrees=90), (100, 50), orientation=6)
    assert operations == (Rotate(90),)


def test_auto_orient_from_exif(tmp_path: Path, make_image) -> None:
    path = make_image(tmp_path / "tagged.jpg", (100, 50), orientation=6)
    decoded = decode(path.read_bytes())
    assert decoded.orientation == 6
    operations = plan(TransformSpec(), decoded.size, decoded.orientation)
    assert operations == (AutoOrient(6),)
    assert apply_plan(decoded.image, operations).size == (50, 100)


def test_resize_uses_oriented_dimensions() -> None:
    operations = plan(TransformSpec(width=25), (100, 50), orientation=6)
    assert operations == (AutoOrient(6), Resize(25, 50))


def test_operations_run_in_fixed_order() -> None:
    spec = TransformSpec(width=10, rotate_degrees=180, grayscale=True, to_srgb=True)
    kinds = [type(op) for op in plan(spec, (40, 20))]
    assert kinds == [Rotate, Resize, Grayscale, ToSRGB]


def test_arbitrary_rotation_matches_pillow_canvas() -> None:
    image = Image.new("RGB", (120, 80))
    expected = image.rotate(-30, expand=True).size
    assert rotated_size(image.size, 30) == expected
    assert Rotate(30).apply(image).size == expected


def test_grayscale_equalizes_channel_means() -> None:
    image = Image.new("RGB", (60, 30), (220, 40, 40))
    image.paste((30, 200, 90), (20, 0, 40, 30))
    image.paste((10, 20, 240), (40, 0, 60, 30))
    result = Grayscale().apply(image)
    assert result.mode == "RGB"
    red, green, blue = ImageStat.Stat(result).mean
    assert abs(red - green) < 1
    assert abs(green - blue) < 1


def test_grayscale_keeps_alpha() -> None:
    image = Image.new("RGBA", (4, 4), (200, 10, 10, 128))
    result = Grayscale().apply(image)
    assert result.mode == "RGBA"
    assert result.getpixel((0, 0))[3] == 128


def test_to_srgb_attaches_profile() -> None:
    image = Image.new("RGBA", (4, 4), (10, 20, 30, 255))
    result = ToSRGB().apply(image)
    assert result.mode == "RGBA"
    assert result.info.get("icc_profile")


@pytest.mark.parametrize(
    "spec",
    [TransformSpec(width=0), TransformSpec(height=-5), TransformSpec(rotate_degrees=float("nan"))],
)
def test_validate_rejects_unusable_options(spec: TransformSpec) -> None:
    with pytest.raises(TransformError):
        spec.validate()


def test_to_srgb_ignores_profile_for_another_colour_model() -> None:
    image = Image.new("CMYK", (4, 4), (0, 0, 0, 0))
    image.info["icc_profile"] = ImageCms.ImageCmsProfile(ImageCms.createProfile("sRGB")).tobytes()
    result = ToSRGB().apply(image)
    assert result.mode == "RGB"
    assert result.getpixel((0, 0)) == (255, 255, 255)
