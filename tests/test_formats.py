from pathlib import Path

import pytest

from image_converter.formats import (
    REGISTRY,
    SOURCE_EXTENSIONS,
    FormatError,
    FormatId,
    Strategy,
    all_formats,
    classify,
    is_decodable,
    output_path_for,
    parse_format_tokens,
    strategy_for,
)


def test_classify_is_case_insensitive() -> None:
    assert classify(Path("photo.JPG")) is FormatId.JPG
    assert classify(Path("photo.jpeg")) is FormatId.JPG
    assert classify(Path("scan.Png")) is FormatId.PNG
    assert classify(Path("art.jxl")) is FormatId.JPEGXL


def test_classify_unknown_extension() -> None:
    assert classify(Path("notes.txt")) is None
    assert classify(Path("README")) is None


@pytest.mark.parametrize("format_id", list(FormatId))
def test_every_format_has_one_strategy(format_id: FormatId) -> None:
    spec = REGISTRY[format_id]
    assert spec.format_id is format_id
    expected = Strategy.EXTERNAL if format_id is FormatId.JPEGXL else Strategy.NATIVE
    assert strategy_for(format_id) is expected
    assert classify(Path(f"image{spec.extension}")) is format_id


def test_all_expands_to_fixed_order() -> None:
    expected = (FormatId.JPG, FormatId.PNG, FormatId.WEBP, FormatId.AVIF, FormatId.JPEGXL)
    assert all_formats() == expected
    assert parse_format_tokens(["all"]) == expected
    assert parse_format_tokens(["jpegxl", "ALL", "png"]) == expected


def test_parse_tokens_keeps_request_order_without_duplicates() -> None:
    assert parse_format_tokens(["webp", " png", "webp", "JPG"]) == (
        FormatId.WEBP,
        FormatId.PNG,
        FormatId.JPG,
    )


def test_parse_tokens_rejects_unknown() -> None:
    with pytest.raises(FormatError) as exc:
        parse_format_tokens(["png", "foo", "gif"])
    assert "Invalid formats: foo, gif" in str(exc.value)
    assert exc.value.invalid == ("foo", "gif")


def test_parse_tokens_requires_a_format() -> None:
    with pytest.raises(FormatError):
        parse_format_tokens([])


def test_jpegxl_output_uses_codec_extension(tmp_path: Path) -> None:
    source = tmp_path / "shots" / "photo.v2.png"
    assert output_path_for(FormatId.JPEGXL, source) == tmp_path / "shots" / "photo.v2.jxl"
    assert output_path_for(FormatId.WEBP, source, tmp_path / "out") == tmp_path / "out" / "photo.v2.webp"


def test_source_allow_list_excludes_jpegxl() -> None:
    assert SOURCE_EXTENSIONS == {".jpg", ".jpeg", ".png", ".webp", ".avif"}
    assert is_decodable(Path("a.AVIF"))
    assert not is_decodable(Path("a.jxl"))
