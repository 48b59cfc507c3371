"""
Unit tests for the part builder.
"""

import pytest

from gemini_chat.content.parts import (
    ImagePart,
    TextPart,
    build_parts,
    image_format,
    to_genai_parts,
)
from gemini_chat.errors import ImageFormatError, ImageReadError


@pytest.fixture
def images(tmp_path):
    paths = {}
    for name, data in [("a.PNG", b"\x89PNG"), ("b.jpeg", b"\xFF\xD8\xFF"), ("c.webp", b"RIFF")]:
        path = tmp_path / name
        path.write_bytes(data)
        paths[name] = str(path)
    return paths


def test_text_first_then_images_in_caller_order(images):
    parts = build_parts("describe", [images["b.jpeg"], images["a.PNG"]])

    assert parts == [
        TextPart("describe"),
        ImagePart("jpeg", b"\xFF\xD8\xFF"),
        ImagePart("png", b"\x89PNG"),
    ]


def test_empty_text_yields_only_image_parts(images):
    parts = build_parts("", [images["c.webp"]])
    assert parts == [ImagePart("webp", b"RIFF")]


def test_text_without_images_yields_single_text_part():
    assert build_parts("hi", []) == [TextPart("hi")]


def test_empty_text_and_no_images_yields_empty_list():
    assert build_parts("", []) == []


@pytest.mark.parametrize(
    "path,expected",
    [
        ("a.PNG", "png"),
        ("dir.v2/photo.JpEg", "jpeg"),
        ("archive.tar.GZ", "gz"),
        ("noext", ""),
    ],
)
def test_image_format_is_lowercased_extension_without_dot(path, expected):
    assert image_format(path) == expected


def test_missing_file_raises_image_read_error(images, tmp_path):
    missing = str(tmp_path / "missing.png")

    with pytest.raises(ImageReadError) as exc_info:
        build_parts("x", [images["a.PNG"], missing])

    assert exc_info.value.path == missing
    assert isinstance(exc_info.value.__cause__, OSError)


def test_extensionless_path_is_rejected(tmp_path):
    path = tmp_path / "image"
    path.write_bytes(b"data")

    with pytest.raises(ImageFormatError):
        build_parts("x", [str(path)])


def test_to_genai_parts_maps_format_to_image_mime_type():
    rendered = to_genai_parts([TextPart("desc"), ImagePart("png", b"bytes")])

    assert rendered[0].text == "desc"
    assert rendered[1].inline_data.mime_type == "image/png"
    assert rendered[1].inline_data.data == b"bytes"


def test_image_part_repr_hides_payload():
    assert repr(ImagePart("png", b"x" * 2048)) == "ImagePart(format='png', data=<2048 bytes>)"
