"""
Part Builder
============
Turns a `(text, [image_path, ...])` pair into the ordered content parts of a
single request: the text part first (when there is text), then one image part
per path in the order given.

The image format is the lowercased file extension without its leading dot;
only the extension is inspected, the bytes are passed through untouched.
"""

import os
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Union

from google.genai import types

from gemini_chat.errors import ImageFormatError, ImageReadError


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class ImagePart:
    format: str
    data: bytes = b""

    @property
    def mime_type(self) -> str:
        return f"image/{self.format}"

    def __repr__(self) -> str:
        return f"ImagePart(format={self.format!r}, data=<{len(self.data)} bytes>)"


ContentPart = Union[TextPart, ImagePart]


def image_format(path: str) -> str:
    """'photos/A.PNG' → 'png'; '' when the path has no extension."""
    extension = os.path.splitext(path)[1].lower()
    if extension.startswith("."):
        extension = extension[1:]
    return extension


def build_parts(text: str, images: Iterable[str] = ()) -> List[ContentPart]:
    """
    Build the request parts for one turn.

    Raises
    ------
    ImageReadError  if an image file cannot be read
    ImageFormatError if an image path has no extension

    Nothing is returned on failure; either every image is read or none is used.
    """
    parts: List[ContentPart] = []
    if text:
        parts.append(TextPart(text))

    for path in images:
        path = os.fspath(path)
        fmt = image_format(path)
        if not fmt:
            raise ImageFormatError(path)
        try:
            with open(path, "rb") as fh:
                data = fh.read()
        except OSError as exc:
            raise ImageReadError(path, exc) from exc
        parts.append(ImagePart(fmt, data))

    return parts


def to_genai_part(part: ContentPart) -> types.Part:
    if isinstance(part, TextPart):
        return types.Part.from_text(text=part.text)
    if isinstance(part, ImagePart):
        return types.Part.from_bytes(data=part.data, mime_type=part.mime_type)
    raise TypeError(f"Unsupported content part: {part!r}")


def to_genai_parts(parts: Sequence[ContentPart]) -> List[types.Part]:
    return [to_genai_part(part) for part in parts]
