"""Exception types raised by the coordinate engine and the OCR adapter."""

from __future__ import annotations

from typing import Tuple


class CoordinateError(ValueError):
    """Base class for rejected coordinate input."""


class FormatError(CoordinateError):
    """A token does not follow the coordinate grammar."""

    def __init__(self, position: int, text: str) -> None:
        self.position = position
        self.text = text
        super().__init__(f"Entry {position} is malformed: \"{text}\"")


class RangeError(CoordinateError):
    """A well-formed coordinate lies outside the active map."""

    def __init__(self, position: int, value: Tuple[int, int], width: int, height: int) -> None:
        self.position = position
        self.value = value
        self.width = width
        self.height = height
        super().__init__(
            f"Entry {position} is outside the map: ({value[0]}, {value[1]}), "
            f"map size {width}x{height}"
        )


class OCRError(RuntimeError):
    """The OCR collaborator could not produce text for an image."""


class OCRBatchError(OCRError):
    """An image in a batch failed; the remaining images were not processed."""

    def __init__(self, index: int, message: str) -> None:
        self.index = index
        self.message = message
        super().__init__(f"OCR failed for image {index + 1}: {message}")


__all__ = ["CoordinateError", "FormatError", "RangeError", "OCRError", "OCRBatchError"]
