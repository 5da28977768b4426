from __future__ import annotations

from enum import Enum
from typing import Any


class ShapefileErrorType(Enum):
    FILE_NOT_FOUND = "fileNotFound"
    INVALID_FORMAT = "invalidFormat"
    UNSUPPORTED_TYPE = "unsupportedType"
    INVALID_HEADER = "invalidHeader"
    INVALID_BOUNDS = "invalidBounds"
    CORRUPTED_DATA = "corruptedData"
    IO_ERROR = "ioError"


class ShapefileException(Exception):
    """An exception to handle shapefile specific problems.

    Every codec failure is raised as one of the subclasses below, carrying
    a message, the path of the file involved (if known) and any extra
    details about what was found on disk.
    """

    errorType: ShapefileErrorType | None = None

    def __init__(
        self,
        message: str,
        filePath: str | None = None,
        details: Any = None,
    ):
        Exception.__init__(self, message)
        self.message = message
        self.filePath = filePath
        self.details = details

    def __str__(self) -> str:
        text = self.message
        if self.filePath is not None:
            text += f" (file: {self.filePath})"
        if self.details is not None:
            text += f"\nDetails: {self.details}"
        return text


class FileNotFoundException(ShapefileException):
    errorType = ShapefileErrorType.FILE_NOT_FOUND

    def __init__(self, filePath: str, details: Any = None):
        ShapefileException.__init__(
            self, "File not found or cannot be accessed", filePath, details
        )


class InvalidFormatException(ShapefileException):
    errorType = ShapefileErrorType.INVALID_FORMAT


class UnsupportedTypeException(ShapefileException):
    errorType = ShapefileErrorType.UNSUPPORTED_TYPE


class InvalidHeaderException(ShapefileException):
    errorType = ShapefileErrorType.INVALID_HEADER


class InvalidBoundsException(ShapefileException):
    errorType = ShapefileErrorType.INVALID_BOUNDS


class CorruptedDataException(ShapefileException):
    errorType = ShapefileErrorType.CORRUPTED_DATA


class ShapefileIOException(ShapefileException):
    errorType = ShapefileErrorType.IO_ERROR
