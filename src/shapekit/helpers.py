from __future__ import annotations

import array
import os
from collections.abc import Sequence
from os import PathLike
from struct import Struct
from typing import Any, Generic, TypeVar, overload

from .types import T

# Helpers


pack_2_int32_be = Struct(">2i").pack_into


@overload
def fsdecode_if_pathlike(path: PathLike[Any]) -> str: ...
@overload
def fsdecode_if_pathlike(path: T) -> T: ...
def fsdecode_if_pathlike(path: Any) -> Any:
    if isinstance(path, PathLike):
        return os.fsdecode(path)  # str

    return path


def sibling_path(path: str, ext: str) -> str:
    """Returns the companion file of a shapefile, e.g. 'roads.shp' -> 'roads.dbf'."""
    return f"{os.path.splitext(path)[0]}.{ext}"


def plan_chunks(lengths: Sequence[int], cap: int) -> list[tuple[int, int]]:
    """Groups consecutive records into chunks for a single read or write call.

    Returns half-open (start, stop) index ranges covering every record in
    order. The byte total of a chunk never exceeds cap, except when one
    record on its own is larger than cap, in which case that record gets a
    chunk to itself. Records are never split across chunks.

    >>> plan_chunks([10, 10, 10], 20)
    [(0, 2), (2, 3)]
    >>> plan_chunks([5, 50, 5], 20)
    [(0, 1), (1, 2), (2, 3)]
    """
    if cap < 1:
        raise ValueError(f"Buffer size must be a positive number of bytes. Got: {cap}")

    chunks: list[tuple[int, int]] = []
    start = 0
    total = 0
    for i, length in enumerate(lengths):
        if i > start and total + length > cap:
            chunks.append((start, i))
            start = i
            total = 0
        total += length
    if start < len(lengths):
        chunks.append((start, len(lengths)))
    return chunks


# Begin

ARR_TYPE = TypeVar("ARR_TYPE", int, float)


# In Python 3.12 we can do:
# class _Array(array.array[ARR_TYPE], Generic[ARR_TYPE]):
class _Array(array.array, Generic[ARR_TYPE]):  # type: ignore[type-arg]
    """Converts python tuples to lists of the appropriate type.
    Used to unpack different shapefile header parts."""

    def __repr__(self) -> str:
        return str(self.tolist())
