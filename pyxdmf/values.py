# SPDX-License-Identifier: BSD-3-Clause
# Part of the pyxdmf project – https://github.com/pyxdmf/pyxdmf
"""
Conversion of user arrays to host numpy arrays, and their XDMF number types.
"""

from __future__ import annotations

from typing import Any, Tuple

import jax
import numpy as np


def _is_array(x) -> bool:
    return isinstance(x, (jax.Array, np.ndarray))


def as_array(values: Any) -> np.ndarray:
    """
    Return `values` as a C-contiguous host numpy array.

    The numeric type is kept as given (a float32 input stays float32). Python
    sequences get numpy's default type (float64 / int64). Booleans are stored
    as ``int8`` because XDMF has no boolean type.

    Raises
    ------
    TypeError
        If the data is not numeric.
    """
    if isinstance(values, jax.Array):
        values = jax.device_get(values)
    arr = np.ascontiguousarray(values)
    if arr.dtype == np.bool_:
        arr = arr.astype(np.int8)
    if arr.dtype.kind not in "iuf":
        raise TypeError(f"Only numeric data can be written, got dtype {arr.dtype}")
    if arr.dtype.kind == "f" and arr.dtype.itemsize < 4:
        # half precision has no XDMF type
        arr = arr.astype(np.float32)
    return arr


def number_type(dtype: np.dtype) -> Tuple[str, int]:
    """
    XDMF ``NumberType`` and ``Precision`` (bytes) of a numpy dtype.

    >>> number_type(np.dtype(np.float32))
    ('Float', 4)
    >>> number_type(np.dtype(np.uint64))
    ('UInt', 8)
    """
    dtype = np.dtype(dtype)
    if dtype.kind == "f":
        return "Float", dtype.itemsize
    if dtype.itemsize == 1:
        return ("Char" if dtype.kind == "i" else "UChar"), 1
    if dtype.kind == "i":
        return "Int", dtype.itemsize
    if dtype.kind == "u":
        return "UInt", dtype.itemsize
    raise TypeError(f"No XDMF number type for dtype {dtype}")


def text_format(dtype: np.dtype) -> str:
    """printf-style format used to render values of `dtype` as text."""
    dtype = np.dtype(dtype)
    if dtype.kind == "f":
        return "%.7e" if dtype.itemsize <= 4 else "%.16e"
    return "%d"


def to_text(arr: np.ndarray) -> str:
    """Render all values of `arr` space separated, in C order."""
    fmt = text_format(arr.dtype)
    return " ".join(fmt % v for v in arr.ravel().tolist())


__all__ = ["as_array", "number_type", "text_format", "to_text"]
