"""Hamming distance between binary ORB descriptors."""

from __future__ import annotations

import numpy as np

DESCRIPTOR_BYTES = 32


def _descriptor_bytes(descriptor) -> bytes:
    if isinstance(descriptor, (bytes, bytearray, memoryview)):
        data = bytes(descriptor)
    else:
        array = np.asarray(descriptor)
        if array.dtype != np.uint8:
            if not np.issubdtype(array.dtype, np.integer):
                raise TypeError(f"descriptor must hold bytes, got dtype {array.dtype}")
            if array.size and (array.min() < 0 or array.max() > 255):
                raise ValueError("descriptor values must lie in 0..255")
            array = array.astype(np.uint8)
        data = np.ascontiguousarray(array).ravel().tobytes()
    if len(data) != DESCRIPTOR_BYTES:
        raise ValueError(
            f"descriptor must be {DESCRIPTOR_BYTES} bytes long, got {len(data)}"
        )
    return data


def descriptor_distance(a, b) -> int:
    """Number of differing bits between two 32-byte descriptors."""
    left = int.from_bytes(_descriptor_bytes(a), "little")
    right = int.from_bytes(_descriptor_bytes(b), "little")
    return bin(left ^ right).count("1")