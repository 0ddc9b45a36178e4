# runtime/output_sinks.py
"""Destinations for solved normals and tangents."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from core.exceptions import InputShapeError


def _check_shape(values: np.ndarray, expected: tuple, name: str) -> None:
    if values.shape != expected:
        raise InputShapeError(
            f"{name} has shape {values.shape}; sink expects {expected}",
            name=name,
            expected=expected,
            actual=values.shape,
        )


class OutputSink(ABC):
    """Base interface for consumers of solver output."""

    @abstractmethod
    def write(self, normals: np.ndarray, tangents: np.ndarray | None) -> None:
        """Accept ``(N, 3)`` normals and optional ``(N, 4)`` tangents.

        ``tangents`` is ``None`` for frames that only refreshed normals; the
        sink then keeps its previous tangent data.
        """


class MeshBufferSink(OutputSink):
    """Copy results into caller-owned vertex attribute arrays.

    The arrays are written in place, so a mesh that shares them sees the new
    data without any further call.
    """

    def __init__(self, normals: np.ndarray, tangents: np.ndarray | None = None):
        self.normals = normals
        self.tangents = tangents
        self.writes = 0

    def write(self, normals, tangents=None):
        _check_shape(normals, self.normals.shape, "normals")
        if tangents is not None and self.tangents is not None:
            _check_shape(tangents, self.tangents.shape, "tangents")
        np.copyto(self.normals, normals, casting="same_kind")
        if tangents is not None and self.tangents is not None:
            np.copyto(self.tangents, tangents, casting="same_kind")
        self.writes += 1


class PackedBufferSink(OutputSink):
    """Own contiguous float32 buffers laid out for upload to a GPU."""

    def __init__(self, vertex_count: int):
        self.vertex_count = int(vertex_count)
        self.normals = np.zeros((self.vertex_count, 3), dtype=np.float32)
        self.tangents = np.zeros((self.vertex_count, 4), dtype=np.float32)
        self.tangents[:, 3] = 1.0
        self.writes = 0

    def write(self, normals, tangents=None):
        _check_shape(normals, self.normals.shape, "normals")
        self.normals[...] = normals
        if tangents is not None:
            _check_shape(tangents, self.tangents.shape, "tangents")
            self.tangents[...] = tangents
        self.writes += 1

    def to_bytes(self) -> tuple[bytes, bytes]:
        """Return the raw normal and tangent buffers."""
        return self.normals.tobytes(), self.tangents.tobytes()
