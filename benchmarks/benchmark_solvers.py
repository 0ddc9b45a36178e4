#!/usr/bin/env python3
"""Benchmark the normal/tangent solvers on a deforming UV sphere.

Each method is timed over a short animation: the sphere is built once, the
adjacency cache is built once, and every frame perturbs the positions with a
radial wave before recalculating. The reported figure is the average time per
frame.
"""

from __future__ import annotations

import os
import sys
import time

import numpy as np

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from geometry.primitives import uv_sphere  # noqa: E402
from parameters.solver_parameters import SolverParameters  # noqa: E402
from runtime.normal_solver import RuntimeNormalSolver  # noqa: E402

RINGS = 96
SEGMENTS = 192
FRAMES = 10
WORKERS = 4


def _frames(positions: np.ndarray, count: int):
    """Yield ``count`` deformed copies of ``positions``."""
    radial = positions / np.linalg.norm(positions, axis=1)[:, None]
    for frame in range(count):
        wave = 0.05 * np.sin(4.0 * positions[:, 2] + 0.3 * frame)
        yield positions + radial * wave[:, None]


def _make_solver(method: str, workers: int):
    params = SolverParameters({"workers": workers, "auto_build_cache": True})
    mesh = uv_sphere(RINGS, SEGMENTS)
    solver = RuntimeNormalSolver(params, method=method)
    solver.initialize(mesh.positions, mesh.triangles, mesh.uvs)
    if method != "smoothing":
        solver.build_cache()
    return solver, mesh.positions


def _time_frames(step, positions: np.ndarray, frames: int) -> float:
    start = time.perf_counter()
    for frame_positions in _frames(positions, frames):
        step(frame_positions)
    return (time.perf_counter() - start) / frames


def benchmark_method(method: str, frames: int = FRAMES, workers: int = WORKERS) -> float:
    """Return the average per-frame time of ``recalculate`` for ``method``."""
    solver, rest = _make_solver(method, workers)
    return _time_frames(solver.recalculate, rest, frames)


def benchmark_tangents_only(frames: int = FRAMES, workers: int = WORKERS) -> float:
    """Return the average per-frame time of the tangent-only path."""
    solver, rest = _make_solver("cached_parallel", workers)
    solver.recalculate(rest)
    return _time_frames(solver.recalculate_tangents_only, rest, frames)


def benchmark(runs: int = FRAMES) -> float:
    """Return the average cached-parallel frame time over ``runs`` frames."""
    return benchmark_method("cached_parallel", frames=runs)


if __name__ == "__main__":
    for name in ("smoothing", "cached_parallel", "cached_lite"):
        print(f"{name:<16} {benchmark_method(name) * 1e3:8.2f} ms/frame")
    print(f"{'tangents_only':<16} {benchmark_tangents_only() * 1e3:8.2f} ms/frame")
